"""
Azure API Management: export the service and its APIs (with schemas) and
offramp them to general records.
"""

import json
import logging
import re
from typing import Dict, List, Optional

import yaml

from apimsync.auth import get_azure_token
from apimsync.config import AZURE_API_VERSION, AZURE_MANAGEMENT_URL, AzureFlags
from apimsync.general import GeneralApi, is_revision, slugify, strip_revision
from apimsync.report import OperationReport, PlatformStatus
from apimsync.rest import RestClient
from apimsync.store import AZURE, GENERAL, OPENAPI_FILE, LocalStore

PLATFORM_ID = "azure"
PLATFORM_NAME = "Azure API Management"
PORTAL_URL = "https://portal.azure.com/#resource"

SCHEMA_DEFINITION_FILE = "schema-definition.json"


class AzureClient(RestClient):
    """Azure Resource Manager calls for one API Management service"""

    def __init__(self, subscription: str, resource_group: str, service_name: str,
                 access_token: str, base_url: str = AZURE_MANAGEMENT_URL):
        super().__init__(access_token, base_url)
        self.service_path = (f"subscriptions/{subscription}/resourceGroups/{resource_group}"
                             f"/providers/Microsoft.ApiManagement/service/{service_name}")
        self.params = {"api-version": AZURE_API_VERSION}

    def get_service(self) -> Optional[Dict]:
        return self.get_json(self.service_path, params=self.params)

    def list_apis(self) -> Optional[List[Dict]]:
        """All APIs of the service, following ``nextLink`` pages"""
        data = self.get_json(f"{self.service_path}/apis", params=self.params)
        if data is None:
            return None
        apis = list(data.get("value") or [])
        next_link = data.get("nextLink")
        while next_link:
            page = self.get_json(next_link)
            if page is None:
                break
            apis.extend(page.get("value") or [])
            next_link = page.get("nextLink")
        return apis

    def get_schema(self, api_name: str) -> Optional[Dict]:
        """Schema resource for an API; None when the API has none"""
        response = self.send("GET", f"{self.service_path}/schemas/{api_name}", params=self.params)
        if response is None or response.status_code != 200:
            logging.debug(f"No schema found for Azure API {api_name}")
            return None
        try:
            return response.json()
        except ValueError:
            logging.error(f"Schema response for {api_name} is not JSON")
            return None


def schema_extension(schema_type: str) -> str:
    """
    File extension for an Azure schema document.

    ``application/vnd.oai.openapi.components+json`` -> ``json``,
    ``application/vnd.oai.openapi`` (OpenAPI as YAML) -> ``yaml``.
    """
    schema_type = (schema_type or "").lower()
    if schema_type.endswith(("+json", "/json")):
        return "json"
    if "openapi" in schema_type or "yaml" in schema_type:
        return "yaml"
    tokens = [t for t in re.split(r"[/+.]", schema_type) if t]
    return tokens[-1] if tokens else "json"


def schema_document(document) -> str:
    """Schema text; Azure wraps non JSON documents as ``{"value": "<text>"}``"""
    if isinstance(document, dict) and isinstance(document.get("value"), str):
        return document["value"]
    if isinstance(document, str):
        return document
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _connect(flags: AzureFlags, client: Optional[AzureClient]) -> Optional[AzureClient]:
    if client is not None:
        return client
    token = get_azure_token(flags.token, env=flags.credential_env())
    if not token:
        return None
    flags.token = token
    return AzureClient(flags.subscription, flags.resource_group, flags.service_name, token)


def azure_status(flags: AzureFlags, client: Optional[AzureClient] = None) -> PlatformStatus:
    missing = flags.missing()
    if missing:
        return PlatformStatus(False, f"No {missing} given, cannot connect to Azure.")
    client = _connect(flags, client)
    if client is None:
        return PlatformStatus(False, "Could not get valid Azure token.")

    apis = client.list_apis()
    if apis is None:
        return PlatformStatus(False, f"Could not list APIs for Azure service {flags.service_name}.")
    names = {strip_revision(a.get("name", "")) for a in apis}
    return PlatformStatus(True, f"Connected to Azure, {len(names)} API(s) found in service {flags.service_name}.")


def azure_service_export(flags: AzureFlags, store: LocalStore,
                         client: Optional[AzureClient] = None) -> OperationReport:
    """Write the API Management service resource to ``azure/<service>.json``"""
    report = OperationReport("Azure service export")
    missing = flags.missing()
    if missing:
        logging.warning(f"No {missing} given, cannot export Azure service.")
        return report.skip(f"No {missing} given, cannot export Azure service.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get valid Azure token, cannot export Azure service.")

    print(f"Exporting Azure service {flags.service_name}...")
    service = client.get_service()
    if service is None:
        return report.fail(f"Could not read Azure service {flags.service_name}.")

    store.write_json(store.platform_dir(AZURE) / f"{flags.service_name}.json", service)
    report.add(f"Exported service {flags.service_name}")
    return report


def azure_export(flags: AzureFlags, store: LocalStore,
                 client: Optional[AzureClient] = None) -> OperationReport:
    """
    Export every (matching) API of the service, skipping ``;rev=`` revisions.

    Each API directory is replaced wholesale: ``<name>.json``, plus
    ``schema-definition.json`` and ``schema.<ext>`` when the API has a schema.
    """
    report = OperationReport("Azure export")
    missing = flags.missing()
    if missing:
        logging.warning(f"No {missing} given, cannot export Azure APIs.")
        return report.skip(f"No {missing} given, cannot export Azure APIs.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get valid Azure token, cannot export Azure APIs.")

    print(f"Exporting Azure APIs for service {flags.service_name}...")
    apis = client.list_apis()
    if apis is None:
        return report.fail(f"Could not list APIs for Azure service {flags.service_name}.")

    for api in apis:
        name = api.get("name", "")
        if not name or is_revision(name):
            continue
        if flags.api_name and flags.api_name != name:
            continue
        if flags.only_new and store.has_api(AZURE, name):
            logging.info(f"Skipping {name}, already exported")
            continue

        print(f"Exporting {name}...")
        api_dir = store.reset_dir(store.api_dir(AZURE, name))
        store.write_json(api_dir / f"{name}.json", api)

        schema = client.get_schema(name)
        if schema and schema.get("id"):
            store.write_json(api_dir / SCHEMA_DEFINITION_FILE, schema)
            properties = schema.get("properties") or {}
            document = properties.get("document")
            if document is not None:
                ext = schema_extension(properties.get("schemaType", ""))
                store.write_text(api_dir / f"schema.{ext}", schema_document(document))

        report.apis.append(name)
        report.add(f"Exported {name}")
    return report


def azure_offramp(flags: AzureFlags, store: LocalStore) -> OperationReport:
    """Map exported Azure APIs to general records and copy their schema to openapi.json"""
    report = OperationReport("Azure offramp")
    missing = flags.missing()
    if missing:
        logging.warning(f"No {missing} given, cannot offramp Azure APIs.")
        return report.skip(f"No {missing} given, cannot offramp Azure APIs.")

    print("Offramping Azure API Management APIs to general...")
    service = store.read_json_optional(store.platform_dir(AZURE) / f"{flags.service_name}.json") or {}
    service_props = service.get("properties") or {}

    for name in store.list_apis(AZURE, flags.api_name):
        api_dir = store.api_dir(AZURE, name)
        azure_api = store.read_json_optional(api_dir / f"{name}.json") or {}
        if not azure_api.get("name"):
            report.add_error(f"No Azure API record found for {name}")
            continue

        general_api = to_general(azure_api, service_props, flags)
        target = store.reset_dir(store.api_dir(GENERAL, general_api.name))
        store.write_general_api(general_api)
        _copy_schema(store, api_dir, target)

        report.apis.append(general_api.name)
        report.add(f"Offramped {name} -> {general_api.name}")
    return report


def to_general(azure_api: Dict, service_props: Dict, flags: AzureFlags) -> GeneralApi:
    """Field mapping from an Azure API resource to a general record"""
    props = azure_api.get("properties") or {}
    name = slugify(azure_api.get("name", ""))
    path = props.get("path") or ""

    portal_url = service_props.get("developerPortalUrl") or ""
    gateway_url = service_props.get("gatewayUrl") or ""

    return GeneralApi(
        name=name,
        display_name=props.get("displayName") or azure_api.get("name", ""),
        version=props.get("apiVersion") or "",
        description=props.get("description") or "",
        owner_email=service_props.get("publisherEmail") or "",
        owner_name=service_props.get("publisherName") or "",
        documentation_url=f"{portal_url}/api-details#api={azure_api.get('name', '')}" if portal_url else "",
        gateway_url=f"{gateway_url}/{path}" if gateway_url else "",
        base_path=path,
        platform_id=PLATFORM_ID,
        platform_name=PLATFORM_NAME,
        platform_resource_uri=(f"{PORTAL_URL}/subscriptions/{flags.subscription}"
                               f"/resourceGroups/{flags.resource_group}"
                               f"/providers/Microsoft.ApiManagement/service/{flags.service_name}"
                               f"/overview?apiName={azure_api.get('name', '')}"),
    )


def _copy_schema(store: LocalStore, api_dir, target):
    """schema.json is copied verbatim; YAML documents are converted to JSON"""
    json_schema = api_dir / "schema.json"
    if json_schema.is_file():
        store.copy_file(json_schema, target / OPENAPI_FILE)
        return

    for candidate in ("schema.yaml", "schema.yml"):
        yaml_schema = api_dir / candidate
        if not yaml_schema.is_file():
            continue
        try:
            with open(yaml_schema, "r", encoding="utf-8") as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Cannot convert {yaml_schema} to JSON: {e}")
            return
        store.write_json(target / OPENAPI_FILE, document)
        return

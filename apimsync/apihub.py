"""
Apigee API Hub: onramp general records to Hub payloads, import them and clean
a Hub location.

Onramp writes four artifacts per general record into
``apihub/apiproxies/<name>/``:

    <name>.json               API (only for the anchor of a base path)
    <name>-deployment.json    Deployment
    <name>-version.json       Version, plus ``baseApiName`` linking it to its API
    <name>-version-spec.json  Spec, when the general record has an openapi.json

Import posts them in that order, since each one references the previous.
"""

import base64
import logging
from typing import Dict, List, Optional

import requests

from apimsync.auth import get_google_token
from apimsync.config import APIHUB_BASE_URL, ApigeeFlags
from apimsync.general import GeneralApi
from apimsync.report import OperationReport, PlatformStatus
from apimsync.rest import RestClient, describe
from apimsync.store import APIHUB, GENERAL, OPENAPI_FILE, LocalStore

BASE_API_KEY = "baseApiName"

# general platformId -> Hub system-deployment-type value (id, displayName, description)
DEPLOYMENT_TYPES = {
    "apigee": ("apigee", "Apigee", "Apigee"),
}
DEFAULT_DEPLOYMENT_TYPE = ("others", "Others", "Others")


class ApiHubClient(RestClient):
    """API Hub calls for one project location"""

    def __init__(self, project: str, region: str, access_token: str,
                 base_url: str = APIHUB_BASE_URL):
        super().__init__(access_token, base_url)
        self.location = f"projects/{project}/locations/{region}"

    def _list(self, collection: str) -> Optional[List[Dict]]:
        items: List[Dict] = []
        params: Dict[str, str] = {}
        while True:
            data = self.get_json(f"{self.location}/{collection}", params=params or None)
            if data is None:
                return None
            items.extend(data.get(collection) or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items
            params["pageToken"] = page_token

    def list_apis(self) -> Optional[List[Dict]]:
        return self._list("apis")

    def list_deployments(self) -> Optional[List[Dict]]:
        return self._list("deployments")

    def create_api(self, api_id: str, body: Dict) -> Optional[requests.Response]:
        return self.send("POST", f"{self.location}/apis", params={"apiId": api_id}, json_data=body)

    def create_deployment(self, deployment_id: str, body: Dict) -> Optional[requests.Response]:
        return self.send("POST", f"{self.location}/deployments",
                         params={"deploymentId": deployment_id}, json_data=body)

    def create_version(self, api_id: str, version_id: str, body: Dict) -> Optional[requests.Response]:
        return self.send("POST", f"{self.location}/apis/{api_id}/versions",
                         params={"versionId": version_id}, json_data=body)

    def create_spec(self, api_id: str, version_id: str, spec_id: str,
                    body: Dict) -> Optional[requests.Response]:
        return self.send("POST", f"{self.location}/apis/{api_id}/versions/{version_id}/specs",
                         params={"specId": spec_id}, json_data=body)

    def delete_resource(self, name: str, force: bool = False) -> Optional[requests.Response]:
        """Delete by full resource name (``projects/.../apis/x``)"""
        return self.delete(name, params={"force": "true"} if force else None)


def _connect(flags: ApigeeFlags, client: Optional[ApiHubClient]) -> Optional[ApiHubClient]:
    if client is not None:
        return client
    token = get_google_token(flags.token)
    if not token:
        return None
    flags.token = token
    return ApiHubClient(flags.project, flags.region, token)


def _missing(flags: ApigeeFlags) -> Optional[str]:
    if not flags.project:
        return "project"
    if not flags.region:
        return "region"
    return None


# ==============================
# PAYLOADS
# ==============================

def location_name(flags: ApigeeFlags) -> str:
    return f"projects/{flags.project}/locations/{flags.region}"


def build_anchor_index(apis: List[GeneralApi]) -> Dict[str, str]:
    """
    Map each base path to the API that anchors it.

    Root records (no version) are indexed first and the first one seen wins.
    A base path with no root record is anchored by its first versioned record.
    """
    index: Dict[str, str] = {}
    for api in apis:
        if api.is_root:
            index.setdefault(api.base_path, api.name)
    for api in apis:
        if not api.is_root:
            index.setdefault(api.base_path, api.name)
    return index


def _documentation(api: GeneralApi) -> Dict[str, str]:
    return {"externalUri": api.documentation_url}


def api_payload(api: GeneralApi, anchor: str, location: str) -> Dict:
    return {
        "name": f"{location}/apis/{anchor}",
        "displayName": api.display_name,
        "description": api.description,
        "documentation": _documentation(api),
        "owner": {"displayName": api.owner_name, "email": api.owner_email},
    }


def deployment_payload(api: GeneralApi, location: str) -> Dict:
    type_id, type_name, type_description = DEPLOYMENT_TYPES.get(api.platform_id, DEFAULT_DEPLOYMENT_TYPE)
    return {
        "name": f"{location}/deployments/{api.name}",
        "displayName": api.display_name,
        "description": api.description,
        "documentation": _documentation(api),
        "deploymentType": {
            "attribute": f"{location}/attributes/system-deployment-type",
            "enumValues": {"values": [{
                "id": type_id,
                "displayName": type_name,
                "description": type_description,
                "immutable": True,
            }]},
        },
        "resourceUri": api.platform_resource_uri,
        "endpoints": [api.gateway_url] if api.gateway_url else [],
        "apiVersions": [api.version] if api.version else [],
    }


def version_payload(api: GeneralApi, anchor: str, deployment_name: str, location: str) -> Dict:
    return {
        "name": f"{location}/apis/{anchor}/versions/{api.name}",
        "displayName": api.display_name,
        "description": api.description,
        "documentation": _documentation(api),
        "deployments": [deployment_name],
        BASE_API_KEY: anchor,
    }


def spec_payload(api: GeneralApi, anchor: str, document: bytes, location: str) -> Dict:
    return {
        "name": f"{location}/apis/{anchor}/versions/{api.name}/specs/{api.name}",
        "displayName": api.display_name,
        "specType": {
            "attribute": f"{location}/attributes/system-spec-type",
            "enumValues": {"values": [{
                "id": "openapi",
                "displayName": "OpenAPI Spec",
                "description": "OpenAPI Spec",
                "immutable": True,
            }]},
        },
        "contents": {
            "mimeType": "application/json",
            "contents": base64.b64encode(document).decode("ascii"),
        },
        "documentation": _documentation(api),
    }


# ==============================
# OPERATIONS
# ==============================

def apihub_status(flags: ApigeeFlags, client: Optional[ApiHubClient] = None) -> PlatformStatus:
    missing = _missing(flags)
    if missing:
        return PlatformStatus(False, f"No {missing} given, cannot connect to API Hub.")
    client = _connect(flags, client)
    if client is None:
        return PlatformStatus(False, "Could not get a Google access token.")

    apis = client.list_apis()
    if apis is None:
        return PlatformStatus(False, f"Could not list API Hub APIs in project {flags.project}.")
    return PlatformStatus(True, f"Connected to API Hub, {len(apis)} APIs found in project "
                                f"{flags.project} and region {flags.region}.")


def apihub_onramp(flags: ApigeeFlags, store: LocalStore) -> OperationReport:
    """Turn every (matching) general record into API Hub payload files"""
    report = OperationReport("API Hub onramp")
    missing = _missing(flags)
    if missing:
        logging.warning(f"No {missing} given.")
        return report.skip(f"No {missing} given, cannot onramp APIs to API Hub.")

    print("Onramping APIs to API Hub...")
    location = location_name(flags)
    general_apis = store.list_general_apis()
    anchors = build_anchor_index(general_apis)

    for api in general_apis:
        if flags.api_name and flags.api_name != api.name:
            continue
        anchor = anchors.get(api.base_path, api.name)
        target = store.reset_dir(store.api_dir(APIHUB, api.name))

        if anchor == api.name:
            store.write_json(target / f"{api.name}.json", api_payload(api, anchor, location))

        deployment = deployment_payload(api, location)
        store.write_json(target / f"{api.name}-deployment.json", deployment)
        store.write_json(target / f"{api.name}-version.json",
                         version_payload(api, anchor, deployment["name"], location))

        spec_file = store.api_dir(GENERAL, api.name) / OPENAPI_FILE
        if spec_file.is_file():
            store.write_json(target / f"{api.name}-version-spec.json",
                             spec_payload(api, anchor, spec_file.read_bytes(), location))

        report.apis.append(api.name)
        report.add(f"Onramped {api.name}" + ("" if anchor == api.name else f" (version of {anchor})"))
    return report


def apihub_import(flags: ApigeeFlags, store: LocalStore,
                  client: Optional[ApiHubClient] = None) -> OperationReport:
    """
    Create API, Deployment, Version and Spec for every onramped directory.

    A failed artifact is reported and the remaining artifacts are still attempted.
    """
    report = OperationReport("API Hub import")
    missing = _missing(flags)
    if missing:
        logging.warning(f"No {missing} given.")
        return report.skip(f"No {missing} given, cannot import APIs to API Hub.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get a Google access token, cannot import APIs to API Hub.")

    print(f"Importing APIs to API Hub in project {flags.project}...")
    for name in store.list_apis(APIHUB, flags.api_name):
        print(f"Importing {name}...")
        api_dir = store.api_dir(APIHUB, name)

        api_body = store.read_json_optional(api_dir / f"{name}.json")
        if api_body is not None:
            _record(report, "API", name, client.create_api(name, api_body))

        deployment_body = store.read_json_optional(api_dir / f"{name}-deployment.json")
        if deployment_body is not None:
            _record(report, "deployment", name, client.create_deployment(name, deployment_body))

        base_api = name
        version_body = store.read_json_optional(api_dir / f"{name}-version.json")
        if version_body is not None:
            version_body = dict(version_body)
            base_api = version_body.pop(BASE_API_KEY, "") or name
            _record(report, "version", name, client.create_version(base_api, name, version_body))

        spec_body = store.read_json_optional(api_dir / f"{name}-version-spec.json")
        if spec_body is not None:
            _record(report, "version spec", name, client.create_spec(base_api, name, name, spec_body))

        report.apis.append(name)
    return report


def apihub_clean(flags: ApigeeFlags, client: Optional[ApiHubClient] = None) -> OperationReport:
    """Delete every (matching) API, then every (matching) deployment"""
    report = OperationReport("API Hub clean")
    missing = _missing(flags)
    if missing:
        logging.warning(f"No {missing} given.")
        return report.skip(f"No {missing} given, cannot clean API Hub.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get a Google access token, cannot clean API Hub.")

    print(f"Removing all API Hub APIs for project {flags.project}...")
    apis = client.list_apis()
    if apis is None:
        return report.fail(f"Could not list API Hub APIs in project {flags.project}.")
    for api in apis:
        name = api.get("name", "")
        if not name or (flags.api_name and not name.endswith(f"/{flags.api_name}")):
            continue
        print(f"Deleting {name}...")
        response = client.delete_resource(name, force=True)
        if response is None or not response.ok:
            report.add_error(f"Error deleting API {name}: {describe(response)}")
            continue
        report.apis.append(name)

    deployments = client.list_deployments()
    if deployments is None:
        report.add_error(f"Could not list API Hub deployments in project {flags.project}")
        return report
    for deployment in deployments:
        name = deployment.get("name", "")
        if not name or (flags.api_name and not name.endswith(f"/{flags.api_name}")):
            continue
        print(f"Deleting {name}...")
        response = client.delete_resource(name)
        if response is None or not response.ok:
            report.add_error(f"Error deleting deployment {name}: {describe(response)}")
    return report


def _record(report: OperationReport, kind: str, name: str, response: Optional[requests.Response]):
    if response is not None and response.status_code == 200:
        report.add(f"Created {kind} {name}")
        return
    body = ""
    if response is not None:
        body = response.text[:500]
    logging.error(f"Error creating {kind} {name}: {describe(response)} {body}")
    report.add_error(f"Error creating {kind} {name}: {describe(response)}")

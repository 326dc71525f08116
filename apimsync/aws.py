"""
AWS API Gateway (v2): export APIs with their OAS 3.0 definitions and offramp
them to general records.

Local layout groups API versions under their root name:
``aws/apiproxies/<root>/<slug>.json`` and ``<slug>-oas.json``.
"""

import logging
from typing import Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from apimsync.auth import get_aws_client
from apimsync.config import AwsFlags
from apimsync.errors import ConfigurationError, RemoteError
from apimsync.general import GeneralApi, root_name, slugify
from apimsync.report import OperationReport, PlatformStatus
from apimsync.store import AWS, GENERAL, OPENAPI_FILE, LocalStore

PLATFORM_ID = "aws-api-gateway"
PLATFORM_NAME = "AWS API Gateway"

OAS_SUFFIXES = ("-oas.json", "-oas-definition.json")


def list_aws_apis(client) -> List[Dict]:
    """All API Gateway v2 APIs, following ``NextToken``; raises RemoteError"""
    apis: List[Dict] = []
    kwargs = {}
    while True:
        try:
            page = client.get_apis(**kwargs)
        except ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            raise RemoteError(f"Could not list AWS APIs: {e}", status) from e
        except BotoCoreError as e:
            raise RemoteError(f"Could not list AWS APIs: {e}") from e
        apis.extend(page.get("Items") or [])
        next_token = page.get("NextToken")
        if not next_token:
            return apis
        kwargs["NextToken"] = next_token


def export_oas(client, api_id: str) -> Optional[bytes]:
    """OAS 3.0 JSON definition of an API, None when the export fails"""
    try:
        response = client.export_api(ApiId=api_id, OutputType="JSON", Specification="OAS30")
    except (BotoCoreError, ClientError) as e:
        logging.error(f"Error exporting AWS API {api_id}: {e}")
        return None
    body = response.get("body")
    if hasattr(body, "read"):
        body = body.read()
    if isinstance(body, str):
        body = body.encode("utf-8")
    return body or None


def aws_status(flags: AwsFlags, client=None) -> PlatformStatus:
    try:
        region = flags.require_region()
        client = client or get_aws_client(flags, region=region)
        apis = list_aws_apis(client)
    except (ConfigurationError, RemoteError, BotoCoreError) as e:
        return PlatformStatus(False, str(e))
    return PlatformStatus(True, f"Connected to AWS, {len(apis)} API(s) found in region {region}.")


def aws_export(flags: AwsFlags, store: LocalStore, client=None) -> OperationReport:
    """Export every (matching) API and its OAS 3.0 definition"""
    report = OperationReport("AWS export")
    try:
        region = flags.require_region()
    except ConfigurationError as e:
        logging.warning(str(e))
        return report.skip(f"Cannot export AWS APIs. {e}")

    try:
        client = client or get_aws_client(flags, region=region)
        print(f"Exporting AWS APIs for region {region}...")
        apis = list_aws_apis(client)
    except (RemoteError, BotoCoreError) as e:
        logging.error(f"Could not list AWS APIs: {e}")
        return report.fail(f"Could not list AWS APIs in region {region}.")

    if not apis:
        report.message = f"No AWS APIs found in region {region}."
        return report

    for api in apis:
        name = api.get("Name", "")
        slug = slugify(name)
        if not slug or (flags.api_name and flags.api_name not in (name, slug)):
            continue
        root = root_name(slug)
        api_dir = store.api_dir(AWS, root)
        if flags.only_new and (api_dir / f"{slug}.json").is_file():
            logging.info(f"Skipping {name}, already exported")
            continue

        print(f"Exporting {name}...")
        store.write_json(api_dir / f"{slug}.json", api)
        oas = export_oas(client, api.get("ApiId", ""))
        if oas is None:
            report.add_error(f"Could not export OAS definition for {name}")
        else:
            store.write_bytes(api_dir / f"{slug}-oas.json", oas)

        report.apis.append(slug)
        report.add(f"Exported {name}")
    return report


def aws_offramp(flags: AwsFlags, store: LocalStore) -> OperationReport:
    """
    Map exported AWS APIs to general records.

    Records go through the general writer, so an existing, richer record with
    the same name is kept.
    """
    report = OperationReport("AWS offramp")
    region = flags.resolved_region()
    print("Offramping AWS API Gateway APIs to general...")

    for root in store.list_apis(AWS):
        api_dir = store.api_dir(AWS, root)
        for api_file in sorted(api_dir.glob("*.json")):
            if api_file.name.endswith(OAS_SUFFIXES):
                continue
            aws_api = store.read_json(api_file)
            if not isinstance(aws_api, dict) or not aws_api.get("Name"):
                report.add_error(f"No AWS API record found in {api_file}")
                continue

            general_api = to_general(aws_api, root, region)
            if flags.api_name and flags.api_name not in (root, general_api.name, aws_api["Name"]):
                continue

            store.ensure_dir(store.api_dir(GENERAL, general_api.name))
            store.write_general_api(general_api)
            oas_file = api_dir / f"{api_file.stem}-oas.json"
            if oas_file.is_file():
                store.copy_file(oas_file, store.api_dir(GENERAL, general_api.name) / OPENAPI_FILE)

            report.apis.append(general_api.name)
            report.add(f"Offramped {aws_api['Name']} -> {general_api.name}")
    return report


def to_general(aws_api: Dict, root: str, region: str) -> GeneralApi:
    """Field mapping from an API Gateway v2 ``Api`` item to a general record"""
    api_id = aws_api.get("ApiId") or ""
    resource_uri = ""
    if region and api_id:
        resource_uri = f"https://{region}.console.aws.amazon.com/apigateway/main/apis?api={api_id}"

    return GeneralApi(
        name=slugify(aws_api.get("Name", "")),
        display_name=aws_api.get("Name") or "",
        version=aws_api.get("Version") or "",
        description=aws_api.get("Description") or "",
        gateway_url=aws_api.get("ApiEndpoint") or "",
        base_path=root,
        platform_id=PLATFORM_ID,
        platform_name=PLATFORM_NAME,
        platform_resource_uri=resource_uri,
    )

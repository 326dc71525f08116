"""
Apigee: export proxy bundles, import them back, clean an organization and
offramp exported bundles to general records.
"""

import logging
import os
from typing import Dict, List, Optional

import requests

from apimsync.apigee_spec import ApigeeBundleReader
from apimsync.auth import get_google_token
from apimsync.bundle import build_bundle, extract_bundle
from apimsync.config import APIGEE_BASE_URL, ApigeeFlags
from apimsync.errors import BundleError, StoreError
from apimsync.general import GeneralApi, slugify, split_version
from apimsync.report import OperationReport, PlatformStatus
from apimsync.rest import RestClient, describe
from apimsync.store import APIGEE, GENERAL, OPENAPI_FILE, LocalStore

PLATFORM_ID = "apigee"
PLATFORM_NAME = "Apigee"
CONSOLE_URL = "https://console.cloud.google.com/apigee/proxies"


class ApigeeClient(RestClient):
    """Apigee Management API for one organization"""

    def __init__(self, org: str, access_token: str, base_url: str = APIGEE_BASE_URL):
        super().__init__(access_token, base_url)
        self.org = org

    def list_apis(self) -> Optional[List[Dict]]:
        """All proxies with their revisions, or None when the call failed"""
        data = self.get_json(f"organizations/{self.org}/apis", params={"includeRevisions": "true"})
        if data is None:
            return None
        return data.get("proxies") or []

    def get_bundle(self, api_proxy: str, revision: str) -> Optional[bytes]:
        return self.get_bytes(f"organizations/{self.org}/apis/{api_proxy}/revisions/{revision}",
                              params={"format": "bundle"})

    def delete_api(self, api_proxy: str) -> Optional[requests.Response]:
        return self.delete(f"organizations/{self.org}/apis/{api_proxy}")

    def import_bundle(self, api_proxy: str, zip_path) -> Optional[requests.Response]:
        with open(zip_path, "rb") as fh:
            return self.send("POST", f"organizations/{self.org}/apis",
                             params={"name": api_proxy, "action": "import"},
                             files={"file": (f"{api_proxy}.zip", fh, "application/zip")})


def latest_revision(revisions: List[str]) -> str:
    """Highest numeric revision; non numeric lists fall back to the last entry"""
    numeric = [r for r in revisions if str(r).isdigit()]
    if numeric:
        return str(max(numeric, key=int))
    return str(revisions[-1])


def _connect(flags: ApigeeFlags, client: Optional[ApigeeClient]) -> Optional[ApigeeClient]:
    if client is not None:
        return client
    token = get_google_token(flags.token)
    if not token:
        return None
    flags.token = token
    return ApigeeClient(flags.project, token)


def apigee_status(flags: ApigeeFlags, client: Optional[ApigeeClient] = None) -> PlatformStatus:
    if not flags.project:
        return PlatformStatus(False, "No project given, cannot connect to Apigee.")
    client = _connect(flags, client)
    if client is None:
        return PlatformStatus(False, "Could not get a Google access token.")

    apis = client.list_apis()
    if apis is None:
        return PlatformStatus(False, f"Could not list Apigee APIs in project {flags.project}.")
    return PlatformStatus(True, f"Connected to Apigee, {len(apis)} APIs found in project {flags.project}.")


def apigee_export(flags: ApigeeFlags, store: LocalStore,
                  client: Optional[ApigeeClient] = None) -> OperationReport:
    """
    Download and extract the latest revision bundle of every (matching) proxy.

    When an environment is given, exported proxies are appended to its
    ``deployments.json`` ledger.
    """
    report = OperationReport("Apigee export")
    if not flags.project:
        logging.warning("No project given, cannot export Apigee APIs.")
        return report.skip("No project given, cannot export Apigee APIs.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get a Google access token, cannot export Apigee APIs.")

    print(f"Exporting Apigee APIs for project {flags.project}...")
    ledger = store.load_ledger(flags.environment) if flags.environment else None

    apis = client.list_apis()
    if apis is None:
        return report.fail(f"Could not list Apigee APIs in project {flags.project}.")

    base_dir = store.ensure_dir(store.apis_dir(APIGEE))
    for api in apis:
        name = api.get("name", "")
        if not name or (flags.api_name and flags.api_name != name):
            continue
        revisions = api.get("revision") or []
        if not revisions:
            report.add_error(f"No revisions found for {name}")
            continue

        print(f"Exporting {name}...")
        bundle = client.get_bundle(name, latest_revision(revisions))
        if bundle is None:
            report.add_error(f"Could not download bundle for {name}")
            continue

        zip_path = base_dir / f"{name}.zip"
        store.write_bytes(zip_path, bundle)
        try:
            extract_bundle(zip_path, store.api_dir(APIGEE, name), replace=True)
        except BundleError as e:
            logging.error(f"Skipping {name}: {e}")
            report.add_error(f"Invalid bundle for {name}: {e}")
            continue
        finally:
            _remove(zip_path)

        report.apis.append(name)
        report.add(f"Exported {name}")
        if ledger is not None:
            ledger.add(name)

    if ledger is not None:
        store.save_ledger(flags.environment, ledger)
    return report


def apigee_import(flags: ApigeeFlags, store: LocalStore,
                  client: Optional[ApigeeClient] = None) -> OperationReport:
    """Zip every local proxy and upload it to the organization"""
    report = OperationReport("Apigee import")
    if not flags.project:
        logging.warning("No project given.")
        return report.skip("No project given, cannot import Apigee APIs.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get a Google access token, cannot import Apigee APIs.")

    print(f"Importing Apigee APIs to project {flags.project}...")
    for name in store.list_apis(APIGEE, flags.api_name):
        print(f"Importing {name}...")
        zip_path = store.apis_dir(APIGEE) / f"{name}.zip"
        try:
            build_bundle(store.api_dir(APIGEE, name), zip_path)
            response = client.import_bundle(name, zip_path)
        except BundleError as e:
            report.add_error(f"Error importing Apigee API {name}: {e}")
            continue
        finally:
            _remove(zip_path)

        if response is None or response.status_code != 200:
            report.add_error(f"Error creating Apigee API {name}: {describe(response)}")
            continue
        report.apis.append(name)
        report.add(f"Imported {name}")
    return report


def apigee_clean(flags: ApigeeFlags, client: Optional[ApigeeClient] = None) -> OperationReport:
    """Delete every (matching) proxy from the organization"""
    report = OperationReport("Apigee clean")
    if not flags.project:
        logging.warning("No project given.")
        return report.skip("No project given, cannot clean Apigee APIs.")

    client = _connect(flags, client)
    if client is None:
        return report.fail("Could not get a Google access token, cannot clean Apigee APIs.")

    print(f"Removing all Apigee APIs for project {flags.project}...")
    apis = client.list_apis()
    if apis is None:
        return report.fail(f"Could not list Apigee APIs in project {flags.project}.")

    for api in apis:
        name = api.get("name", "")
        if not name or (flags.api_name and flags.api_name != name):
            continue
        print(f"Deleting {name}...")
        response = client.delete_api(name)
        if response is None or not response.ok:
            report.add_error(f"Error deleting Apigee API {name}: {describe(response)}")
            continue
        report.apis.append(name)
    return report


def apigee_offramp(flags: ApigeeFlags, store: LocalStore) -> OperationReport:
    """Convert exported bundles into general records, with a generated openapi.json"""
    report = OperationReport("Apigee offramp")
    if not flags.project:
        logging.warning("No project given, cannot offramp Apigee APIs.")
        return report.skip("No project given, cannot offramp Apigee APIs.")

    print("Offramping Apigee APIs to general...")
    for name in store.list_apis(APIGEE, flags.api_name):
        reader = ApigeeBundleReader(store.api_dir(APIGEE, name))
        info = reader.read_info()
        if info is None:
            report.add_error(f"No proxy definition found for {name}")
            continue

        slug = slugify(info.name)
        root, suffix = split_version(slug)
        general_api = GeneralApi(
            name=slug,
            display_name=info.display_name or info.name,
            version=suffix,
            description=info.description,
            owner_email=info.created_by,
            base_path=info.base_path or f"/{root}",
            platform_id=PLATFORM_ID,
            platform_name=PLATFORM_NAME,
            platform_resource_uri=f"{CONSOLE_URL}/{info.name}/overview?project={flags.project}",
        )

        target = store.reset_dir(store.api_dir(GENERAL, slug))
        store.write_general_api(general_api)
        spec = reader.generate_openapi()
        if spec.get("paths"):
            store.write_json(target / OPENAPI_FILE, spec)

        report.apis.append(slug)
        report.add(f"Offramped {name} -> {slug}")
    return report


def apigee_test_init(flags: ApigeeFlags, store: LocalStore) -> OperationReport:
    """Write a test developer, product and app for every proxy in an environment ledger"""
    report = OperationReport("Apigee test init")
    if not flags.project:
        return report.skip("No project given, cannot init test data.")
    if not flags.environment:
        return report.skip("No environment given, cannot init test data.")

    ledger = store.load_ledger(flags.environment)
    developer = {"email": "test@example.com", "userName": "testUser",
                 "firstName": "Test", "lastName": "User"}
    product = {"name": "test_product", "displayName": "Test Product", "scopes": [],
               "environments": [], "apiResources": ["/"], "proxies": ledger.names()}
    app = {"developerEmail": developer["email"], "name": "test_app", "displayName": "Test App",
           "apiProducts": [product["name"]], "expiryType": "never"}

    tests_dir = store.platform_dir(APIGEE) / "tests" / flags.environment
    store.write_json(tests_dir / "developers.json", [developer])
    store.write_json(tests_dir / "products.json", [product])
    store.write_json(tests_dir / "developerapps.json", [app])

    report.apis.extend(ledger.names())
    report.add(f"Test data written to {tests_dir}")
    return report


def _remove(path):
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        raise StoreError(f"Cannot remove {path}: {e}") from e

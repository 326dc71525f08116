"""
Command line entry point.

    apimsync <platform> <resource> <action> [flags]

    apimsync apigee apis export --project my-project --environment eval
    apimsync azure apis offramp --subscription ... --resourcegroup ... --name ...
    apimsync apihub apis onramp --project my-project --region europe-west1
    apimsync sync --offramp azure --onramp apihub
    apimsync ws start --port 8080
"""

import argparse
import logging
import os
import sys
from functools import partial
from typing import Dict, List, Optional

from apimsync import __version__, pipeline, webserver
from apimsync.apigee import apigee_clean, apigee_export, apigee_import, apigee_offramp, apigee_test_init
from apimsync.apihub import apihub_clean, apihub_import, apihub_onramp
from apimsync.aws import aws_export, aws_offramp
from apimsync.azure import azure_export, azure_offramp, azure_service_export
from apimsync.config import ApigeeFlags, AwsFlags, AzureFlags, data_dir
from apimsync.errors import ApimSyncError
from apimsync.report import OperationReport
from apimsync.store import APIGEE, APIHUB, AWS, AZURE, GENERAL, LocalStore

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# CLI flag -> environment variable, used to hand flags to the pipeline
ENV_FLAGS = {
    "project": "APIGEE_PROJECT",
    "region": "APIGEE_REGION",
    "token": "APIGEE_TOKEN",
    "subscription": "AZURE_SUBSCRIPTION_ID",
    "resourcegroup": "AZURE_RESOURCE_GROUP",
    "name": "AZURE_SERVICE_NAME",
    "access_key": "AWS_ACCESS_KEY_ID",
    "access_secret": "AWS_SECRET_ACCESS_KEY",
}


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


# ==============================
# FLAGS
# ==============================

def _override(flags, args, attrs: Dict[str, str]):
    """Copy non-empty CLI values onto a flags object (``cli attr -> flags attr``)"""
    for arg_name, attr in attrs.items():
        value = getattr(args, arg_name, None)
        if value:
            setattr(flags, attr, value)
    return flags


def apigee_flags(args) -> ApigeeFlags:
    return _override(ApigeeFlags.from_env(), args, {
        "project": "project", "region": "region", "token": "token",
        "environment": "environment", "api": "api_name",
    })


def azure_flags(args) -> AzureFlags:
    return _override(AzureFlags.from_env(), args, {
        "subscription": "subscription", "resourcegroup": "resource_group",
        "name": "service_name", "token": "token", "api": "api_name", "only_new": "only_new",
    })


def aws_flags(args) -> AwsFlags:
    return _override(AwsFlags.from_env(), args, {
        "access_key": "access_key", "access_secret": "access_secret",
        "region": "region", "api": "api_name", "only_new": "only_new",
    })


def flag_env(args) -> Dict[str, str]:
    """Process environment overlaid with the flags given on the command line"""
    env = dict(os.environ)
    for arg_name, var in ENV_FLAGS.items():
        value = getattr(args, arg_name, None)
        if value:
            env[var] = value
    return env


# ==============================
# OUTPUT
# ==============================

def print_report(report: OperationReport) -> int:
    for line in report.lines:
        print(line)
    marker = "✅" if report.result and not report.errors else "⚠️"
    print(f"{marker} {report.summary()}")
    return 0 if report.result or report.skipped else 1


# ==============================
# COMMANDS
# ==============================

def cmd_apigee_export(args, store):
    return print_report(apigee_export(apigee_flags(args), store))


def cmd_apigee_import(args, store):
    return print_report(apigee_import(apigee_flags(args), store))


def cmd_apigee_clean(args, store):
    return print_report(apigee_clean(apigee_flags(args)))


def cmd_apigee_offramp(args, store):
    return print_report(apigee_offramp(apigee_flags(args), store))


def cmd_apigee_test_init(args, store):
    return print_report(apigee_test_init(apigee_flags(args), store))


def cmd_azure_service_export(args, store):
    return print_report(azure_service_export(azure_flags(args), store))


def cmd_azure_export(args, store):
    return print_report(azure_export(azure_flags(args), store))


def cmd_azure_offramp(args, store):
    return print_report(azure_offramp(azure_flags(args), store))


def cmd_aws_export(args, store):
    return print_report(aws_export(aws_flags(args), store))


def cmd_aws_offramp(args, store):
    return print_report(aws_offramp(aws_flags(args), store))


def cmd_apihub_onramp(args, store):
    return print_report(apihub_onramp(apigee_flags(args), store))


def cmd_apihub_import(args, store):
    return print_report(apihub_import(apigee_flags(args), store))


def cmd_apihub_clean(args, store):
    return print_report(apihub_clean(apigee_flags(args)))


def cmd_cleanlocal(args, store):
    path = store.clean_local(args.platform)
    print(f"✅ Removed local {args.platform} data at {path}")
    return 0


def cmd_sync(args, store):
    report = pipeline.sync(args.offramp, args.onramp, store, env=flag_env(args), only_new=args.only_new)
    return print_report(report)


def cmd_status(args, store):
    connected = True
    for name, status in pipeline.status(flag_env(args)).items():
        marker = "✅" if status.connected else "⚠️"
        print(f"{marker} {name}: {status.message}")
        connected = connected and status.connected
    return 0 if connected else 1


def cmd_ws_start(args, store):
    webserver.start(args.port, store)
    return 0


# ==============================
# PARSER
# ==============================

def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--data-dir", default=None,
                        help="Local data root (default: $APIMSYNC_DATA_DIR or ./data)")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    common.add_argument("--log-file", default=None, help="Also write the log to this file")
    return common


def _add_apigee_flags(p: argparse.ArgumentParser, environment: bool = False):
    p.add_argument("--project", default="", help="Google Cloud project (Apigee organization)")
    p.add_argument("--region", default="", help="API Hub region")
    p.add_argument("--token", default="", help="Access token (default: Application Default Credentials)")
    p.add_argument("--api", default="", help="Only process this API")
    if environment:
        p.add_argument("--environment", default="", help="Apigee environment")


def _add_azure_flags(p: argparse.ArgumentParser):
    p.add_argument("--subscription", default="", help="Azure subscription id")
    p.add_argument("--resourcegroup", default="", help="Azure resource group")
    p.add_argument("--name", default="", help="API Management service name")
    p.add_argument("--token", default="", help="Azure management token")
    p.add_argument("--api", default="", help="Only process this API")
    p.add_argument("--only-new", action="store_true", help="Skip APIs that are already exported")


def _add_aws_flags(p: argparse.ArgumentParser):
    p.add_argument("--access-key", default="", help="AWS access key id")
    p.add_argument("--access-secret", default="", help="AWS secret access key")
    p.add_argument("--region", default="", help="AWS region (default: $AWS_REGION)")
    p.add_argument("--api", default="", help="Only process this API")
    p.add_argument("--only-new", action="store_true", help="Skip APIs that are already exported")


def _add_override_flags(p: argparse.ArgumentParser):
    """Flags handed to the pipeline as environment overrides"""
    for flag in ("--project", "--region", "--token", "--subscription", "--resourcegroup", "--name",
                 "--access-key", "--access-secret"):
        p.add_argument(flag, default="")


def _leaf(subparsers, name: str, func, help_text: str, common, add_flags=None, **defaults):
    p = subparsers.add_parser(name, help=help_text, parents=[common])
    if add_flags:
        add_flags(p)
    p.set_defaults(func=func, **defaults)
    return p


def _cleanlocal(subparsers, platform: str, common):
    _leaf(subparsers, "cleanlocal", cmd_cleanlocal, f"Delete local {platform} data", common, platform=platform)


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()
    parser = argparse.ArgumentParser(prog="apimsync",
                                     description="Sync API metadata between API management platforms")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    platforms = parser.add_subparsers(dest="platform_command")

    # apigee
    apigee = platforms.add_parser("apigee", help="Apigee").add_subparsers(dest="resource")
    apis = apigee.add_parser("apis", help="Apigee API proxies").add_subparsers(dest="action")
    with_env = partial(_add_apigee_flags, environment=True)
    _leaf(apis, "export", cmd_apigee_export, "Export proxy bundles", common, with_env)
    _leaf(apis, "import", cmd_apigee_import, "Import local proxies", common, _add_apigee_flags)
    _leaf(apis, "clean", cmd_apigee_clean, "Delete proxies from the organization", common, _add_apigee_flags)
    _leaf(apis, "offramp", cmd_apigee_offramp, "Convert exported proxies to general", common, _add_apigee_flags)
    _cleanlocal(apis, APIGEE, common)
    tests = apigee.add_parser("test", help="Apigee test data").add_subparsers(dest="action")
    _leaf(tests, "init", cmd_apigee_test_init, "Write test developer, product and app", common, with_env)

    # azure
    azure = platforms.add_parser("azure", help="Azure API Management").add_subparsers(dest="resource")
    service = azure.add_parser("service", help="API Management service").add_subparsers(dest="action")
    _leaf(service, "export", cmd_azure_service_export, "Export the service resource", common, _add_azure_flags)
    apis = azure.add_parser("apis", help="Azure APIs").add_subparsers(dest="action")
    _leaf(apis, "export", cmd_azure_export, "Export APIs and schemas", common, _add_azure_flags)
    _leaf(apis, "offramp", cmd_azure_offramp, "Convert exported APIs to general", common, _add_azure_flags)
    _cleanlocal(apis, AZURE, common)

    # aws
    aws = platforms.add_parser("aws", help="AWS API Gateway").add_subparsers(dest="resource")
    apis = aws.add_parser("apis", help="AWS APIs").add_subparsers(dest="action")
    _leaf(apis, "export", cmd_aws_export, "Export APIs and OAS definitions", common, _add_aws_flags)
    _leaf(apis, "offramp", cmd_aws_offramp, "Convert exported APIs to general", common, _add_aws_flags)
    _cleanlocal(apis, AWS, common)

    # apihub
    apihub = platforms.add_parser("apihub", help="Apigee API Hub").add_subparsers(dest="resource")
    apis = apihub.add_parser("apis", help="API Hub APIs").add_subparsers(dest="action")
    _leaf(apis, "onramp", cmd_apihub_onramp, "Convert general records to API Hub payloads", common,
          _add_apigee_flags)
    _leaf(apis, "import", cmd_apihub_import, "Create onramped APIs in API Hub", common, _add_apigee_flags)
    _leaf(apis, "clean", cmd_apihub_clean, "Delete APIs and deployments from API Hub", common, _add_apigee_flags)
    _cleanlocal(apis, APIHUB, common)

    # general
    general = platforms.add_parser("general", help="General records").add_subparsers(dest="resource")
    apis = general.add_parser("apis", help="General APIs").add_subparsers(dest="action")
    _cleanlocal(apis, GENERAL, common)

    # sync / status
    sync = _leaf(platforms, "sync", cmd_sync, "Offramp from one platform and onramp to another", common)
    sync.add_argument("--offramp", required=True, choices=pipeline.OFFRAMP_PLATFORMS)
    sync.add_argument("--onramp", default="apihub", choices=pipeline.ONRAMP_PLATFORMS)
    sync.add_argument("--only-new", action="store_true", help="Skip APIs that are already exported")
    _add_override_flags(sync)
    status = _leaf(platforms, "status", cmd_status, "Check connectivity to every platform", common)
    _add_override_flags(status)

    # web server
    ws = platforms.add_parser("ws", help="Web server").add_subparsers(dest="action")
    start = _leaf(ws, "start", cmd_ws_start, "Start the HTTP API", common)
    start.add_argument("--port", type=int, default=webserver.DEFAULT_PORT)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 2

    setup_logging(args.verbose, args.log_file)
    store = LocalStore(data_dir(args.data_dir))
    try:
        return args.func(args, store)
    except ApimSyncError as e:
        logging.error(f"{e}")
        print(f"⚠️ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

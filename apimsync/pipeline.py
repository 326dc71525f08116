"""
End-to-end flows used by both the CLI and the web server.

    offramp: vendor export + vendor -> general
    onramp:  general -> API Hub payloads + API Hub import
    sync:    offramp followed by onramp
"""

from functools import partial
from typing import Dict, Mapping, Optional

from apimsync.apigee import apigee_export, apigee_offramp, apigee_status
from apimsync.apihub import apihub_import, apihub_onramp, apihub_status
from apimsync.aws import aws_export, aws_offramp, aws_status
from apimsync.azure import azure_export, azure_offramp, azure_service_export, azure_status
from apimsync.config import ApigeeFlags, AwsFlags, AzureFlags
from apimsync.report import OperationReport, PlatformStatus
from apimsync.store import LocalStore

OFFRAMP_PLATFORMS = ("azure", "aws", "apigee")
ONRAMP_PLATFORMS = ("apihub",)


def offramp(platform: str, store: LocalStore, env: Optional[Mapping[str, str]] = None,
            only_new: bool = False, api_name: str = "") -> OperationReport:
    """Export APIs from ``platform`` and convert them to general records"""
    if platform not in OFFRAMP_PLATFORMS:
        raise ValueError(f"Unknown offramp platform: {platform}")

    report = OperationReport(f"Offramp from {platform}")
    if platform == "azure":
        flags = AzureFlags.from_env(env)
        flags.only_new, flags.api_name = only_new, api_name
        service = azure_service_export(flags, store)
        if not service.result:
            report.add_error(service.message)
        exported = azure_export(flags, store)
        converter = partial(azure_offramp, flags, store)
    elif platform == "aws":
        flags = AwsFlags.from_env(env)
        flags.only_new, flags.api_name = only_new, api_name
        exported = aws_export(flags, store)
        converter = partial(aws_offramp, flags, store)
    else:
        flags = ApigeeFlags.from_env(env)
        flags.api_name = api_name
        exported = apigee_export(flags, store)
        converter = partial(apigee_offramp, flags, store)

    if not exported.result:
        return report.fail(exported.message, skipped=exported.skipped)
    report.merge(exported)

    converted = converter()
    report.lines.extend(converted.lines)
    report.errors.extend(converted.errors)
    if not converted.result:
        return report.fail(converted.message, skipped=converted.skipped)

    report.message = f"{len(report.apis)} API(s) offramped."
    return report


def onramp(platform: str, store: LocalStore, env: Optional[Mapping[str, str]] = None,
           api_name: str = "") -> OperationReport:
    """Convert general records for ``platform`` and import them"""
    if platform not in ONRAMP_PLATFORMS:
        raise ValueError(f"Unknown onramp platform: {platform}")

    flags = ApigeeFlags.from_env(env)
    flags.api_name = api_name
    report = OperationReport(f"Onramp to {platform}")

    onramped = apihub_onramp(flags, store)
    if not onramped.result:
        return report.fail(onramped.message, skipped=onramped.skipped)
    report.merge(onramped)

    imported = apihub_import(flags, store)
    report.lines.extend(imported.lines)
    report.errors.extend(imported.errors)
    if not imported.result:
        return report.fail(imported.message, skipped=imported.skipped)

    report.message = f"Onramp to {platform} successful!"
    if report.errors:
        report.message = f"Onramp to {platform} partially successful, {len(report.errors)} error(s)."
    return report


def sync(offramp_platform: str, onramp_platform: str, store: LocalStore,
         env: Optional[Mapping[str, str]] = None, only_new: bool = False) -> OperationReport:
    """Offramp from one platform and onramp the result to another"""
    if offramp_platform not in OFFRAMP_PLATFORMS:
        raise ValueError(f"Unknown offramp platform: {offramp_platform}")
    if onramp_platform not in ONRAMP_PLATFORMS:
        raise ValueError(f"Unknown onramp platform: {onramp_platform}")

    report = OperationReport(f"Sync from {offramp_platform} to {onramp_platform}")

    off = offramp(offramp_platform, store, env=env, only_new=only_new)
    report.merge(off)
    if not off.result:
        return report

    on = onramp(onramp_platform, store, env=env)
    report.lines.extend(on.lines)
    report.errors.extend(on.errors)
    if not on.result:
        return report.fail(on.message, skipped=on.skipped)

    report.message = f"Sync from {offramp_platform} to {onramp_platform} successful!"
    if report.errors:
        report.message = (f"Sync from {offramp_platform} to {onramp_platform} partially successful, "
                          f"{len(report.errors)} error(s).")
    return report


def status(env: Optional[Mapping[str, str]] = None) -> Dict[str, PlatformStatus]:
    """Connectivity of every platform, configured from environment variables"""
    apigee_flags = ApigeeFlags.from_env(env)
    return {
        "apigee": apigee_status(apigee_flags),
        "apihub": apihub_status(ApigeeFlags.from_env(env)),
        "azure": azure_status(AzureFlags.from_env(env)),
        "aws": aws_status(AwsFlags.from_env(env)),
    }

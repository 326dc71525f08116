"""
Flag objects for each platform plus the data directory setting.

Every flag object can be filled from CLI arguments or, for the web server,
from environment variables via ``from_env``.
"""

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from apimsync.errors import ConfigurationError

# ==============================
# CONFIG
# ==============================
DATA_DIR_ENV = "APIMSYNC_DATA_DIR"
DEFAULT_DATA_DIR = "data"

APIGEE_BASE_URL = "https://apigee.googleapis.com/v1"
APIHUB_BASE_URL = "https://apihub.googleapis.com/v1"
AZURE_MANAGEMENT_URL = "https://management.azure.com"
AZURE_LOGIN_URL = "https://login.microsoftonline.com"
AZURE_API_VERSION = "2022-08-01"
GOOGLE_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def data_dir(explicit: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> str:
    """Resolve the local store root: explicit value, then env var, then default"""
    if explicit:
        return explicit
    env = os.environ if env is None else env
    return env.get(DATA_DIR_ENV) or DEFAULT_DATA_DIR


@dataclass
class ApigeeFlags:
    """Settings for Apigee and API Hub commands"""
    project: str = ""
    region: str = ""
    token: str = ""
    api_name: str = ""
    environment: str = ""

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ApigeeFlags":
        env = os.environ if env is None else env
        return cls(project=env.get("APIGEE_PROJECT", ""),
                   region=env.get("APIGEE_REGION", ""),
                   token=env.get("APIGEE_TOKEN", ""))


@dataclass
class AzureFlags:
    """Settings for Azure API Management commands"""
    subscription: str = ""
    resource_group: str = ""
    service_name: str = ""
    token: str = ""
    api_name: str = ""
    only_new: bool = False
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AzureFlags":
        env = os.environ if env is None else env
        return cls(subscription=env.get("AZURE_SUBSCRIPTION_ID", ""),
                   resource_group=env.get("AZURE_RESOURCE_GROUP", ""),
                   service_name=env.get("AZURE_SERVICE_NAME", ""),
                   token=env.get("AZURE_TOKEN", ""),
                   client_id=env.get("AZURE_CLIENT_ID", ""),
                   client_secret=env.get("AZURE_CLIENT_SECRET", ""),
                   tenant_id=env.get("AZURE_TENANT_ID", ""))

    def credential_env(self) -> Dict[str, str]:
        """Client-credentials settings in the shape ``get_azure_token`` reads"""
        return {"AZURE_CLIENT_ID": self.client_id,
                "AZURE_CLIENT_SECRET": self.client_secret,
                "AZURE_TENANT_ID": self.tenant_id}

    def missing(self) -> Optional[str]:
        """Name of the first missing required setting, if any"""
        if not self.subscription:
            return "subscription"
        if not self.resource_group:
            return "resource group"
        if not self.service_name:
            return "service name"
        return None


@dataclass
class AwsFlags:
    """Settings for AWS API Gateway commands"""
    access_key: str = ""
    access_secret: str = ""
    region: str = ""
    api_name: str = ""
    only_new: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AwsFlags":
        env = os.environ if env is None else env
        return cls(access_key=env.get("AWS_ACCESS_KEY_ID", ""),
                   access_secret=env.get("AWS_SECRET_ACCESS_KEY", ""),
                   region=env.get("AWS_REGION", ""))

    def resolved_region(self, env: Optional[Mapping[str, str]] = None) -> str:
        env = os.environ if env is None else env
        return self.region or env.get("AWS_REGION", "")

    def require_region(self, env: Optional[Mapping[str, str]] = None) -> str:
        region = self.resolved_region(env)
        if not region:
            raise ConfigurationError("No region given, set --region or AWS_REGION.")
        return region

"""
Credential helpers for each platform.

- Google (Apigee, API Hub): Application Default Credentials via google-auth
- Azure: client-credentials grant against Azure AD
- AWS: boto3 session, explicit keys or the default credential chain
"""

import logging
import os
from typing import Mapping, Optional

import boto3
import google.auth
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from apimsync.config import AZURE_LOGIN_URL, AZURE_MANAGEMENT_URL, GOOGLE_SCOPES, AwsFlags


def get_google_token(token: str = "") -> str:
    """
    Return ``token`` if given, otherwise an access token from ADC.

    Returns an empty string when no credentials are available.
    """
    if token:
        return token
    try:
        logging.debug("Attempting auth via Application Default Credentials (ADC)...")
        credentials, project_id = google.auth.default(scopes=GOOGLE_SCOPES)
        if not credentials.valid:
            credentials.refresh(Request())
        logging.debug(f"ADC obtained for project: {project_id or 'N/A'}")
        return credentials.token or ""
    except GoogleAuthError as e:
        logging.error(f"Failed to obtain Google credentials via ADC: {e}")
        return ""


def get_azure_token(token: str = "", env: Optional[Mapping[str, str]] = None) -> str:
    """
    Return an Azure management token.

    Order: explicit token, ``AZURE_TOKEN``, then a client-credentials grant
    using ``AZURE_CLIENT_ID`` / ``AZURE_CLIENT_SECRET`` / ``AZURE_TENANT_ID``.
    """
    if token:
        return token
    env = os.environ if env is None else env
    if env.get("AZURE_TOKEN"):
        return env["AZURE_TOKEN"]

    client_id = env.get("AZURE_CLIENT_ID", "")
    client_secret = env.get("AZURE_CLIENT_SECRET", "")
    tenant_id = env.get("AZURE_TENANT_ID", "")
    if not (client_id and client_secret and tenant_id):
        logging.warning("No Azure token given and no client environment variables set.")
        return ""

    return request_azure_token(client_id, client_secret, tenant_id)


def request_azure_token(client_id: str, client_secret: str, tenant_id: str) -> str:
    url = f"{AZURE_LOGIN_URL}/{tenant_id}/oauth2/token"
    payload = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
        "resource": f"{AZURE_MANAGEMENT_URL}/",
    }
    try:
        response = requests.post(url, data=payload)
    except requests.RequestException as e:
        logging.error(f"Error requesting Azure token: {e}")
        return ""

    if response.status_code != 200:
        logging.error(f"Azure token request failed - Status: {response.status_code} {response.text[:500]}")
        return ""
    try:
        return response.json().get("access_token", "")
    except ValueError:
        logging.error("Azure token response is not JSON")
        return ""


def get_aws_client(flags: AwsFlags, service: str = "apigatewayv2", region: str = ""):
    """boto3 client for ``service``; falls back to the default credential chain"""
    session = boto3.session.Session(
        aws_access_key_id=flags.access_key or None,
        aws_secret_access_key=flags.access_secret or None,
        region_name=region or flags.resolved_region() or None,
    )
    return session.client(service)

"""Tests for credential helpers."""

from unittest.mock import MagicMock

import google.auth
import requests
from google.auth.exceptions import DefaultCredentialsError, RefreshError, TransportError

from apimsync import auth

from conftest import fake_response


def test_explicit_google_token_wins(monkeypatch):
    default = MagicMock()
    monkeypatch.setattr(google.auth, "default", default)
    assert auth.get_google_token("given") == "given"
    default.assert_not_called()


def test_google_adc_refreshes(monkeypatch):
    credentials = MagicMock(valid=False, token="adc-token")
    monkeypatch.setattr(google.auth, "default", MagicMock(return_value=(credentials, "proj")))
    assert auth.get_google_token() == "adc-token"
    credentials.refresh.assert_called_once()


def test_google_without_credentials(monkeypatch):
    monkeypatch.setattr(google.auth, "default", MagicMock(side_effect=DefaultCredentialsError("none")))
    assert auth.get_google_token() == ""


def test_google_refresh_network_failure(monkeypatch):
    credentials = MagicMock(valid=False, token=None)
    credentials.refresh.side_effect = TransportError("network down")
    monkeypatch.setattr(google.auth, "default", MagicMock(return_value=(credentials, "proj")))
    assert auth.get_google_token() == ""


def test_google_refresh_rejected(monkeypatch):
    credentials = MagicMock(valid=False, token=None)
    credentials.refresh.side_effect = RefreshError("invalid_grant")
    monkeypatch.setattr(google.auth, "default", MagicMock(return_value=(credentials, "proj")))
    assert auth.get_google_token() == ""


def test_azure_token_from_environment():
    assert auth.get_azure_token(env={"AZURE_TOKEN": "env-token"}) == "env-token"
    assert auth.get_azure_token("flag", env={"AZURE_TOKEN": "env-token"}) == "flag"
    assert auth.get_azure_token(env={}) == ""


def test_azure_client_credentials(monkeypatch):
    post = MagicMock(return_value=fake_response(200, {"access_token": "aad"}))
    monkeypatch.setattr(requests, "post", post)
    env = {"AZURE_CLIENT_ID": "id", "AZURE_CLIENT_SECRET": "secret", "AZURE_TENANT_ID": "tenant"}

    assert auth.get_azure_token(env=env) == "aad"
    assert post.call_args.args[0] == "https://login.microsoftonline.com/tenant/oauth2/token"
    assert post.call_args.kwargs["data"]["grant_type"] == "client_credentials"


def test_azure_token_request_failure(monkeypatch):
    monkeypatch.setattr(requests, "post", MagicMock(return_value=fake_response(401, {"error": "bad"})))
    assert auth.request_azure_token("id", "secret", "tenant") == ""

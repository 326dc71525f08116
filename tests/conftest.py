"""Shared fixtures: a throwaway local store and fake HTTP responses."""

import json
from unittest.mock import MagicMock

import pytest

from apimsync.general import GeneralApi
from apimsync.store import LocalStore


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path / "data"))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep credentials from the developer's shell out of the tests"""
    for var in ("APIGEE_PROJECT", "APIGEE_REGION", "APIGEE_TOKEN",
                "AZURE_SUBSCRIPTION_ID", "AZURE_RESOURCE_GROUP", "AZURE_SERVICE_NAME", "AZURE_TOKEN",
                "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET", "AZURE_TENANT_ID",
                "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_REGION", "APIMSYNC_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)


def fake_response(status_code=200, payload=None, content=b"", reason=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason or ("OK" if response.ok else "Error")
    response.content = content
    response.text = json.dumps(payload) if payload is not None else content.decode("utf-8", "ignore")
    response.json.return_value = payload
    return response


def write_general(store, **fields):
    api = GeneralApi(**fields)
    store.ensure_dir(store.api_dir("general", api.name))
    store.write_general_api(api)
    return api

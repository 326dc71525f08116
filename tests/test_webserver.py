"""Tests for the Flask HTTP API."""

from unittest.mock import MagicMock

import pytest

from apimsync import pipeline
from apimsync.errors import StoreError
from apimsync.report import OperationReport, PlatformStatus
from apimsync.webserver import create_app


@pytest.fixture
def client(store):
    app = create_app(store, env={})
    app.config["TESTING"] = True
    return app.test_client()


def test_status(client, monkeypatch):
    monkeypatch.setattr(pipeline, "status", lambda env: {"azure": PlatformStatus(True, "ok")})
    response = client.get("/v1/apim/status")
    assert response.status_code == 200
    assert response.get_json() == {"azure": {"connected": True, "message": "ok"}}


def test_offramp_passes_body(client, monkeypatch, store):
    offramp = MagicMock(return_value=OperationReport("Offramp", message="1 API(s) offramped.", apis=["pets"]))
    monkeypatch.setattr(pipeline, "offramp", offramp)

    response = client.post("/v1/apim/offramp", json={"offramp": "aws", "onlyNew": True})
    assert response.status_code == 200
    assert response.get_json()["result"] is True
    assert response.get_json()["apis"] == ["pets"]
    assert offramp.call_args.args == ("aws", store)
    assert offramp.call_args.kwargs["only_new"] is True


def test_unknown_platform_is_400(client):
    response = client.post("/v1/apim/offramp", json={"offramp": "mulesoft"})
    assert response.status_code == 400
    assert response.get_json()["result"] is False


def test_sync_unknown_onramp_is_400_without_offramp(client, monkeypatch):
    offramp = MagicMock()
    monkeypatch.setattr(pipeline, "offramp", offramp)

    response = client.post("/v1/apim/sync", json={"offramp": "azure", "onramp": "bogus"})
    assert response.status_code == 400
    assert response.get_json()["result"] is False
    offramp.assert_not_called()


def test_domain_failure_is_200_with_result_false(client, monkeypatch):
    monkeypatch.setattr(pipeline, "onramp",
                        MagicMock(return_value=OperationReport("Onramp").fail("No project given.")))
    response = client.post("/v1/apim/onramp", json={"onramp": "apihub"})
    assert response.status_code == 200
    assert response.get_json() == {"result": False, "message": "No project given.", "apis": [], "errors": []}


def test_store_error_is_result_false(client, monkeypatch):
    monkeypatch.setattr(pipeline, "sync", MagicMock(side_effect=StoreError("disk full")))
    response = client.post("/v1/apim/sync", json={"offramp": "azure", "onramp": "apihub"})
    assert response.status_code == 200
    assert response.get_json() == {"result": False, "message": "disk full"}


def test_empty_body_is_unknown_platform(client):
    assert client.post("/v1/apim/onramp").status_code == 400

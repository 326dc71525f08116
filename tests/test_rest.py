"""Tests for the shared requests wrapper."""

from unittest.mock import MagicMock

import requests

from apimsync.rest import RestClient, describe

from conftest import fake_response


def test_bearer_header_and_url_building(monkeypatch):
    request = MagicMock(return_value=fake_response(200, {"ok": True}))
    monkeypatch.setattr(requests, "request", request)

    client = RestClient("tok", "https://api.example.com/v1/")
    assert client.get_json("organizations/o/apis", params={"a": "b"}) == {"ok": True}

    method, url = request.call_args.args
    assert method == "GET"
    assert url == "https://api.example.com/v1/organizations/o/apis"
    assert request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"
    assert request.call_args.kwargs["params"] == {"a": "b"}


def test_absolute_urls_pass_through():
    client = RestClient("tok", "https://api.example.com")
    assert client.url("https://other.example.com/next?page=2") == "https://other.example.com/next?page=2"


def test_transport_error_is_no_data(monkeypatch):
    monkeypatch.setattr(requests, "request", MagicMock(side_effect=requests.ConnectionError("down")))
    client = RestClient("tok", "https://api.example.com")
    assert client.send("GET", "x") is None
    assert client.get_json("x") is None
    assert client.get_bytes("x") is None


def test_unexpected_status_is_no_data(monkeypatch):
    monkeypatch.setattr(requests, "request", MagicMock(return_value=fake_response(404, {"error": "nope"})))
    client = RestClient("tok", "https://api.example.com")
    assert client.get_json("x") is None


def test_json_body_sets_content_type(monkeypatch):
    request = MagicMock(return_value=fake_response(200, {}))
    monkeypatch.setattr(requests, "request", request)
    RestClient("tok", "https://api.example.com").send("POST", "x", json_data={"a": 1})
    assert request.call_args.kwargs["headers"]["Content-Type"] == "application/json"
    assert request.call_args.kwargs["json"] == {"a": 1}


def test_describe():
    assert describe(None) == "no response"
    assert describe(fake_response(500, {}, reason="Internal Server Error")) == "500 Internal Server Error"

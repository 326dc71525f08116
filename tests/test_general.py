"""Tests for the general record and its naming rules."""

import pytest

from apimsync.general import (GeneralApi, is_revision, root_name, slugify, split_version,
                              strip_display_version, strip_revision)


@pytest.mark.parametrize("name,expected", [
    ("My API v2", "my-api-v2"),
    ("  Orders API  ", "orders-api"),
    ("orders", "orders"),
    ("a/b\\c", "a-b-c"),
    ("", ""),
])
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_split_version_only_strips_trailing_suffix():
    assert split_version("orders-api-v2") == ("orders-api", "v2")
    assert split_version("orders-api-v10") == ("orders-api", "v10")
    assert split_version("orders-v2-api") == ("orders-v2-api", "")
    assert split_version("orders-api") == ("orders-api", "")
    assert root_name("pets-v1") == "pets"


def test_display_and_revision_helpers():
    assert strip_display_version("Orders API v2") == "Orders API"
    assert strip_display_version("Orders API") == "Orders API"
    assert strip_revision("orders-api;rev=3") == "orders-api"
    assert is_revision("orders-api;rev=3")
    assert not is_revision("orders-api")


class TestGeneralApi:
    """Serialization of the canonical record."""

    def test_key_order_is_fixed(self):
        data = GeneralApi(name="orders-api").to_dict()
        assert list(data) == [
            "name", "displayName", "version", "description", "ownerEmail", "ownerName",
            "documentationUrl", "gatewayUrl", "basePath", "platformId", "platformName",
            "platformResourceUri",
        ]
        assert all(value == "" for key, value in data.items() if key != "name")

    def test_from_dict_tolerates_missing_and_null_fields(self):
        api = GeneralApi.from_dict({"name": "pets", "basePath": "/pets", "version": None})
        assert api.name == "pets"
        assert api.base_path == "/pets"
        assert api.version == ""
        assert api.is_root

    def test_versioned_record_is_not_root(self):
        assert not GeneralApi(name="pets-v2", version="v2").is_root

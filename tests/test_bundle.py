"""Tests for Apigee bundle zip handling."""

import zipfile

import pytest

from apimsync.bundle import build_bundle, extract_bundle
from apimsync.errors import BundleError


def _zip(path, entries):
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


def test_extract_writes_files_below_target(tmp_path):
    zip_path = _zip(tmp_path / "orders.zip", {
        "apiproxy/orders.xml": "<APIProxy name='orders'/>",
        "apiproxy/proxies/default.xml": "<ProxyEndpoint/>",
    })
    target = tmp_path / "out" / "orders"
    written = extract_bundle(zip_path, target)

    assert len(written) == 2
    assert (target / "apiproxy" / "orders.xml").read_text() == "<APIProxy name='orders'/>"


@pytest.mark.parametrize("evil", ["../../etc/passwd", "/etc/passwd", "apiproxy/../../x.txt", "C:/evil.txt"])
def test_zip_slip_rejected_before_any_write(tmp_path, evil):
    zip_path = _zip(tmp_path / "evil.zip", {"apiproxy/ok.xml": "<ok/>", evil: "pwned"})
    target = tmp_path / "out" / "evil"

    with pytest.raises(BundleError):
        extract_bundle(zip_path, target)
    assert not target.exists()
    assert not (tmp_path / "x.txt").exists()


def test_replace_keeps_old_tree_when_archive_is_rejected(tmp_path):
    target = tmp_path / "orders"
    (target / "apiproxy").mkdir(parents=True)
    (target / "apiproxy" / "old.xml").write_text("<old/>")
    zip_path = _zip(tmp_path / "evil.zip", {"../escape.txt": "x"})

    with pytest.raises(BundleError):
        extract_bundle(zip_path, target, replace=True)
    assert (target / "apiproxy" / "old.xml").exists()


def test_replace_removes_stale_files(tmp_path):
    target = tmp_path / "orders"
    (target / "apiproxy").mkdir(parents=True)
    (target / "apiproxy" / "stale.xml").write_text("<old/>")
    zip_path = _zip(tmp_path / "orders.zip", {"apiproxy/orders.xml": "<new/>"})

    extract_bundle(zip_path, target, replace=True)
    assert not (target / "apiproxy" / "stale.xml").exists()
    assert (target / "apiproxy" / "orders.xml").exists()


def test_corrupt_archive_is_bundle_error(tmp_path):
    bad = tmp_path / "bad.zip"
    bad.write_bytes(b"not a zip")
    with pytest.raises(BundleError):
        extract_bundle(bad, tmp_path / "out")


def test_build_bundle_uses_relative_names(tmp_path):
    proxy = tmp_path / "orders"
    (proxy / "apiproxy" / "policies").mkdir(parents=True)
    (proxy / "apiproxy" / "orders.xml").write_text("<APIProxy/>")
    (proxy / "apiproxy" / "policies" / "quota.xml").write_text("<Quota/>")
    (proxy / "notes.txt").write_text("not bundled")

    zip_path = tmp_path / "orders.zip"
    assert build_bundle(proxy, zip_path) == 2
    with zipfile.ZipFile(zip_path) as archive:
        assert sorted(archive.namelist()) == ["apiproxy/orders.xml", "apiproxy/policies/quota.xml"]


def test_build_bundle_without_apiproxy_folder(tmp_path):
    (tmp_path / "orders").mkdir()
    with pytest.raises(BundleError):
        build_bundle(tmp_path / "orders", tmp_path / "orders.zip")

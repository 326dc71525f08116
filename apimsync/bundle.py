"""
Zip handling for Apigee proxy bundles.

All paths are explicit; the process working directory is never changed.
"""

import logging
import os
import shutil
import zipfile
from pathlib import Path, PureWindowsPath
from typing import List, Tuple

from apimsync.errors import BundleError, StoreError

BUNDLE_ROOT = "apiproxy"


def _safe_destination(target: Path, entry_name: str) -> Path:
    """Resolve an archive entry below ``target`` or raise BundleError (zip-slip)"""
    if not entry_name:
        raise BundleError("Empty archive entry name")
    if entry_name.startswith(("/", "\\")) or PureWindowsPath(entry_name).drive:
        raise BundleError(f"Invalid file path in archive: {entry_name}")

    dest = (target / entry_name).resolve()
    if dest != target and target not in dest.parents:
        raise BundleError(f"Invalid file path in archive: {entry_name}")
    return dest


def extract_bundle(zip_path, target_dir, replace: bool = False) -> List[Path]:
    """
    Extract a bundle archive into ``target_dir``.

    Every entry is validated before anything is written, so an archive with a
    single escaping entry (``../../etc/passwd``) leaves the filesystem untouched.

    Args:
        zip_path: Path of the archive
        target_dir: Directory to extract into (created if needed)
        replace: Remove an existing target directory once the archive is validated

    Returns:
        List of extracted file paths
    """
    target = Path(target_dir).resolve()
    try:
        with zipfile.ZipFile(zip_path, "r") as archive:
            plan: List[Tuple[zipfile.ZipInfo, Path]] = [
                (info, _safe_destination(target, info.filename)) for info in archive.infolist()
            ]

            written = []
            if replace and target.exists():
                shutil.rmtree(target)
            target.mkdir(parents=True, exist_ok=True)
            for info, dest in plan:
                if info.is_dir():
                    dest.mkdir(parents=True, exist_ok=True)
                    continue
                dest.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as src, open(dest, "wb") as out:
                    shutil.copyfileobj(src, out)
                written.append(dest)
    except zipfile.BadZipFile as e:
        raise BundleError(f"Not a valid bundle archive {zip_path}: {e}") from e
    except OSError as e:
        raise StoreError(f"Cannot extract {zip_path} into {target}: {e}") from e

    logging.debug(f"Extracted {len(written)} files into {target}")
    return written


def build_bundle(proxy_dir, zip_path) -> int:
    """
    Zip ``<proxy_dir>/apiproxy`` into ``zip_path``.

    Archive names are relative to ``proxy_dir`` (``apiproxy/...``), never absolute.
    Returns the number of files added.
    """
    proxy_dir = Path(proxy_dir)
    source = proxy_dir / BUNDLE_ROOT
    if not source.is_dir():
        raise BundleError(f"No '{BUNDLE_ROOT}' folder found at {source}")

    count = 0
    try:
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as archive:
            for dirpath, dirnames, filenames in os.walk(source):
                dirnames.sort()
                for filename in sorted(filenames):
                    file_path = Path(dirpath) / filename
                    archive.write(file_path, file_path.relative_to(proxy_dir).as_posix())
                    count += 1
    except OSError as e:
        raise StoreError(f"Cannot create bundle {zip_path}: {e}") from e

    return count

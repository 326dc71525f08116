"""
Local store: a directory tree used as a database.

Every platform keeps its records under ``<root>/src/main/<platform>``; each API
owns one directory named after it. Nothing is cached between runs, ownership is
purely path based.
"""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from apimsync.errors import StoreError
from apimsync.general import GeneralApi, strip_display_version

APIGEE = "apigee"
APIHUB = "apihub"
AZURE = "azure"
AWS = "aws"
GENERAL = "general"

PLATFORMS = (APIGEE, APIHUB, AZURE, AWS, GENERAL)
OPENAPI_FILE = "openapi.json"


@dataclass
class Ledger:
    """Environment deployments ledger (``deployments.json``)"""
    proxies: List[Dict[str, str]] = field(default_factory=list)
    sharedflows: List[Dict[str, str]] = field(default_factory=list)

    def names(self) -> List[str]:
        return [p.get("name", "") for p in self.proxies]

    def add(self, name: str) -> bool:
        """Append ``name`` unless already present; returns True when appended"""
        if name in self.names():
            return False
        self.proxies.append({"name": name})
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"proxies": self.proxies, "sharedflows": self.sharedflows}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ledger":
        return cls(proxies=list(data.get("proxies") or []),
                   sharedflows=list(data.get("sharedflows") or []))


class LocalStore:
    """Reads and writes vendor and general records below ``root``"""

    def __init__(self, root: str = "data"):
        self.root = Path(root)

    # ---------- paths ----------
    def platform_dir(self, platform: str) -> Path:
        return self.root / "src" / "main" / platform

    def apis_dir(self, platform: str) -> Path:
        return self.platform_dir(platform) / "apiproxies"

    def api_dir(self, platform: str, name: str) -> Path:
        _check_name(name)
        return self.apis_dir(platform) / name

    def general_file(self, name: str) -> Path:
        return self.api_dir(GENERAL, name) / f"{name}.json"

    def ledger_file(self, environment: str) -> Path:
        _check_name(environment)
        return self.platform_dir(APIGEE) / "environments" / environment / "deployments.json"

    # ---------- listing ----------
    def list_apis(self, platform: str, api_name: str = "") -> List[str]:
        """Sorted API directory names for a platform, optionally filtered to one name"""
        base = self.apis_dir(platform)
        if not base.is_dir():
            return []
        names = sorted(p.name for p in base.iterdir() if p.is_dir())
        if api_name:
            names = [n for n in names if n == api_name]
        return names

    def has_api(self, platform: str, name: str) -> bool:
        return self.api_dir(platform, name).is_dir()

    # ---------- raw I/O ----------
    def ensure_dir(self, path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create directory {path}: {e}") from e
        return path

    def read_json(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def read_json_optional(self, path: Path) -> Optional[Any]:
        if not path.is_file():
            return None
        return self.read_json(path)

    def dump_json(self, data: Any) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n"

    def write_text(self, path: Path, text: str):
        self.ensure_dir(path.parent)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e

    def write_json(self, path: Path, data: Any):
        self.write_text(path, self.dump_json(data))

    def write_bytes(self, path: Path, data: bytes):
        self.ensure_dir(path.parent)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e

    def copy_file(self, src: Path, dest: Path):
        self.ensure_dir(dest.parent)
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            raise StoreError(f"Cannot copy {src} to {dest}: {e}") from e

    def remove_tree(self, path: Path):
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StoreError(f"Cannot remove {path}: {e}") from e

    def reset_dir(self, path: Path) -> Path:
        """Remove ``path`` and recreate it empty"""
        self.remove_tree(path)
        return self.ensure_dir(path)

    def clean_local(self, platform: str) -> Path:
        """Delete a platform's local tree unconditionally"""
        if platform not in PLATFORMS:
            raise StoreError(f"Unknown platform: {platform}")
        path = self.platform_dir(platform)
        self.remove_tree(path)
        logging.info(f"Removed local {platform} data at {path}")
        return path

    # ---------- general records ----------
    def write_general_api(self, api: GeneralApi) -> bool:
        """
        Write a general record to ``general/apiproxies/<name>/<name>.json``.

        Strips `` v<N>`` from the display name. An existing record is only
        replaced when the new serialization is larger, i.e. carries more
        information. Returns True when the file was written.
        """
        api = replace(api, display_name=strip_display_version(api.display_name))
        path = self.general_file(api.name)
        new_text = self.dump_json(api.to_dict())

        if path.is_file():
            try:
                old_size = len(path.read_bytes())
            except OSError as e:
                raise StoreError(f"Cannot read {path}: {e}") from e
            if len(new_text.encode("utf-8")) <= old_size:
                logging.debug(f"Keeping existing general record {path}")
                return False

        self.write_text(path, new_text)
        return True

    def read_general_api(self, name: str) -> Optional[GeneralApi]:
        data = self.read_json_optional(self.general_file(name))
        if not isinstance(data, dict):
            return None
        return GeneralApi.from_dict(data)

    def list_general_apis(self) -> List[GeneralApi]:
        """Every general record, in directory listing order"""
        apis = []
        for name in self.list_apis(GENERAL):
            api = self.read_general_api(name)
            if api is None or not api.name:
                logging.warning(f"No general record found in {self.api_dir(GENERAL, name)}")
                continue
            apis.append(api)
        return apis

    # ---------- ledger ----------
    def load_ledger(self, environment: str) -> Ledger:
        data = self.read_json_optional(self.ledger_file(environment))
        if not isinstance(data, dict):
            return Ledger()
        return Ledger.from_dict(data)

    def save_ledger(self, environment: str, ledger: Ledger):
        self.write_json(self.ledger_file(environment), ledger.to_dict())


def _check_name(name: str):
    """Names are used as directory keys and must stay inside their parent"""
    if not name or name in (".", "..") or "/" in name or "\\" in name or os.sep in name:
        raise StoreError(f"Invalid resource name for local store: {name!r}")

"""
The "general" record: the platform-neutral description of one API.

Offramps produce it from vendor records, onramps turn it into target platform
payloads. Field order is fixed so that serializing the same record twice gives
the same bytes.
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Tuple

VERSION_SUFFIX = re.compile(r"-v(\d+)$")
DISPLAY_VERSION = re.compile(r" v\d+")
REVISION_SUFFIX = re.compile(r";rev=.*$")

# attribute name -> JSON key
_JSON_KEYS = {
    "name": "name",
    "display_name": "displayName",
    "version": "version",
    "description": "description",
    "owner_email": "ownerEmail",
    "owner_name": "ownerName",
    "documentation_url": "documentationUrl",
    "gateway_url": "gatewayUrl",
    "base_path": "basePath",
    "platform_id": "platformId",
    "platform_name": "platformName",
    "platform_resource_uri": "platformResourceUri",
}


@dataclass
class GeneralApi:
    name: str = ""
    display_name: str = ""
    version: str = ""
    description: str = ""
    owner_email: str = ""
    owner_name: str = ""
    documentation_url: str = ""
    gateway_url: str = ""
    base_path: str = ""
    platform_id: str = ""
    platform_name: str = ""
    platform_resource_uri: str = ""

    @property
    def is_root(self) -> bool:
        """A record without a version is the root of its base path"""
        return self.version == ""

    def to_dict(self) -> Dict[str, str]:
        return {_JSON_KEYS[f.name]: getattr(self, f.name) or "" for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneralApi":
        values = {}
        for attr, key in _JSON_KEYS.items():
            value = data.get(key)
            values[attr] = "" if value is None else str(value)
        return cls(**values)


def slugify(name: str) -> str:
    """
    Turn a vendor API name into a general record name.

    Lowercases, trims and replaces spaces (and path separators) with hyphens:
    ``"My API v2"`` -> ``"my-api-v2"``.
    """
    slug = (name or "").strip().lower()
    for ch in (" ", "/", "\\"):
        slug = slug.replace(ch, "-")
    return slug


def split_version(slug: str) -> Tuple[str, str]:
    """
    Split a trailing ``-v<digits>`` off a slug.

    Returns ``(root, suffix)`` where suffix is ``"v2"`` style or ``""``.
    Only used for grouping; stored names keep their suffix.
    """
    match = VERSION_SUFFIX.search(slug)
    if not match:
        return slug, ""
    return slug[:match.start()], f"v{match.group(1)}"


def root_name(slug: str) -> str:
    return split_version(slug)[0]


def strip_display_version(display_name: str) -> str:
    """``"Orders API v2"`` -> ``"Orders API"``"""
    return DISPLAY_VERSION.sub("", display_name or "")


def strip_revision(name: str) -> str:
    """Remove an Azure ``;rev=N`` suffix"""
    return REVISION_SUFFIX.sub("", name or "")


def is_revision(name: str) -> bool:
    return ";rev=" in (name or "")

"""
Apigee bundle reader
--------------------
• Reads proxy metadata (display name, description, revision, base path)
• Builds an OpenAPI 3.0 document from the proxy endpoint flows
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from apimsync.bundle import BUNDLE_ROOT


@dataclass
class ProxyInfo:
    name: str
    display_name: str = ""
    description: str = ""
    revision: str = "1"
    base_path: str = ""
    created_by: str = ""


class ApigeeBundleReader:
    """Reads an extracted proxy bundle (``<proxy_dir>/apiproxy``)"""

    def __init__(self, proxy_dir):
        self.proxy_dir = Path(proxy_dir)
        self.apiproxy = self.proxy_dir / BUNDLE_ROOT

    # ---------- Helpers ----------
    def _load_xml(self, path: Path) -> Optional[ET.Element]:
        try:
            return ET.parse(path).getroot()
        except (ET.ParseError, OSError):
            return None

    def _text(self, e: Optional[ET.Element], default=""):
        return e.text.strip() if e is not None and e.text else default

    def _proxy_xml(self) -> Optional[Path]:
        """Top level ``apiproxy/<name>.xml``; the bundle folder name wins when ambiguous"""
        preferred = self.apiproxy / f"{self.proxy_dir.name}.xml"
        if preferred.is_file():
            return preferred
        xml_files = sorted(self.apiproxy.glob("*.xml"))
        return xml_files[0] if xml_files else None

    def _endpoint_roots(self) -> List[ET.Element]:
        roots = []
        for pxml in sorted((self.apiproxy / "proxies").glob("*.xml")):
            p_root = self._load_xml(pxml)
            if p_root is not None:
                roots.append(p_root)
        return roots

    # ---------- Metadata ----------
    def read_info(self) -> Optional[ProxyInfo]:
        api_xml = self._proxy_xml()
        if api_xml is None:
            return None
        root = self._load_xml(api_xml)
        if root is None:
            return None

        info = ProxyInfo(
            name=root.get("name", api_xml.stem),
            display_name=self._text(root.find("DisplayName")),
            description=self._text(root.find("Description")),
            revision=root.get("revision", "1"),
            created_by=self._text(root.find("CreatedBy")),
        )
        for p_root in self._endpoint_roots():
            base_path = self._text(p_root.find(".//HTTPProxyConnection/BasePath"))
            if base_path:
                info.base_path = base_path
                break
        if not info.base_path:
            info.base_path = self._text(root.find("BasePaths"))
        return info

    # ---------- OpenAPI ----------
    def generate_openapi(self, endpoint_url: str = "") -> Dict[str, Any]:
        info = self.read_info()
        if info is None:
            return {}

        openapi: Dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {
                "title": info.display_name or info.name,
                "description": info.description,
                "version": f"{info.revision}.0.0",
            },
            "servers": [{"url": endpoint_url}] if endpoint_url else [],
            "paths": {},
            "tags": [],
        }
        if info.created_by:
            openapi["info"]["contact"] = {"email": info.created_by}

        for p_root in self._endpoint_roots():
            self._parse_proxy_endpoint(openapi, p_root)
        return openapi

    def _parse_proxy_endpoint(self, openapi: Dict[str, Any], root: ET.Element):
        base_path = self._text(root.find(".//HTTPProxyConnection/BasePath"))
        for flow in root.findall(".//Flows/Flow"):
            cond = self._text(flow.find("Condition"))
            verb, path = extract_path_verb(cond)
            if not path:
                continue
            path = f"{base_path.rstrip('/')}/{path.lstrip('/')}"

            op = {
                "operationId": flow.get("name", ""),
                "responses": {"200": {"description": "OK"}},
            }
            description = self._text(flow.find("Description"))
            if description:
                op["summary"] = description
            tag = path.strip("/").split("/")[0] or "default"
            op["tags"] = [tag]
            if tag not in [t["name"] for t in openapi["tags"]]:
                openapi["tags"].append({"name": tag})
            openapi["paths"].setdefault(path, {})[verb] = op


def extract_path_verb(condition: str) -> Tuple[str, str]:
    """``(proxy.pathsuffix MatchesPath "/orders") and (request.verb = "GET")`` -> ("get", "/orders")"""
    v = re.search(r'request\.(verb|method)\s*[=!]+\s*"([^"]+)"', condition or "")
    p = re.search(r'proxy\.pathsuffix\s+(MatchesPath|=|~|~~|JavaRegex)\s*"([^"]+)"', condition or "")
    return (v.group(2).lower() if v else "get", p.group(2) if p else "")

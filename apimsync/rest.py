"""
Thin ``requests`` wrapper shared by the Apigee, API Hub and Azure clients.

Transport errors and unexpected status codes are logged and turned into
"no data" (``None``); callers skip the resource and carry on.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import requests


class RestClient:
    """Bearer-token REST client for one vendor API"""

    def __init__(self, access_token: str, base_url: str):
        """
        Args:
            access_token: OAuth access token for authentication
            base_url: Base URL of the vendor management API
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {access_token}"}

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(self, method: str, path: str, params: Optional[Dict] = None,
             json_data: Any = None, files: Optional[Dict] = None) -> Optional[requests.Response]:
        """Perform a request; returns None on transport failure"""
        url = self.url(path)
        headers = dict(self.headers)
        if json_data is not None:
            headers["Content-Type"] = "application/json"
        try:
            return requests.request(method, url, headers=headers, params=params,
                                    json=json_data, files=files)
        except requests.RequestException as e:
            logging.error(f"Error during API call to {method} {url}: {e}")
            return None

    def get_json(self, path: str, params: Optional[Dict] = None,
                 expected_status: Iterable[int] = (200,)) -> Optional[Dict]:
        response = self.send("GET", path, params=params)
        if response is None:
            return None
        if response.status_code not in expected_status:
            log_failure("GET", self.url(path), response)
            return None
        try:
            return response.json()
        except ValueError:
            logging.error(f"Response from {self.url(path)} is not JSON")
            return None

    def get_bytes(self, path: str, params: Optional[Dict] = None) -> Optional[bytes]:
        response = self.send("GET", path, params=params)
        if response is None:
            return None
        if response.status_code != 200:
            log_failure("GET", self.url(path), response)
            return None
        return response.content

    def delete(self, path: str, params: Optional[Dict] = None) -> Optional[requests.Response]:
        response = self.send("DELETE", path, params=params)
        if response is not None and not response.ok:
            log_failure("DELETE", self.url(path), response)
        return response


def log_failure(method: str, url: str, response: requests.Response):
    logging.error(
        f"API Error: {method} {url} - Status: {response.status_code}\n"
        f"Response Body (first 500 chars): {response.text[:500]}"
    )
    if response.status_code == 404:
        logging.warning(f" -> Resource not found at URL: {url}")


def describe(response: Optional[requests.Response]) -> str:
    """Short status text for reports"""
    if response is None:
        return "no response"
    reason = getattr(response, "reason", "") or ""
    return f"{response.status_code} {reason}".strip()

"""
REST API client for the Rancher control plane.
"""

import logging
import re
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from errors import TransportError

logger = logging.getLogger(__name__)

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


class RancherRestClient:
    """REST client for the Rancher API, authenticated with an API key pair."""

    def __init__(
        self,
        endpoint: str,
        apikey: str,
        apisecret: str,
        timeout_s: int = 60,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the Rancher REST client.

        Args:
            endpoint: Base API URL, e.g. https://rancher.example.com/v2-beta/projects/1a5
            apikey: API access key
            apisecret: API secret key
            timeout_s: Request timeout in seconds
            session: Optional pre-built session (mostly for tests)
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout_s = timeout_s

        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(apikey, apisecret)

    @classmethod
    def from_config(cls, config) -> "RancherRestClient":
        return cls(
            endpoint=config.endpoint,
            apikey=config.apikey,
            apisecret=config.apisecret,
            timeout_s=config.request_timeout_s,
        )

    def _url(self, path: str) -> str:
        """Construct full API URL; action links from the API are used as-is."""
        if _ABSOLUTE_URL.match(path):
            return path
        return f"{self.endpoint}/{path.lstrip('/')}"

    def request(
        self, path: str, method: str = "GET", params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Execute one API call and return the parsed JSON body.

        GET parameters are sent as a query string, POST parameters as a
        JSON body.

        Args:
            path: Path relative to the endpoint, or an absolute URL
            method: HTTP method (GET, POST)
            params: Query or body parameters

        Returns:
            Parsed response body (None for an empty body)

        Raises:
            TransportError: If the call fails or returns a non-2xx status
        """
        params = params or {}
        url = self._url(path)
        method = method.upper()

        try:
            if method == "GET":
                resp = self.session.get(url, params=params, timeout=self.timeout_s)
            elif method == "POST":
                resp = self.session.post(url, json=params, timeout=self.timeout_s)
            else:
                raise ValueError(f"Unsupported method: {method}")
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        logger.debug(f"{method} {url} -> {resp.status_code}")

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"{method} {url} failed ({resp.status_code}): {resp.text[:200]}",
                status_code=resp.status_code,
                url=url,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(
                f"{method} {url} returned a non-JSON body",
                status_code=resp.status_code,
                url=url,
            ) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request(path, "GET", params)

    def post(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request(path, "POST", params)

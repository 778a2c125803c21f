from typing import Any, Dict, Optional

import requests

from config.constants import MYNEST_CONFIG
from ..models.exceptions import ConfigurationException, MyNestAPIException
from ..utils.logger import get_logger

logger = get_logger("mynest_client")


class MyNestClient:
    """Thin client for the MyNest download service.

    Only two endpoints are used: task submission and the health check.
    """

    def __init__(
        self,
        api_url: str,
        api_token: str,
        category: str = MYNEST_CONFIG["default_category"],
        timeout: float = MYNEST_CONFIG["request_timeout"],
        session: Optional[requests.Session] = None,
    ):
        if not api_url or not api_token:
            raise ConfigurationException(
                "MyNest API URL and token must both be configured",
                config_key="api_url" if not api_url else "api_token",
            )
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.category = category or MYNEST_CONFIG["default_category"]
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_token}",
        }

    def submit_download(
        self,
        url: str,
        category: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        endpoint = self.api_url + MYNEST_CONFIG["download_path"]
        payload: Dict[str, Any] = {
            "url": url,
            "plugin_name": MYNEST_CONFIG["plugin_name"],
            "category": category or self.category,
        }
        if filename:
            payload["filename"] = filename

        try:
            r = self.session.post(endpoint, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise MyNestAPIException(f"Could not reach MyNest: {e}", url=endpoint)

        try:
            result = r.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if not r.ok or not result.get("success"):
            error = result.get("error") or result.get("message") or f"HTTP {r.status_code}"
            raise MyNestAPIException(f"Download rejected: {error}", url=url, status_code=r.status_code)

        logger.info(f"Submitted download task for {url}")
        return result

    def health(self) -> Dict[str, Any]:
        endpoint = self.api_url + MYNEST_CONFIG["health_path"]
        try:
            r = self.session.get(endpoint, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise MyNestAPIException(f"Connection failed: {e}", url=endpoint)

        if not r.ok:
            raise MyNestAPIException(f"Service returned error: {r.status_code}", url=endpoint, status_code=r.status_code)

        try:
            data = r.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}

    def test_connection(self) -> Dict[str, Any]:
        """Health check folded into ``{success, message|error}``."""
        try:
            data = self.health()
        except MyNestAPIException as e:
            return {"success": False, "error": e.message}
        return {"success": True, "message": f"Connected to {data.get('name') or 'MyNest'}"}

    def close(self):
        self.session.close()

"""Region-routed SP-API transport: JSON GET/POST plus raw document downloads."""

import logging
import platform
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

import config
from auth.spapi_auth import SpApiAuth
from services.inventory_models import StoreConfig
from services.spapi_errors import SpApiError, error_from_response

logger = logging.getLogger(__name__)

API_TIMEOUT_SECONDS = 30
DOWNLOAD_TIMEOUT_SECONDS = 60


def _amz_date() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


class SpApiClient:
    def __init__(
        self,
        auth: SpApiAuth,
        *,
        app_name: str = config.APP_NAME,
        endpoints: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.auth = auth
        self.app_name = app_name
        self.endpoints = endpoints or dict(config.REGION_ENDPOINTS)
        self.session = session or requests.Session()

    def has_credentials(self, store: StoreConfig) -> bool:
        return self.auth.has_credentials(store.refresh_token)

    def _url(self, store: StoreConfig, path: str) -> str:
        endpoint = self.endpoints.get(store.api_region)
        if not endpoint:
            raise SpApiError(f"No SP-API endpoint configured for region {store.api_region}")
        return f"{endpoint}{path}"

    def _headers(self, store: StoreConfig) -> Dict[str, str]:
        token = self.auth.get_lwa_access_token(store.refresh_token)
        return {
            "x-amz-access-token": token,
            "x-amz-date": _amz_date(),
            "User-Agent": f"{self.app_name}/1.0 (Language=Python; Platform={platform.system()})",
            "accept": "application/json",
        }

    def _send(self, method: str, store: StoreConfig, path: str, **kwargs: Any) -> Any:
        url = self._url(store, path)
        headers = self._headers(store)
        try:
            resp = self.session.request(method, url, headers=headers, timeout=API_TIMEOUT_SECONDS, **kwargs)
        except requests.exceptions.RequestException as exc:
            raise SpApiError(f"{method} {path} transport error: {exc}") from exc
        if resp.status_code >= 300:
            raise error_from_response(resp, f"{method} {path}")
        try:
            return resp.json()
        except ValueError as exc:
            raise SpApiError(f"{method} {path} returned non-JSON body", status_code=resp.status_code) from exc

    def get(self, store: StoreConfig, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return self._send("GET", store, path, params=params)

    def post(self, store: StoreConfig, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self._send("POST", store, path, json=body or {})

    def download_blob(self, url: str) -> bytes:
        """Fetch a pre-signed report document URL (no SP-API auth headers)."""
        try:
            resp = self.session.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
        except requests.exceptions.RequestException as exc:
            raise SpApiError(f"Document download transport error: {exc}") from exc
        if resp.status_code >= 300:
            raise error_from_response(resp, "Document download")
        return resp.content

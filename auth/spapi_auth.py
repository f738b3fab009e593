# ================================================================
#  SP-API AUTH MODULE (NO AWS REQUIRED)
#  ---------------------------------------------------------------
#  - Exchange an LWA refresh token for an access token
#  - Cache access tokens per (client id, refresh token) pair
# ================================================================

import logging
from typing import Optional

import requests

import config
from services.inventory_cache import InventoryCacheService
from services.spapi_errors import SpApiAuthError, error_from_response

logger = logging.getLogger("spapi_auth")

TOKEN_TIMEOUT_SECONDS = 15


class SpApiAuth:
    def __init__(
        self,
        cache: InventoryCacheService,
        *,
        client_id: str = config.LWA_CLIENT_ID,
        client_secret: str = config.LWA_CLIENT_SECRET,
        token_url: str = config.LWA_TOKEN_URL,
        session: Optional[requests.Session] = None,
    ):
        self.cache = cache
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.session = session or requests.Session()

    def has_credentials(self, refresh_token: str) -> bool:
        return bool(self.client_id and self.client_secret and refresh_token)

    def get_lwa_access_token(self, refresh_token: str) -> str:
        """
        Return a cached access token for ``refresh_token`` or exchange a new one.

        Tokens within the cache's safety margin of expiry are treated as
        missing. Two callers racing on the same expired token may both hit the
        token endpoint; the later response simply overwrites the cache entry.
        """
        cached = self.cache.get_token(self.client_id, refresh_token)
        if cached:
            return cached

        if not self.has_credentials(refresh_token):
            raise SpApiAuthError("Missing LWA client credentials or refresh token")

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            resp = self.session.post(self.token_url, data=data, timeout=TOKEN_TIMEOUT_SECONDS)
        except requests.exceptions.RequestException as exc:
            logger.error("[Auth] Token request failed: %s", exc)
            raise SpApiAuthError(f"LWA token request failed: {exc}") from exc

        if resp.status_code != 200:
            err = error_from_response(resp, "LWA token request")
            logger.error("[Auth] %s", err)
            raise SpApiAuthError(str(err), status_code=err.status_code, retry_after=err.retry_after)

        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in") or 3600)
        except (ValueError, KeyError, TypeError) as exc:
            raise SpApiAuthError("LWA token response missing access_token or expires_in") from exc

        self.cache.store_token(self.client_id, refresh_token, token, expires_in)
        logger.info("[Auth] Successfully obtained LWA token (expires_in=%ss)", expires_in)
        return token

from typing import Any, Optional

import requests


class SpApiError(RuntimeError):
    """Transport or HTTP failure talking to SP-API (or the LWA token endpoint)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after
        self.payload = payload


class SpApiQuotaError(SpApiError):
    """Raised when SP-API returns a QuotaExceeded / 429."""


class SpApiAuthError(SpApiError):
    """Raised when the LWA refresh-token exchange fails."""


def parse_retry_after(value: Any) -> Optional[float]:
    """Seconds from a Retry-After header; HTTP-date forms are ignored."""
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _response_payload(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _payload_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            message = errors[0].get("message")
            if message:
                return str(message)
        for key in ("message", "error_description", "error"):
            if payload.get(key):
                return str(payload[key])
    if isinstance(payload, str) and payload.strip():
        return payload.strip()[:300]
    return None


def error_from_response(resp: requests.Response, context: str) -> SpApiError:
    payload = _response_payload(resp)
    message = _payload_message(payload) or resp.reason or "request failed"
    text = f"{context} failed {resp.status_code}: {message}"
    retry_after = parse_retry_after(resp.headers.get("retry-after"))
    if resp.status_code == 429:
        return SpApiQuotaError(text, status_code=429, retry_after=retry_after, payload=payload)
    return SpApiError(text, status_code=resp.status_code, retry_after=retry_after, payload=payload)


def describe_error(exc: BaseException) -> str:
    """Compact "status | type | message" summary for log lines."""
    parts = []
    status = getattr(exc, "status_code", None)
    if status:
        parts.append(str(status))
    parts.append(type(exc).__name__)
    parts.append(str(exc) or "Unknown error")
    return " | ".join(parts)

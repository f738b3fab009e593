import gzip
import json

import pytest
import requests

from auth.spapi_auth import SpApiAuth
from services import spapi_reports as spr
from services.inventory_cache import InventoryCacheService
from services.inventory_models import StoreConfig
from services.spapi_client import SpApiClient
from services.spapi_errors import (
    SpApiAuthError,
    SpApiError,
    SpApiQuotaError,
    describe_error,
    parse_retry_after,
)

US = StoreConfig(
    code="US",
    api_region="NA",
    marketplace_id="ATVPDKIKX0DER",
    refresh_token="refresh-na",
    name="United States",
    currency="USD",
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, *, content=None, headers=None, reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.content = content if content is not None else json.dumps(payload).encode("utf-8")
        self.headers = headers or {}
        self.reason = reason
        self.text = self.content.decode("utf-8", errors="replace")

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def _next(self, **call):
        self.calls.append(call)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, data=None, timeout=None):
        return self._next(method="POST", url=url, data=data, timeout=timeout)

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        return self._next(method=method, url=url, headers=headers, timeout=timeout, **kwargs)

    def get(self, url, timeout=None):
        return self._next(method="GET", url=url, timeout=timeout)


def _auth(session, cache=None):
    return SpApiAuth(
        cache or InventoryCacheService(),
        client_id="client",
        client_secret="secret",
        token_url="https://auth.example/token",
        session=session,
    )


def test_token_is_cached_per_credential_pair():
    session = FakeSession(
        [
            FakeResponse(200, {"access_token": "tok-na", "expires_in": 3600}),
            FakeResponse(200, {"access_token": "tok-eu", "expires_in": 3600}),
        ]
    )
    auth = _auth(session)

    assert auth.get_lwa_access_token("refresh-na") == "tok-na"
    assert auth.get_lwa_access_token("refresh-na") == "tok-na"
    assert auth.get_lwa_access_token("refresh-eu") == "tok-eu"
    assert len(session.calls) == 2
    assert session.calls[0]["data"]["grant_type"] == "refresh_token"
    assert session.calls[0]["data"]["refresh_token"] == "refresh-na"


def test_token_failure_raises_auth_error():
    session = FakeSession([FakeResponse(400, {"error": "invalid_grant"}, reason="Bad Request")])
    with pytest.raises(SpApiAuthError) as excinfo:
        _auth(session).get_lwa_access_token("refresh-na")
    assert excinfo.value.status_code == 400
    assert "invalid_grant" in str(excinfo.value)


def test_token_transport_error_raises_auth_error():
    session = FakeSession([requests.exceptions.ConnectTimeout("timed out")])
    with pytest.raises(SpApiAuthError):
        _auth(session).get_lwa_access_token("refresh-na")


def test_missing_credentials_never_calls_token_endpoint():
    session = FakeSession()
    auth = _auth(session)
    assert auth.has_credentials("") is False
    with pytest.raises(SpApiAuthError):
        auth.get_lwa_access_token("")
    assert session.calls == []


def _client(api_responses):
    auth_session = FakeSession([FakeResponse(200, {"access_token": "tok", "expires_in": 3600})])
    api_session = FakeSession(api_responses)
    client = SpApiClient(_auth(auth_session), app_name="TestApp", session=api_session)
    return client, api_session


def test_get_routes_to_region_endpoint_with_token_headers():
    client, session = _client([FakeResponse(200, {"payload": {"inventorySummaries": []}})])
    result = client.get(US, "/fba/inventory/v1/summaries", {"details": "true"})

    assert result == {"payload": {"inventorySummaries": []}}
    call = session.calls[0]
    assert call["url"] == "https://sellingpartnerapi-na.amazon.com/fba/inventory/v1/summaries"
    assert call["params"] == {"details": "true"}
    assert call["headers"]["x-amz-access-token"] == "tok"
    assert call["headers"]["User-Agent"].startswith("TestApp/1.0")
    assert call["timeout"] == 30


def test_429_becomes_quota_error_with_retry_after():
    client, _ = _client(
        [FakeResponse(429, {"errors": [{"message": "You exceeded your quota"}]}, headers={"retry-after": "120"})]
    )
    with pytest.raises(SpApiQuotaError) as excinfo:
        client.post(US, "/reports/2021-06-30/reports", {"reportType": "X"})
    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after == 120
    assert "exceeded your quota" in str(excinfo.value)


def test_server_error_becomes_spapi_error():
    client, _ = _client([FakeResponse(503, None, content=b"<html>down</html>", reason="Service Unavailable")])
    with pytest.raises(SpApiError) as excinfo:
        client.get(US, "/fba/inbound/v0/shipments")
    assert not isinstance(excinfo.value, SpApiQuotaError)
    assert excinfo.value.status_code == 503
    assert describe_error(excinfo.value).startswith("503 | SpApiError")


def test_transport_error_is_wrapped():
    client, _ = _client([requests.exceptions.ReadTimeout("slow")])
    with pytest.raises(SpApiError):
        client.get(US, "/fba/inventory/v1/summaries")


@pytest.mark.parametrize("raw, expected", [("30", 30.0), ("0", None), (None, None), ("Wed, 21 Oct 2015", None)])
def test_parse_retry_after(raw, expected):
    assert parse_retry_after(raw) == expected


def test_create_report_sends_type_and_marketplace():
    client, session = _client([FakeResponse(202, {"reportId": "RID-1"})])
    report_id = spr.create_report(client, US, "GET_FBA_INVENTORY_PLANNING_DATA")
    assert report_id == "RID-1"
    assert session.calls[0]["json"] == {
        "reportType": "GET_FBA_INVENTORY_PLANNING_DATA",
        "marketplaceIds": ["ATVPDKIKX0DER"],
    }


def test_list_reports_accepts_top_level_and_payload_shapes():
    client, session = _client(
        [
            FakeResponse(200, {"reports": [{"reportId": "A"}]}),
            FakeResponse(200, {"payload": {"reports": [{"reportId": "B"}, "junk"]}}),
        ]
    )
    first = spr.list_reports(client, US, "T", "2025-01-01T00:00:00Z", spr.REUSABLE_STATUSES)
    second = spr.list_reports(client, US, "T", "2025-01-01T00:00:00Z")
    assert first == [{"reportId": "A"}]
    assert second == [{"reportId": "B"}]
    assert session.calls[0]["params"]["processingStatuses"] == "IN_QUEUE,IN_PROGRESS,DONE"
    assert session.calls[1]["params"]["processingStatuses"] == "DONE"


@pytest.mark.parametrize("compression", ["GZIP", "gzip"])
def test_download_decompresses_gzip_case_insensitively(compression):
    text = "sku\tavailable\nA\t1\n"
    client, _ = _client([FakeResponse(200, None, content=gzip.compress(text.encode("utf-8")))])
    assert spr.download_report_document(client, "https://docs.example/1", compression) == text


def test_download_plain_document():
    client, session = _client([FakeResponse(200, None, content=b"sku\nA\n")])
    assert spr.download_report_document(client, "https://docs.example/1") == "sku\nA\n"
    assert session.calls[0]["timeout"] == 60


def test_non_numeric_expires_in_raises_auth_error():
    session = FakeSession([FakeResponse(200, {"access_token": "tok", "expires_in": "soon"})])
    cache = InventoryCacheService()
    with pytest.raises(SpApiAuthError):
        _auth(session, cache).get_lwa_access_token("refresh-na")
    assert cache.get_token("client", "refresh-na") is None

import gzip
import logging
from typing import Any, Dict, List, Optional, Sequence

from services.inventory_models import StoreConfig
from services.spapi_client import SpApiClient
from services.spapi_errors import SpApiError, SpApiQuotaError

logger = logging.getLogger("spapi_reports")

REPORTS_PATH = "/reports/2021-06-30/reports"
DOCUMENTS_PATH = "/reports/2021-06-30/documents"

STATUS_DONE = "DONE"
STATUS_IN_QUEUE = "IN_QUEUE"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_CANCELLED = "CANCELLED"
STATUS_FATAL = "FATAL"
TERMINAL_FAILURE_STATUSES = (STATUS_CANCELLED, STATUS_FATAL)
REUSABLE_STATUSES = (STATUS_IN_QUEUE, STATUS_IN_PROGRESS, STATUS_DONE)

__all__ = [
    "SpApiError",
    "SpApiQuotaError",
    "create_report",
    "list_reports",
    "get_report",
    "get_report_document",
    "download_report_document",
]


def _unwrap(resp: Any) -> Dict[str, Any]:
    # v2021-06-30 answers at the top level; older gateways wrap in "payload".
    if not isinstance(resp, dict):
        return {}
    payload = resp.get("payload")
    if isinstance(payload, dict):
        return payload
    return resp


def create_report(
    client: SpApiClient,
    store: StoreConfig,
    report_type: str,
    marketplace_ids: Optional[Sequence[str]] = None,
) -> str:
    """
    Request a new report. Raises SpApiQuotaError when createReport is throttled.
    """
    body: Dict[str, Any] = {
        "reportType": report_type,
        "marketplaceIds": list(marketplace_ids or [store.marketplace_id]),
    }
    logger.info("[spapi_reports] createReport store=%s payload=%s", store.code, body)
    resp = _unwrap(client.post(store, REPORTS_PATH, body))
    report_id = resp.get("reportId")
    if not report_id:
        raise SpApiError(f"createReport returned no reportId: {resp}")
    logger.info("[spapi_reports] Created report %s reportId=%s", report_type, report_id)
    return str(report_id)


def list_reports(
    client: SpApiClient,
    store: StoreConfig,
    report_type: str,
    created_since: str,
    processing_statuses: Sequence[str] = (STATUS_DONE,),
) -> List[Dict[str, Any]]:
    params = {
        "reportTypes": report_type,
        "processingStatuses": ",".join(processing_statuses),
        "marketplaceIds": store.marketplace_id,
        "createdSince": created_since,
    }
    resp = _unwrap(client.get(store, REPORTS_PATH, params))
    reports = resp.get("reports") or []
    return [r for r in reports if isinstance(r, dict)]


def get_report(client: SpApiClient, store: StoreConfig, report_id: str) -> Dict[str, Any]:
    return _unwrap(client.get(store, f"{REPORTS_PATH}/{report_id}"))


def get_report_document(client: SpApiClient, store: StoreConfig, document_id: str) -> Dict[str, Any]:
    """
    Fetch the document descriptor (pre-signed url + compressionAlgorithm).

    The url expires; callers download it right away rather than caching it.
    """
    return _unwrap(client.get(store, f"{DOCUMENTS_PATH}/{document_id}"))


def download_report_document(
    client: SpApiClient,
    url: str,
    compression_algorithm: Optional[str] = None,
) -> str:
    content = client.download_blob(url)
    if compression_algorithm and compression_algorithm.upper() == "GZIP":
        content = gzip.decompress(content)
    logger.info("[spapi_reports] document raw size=%s bytes", len(content))
    return content.decode("utf-8-sig", errors="replace")

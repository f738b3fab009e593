"""
GET_FBA_INVENTORY_PLANNING_DATA job orchestration.

One refresh for a store walks: cached? -> reuse a recent report -> cooldown
gate -> createReport -> poll -> download -> parse -> cache. It always runs
in the background, so every failure is logged and turned into a status
string instead of being raised.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import config
from services.inventory_cache import InventoryCacheService
from services.inventory_models import PlanningCacheEntry, StoreConfig
from services.planning_report_parser import parse_planning_report
from services.spapi_client import SpApiClient
from services.spapi_errors import SpApiQuotaError, describe_error
from services.spapi_reports import (
    REUSABLE_STATUSES,
    STATUS_DONE,
    TERMINAL_FAILURE_STATUSES,
    create_report,
    download_report_document,
    get_report,
    get_report_document,
    list_reports,
)

logger = logging.getLogger("planning_report_jobs")

# refresh() outcomes
RESULT_CACHED = "cached"
RESULT_REUSED = "reused"
RESULT_PENDING = "pending"
RESULT_CREATED = "created"
RESULT_COOLDOWN = "cooldown"
RESULT_RATE_LIMITED = "rate_limited"
RESULT_FAILED = "failed"
RESULT_TIMEOUT = "timeout"
RESULT_IN_PROGRESS = "in_progress"
RESULT_MISSING_CREDENTIALS = "missing_credentials"
RESULT_ERROR = "error"


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def pick_latest_report(reports: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Most recently created report; ISO-8601 createdTime strings sort chronologically."""
    dated = [r for r in reports if r.get("createdTime")]
    if not dated:
        return None
    return max(dated, key=lambda r: str(r.get("createdTime")))


class PlanningReportOrchestrator:
    def __init__(
        self,
        client: SpApiClient,
        cache: InventoryCacheService,
        *,
        report_type: str = config.PLANNING_REPORT_TYPE,
        poll_attempts: int = config.REPORT_POLL_ATTEMPTS,
        poll_interval_seconds: float = config.REPORT_POLL_INTERVAL_SECONDS,
        cooldown_seconds: float = config.REPORT_COOLDOWN_SECONDS,
        reuse_lookback_hours: int = config.REPORT_REUSE_LOOKBACK_HOURS,
        sleep: Callable[[float], None] = time.sleep,
        utcnow: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = client
        self.cache = cache
        self.report_type = report_type
        self.poll_attempts = poll_attempts
        self.poll_interval_seconds = poll_interval_seconds
        self.cooldown_seconds = cooldown_seconds
        self.reuse_lookback_hours = reuse_lookback_hours
        self._sleep = sleep
        self._utcnow = utcnow
        self._store_locks: Dict[str, threading.Lock] = {}
        self._store_locks_guard = threading.Lock()

    def _lock_for(self, store_code: str) -> threading.Lock:
        with self._store_locks_guard:
            lock = self._store_locks.get(store_code)
            if lock is None:
                lock = threading.Lock()
                self._store_locks[store_code] = lock
            return lock

    def is_running(self, store_code: str) -> bool:
        return self._lock_for(store_code).locked()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def refresh(self, store: StoreConfig) -> str:
        if not self.client.has_credentials(store):
            logger.debug("[PlanningReport] %s has no credentials; skipping", store.code)
            return RESULT_MISSING_CREDENTIALS
        if self.cache.get_planning(store.code) is not None:
            return RESULT_CACHED

        lock = self._lock_for(store.code)
        if not lock.acquire(blocking=False):
            logger.info("[PlanningReport] Refresh already running for %s; skipping", store.code)
            return RESULT_IN_PROGRESS
        try:
            if self.cache.get_planning(store.code) is not None:
                return RESULT_CACHED
            return self._refresh_locked(store)
        except Exception as exc:
            logger.error(
                "[PlanningReport] Planning report failed for %s: %s",
                store.code,
                describe_error(exc),
            )
            return RESULT_ERROR
        finally:
            lock.release()

    def _refresh_locked(self, store: StoreConfig) -> str:
        reused = self._reuse_latest_report(store)
        if reused is not None:
            return reused

        if self.cache.cooldowns.is_blocked(store.code):
            # Report creation is throttled; a report that finishes meanwhile
            # is still picked up by the reuse check on the next run.
            logger.info(
                "[PlanningReport] %s in createReport cooldown for another %.0fs",
                store.code,
                self.cache.cooldowns.remaining_seconds(store.code),
            )
            return RESULT_COOLDOWN

        report_id = self._create_report_once(store)
        if not report_id:
            return RESULT_RATE_LIMITED

        document_id, outcome = self._poll_report(store, report_id)
        if not document_id:
            return outcome
        if not self._download_and_cache(store, document_id, report_id):
            return RESULT_FAILED
        return RESULT_CREATED

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _reuse_latest_report(self, store: StoreConfig) -> Optional[str]:
        """
        Look for a planning report created in the lookback window.

        Returns a result string when the run should stop here, or None to
        fall through to createReport.
        """
        created_since = _iso(self._utcnow() - timedelta(hours=self.reuse_lookback_hours))
        reports = list_reports(
            self.client,
            store,
            self.report_type,
            created_since,
            processing_statuses=REUSABLE_STATUSES,
        )
        latest = pick_latest_report(reports)
        if latest is None:
            return None

        status = latest.get("processingStatus")
        report_id = latest.get("reportId")
        if status and status != STATUS_DONE:
            if not report_id:
                logger.info("[PlanningReport] Planning report already processing for %s (%s)", store.code, status)
                return RESULT_PENDING
            document_id, outcome = self._poll_report(store, str(report_id))
            if document_id:
                if not self._download_and_cache(store, document_id, str(report_id)):
                    return RESULT_PENDING
                logger.info("[PlanningReport] Planning report finished while polling for %s", store.code)
                return RESULT_REUSED
            if outcome == RESULT_FAILED:
                return None
            logger.info("[PlanningReport] Planning report still processing for %s (%s)", store.code, status)
            return RESULT_PENDING

        document_id = latest.get("reportDocumentId")
        if not document_id:
            return None
        if not self._download_and_cache(store, str(document_id), report_id):
            return None
        logger.info("[PlanningReport] Planning report reused for %s (reportId=%s)", store.code, report_id)
        return RESULT_REUSED

    def _create_report_once(self, store: StoreConfig) -> Optional[str]:
        try:
            return create_report(self.client, store, self.report_type, [store.marketplace_id])
        except SpApiQuotaError as exc:
            backoff = exc.retry_after if exc.retry_after and exc.retry_after > 0 else self.cooldown_seconds
            self.cache.cooldowns.block(store.code, backoff)
            logger.warning(
                "[PlanningReport] Rate limited creating report for %s. Cooling down for %ss.",
                store.code,
                round(backoff),
            )
            return None

    def _poll_report(self, store: StoreConfig, report_id: str) -> Tuple[Optional[str], str]:
        last_status = None
        for attempt in range(1, self.poll_attempts + 1):
            report = get_report(self.client, store, report_id)
            status = report.get("processingStatus")
            document_id = report.get("reportDocumentId")
            if status != last_status:
                logger.info(
                    "[PlanningReport] report %s status=%s (attempt %s/%s)",
                    report_id,
                    status,
                    attempt,
                    self.poll_attempts,
                )
                last_status = status
            if status == STATUS_DONE and document_id:
                return str(document_id), RESULT_CREATED
            if status in TERMINAL_FAILURE_STATUSES:
                logger.warning(
                    "[PlanningReport] report %s for %s ended %s; not caching",
                    report_id,
                    store.code,
                    status,
                )
                return None, RESULT_FAILED
            if attempt < self.poll_attempts:
                self._sleep(self.poll_interval_seconds)

        logger.info(
            "[PlanningReport] report %s for %s not ready after %s polls (status=%s); next sweep resumes it",
            report_id,
            store.code,
            self.poll_attempts,
            last_status,
        )
        return None, RESULT_TIMEOUT

    def _download_and_cache(self, store: StoreConfig, document_id: str, report_id: Optional[str]) -> bool:
        document = get_report_document(self.client, store, document_id)
        url = document.get("url")
        if not url:
            logger.warning("[PlanningReport] Document %s for %s has no url", document_id, store.code)
            return False
        content = download_report_document(self.client, url, document.get("compressionAlgorithm"))
        items, aging_risk = parse_planning_report(content)
        self.cache.store_planning(
            store.code,
            PlanningCacheEntry(items=items, aging_risk=aging_risk, report_id=report_id),
        )
        return True


__all__ = [
    "PlanningReportOrchestrator",
    "pick_latest_report",
]

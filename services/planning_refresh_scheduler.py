"""
Background sweep that keeps planning reports cached.

One daemon thread runs a sweep shortly after start and then every 15
minutes. Stores are refreshed one at a time with a pause in between so
createReport stays under the SP-API rate limit. A sweep that finds another
one still running returns immediately instead of queueing.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence

import config
from services.inventory_models import StoreConfig
from services.report_jobs import PlanningReportOrchestrator
from services.spapi_errors import describe_error

logger = logging.getLogger(__name__)


class PlanningRefreshScheduler:
    def __init__(
        self,
        orchestrator: PlanningReportOrchestrator,
        stores: Sequence[StoreConfig],
        *,
        interval_seconds: float = config.REFRESH_SWEEP_INTERVAL_SECONDS,
        initial_delay_seconds: float = config.REFRESH_INITIAL_DELAY_SECONDS,
        inter_region_delay_seconds: float = config.REFRESH_INTER_REGION_DELAY_SECONDS,
    ):
        self.orchestrator = orchestrator
        self.stores = list(stores)
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.inter_region_delay_seconds = inter_region_delay_seconds
        self._sweep_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_lock.locked()

    def run_sweep(self) -> Optional[Dict[str, str]]:
        """
        Refresh every tracked store in order. Returns per-store results, or
        None when another sweep already holds the flag.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("[Scheduler] Planning sweep already running; skipping")
            return None
        results: Dict[str, str] = {}
        try:
            for index, store in enumerate(self.stores):
                if self._stop.is_set():
                    break
                results[store.code] = self.orchestrator.refresh(store)
                logger.info("[Scheduler] %s planning refresh -> %s", store.code, results[store.code])
                if index < len(self.stores) - 1:
                    self._stop.wait(self.inter_region_delay_seconds)
        finally:
            self._sweep_lock.release()
        return results

    def _loop(self) -> None:
        logger.info(
            "[Scheduler] Started for %s; interval=%ss",
            ",".join(s.code for s in self.stores) or "-",
            self.interval_seconds,
        )
        if self._stop.wait(self.initial_delay_seconds):
            return
        while not self._stop.is_set():
            try:
                self.run_sweep()
            except Exception as exc:  # pragma: no cover - scheduler safety
                logger.error("[Scheduler] Sweep failed: %s", describe_error(exc), exc_info=True)
            if self._stop.wait(self.interval_seconds):
                break
        logger.info("[Scheduler] Stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("[Scheduler] Already running; skipping duplicate start")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="PlanningReportRefresh",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the loop to stop. A poll already in flight runs to its attempt ceiling."""
        self._stop.set()
        thread = self._thread
        if thread and thread.is_alive():
            thread.join(timeout=timeout)
        self._thread = None

    def tracked_codes(self) -> List[str]:
        return [s.code for s in self.stores]

"""
Startup wiring: builds the cache service once and injects it into the auth
client, SP-API client, report orchestrator, scheduler and snapshot service.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

import config
from auth.spapi_auth import SpApiAuth
from services.background_tasks import shutdown_background_tasks
from services.inventory_cache import InventoryCacheService
from services.inventory_models import StoreConfig
from services.inventory_snapshot import InventorySnapshotService
from services.planning_refresh_scheduler import PlanningRefreshScheduler
from services.report_jobs import PlanningReportOrchestrator
from services.spapi_client import SpApiClient

logger = logging.getLogger(__name__)


def build_store_configs() -> Dict[str, StoreConfig]:
    return {
        code: StoreConfig(
            code=code,
            api_region=api_region,
            marketplace_id=marketplace_id,
            refresh_token=refresh_token,
            name=name,
            currency=currency,
        )
        for code, (api_region, marketplace_id, refresh_token, name, currency) in config.STORE_DEFINITIONS.items()
    }


class InventoryRuntime:
    def __init__(
        self,
        stores: Dict[str, StoreConfig],
        *,
        report_store_codes: Optional[List[str]] = None,
        cache: Optional[InventoryCacheService] = None,
        client: Optional[SpApiClient] = None,
        orchestrator: Optional[PlanningReportOrchestrator] = None,
    ):
        self.stores = stores
        self.cache = cache or InventoryCacheService()
        self.client = client or SpApiClient(SpApiAuth(self.cache))
        self.orchestrator = orchestrator or PlanningReportOrchestrator(self.client, self.cache)
        codes = report_store_codes if report_store_codes is not None else config.REPORT_STORES
        unknown = [c for c in codes if c not in stores]
        if unknown:
            logger.warning("[Runtime] Ignoring unknown REPORT_STORES entries: %s", ",".join(unknown))
        self.report_store_codes = [c for c in codes if c in stores]
        self.scheduler = PlanningRefreshScheduler(
            self.orchestrator,
            [stores[c] for c in self.report_store_codes],
        )
        self.snapshots = InventorySnapshotService(self.client, self.cache, stores)

    def start(self) -> None:
        if not config.REPORT_AUTO_REFRESH:
            logger.info("[Runtime] REPORT_AUTO_REFRESH disabled; scheduler not started")
            return
        self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.stop()
        shutdown_background_tasks()
        self.cache.clear()


_runtime: Optional[InventoryRuntime] = None
_runtime_lock = threading.Lock()


def get_runtime() -> InventoryRuntime:
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            _runtime = InventoryRuntime(build_store_configs())
        return _runtime


def set_runtime(runtime: Optional[InventoryRuntime]) -> None:
    global _runtime
    with _runtime_lock:
        _runtime = runtime

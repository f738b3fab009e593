"""Store inventory and planning report API routes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from services.background_tasks import run_background
from services.inventory_models import StoreConfig
from services.inventory_runtime import InventoryRuntime, get_runtime
from services.spapi_errors import describe_error

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

DEBUG_SAMPLE_SIZE = 5


class PlanningStatusEntry(BaseModel):
    store: str
    cached: bool
    fresh: bool = False
    cached_at: Optional[str] = Field(None, alias="cachedAt")
    age_seconds: Optional[int] = Field(None, alias="ageSeconds")
    rows: int = 0
    cooldown_until: Optional[str] = Field(None, alias="cooldownUntil")
    refresh_running: bool = Field(False, alias="refreshRunning")


class PlanningRefreshAccepted(BaseModel):
    ok: bool = True
    store: str


def _require_store(runtime: InventoryRuntime, store: str, *, tracked_only: bool) -> StoreConfig:
    code = (store or "").strip().upper()
    allowed = runtime.report_store_codes if tracked_only else list(runtime.stores)
    if code not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported store {store!r}. Allowed: {', '.join(allowed) or 'none'}",
        )
    config = runtime.stores[code]
    if not runtime.client.has_credentials(config):
        raise HTTPException(status_code=400, detail=f"Missing SP-API credentials for store {code}.")
    return config


@router.get("/stores")
async def get_stores() -> Dict[str, Any]:
    """
    Live inventory for every store merged with the cached planning report.
    """
    runtime = get_runtime()
    snapshots = await runtime.snapshots.fetch_all_store_snapshots()
    return {"stores": [s.model_dump(by_alias=True) for s in snapshots]}


@router.get("/reports/planning/status")
def get_planning_status() -> Dict[str, List[Dict[str, Any]]]:
    runtime = get_runtime()
    status = []
    for row in runtime.cache.planning_status(runtime.report_store_codes):
        entry = PlanningStatusEntry(**row, refreshRunning=runtime.orchestrator.is_running(row["store"]))
        status.append(entry.model_dump(by_alias=True))
    return {"status": status}


@router.post("/reports/planning/refresh")
def refresh_planning_report(store: str = Query("US")) -> Dict[str, Any]:
    """
    Kick off a planning report refresh for one store and return immediately.
    Progress shows up in /reports/planning/status.
    """
    runtime = get_runtime()
    config = _require_store(runtime, store, tracked_only=True)
    run_background(f"manualPlanningRefresh:{config.code}", runtime.orchestrator.refresh, config)
    return PlanningRefreshAccepted(store=config.code).model_dump()


@router.get("/debug/inventory")
def debug_inventory(store: str = Query("US")) -> Dict[str, Any]:
    runtime = get_runtime()
    config = _require_store(runtime, store, tracked_only=False)
    try:
        summaries = runtime.snapshots.fetch_live_summaries(config)
    except Exception as exc:
        logger.warning("[SP-API] Debug inventory fetch failed for %s: %s", config.code, describe_error(exc))
        raise HTTPException(status_code=502, detail=describe_error(exc)) from exc
    return {
        "store": config.code,
        "count": len(summaries),
        "sample": summaries[:DEBUG_SAMPLE_SIZE],
    }


def register_inventory_routes(app: FastAPI) -> None:
    """Mount the router on the FastAPI app."""
    app.include_router(router)

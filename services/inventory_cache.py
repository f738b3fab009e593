"""
Process-wide cache state for the inventory sync.

One ``InventoryCacheService`` owns the access-token, planning report and
inbound shipment caches plus the report-creation cooldowns. It is built once
at startup and handed to the auth client, the report orchestrator, the
scheduler and the snapshot merge.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import config
from services.inventory_models import InboundShipment, PlanningCacheEntry
from services.report_cooldown import ReportCooldownTracker
from services.ttl_cache import TtlCache

logger = logging.getLogger(__name__)

TokenKey = Tuple[str, str]


def _iso(epoch_seconds: Optional[float]) -> Optional[str]:
    if not epoch_seconds:
        return None
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.replace(microsecond=0).isoformat().replace("+00:00", "Z")


class InventoryCacheService:
    def __init__(
        self,
        *,
        planning_ttl_seconds: float = config.PLANNING_CACHE_TTL_SECONDS,
        shipments_ttl_seconds: float = config.SHIPMENTS_CACHE_TTL_SECONDS,
        token_margin_seconds: float = config.TOKEN_EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.clock = clock
        self.token_margin_seconds = token_margin_seconds
        # Token entries carry their own TTL (expires_in minus margin).
        self.tokens: TtlCache[TokenKey, str] = TtlCache(3600, clock=clock)
        self.planning: TtlCache[str, PlanningCacheEntry] = TtlCache(planning_ttl_seconds, clock=clock)
        self.shipments: TtlCache[str, List[InboundShipment]] = TtlCache(shipments_ttl_seconds, clock=clock)
        self.cooldowns = ReportCooldownTracker(clock=clock)

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------
    def get_token(self, client_id: str, refresh_token: str) -> Optional[str]:
        return self.tokens.get((client_id, refresh_token))

    def store_token(self, client_id: str, refresh_token: str, token: str, expires_in: float) -> None:
        usable_for = float(expires_in) - self.token_margin_seconds
        if usable_for <= 0:
            logger.warning("[TokenCache] Token expires within the safety margin; not caching")
            return
        self.tokens.set((client_id, refresh_token), token, ttl_seconds=usable_for)

    # ------------------------------------------------------------------
    # Planning reports
    # ------------------------------------------------------------------
    def get_planning(self, store: str) -> Optional[PlanningCacheEntry]:
        return self.planning.get(store)

    def store_planning(self, store: str, entry: PlanningCacheEntry) -> None:
        self.planning.set(store, entry)
        logger.info(
            "[PlanningReport] Planning report cached for %s (%s rows)",
            store,
            len(entry.items),
        )

    def planning_fetched_at(self, store: str) -> Optional[float]:
        entry = self.planning.get_entry(store)
        return entry.fetched_at if entry else None

    # ------------------------------------------------------------------
    # Inbound shipments
    # ------------------------------------------------------------------
    def get_shipments(self, store: str) -> Optional[List[InboundShipment]]:
        return self.shipments.get(store)

    def store_shipments(self, store: str, shipments: List[InboundShipment]) -> None:
        self.shipments.set(store, list(shipments))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    def planning_status(self, stores: Iterable[str]) -> List[Dict[str, Any]]:
        now = self.clock()
        status: List[Dict[str, Any]] = []
        for store in stores:
            entry = self.planning.get_entry(store)
            cooldown_until = self.cooldowns.blocked_until(store)
            if cooldown_until is not None and cooldown_until <= now:
                cooldown_until = None
            status.append(
                {
                    "store": store,
                    "cached": entry is not None,
                    "fresh": self.planning.is_fresh(store),
                    "cachedAt": _iso(entry.fetched_at) if entry else None,
                    "ageSeconds": int(now - entry.fetched_at) if entry else None,
                    "rows": len(entry.value.items) if entry else 0,
                    "cooldownUntil": _iso(cooldown_until),
                }
            )
        return status

    def clear(self) -> None:
        self.tokens.clear()
        self.planning.clear()
        self.shipments.clear()

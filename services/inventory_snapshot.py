"""
Per-store inventory view.

Each snapshot combines the live FBA inventory summaries with the cached
planning report (sales velocity, aging, sell-through, gap filling) and the
cached inbound shipment list. Built fresh per request; nothing here is
persisted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from services.async_utils import run_single_arg
from services.inbound_shipments import fetch_inbound_shipments
from services.inventory_cache import InventoryCacheService
from services.inventory_extractors import pick_number, pick_text
from services.inventory_models import (
    MergedInventoryItem,
    PlanningCacheEntry,
    PlanningRecord,
    StoreConfig,
    StoreSnapshot,
)
from services.spapi_client import SpApiClient
from services.spapi_errors import describe_error

logger = logging.getLogger(__name__)

INVENTORY_SUMMARIES_PATH = "/fba/inventory/v1/summaries"


def summary_to_item(summary: Dict[str, Any]) -> MergedInventoryItem:
    details = summary.get("inventoryDetails") or {}
    if not isinstance(details, dict):
        details = {}
    reserved_block = details.get("reservedQuantity") or {}
    if not isinstance(reserved_block, dict):
        reserved_block = {}

    fulfillable = pick_number(details.get("fulfillableQuantity"))
    total_quantity = pick_number(
        summary.get("totalQuantity"),
        details.get("totalQuantity"),
        summary.get("totalAvailableQuantity"),
    )
    reserved = pick_number(
        reserved_block.get("totalReservedQuantity"),
        summary.get("totalReservedQuantity"),
    )
    inbound_total = pick_number(details.get("inboundQuantity"), summary.get("totalInboundQuantity"))
    if inbound_total is None:
        inbound_total = 0.0
        for stage in ("Working", "Shipped", "Receiving"):
            value = pick_number(
                details.get(f"inbound{stage}Quantity"),
                summary.get(f"inbound{stage}Quantity"),
                summary.get(f"totalInbound{stage}Quantity"),
            )
            inbound_total += value or 0

    sku = pick_text(summary.get("sellerSku"), summary.get("asin")) or "UNKNOWN"
    title = pick_text(
        summary.get("productName"),
        summary.get("itemName"),
        summary.get("itemTitle"),
        summary.get("title"),
    ) or sku

    on_hand = fulfillable if fulfillable is not None else total_quantity
    return MergedInventoryItem(
        sku=sku,
        title=title,
        on_hand=on_hand or 0,
        reserved=reserved or 0,
        inbound=inbound_total,
    )


def planning_to_item(record: PlanningRecord) -> MergedInventoryItem:
    return MergedInventoryItem(
        sku=record.sku,
        title=record.title or record.sku,
        on_hand=record.available,
        reserved=record.reserved,
        inbound=record.inbound,
        sales_7d=record.sales_7d,
        age_90_plus=record.age_90_plus_units > 0,
        sell_through=record.sell_through,
    )


def merge_planning(
    live_items: Iterable[MergedInventoryItem],
    planning: Optional[PlanningCacheEntry],
) -> List[MergedInventoryItem]:
    """
    Overlay planning data on the live items.

    Live quantities win unless they are exactly zero. Planning skus missing
    from the live call are appended so nothing in the report is dropped.
    """
    items = list(live_items)
    if planning is None:
        return items

    unmatched: Dict[str, PlanningRecord] = dict(planning.items)
    merged: List[MergedInventoryItem] = []
    for item in items:
        record = unmatched.pop(item.sku, None)
        if record is None:
            merged.append(item)
            continue
        merged.append(
            item.model_copy(
                update={
                    "title": record.title or item.title,
                    "on_hand": record.available if item.on_hand == 0 else item.on_hand,
                    "reserved": record.reserved if item.reserved == 0 else item.reserved,
                    "inbound": record.inbound if item.inbound == 0 else item.inbound,
                    "sales_7d": record.sales_7d,
                    "age_90_plus": record.age_90_plus_units > 0,
                    "sell_through": record.sell_through,
                }
            )
        )

    merged.extend(planning_to_item(record) for record in unmatched.values())
    return merged


def blank_snapshot(store: StoreConfig) -> StoreSnapshot:
    return StoreSnapshot(
        code=store.code,
        name=store.name,
        marketplace=store.marketplace_label,
        currency=store.currency,
    )


class InventorySnapshotService:
    def __init__(
        self,
        client: SpApiClient,
        cache: InventoryCacheService,
        stores: Dict[str, StoreConfig],
    ):
        self.client = client
        self.cache = cache
        self.stores = stores

    def fetch_live_summaries(self, store: StoreConfig) -> List[Dict[str, Any]]:
        params = {
            "marketplaceIds": store.marketplace_id,
            "granularityType": "Marketplace",
            "granularityId": store.marketplace_id,
            "details": "true",
        }
        resp = self.client.get(store, INVENTORY_SUMMARIES_PATH, params)
        payload = resp.get("payload") if isinstance(resp, dict) else None
        summaries = (payload or {}).get("inventorySummaries") or []
        return [s for s in summaries if isinstance(s, dict)]

    def fetch_store_snapshot(self, store_code: str) -> StoreSnapshot:
        store = self.stores[store_code]
        snapshot = blank_snapshot(store)
        if not self.client.has_credentials(store):
            snapshot.warnings.append("Missing SP-API credentials")
            return snapshot

        try:
            summaries = self.fetch_live_summaries(store)
            shipments = fetch_inbound_shipments(self.client, self.cache, store)
            planning = self.cache.get_planning(store.code)
            inventory = merge_planning([summary_to_item(s) for s in summaries], planning)
        except Exception as exc:
            logger.error("[SP-API] Inventory fetch failed for %s: %s", store.code, describe_error(exc))
            snapshot.warnings.append("Live inventory unavailable")
            return snapshot

        snapshot.inventory = inventory
        snapshot.shipments = shipments
        snapshot.aging_risk = planning.aging_risk if planning else 0
        if planning is None:
            snapshot.warnings.append("Planning report not cached yet")
        return snapshot

    async def fetch_all_store_snapshots(self) -> List[StoreSnapshot]:
        return await run_single_arg(
            self.fetch_store_snapshot,
            list(self.stores),
            max_concurrency=max(1, len(self.stores)),
        )

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import config
from services.inventory_cache import InventoryCacheService
from services.inventory_extractors import format_eta, pick_number, pick_text
from services.inventory_models import InboundShipment, StoreConfig
from services.spapi_client import SpApiClient
from services.spapi_errors import describe_error

logger = logging.getLogger(__name__)

SHIPMENTS_PATH = "/fba/inbound/v0/shipments"
SHIPMENT_STATUSES = "WORKING,SHIPPED,IN_TRANSIT,DELIVERED,RECEIVING,CHECKED_IN"


def normalize_shipment(raw: Dict[str, Any]) -> InboundShipment:
    # v0 answers in PascalCase; some gateways camelCase the same fields.
    eta_raw = pick_text(
        raw.get("EstimatedArrivalDate"),
        raw.get("estimatedArrivalDate"),
        raw.get("ExpectedArrivalDate"),
        raw.get("expectedArrivalDate"),
    )
    units = pick_number(
        raw.get("TotalUnits"),
        raw.get("totalUnits"),
        raw.get("TotalQuantity"),
        raw.get("totalQuantity"),
        raw.get("BoxCount"),
        raw.get("boxCount"),
    )
    return InboundShipment(
        id=pick_text(raw.get("ShipmentId"), raw.get("shipmentId")) or "UNKNOWN",
        status=pick_text(raw.get("ShipmentStatus"), raw.get("shipmentStatus")) or "Unknown",
        eta=format_eta(eta_raw),
        units=units if units is not None else 0,
    )


def fetch_inbound_shipments(
    client: SpApiClient,
    cache: InventoryCacheService,
    store: StoreConfig,
) -> List[InboundShipment]:
    """
    Inbound shipments updated in the last 30 days, cached for five minutes.

    Failures return an empty list and leave the cache untouched.
    """
    cached = cache.get_shipments(store.code)
    if cached is not None:
        return cached
    if not client.has_credentials(store):
        return []

    last_updated_after = (
        datetime.now(timezone.utc) - timedelta(days=config.SHIPMENTS_LOOKBACK_DAYS)
    ).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    params = {
        "MarketplaceId": store.marketplace_id,
        "QueryType": "DATE_RANGE",
        "LastUpdatedAfter": last_updated_after,
        "ShipmentStatusList": SHIPMENT_STATUSES,
    }
    try:
        resp = client.get(store, SHIPMENTS_PATH, params)
    except Exception as exc:
        logger.error("[SP-API] Inbound shipments fetch failed for %s: %s", store.code, describe_error(exc))
        return []

    payload = resp.get("payload") if isinstance(resp, dict) else None
    payload = payload if isinstance(payload, dict) else {}
    data = payload.get("ShipmentData") or payload.get("shipmentData") or []
    if not isinstance(data, list):
        logger.warning("[SP-API] Unexpected ShipmentData shape for %s: %s", store.code, type(data).__name__)
        data = []
    shipments = [normalize_shipment(row) for row in data if isinstance(row, dict)]
    cache.store_shipments(store.code, shipments)
    return shipments

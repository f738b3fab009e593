"""
Parse GET_FBA_INVENTORY_PLANNING_DATA documents.

The report is tab-delimited with a header row. Column names drift between
marketplaces and report versions ("Available", "available_quantity",
"Inv Age 91 To 180 Days"), so headers are folded to lower-case hyphenated
keys before any lookup.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Tuple

from services.inventory_extractors import compute_age_90_plus, parse_number, parse_percent
from services.inventory_models import PlanningRecord
from services.log_once import log_once

logger = logging.getLogger(__name__)

_HEADER_SEPARATOR_RE = re.compile(r"[\s_]+")
_LINE_SPLIT_RE = re.compile(r"\r?\n")
HEADER_SAMPLE_SIZE = 50


def normalize_header(header: str) -> str:
    return _HEADER_SEPARATOR_RE.sub("-", header.strip().lower())


def parse_tab_delimited(content: str) -> List[Dict[str, str]]:
    lines = [line for line in _LINE_SPLIT_RE.split(content or "") if line.strip()]
    if not lines:
        return []

    headers = [normalize_header(h) for h in lines[0].split("\t")]
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = line.split("\t")
        rows.append(
            {
                header: (values[idx] if idx < len(values) else "").strip()
                for idx, header in enumerate(headers)
            }
        )
    return rows


def _first(row: Mapping[str, str], *keys: str) -> str:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return ""


def build_planning_record(row: Mapping[str, str]) -> PlanningRecord:
    sku = _first(row, "sku", "seller-sku", "seller-sku-sku")
    inbound = (
        parse_number(row.get("inbound-working-quantity"))
        + parse_number(row.get("inbound-shipped-quantity"))
        + parse_number(row.get("inbound-receiving-quantity"))
        + parse_number(row.get("inbound-quantity"))
    )
    # A literal 0 in units-shipped-t7 also falls through to the secondary column.
    sales_7d = parse_number(row.get("units-shipped-t7")) or parse_number(
        row.get("sales-shipped-last-7-days")
    )
    estimated_ltsf = parse_number(row.get("estimated-ltsf-next-charge")) + parse_number(
        row.get("projected-ltsf-11-mo")
    )
    return PlanningRecord(
        sku=sku,
        title=_first(row, "product-name", "item-name"),
        available=parse_number(_first(row, "available", "available-quantity")),
        reserved=parse_number(_first(row, "reserved-quantity", "total-reserved-quantity")),
        inbound=inbound,
        sales_7d=sales_7d,
        sell_through=parse_percent(row.get("sell-through")),
        age_90_plus_units=compute_age_90_plus(row),
        estimated_ltsf=estimated_ltsf,
        estimated_storage=parse_number(row.get("estimated-storage-cost-next-month")),
    )


def parse_planning_report(content: str) -> Tuple[Dict[str, PlanningRecord], float]:
    """
    Turn a planning report document into ``(records_by_sku, aging_risk)``.

    Rows without a sku are dropped; a repeated sku keeps the last row.
    ``aging_risk`` is the summed LTSF + next-month storage estimate of every
    kept row.
    """
    rows = parse_tab_delimited(content)
    if rows:
        log_once(
            logger,
            "planning_report_headers",
            "info",
            "[PlanningReport] Headers sample: %s",
            ", ".join(list(rows[0].keys())[:HEADER_SAMPLE_SIZE]),
        )

    items: Dict[str, PlanningRecord] = {}
    aging_risk = 0.0
    dropped = 0
    for row in rows:
        record = build_planning_record(row)
        if not record.sku:
            dropped += 1
            continue
        aging_risk += record.estimated_ltsf + record.estimated_storage
        items[record.sku] = record

    if dropped:
        logger.debug("[PlanningReport] Dropped %s rows without a sku", dropped)
    return items, aging_risk

"""Domain records shared by the planning report pipeline and the snapshot merge."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    api_region: str
    marketplace_id: str
    refresh_token: str = ""
    name: str
    currency: str

    @property
    def marketplace_label(self) -> str:
        return f"Amazon {self.code}"


class PlanningRecord(BaseModel):
    sku: str
    title: str = ""
    available: float = 0
    reserved: float = 0
    inbound: float = 0
    sales_7d: float = 0
    sell_through: float = 0
    age_90_plus_units: float = 0
    estimated_ltsf: float = 0
    estimated_storage: float = 0


class PlanningCacheEntry(BaseModel):
    """Parsed planning report for one store; replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    items: Dict[str, PlanningRecord] = Field(default_factory=dict)
    aging_risk: float = 0
    report_id: Optional[str] = None


class InboundShipment(BaseModel):
    id: str
    status: str
    eta: str
    units: float = 0


class MergedInventoryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sku: str
    title: str
    on_hand: float = Field(0, alias="onHand")
    reserved: float = 0
    inbound: float = 0
    sales_7d: float = Field(0, alias="sales7d")
    age_90_plus: bool = Field(False, alias="age90plus")
    stranded: float = 0
    suppressed: float = 0
    sell_through: float = Field(0, alias="sellThrough")
    margin: float = 0


class StoreSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    name: str
    marketplace: str
    currency: str
    ipi_score: float = Field(0, alias="ipiScore")
    storage_utilization: float = Field(0, alias="storageUtilization")
    aging_risk: float = Field(0, alias="agingRisk")
    stranded_units: float = Field(0, alias="strandedUnits")
    suppressed_units: float = Field(0, alias="suppressedUnits")
    inventory: List[MergedInventoryItem] = Field(default_factory=list)
    shipments: List[InboundShipment] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from core.blood import BloodType
from core.stock import InventoryRecord


StockStatus = Literal["critical", "low", "normal"]
MovementReason = Literal["ADJUSTMENT", "DONATION"]
VenueKind = Literal["hospital", "blood_bank"]


class VenueCreate(BaseModel):
    name: str
    address: Optional[str] = None
    kind: VenueKind = "hospital"
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("address")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class VenueOut(BaseModel):
    id: UUID
    name: str
    address: Optional[str] = None
    kind: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class StockAdjust(BaseModel):
    blood_type: BloodType
    change: int

    @field_validator("change")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("change must be non-zero")
        return v


class StockCardOut(BaseModel):
    blood_type: BloodType
    count: int
    status: StockStatus
    can_decrement: bool


class InventoryOut(BaseModel):
    venue_id: UUID
    venue_name: Optional[str] = None
    address: Optional[str] = None
    last_updated: Optional[datetime] = None
    blood_stock: dict[str, int]
    cards: List[StockCardOut]

    @classmethod
    def from_record(cls, record: InventoryRecord) -> "InventoryOut":
        return cls(
            venue_id=record.venue_id,
            venue_name=record.venue_name,
            address=record.address,
            last_updated=record.last_updated,
            blood_stock={bt.value: n for bt, n in record.blood_stock.items()},
            cards=[StockCardOut(**c) for c in record.cards()],
        )


class StockMovementOut(BaseModel):
    id: UUID
    venue_id: UUID
    blood_type: BloodType
    change: int
    reason: MovementReason
    source_appointment_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    created_by_user_id: Optional[UUID] = None

    class Config:
        from_attributes = True

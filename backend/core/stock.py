"""
Stock reconciliation for venue blood inventory.

A venue holds one non-negative count per blood type. Counts change only through
signed deltas (+1 per collected unit, -1 per issued unit, or a manual adjustment);
low/critical severity is derived from the count every time it is shown and is
never stored.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Union
from uuid import UUID

from core.blood import ALL_BLOOD_TYPES, BloodType
from core.errors import ValidationError

LOW_STOCK_THRESHOLD = 5

STATUS_CRITICAL = "critical"
STATUS_LOW = "low"
STATUS_NORMAL = "normal"


def stock_status(count: int) -> str:
    if count <= 0:
        return STATUS_CRITICAL
    if count < LOW_STOCK_THRESHOLD:
        return STATUS_LOW
    return STATUS_NORMAL


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_stock() -> Dict[BloodType, int]:
    return {bt: 0 for bt in ALL_BLOOD_TYPES}


@dataclass(frozen=True)
class InventoryRecord:
    venue_id: UUID
    blood_stock: Dict[BloodType, int] = field(default_factory=empty_stock)
    last_updated: Optional[datetime] = None
    venue_name: Optional[str] = None
    address: Optional[str] = None

    def count(self, blood_type: Union[BloodType, str]) -> int:
        return int(self.blood_stock.get(BloodType.parse(blood_type), 0) or 0)

    def status(self, blood_type: Union[BloodType, str]) -> str:
        return stock_status(self.count(blood_type))

    def cards(self) -> list:
        """One entry per blood type in display order, as the stock grid shows them."""
        out = []
        for bt in ALL_BLOOD_TYPES:
            count = self.count(bt)
            out.append({
                "blood_type": bt,
                "count": count,
                "status": stock_status(count),
                "can_decrement": count > 0,
            })
        return out


def _as_delta(delta) -> int:
    # bool is an int subclass, but True/False is never a meaningful stock change
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError(f"Stock change must be an integer, got {delta!r}")
    return delta


def apply_delta(
    inventory: InventoryRecord,
    blood_type: Union[BloodType, str],
    delta: int,
    now: Optional[datetime] = None,
) -> InventoryRecord:
    """
    Return a new record with ``delta`` applied to ``blood_type``.

    Raises ValidationError (and leaves ``inventory`` untouched) when the label is
    unknown, the delta is not an integer, or the count would drop below zero.
    """
    bt = BloodType.parse(blood_type)
    change = _as_delta(delta)

    current = inventory.count(bt)
    new_count = current + change
    if new_count < 0:
        raise ValidationError(
            f"Cannot remove {abs(change)} unit(s) of {bt.value}: only {current} in stock"
        )

    stock = dict(inventory.blood_stock)
    stock[bt] = new_count
    return replace(inventory, blood_stock=stock, last_updated=now or _utcnow())

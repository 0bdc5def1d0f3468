import logging
import uuid
from dataclasses import replace
from typing import List, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.blood import ALL_BLOOD_TYPES, BloodType
from core.errors import DashboardError, ExternalServiceError, NotFoundError, ValidationError
from core.stock import InventoryRecord, apply_delta, empty_stock
from core.subscriptions import InventoryBroker, Subscription, inventory_broker
from db.database import async_session_maker, get_async_session
from db.venue import Venue

from .movement import REASON_ADJUSTMENT, StockMovement
from .stock import VenueStock

logger = logging.getLogger(__name__)


class InventoryStore:
    def __init__(self, db: AsyncSession, broker: InventoryBroker = inventory_broker):
        self.db = db
        self.broker = broker

    async def _load(self, venue_id: UUID) -> InventoryRecord:
        venue = await self.db.get(Venue, venue_id, populate_existing=True)
        if not venue:
            raise NotFoundError("Venue inventory not found")
        res = await self.db.execute(select(VenueStock).where(VenueStock.venue_id == venue_id))
        stock = empty_stock()
        for s in res.scalars().all():
            stock[BloodType(s.blood_type)] = int(s.quantity or 0)
        return InventoryRecord(
            venue_id=venue.id,
            blood_stock=stock,
            last_updated=venue.last_updated,
            venue_name=venue.name,
            address=venue.address,
        )

    async def get(self, venue_id: UUID) -> InventoryRecord:
        try:
            return await self._load(venue_id)
        except SQLAlchemyError as e:
            logger.exception("[inventory] load failed for venue %s", venue_id)
            raise ExternalServiceError(f"Failed to load inventory: {e}")

    async def subscribe(self, venue_id: UUID, callback) -> Subscription:
        """Current record as the snapshot, then every committed change for the venue."""
        snapshot = await self.get(venue_id)
        return self.broker.subscribe(venue_id, snapshot, callback)

    def publish(self, record: InventoryRecord) -> None:
        self.broker.publish(record.venue_id, record)

    async def register_venue(
        self,
        venue_id: UUID,
        *,
        name: str,
        address: Optional[str] = None,
        kind: str = "hospital",
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> InventoryRecord:
        """Create the venue row and a zero count for every blood type."""
        try:
            if await self.db.get(Venue, venue_id):
                raise ValidationError("Venue is already registered")
            self.db.add(
                Venue(
                    id=venue_id,
                    name=name,
                    address=address,
                    kind=kind,
                    latitude=latitude,
                    longitude=longitude,
                )
            )
            await self.db.flush()
            for bt in ALL_BLOOD_TYPES:
                self.db.add(VenueStock(venue_id=venue_id, blood_type=bt.value, quantity=0))
            await self.db.commit()
            record = await self._load(venue_id)
        except DashboardError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[inventory] register_venue failed for %s", venue_id)
            raise ExternalServiceError(f"Failed to register venue: {e}")

        logger.info("Registered venue %s (%s)", venue_id, name)
        return record

    async def stage_delta(
        self,
        venue_id: UUID,
        blood_type,
        delta: int,
        *,
        reason: str = REASON_ADJUSTMENT,
        user_id: Optional[UUID] = None,
        source_appointment_id: Optional[UUID] = None,
    ) -> InventoryRecord:
        """
        Apply ``delta`` inside the caller's transaction (no commit).

        The stock row is updated with a guarded upsert so the count cannot go
        negative even if another request changed it since we read it.
        """
        record = await self._load(venue_id)
        updated = apply_delta(record, blood_type, delta)
        bt = BloodType.parse(blood_type)

        self.db.add(
            StockMovement(
                id=uuid.uuid4(),
                venue_id=venue_id,
                blood_type=bt.value,
                change=int(delta),
                reason=reason,
                source_appointment_id=source_appointment_id,
                created_by_user_id=user_id,
            )
        )

        stock_tbl = VenueStock.__table__
        upsert = (
            insert(stock_tbl)
            .values(
                id=uuid.uuid4(),
                venue_id=venue_id,
                blood_type=bt.value,
                quantity=delta,
            )
            .on_conflict_do_update(
                constraint="ux_venue_stock_venue_blood_type",
                set_={"quantity": stock_tbl.c.quantity + delta},
                where=(stock_tbl.c.quantity + delta) >= 0,
            )
            .returning(stock_tbl.c.quantity)
        )
        upserted = (await self.db.execute(upsert)).first()
        if upserted is None:
            raise ValidationError(f"Not enough {bt.value} in stock to remove {abs(int(delta))} unit(s)")

        await self.db.execute(
            update(Venue).where(Venue.id == venue_id).values(last_updated=updated.last_updated)
        )

        stock = dict(updated.blood_stock)
        stock[bt] = int(upserted.quantity)
        return replace(updated, blood_stock=stock)

    async def update_stock(
        self,
        venue_id: UUID,
        blood_type,
        delta: int,
        *,
        user_id: Optional[UUID] = None,
    ) -> InventoryRecord:
        try:
            updated = await self.stage_delta(venue_id, blood_type, delta, user_id=user_id)
            await self.db.commit()
        except DashboardError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[inventory] update_stock failed for venue %s", venue_id)
            raise ExternalServiceError(f"Failed to update stock: {e}")

        logger.info(
            "Stock for venue %s: %+d %s -> %s",
            venue_id, delta, BloodType.parse(blood_type).value, updated.count(blood_type),
        )
        self.publish(updated)
        return updated

    async def list_movements(self, venue_id: UUID, limit: int = 100) -> List[StockMovement]:
        try:
            res = await self.db.execute(
                select(StockMovement)
                .where(StockMovement.venue_id == venue_id)
                .order_by(StockMovement.created_at.desc())
                .limit(limit)
            )
            return list(res.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("[inventory] list_movements failed for venue %s", venue_id)
            raise ExternalServiceError(f"Failed to load stock movements: {e}")


async def get_inventory_store(db: AsyncSession = Depends(get_async_session)) -> InventoryStore:
    return InventoryStore(db)


async def open_subscription(
    venue_id: UUID,
    callback,
    *,
    broker: InventoryBroker = inventory_broker,
    session_maker=async_session_maker,
) -> Subscription:
    """
    Subscribe for a long-lived consumer such as the live WebSocket.

    The snapshot is read on its own session, which is closed before returning,
    so an open feed never holds a pooled connection.
    """
    async with session_maker() as session:
        return await InventoryStore(session, broker).subscribe(venue_id, callback)

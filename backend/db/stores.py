import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.appointments import STATUS_COMPLETED, STATUS_NO_SHOW, STATUS_SCHEDULED
from core.blood import BloodType
from core.errors import DashboardError, ExternalServiceError, InvalidStateTransition, NotFoundError
from core.stock import InventoryRecord
from db.appointment import Appointment, Donation
from db.camp import DonationCamp
from db.database import get_async_session
from db.inventory.movement import REASON_DONATION
from db.inventory.store import InventoryStore, get_inventory_store
from db.venue import Venue

logger = logging.getLogger(__name__)


class AppointmentStore:
    def __init__(self, db: AsyncSession, inventory: InventoryStore):
        self.db = db
        self.inventory = inventory

    async def list_by_venue(self, venue_id: UUID) -> List[Appointment]:
        try:
            res = await self.db.execute(
                select(Appointment)
                .where(Appointment.venue_id == venue_id)
                .order_by(Appointment.created_at.asc(), Appointment.id.asc())
            )
            return list(res.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("[appointments] list_by_venue failed for venue %s", venue_id)
            raise ExternalServiceError(f"Failed to load appointments: {e}")

    async def get(self, appt_id: UUID) -> Optional[Appointment]:
        try:
            return await self.db.get(Appointment, appt_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.exception("[appointments] get failed for %s", appt_id)
            raise ExternalServiceError(f"Failed to load appointment: {e}")

    async def get_venue(self, venue_id: UUID) -> Optional[Venue]:
        try:
            return await self.db.get(Venue, venue_id)
        except SQLAlchemyError as e:
            logger.exception("[appointments] get_venue failed for %s", venue_id)
            raise ExternalServiceError(f"Failed to load venue: {e}")

    async def book(self, *, donor_id: UUID, donor_name: str, venue_id: UUID, on: date, time_slot: str) -> Appointment:
        try:
            if not await self.db.get(Venue, venue_id):
                raise NotFoundError("Venue not found")
            appt = Appointment(
                donor_id=donor_id,
                donor_name=donor_name,
                venue_id=venue_id,
                date=on,
                time_slot=time_slot,
                status=STATUS_SCHEDULED,
            )
            self.db.add(appt)
            await self.db.commit()
            await self.db.refresh(appt)
        except DashboardError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[appointments] book failed for donor %s", donor_id)
            raise ExternalServiceError(f"Failed to book appointment: {e}")

        logger.info("Donor %s booked %s %s at venue %s", donor_id, on, time_slot, venue_id)
        return appt

    async def _transition(self, appt_id: UUID, values: dict, venue_id: Optional[UUID] = None) -> None:
        # Re-checks the status in the UPDATE itself so a concurrent action cannot apply twice
        stmt = (
            update(Appointment)
            .where(Appointment.id == appt_id)
            .where(Appointment.status == STATUS_SCHEDULED)
            .values(**values)
            .returning(Appointment.id)
        )
        if venue_id is not None:
            stmt = stmt.where(Appointment.venue_id == venue_id)
        res = await self.db.execute(stmt)
        if res.first() is None:
            raise InvalidStateTransition("Appointment is no longer scheduled")

    async def complete(
        self,
        appt_id: UUID,
        *,
        venue_id: UUID,
        confirmed_type: BloodType,
        donor_id: UUID,
        venue_name: Optional[str] = None,
        venue_kind: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> Tuple[Appointment, InventoryRecord]:
        """Completed status, a donation row and +1 of ``confirmed_type``: all or nothing."""
        bt = BloodType.parse(confirmed_type)
        now = datetime.now(timezone.utc)
        try:
            await self._transition(
                appt_id,
                {"status": STATUS_COMPLETED, "confirmed_blood_type": bt.value, "completed_at": now},
                venue_id=venue_id,
            )
            self.db.add(
                Donation(
                    donor_id=donor_id,
                    venue_id=venue_id,
                    appointment_id=appt_id,
                    blood_type=bt.value,
                    venue_name=venue_name,
                    venue_kind=venue_kind,
                    donated_at=now,
                )
            )
            inventory = await self.inventory.stage_delta(
                venue_id,
                bt,
                1,
                reason=REASON_DONATION,
                user_id=user_id,
                source_appointment_id=appt_id,
            )
            await self.db.commit()
        except DashboardError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[appointments] complete failed for %s", appt_id)
            raise ExternalServiceError(f"Failed to complete appointment: {e}")

        self.inventory.publish(inventory)
        return await self.get(appt_id), inventory

    async def mark_no_show(self, appt_id: UUID) -> Appointment:
        try:
            await self._transition(appt_id, {"status": STATUS_NO_SHOW})
            await self.db.commit()
        except DashboardError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[appointments] mark_no_show failed for %s", appt_id)
            raise ExternalServiceError(f"Failed to update appointment: {e}")
        return await self.get(appt_id)


class CampStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, organizer_id: UUID, fields: dict) -> DonationCamp:
        camp = DonationCamp(organizer_id=organizer_id, **fields)
        try:
            self.db.add(camp)
            await self.db.commit()
            await self.db.refresh(camp)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[camps] add failed for organizer %s", organizer_id)
            raise ExternalServiceError(f"Failed to add camp: {e}")
        logger.info("Organizer %s published camp %r on %s", organizer_id, camp.camp_name, camp.date)
        return camp

    async def list(self) -> List[DonationCamp]:
        try:
            res = await self.db.execute(select(DonationCamp).order_by(DonationCamp.date.asc()))
            return list(res.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("[camps] list failed")
            raise ExternalServiceError(f"Failed to load camps: {e}")


async def get_appointment_store(
    db: AsyncSession = Depends(get_async_session),
    inventory: InventoryStore = Depends(get_inventory_store),
) -> AppointmentStore:
    return AppointmentStore(db, inventory)


async def get_camp_store(db: AsyncSession = Depends(get_async_session)) -> CampStore:
    return CampStore(db)

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
from uuid import UUID

from core import appointments as workflow
from core.auth import current_donor_user, current_hospital_user
from db.stores import AppointmentStore, get_appointment_store
from db.users import User
from schemas.appointments import (
    AppointmentCreate,
    AppointmentRead,
    CompleteAppointmentRequest,
    CompleteAppointmentResponse,
    ScheduleDayRead,
    ScheduleView,
)
from schemas.inventory import InventoryOut

router = APIRouter()


def serialize_schedule(days: List[workflow.ScheduleDay]) -> List[ScheduleDayRead]:
    return [
        ScheduleDayRead(
            date=d.date,
            appointments=[AppointmentRead.model_validate(a) for a in d.appointments],
        )
        for d in days
    ]


async def _own_appointment(store: AppointmentStore, appt_id: UUID, user: User):
    appt = await store.get(appt_id)
    # another venue's appointment is reported as missing
    if not appt or appt.venue_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appt


@router.get("", response_model=List[ScheduleDayRead])
async def list_appointments(
    view: ScheduleView = Query("active"),
    q: Optional[str] = Query(None, description="Donor name contains (case-insensitive)"),
    user: User = Depends(current_hospital_user),
    store: AppointmentStore = Depends(get_appointment_store),
):
    appointments = await store.list_by_venue(user.id)
    return serialize_schedule(workflow.view_appointments(appointments, view, q))


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    payload: AppointmentCreate,
    user: User = Depends(current_donor_user),
    store: AppointmentStore = Depends(get_appointment_store),
):
    return await store.book(
        donor_id=user.id,
        donor_name=user.label,
        venue_id=payload.venue_id,
        on=payload.date,
        time_slot=payload.time_slot,
    )


@router.post("/{appointment_id}/complete", response_model=CompleteAppointmentResponse)
async def complete_appointment(
    appointment_id: UUID,
    payload: CompleteAppointmentRequest,
    user: User = Depends(current_hospital_user),
    store: AppointmentStore = Depends(get_appointment_store),
):
    appt = await _own_appointment(store, appointment_id, user)
    venue = await store.get_venue(user.id)
    if not venue:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")

    updated, inventory = await workflow.complete_appointment(store, appt, payload.confirmed_blood_type, venue)
    return CompleteAppointmentResponse(
        appointment=AppointmentRead.model_validate(updated),
        inventory=InventoryOut.from_record(inventory),
    )


@router.post("/{appointment_id}/no-show", response_model=AppointmentRead)
async def mark_no_show(
    appointment_id: UUID,
    user: User = Depends(current_hospital_user),
    store: AppointmentStore = Depends(get_appointment_store),
):
    await _own_appointment(store, appointment_id, user)
    return await workflow.mark_no_show(store, appointment_id)

from pydantic import BaseModel, field_validator
from typing import List, Literal, Optional
from uuid import UUID
from datetime import date, datetime

from core.blood import BloodType
from schemas.inventory import InventoryOut

AppointmentStatus = Literal["scheduled", "completed", "no-show"]
ScheduleView = Literal["active", "past"]


class AppointmentRead(BaseModel):
    id: UUID
    donor_id: UUID
    donor_name: str
    venue_id: UUID
    date: date
    time_slot: str
    status: AppointmentStatus
    confirmed_blood_type: Optional[BloodType] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AppointmentCreate(BaseModel):
    venue_id: UUID
    date: date
    time_slot: str

    @field_validator("time_slot")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("time_slot is required")
        return v


class CompleteAppointmentRequest(BaseModel):
    # Left as a plain string so a missing/unknown type reaches the workflow's own check
    confirmed_blood_type: Optional[str] = None


class CompleteAppointmentResponse(BaseModel):
    appointment: AppointmentRead
    inventory: InventoryOut


class ScheduleDayRead(BaseModel):
    date: date
    appointments: List[AppointmentRead]

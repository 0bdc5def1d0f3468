from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from uuid import UUID
from datetime import date, time


class CampLocation(BaseModel):
    lat: float
    lng: float

    @model_validator(mode="after")
    def _in_range(self):
        if not -90 <= self.lat <= 90 or not -180 <= self.lng <= 180:
            raise ValueError("coordinates out of range")
        return self


class CampRead(BaseModel):
    id: UUID
    organizer_id: Optional[UUID] = None
    camp_name: str
    organizer_name: str
    contact: str
    address: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: CampLocation

    @classmethod
    def from_model(cls, c) -> "CampRead":
        return cls(
            id=c.id,
            organizer_id=c.organizer_id,
            camp_name=c.camp_name,
            organizer_name=c.organizer_name,
            contact=c.contact,
            address=c.address,
            date=c.date,
            start_time=c.start_time,
            end_time=c.end_time,
            location=CampLocation(lat=c.latitude, lng=c.longitude),
        )


class CampCreate(BaseModel):
    camp_name: str
    organizer_name: str
    contact: str
    address: str
    date: date
    start_time: time
    end_time: time
    location: CampLocation

    @field_validator("camp_name", "organizer_name", "contact", "address")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @model_validator(mode="after")
    def _ends_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def to_fields(self) -> dict:
        return {
            "camp_name": self.camp_name,
            "organizer_name": self.organizer_name,
            "contact": self.contact,
            "address": self.address,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "latitude": self.location.lat,
            "longitude": self.location.lng,
        }

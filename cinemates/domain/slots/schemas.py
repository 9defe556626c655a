"""Slot schemas - reservation requests and responses"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import parse_iso_date, validate_key


class SlotRequest(BaseModel):
    """Natural key of a reservation: theater, location, date and named time window"""

    theaterId: str
    locationId: str
    date: str
    slot: str
    customerId: Optional[int] = None

    @field_validator("theaterId", "locationId", "slot")
    @classmethod
    def validate_key_fields(cls, v, info):
        return validate_key(v, info.field_name)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        parse_iso_date(v)
        return v

    @property
    def booked_date(self) -> date:
        return parse_iso_date(self.date)


class SlotReservationResponse(BaseModel):
    reservationId: int
    theaterId: str
    locationId: str
    date: str
    slot: str
    message: str = "Slot reserved"


class SlotAvailabilityResponse(BaseModel):
    available: bool
    message: str


class BookedSlotResponse(BaseModel):
    reservationId: int
    theaterId: str
    locationId: str
    date: str
    slot: str
    createdAt: Optional[datetime] = None

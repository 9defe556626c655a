"""Slot router - availability and reservation endpoints for the theater step"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.errors import ValidationError
from ...shared.validators import parse_iso_date
from .schemas import (
    BookedSlotResponse,
    SlotAvailabilityResponse,
    SlotRequest,
    SlotReservationResponse,
)
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


@router.post("/check-and-reserve", response_model=SlotReservationResponse)
def check_and_reserve(data: SlotRequest, service: SlotService = Depends(get_slot_service)):
    """Reserve a slot; 409 when it is already taken"""
    reservation = service.check_and_reserve(data)
    return SlotReservationResponse(
        reservationId=reservation.id,
        theaterId=reservation.theater_id,
        locationId=reservation.loc_id,
        date=reservation.booked_date.isoformat(),
        slot=reservation.booked_slot,
    )


@router.post("/check", response_model=SlotAvailabilityResponse)
def check_slot(data: SlotRequest, service: SlotService = Depends(get_slot_service)):
    return service.check_availability(data)


@router.get("/booked", response_model=list[BookedSlotResponse])
def get_booked_slots(
    date: str = Query(..., description="YYYY-MM-DD"),
    locationId: Optional[str] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    """Reservations on a date so taken windows can be greyed out"""
    try:
        booked_date = parse_iso_date(date)
    except ValueError as e:
        raise ValidationError(str(e), field="date") from None

    return [
        BookedSlotResponse(
            reservationId=r.id,
            theaterId=r.theater_id,
            locationId=r.loc_id,
            date=r.booked_date.isoformat(),
            slot=r.booked_slot,
            createdAt=r.created_at,
        )
        for r in service.list_booked(booked_date, locationId)
    ]

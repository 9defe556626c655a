"""Slot service - check-and-reserve backed by the booked_slots unique constraint"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import BookedSlot
from ...shared.errors import SlotConflict, ValidationError
from ..bookings.repository import BookingRepository
from ..catalog.repository import CatalogRepository
from .repository import SlotRepository
from .schemas import SlotRequest

logger = logging.getLogger(__name__)


class SlotService:
    """Service layer for slot reservations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()
        self.catalog = CatalogRepository()

    def _validate_slot(self, data: SlotRequest) -> None:
        """Theater must belong to the location and offer the requested window"""
        theater = self.catalog.get_theater(self.db, data.theaterId)
        if not theater or theater.loc_id != data.locationId:
            raise ValidationError(
                f"Theater {data.theaterId} does not exist at location {data.locationId}",
                field="theaterId",
            )
        if data.slot not in (theater.slot_timings or []):
            raise ValidationError(
                f"Slot '{data.slot}' is not offered by theater {data.theaterId}", field="slot"
            )
        if data.customerId is not None and not BookingRepository.get_customer(self.db, data.customerId):
            raise ValidationError(f"Unknown customer {data.customerId}", field="customerId")

    def check_availability(self, data: SlotRequest) -> dict:
        """Availability check alone, no insert"""
        self._validate_slot(data)
        existing = self.repo.find_reservation(
            self.db, data.theaterId, data.locationId, data.booked_date, data.slot
        )
        if existing:
            raise SlotConflict()
        return {"available": True, "message": "Slot is available"}

    def check_and_reserve(self, data: SlotRequest) -> BookedSlot:
        """
        Reserve a slot.

        The pre-check only gives a fast answer for the common case. Two
        requests that both pass it race on the insert and the unique
        constraint rejects the loser, which surfaces as the same SlotConflict.
        """
        self._validate_slot(data)
        key = f"{data.theaterId}/{data.locationId}/{data.date}/{data.slot}"

        if self.repo.find_reservation(
            self.db, data.theaterId, data.locationId, data.booked_date, data.slot
        ):
            logger.info(f"⚠️ Slot already booked (pre-check): {key}")
            raise SlotConflict()

        try:
            reservation = self.repo.create_reservation(
                self.db, data.theaterId, data.locationId, data.booked_date, data.slot, data.customerId
            )
        except IntegrityError:
            self.db.rollback()
            logger.info(f"⚠️ Slot already booked (unique constraint): {key}")
            raise SlotConflict() from None

        logger.info(f"✅ Slot reserved: {key} -> reservation {reservation.id}")
        return reservation

    def list_booked(self, booked_date: date, location_id: Optional[str] = None) -> list[BookedSlot]:
        return self.repo.list_for_date(self.db, booked_date, location_id)

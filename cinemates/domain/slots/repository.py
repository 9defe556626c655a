"""Slot repository - reservations keyed by (theater, location, date, slot)"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import BookedSlot


class SlotRepository:
    """Repository for booked slot database operations"""

    @staticmethod
    def find_reservation(
        db: Session, theater_id: str, loc_id: str, booked_date: date, booked_slot: str
    ) -> Optional[BookedSlot]:
        return (
            db.query(BookedSlot)
            .filter(
                BookedSlot.theater_id == theater_id,
                BookedSlot.loc_id == loc_id,
                BookedSlot.booked_date == booked_date,
                BookedSlot.booked_slot == booked_slot,
            )
            .first()
        )

    @staticmethod
    def create_reservation(
        db: Session,
        theater_id: str,
        loc_id: str,
        booked_date: date,
        booked_slot: str,
        cust_id: Optional[int] = None,
    ) -> BookedSlot:
        """Insert a reservation. Raises IntegrityError when the natural key is taken"""
        reservation = BookedSlot(
            theater_id=theater_id,
            loc_id=loc_id,
            booked_date=booked_date,
            booked_slot=booked_slot,
            cust_id=cust_id,
        )
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    @staticmethod
    def list_for_date(db: Session, booked_date: date, loc_id: Optional[str] = None) -> list[BookedSlot]:
        query = db.query(BookedSlot).filter(BookedSlot.booked_date == booked_date)
        if loc_id:
            query = query.filter(BookedSlot.loc_id == loc_id)
        return query.order_by(BookedSlot.theater_id, BookedSlot.booked_slot).all()

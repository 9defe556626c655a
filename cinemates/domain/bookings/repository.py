"""Booking repository - customers and their draft line items"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import (
    Customer,
    CustomerAddon,
    CustomerCake,
    CustomerOccasion,
    PaymentDetail,
    SlotBooking,
)


class BookingRepository:
    """Repository for customer draft database operations"""

    @staticmethod
    def create_customer(db: Session, **customer_data) -> Customer:
        customer = Customer(**customer_data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def get_customer(db: Session, cust_id: int) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.cust_id == cust_id).first()

    @staticmethod
    def replace_occasion(db: Session, cust_id: int, **occasion_data) -> CustomerOccasion:
        """A booking celebrates one occasion; a new choice replaces the old row"""
        db.query(CustomerOccasion).filter(CustomerOccasion.cust_id == cust_id).delete()
        occasion = CustomerOccasion(cust_id=cust_id, **occasion_data)
        db.add(occasion)
        db.commit()
        db.refresh(occasion)
        return occasion

    @staticmethod
    def find_cake_line(db: Session, cust_id: int, cake_name: str) -> Optional[CustomerCake]:
        return (
            db.query(CustomerCake)
            .filter(
                CustomerCake.cust_id == cust_id,
                func.lower(CustomerCake.cake_name) == cake_name.lower(),
            )
            .first()
        )

    @staticmethod
    def find_addon_line(db: Session, cust_id: int, addon_name: str) -> Optional[CustomerAddon]:
        return (
            db.query(CustomerAddon)
            .filter(
                CustomerAddon.cust_id == cust_id,
                func.lower(CustomerAddon.addon_name) == addon_name.lower(),
            )
            .first()
        )

    @staticmethod
    def save_line(db: Session, line, **updates):
        """Insert a new line item or update an existing one in place"""
        for key, value in updates.items():
            setattr(line, key, value)
        db.add(line)
        db.commit()
        db.refresh(line)
        return line

    @staticmethod
    def delete_line(db: Session, line) -> None:
        db.delete(line)
        db.commit()

    @staticmethod
    def history_for_phone(db: Session, phone: str) -> list[tuple[PaymentDetail, Optional[SlotBooking]]]:
        """Payments of every customer registered with this phone number, newest first"""
        return (
            db.query(PaymentDetail, SlotBooking)
            .join(Customer, Customer.cust_id == PaymentDetail.cust_id)
            .outerjoin(SlotBooking, SlotBooking.id == PaymentDetail.booking_id)
            .filter(Customer.phone_no1 == phone)
            .order_by(PaymentDetail.payment_date.desc(), PaymentDetail.id.desc())
            .all()
        )

"""Payment repository - gateway orders and finalized bookings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import PaymentDetail, PaymentOrder, SlotBooking


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def create_order(db: Session, **order_data) -> PaymentOrder:
        order = PaymentOrder(**order_data)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def get_order(db: Session, order_id: str) -> Optional[PaymentOrder]:
        return db.query(PaymentOrder).filter(PaymentOrder.order_id == order_id).first()

    @staticmethod
    def get_payment(db: Session, payment_id: str) -> Optional[PaymentDetail]:
        return db.query(PaymentDetail).filter(PaymentDetail.payment_id == payment_id).first()

    @staticmethod
    def finalize_booking(
        db: Session, order: PaymentOrder, booking_data: dict, payment_data: dict
    ) -> tuple[SlotBooking, PaymentDetail]:
        """Write the booking and its payment in one transaction and mark the order paid"""
        booking = SlotBooking(**booking_data)
        db.add(booking)
        db.flush()

        payment = PaymentDetail(booking_id=booking.id, **payment_data)
        db.add(payment)
        order.status = "paid"
        if order.cust_id is None:
            order.cust_id = booking.cust_id

        db.commit()
        db.refresh(booking)
        db.refresh(payment)
        return booking, payment

    @staticmethod
    def mark_order_failed(db: Session, order: PaymentOrder) -> None:
        order.status = "failed"
        db.commit()

"""Payment service - order creation and signature-verified booking finalization"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import PaymentOrder
from ...shared.errors import PersistenceFailed, ValidationError, VerificationFailed
from ...shared.validators import parse_iso_date
from ..pricing.schemas import DraftSnapshot
from ..pricing.service import PricingService, Quote
from ..slots.repository import SlotRepository
from .gateway import RazorpayGateway
from .repository import PaymentRepository
from .schemas import PaymentOrderRequest, PaymentVerifyRequest

logger = logging.getLogger(__name__)

# Draft fields a finalized booking cannot be written without
REQUIRED_DRAFT_FIELDS = ("customerId", "theaterId", "locationId", "date", "slot")


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session, gateway: RazorpayGateway):
        self.db = db
        self.gateway = gateway
        self.repo = PaymentRepository()
        self.slots = SlotRepository()
        self.pricing = PricingService(db)

    def _check_amount(self, draft: DraftSnapshot, amount_minor_units: int, today: date) -> Quote:
        """Recompute the draft's total; the charged amount must match it exactly"""
        quote = self.pricing.quote(draft, today=today)
        expected = quote.breakdown.total_minor_units
        if expected != amount_minor_units:
            logger.warning(
                f"⚠️ Amount mismatch for customer {draft.customerId}: "
                f"requested={amount_minor_units} expected={expected}"
            )
            raise ValidationError(
                "Amount does not match the booking total",
                field="amountMinorUnits",
                details={"expectedAmountMinorUnits": expected},
            )
        return quote

    def create_order(self, data: PaymentOrderRequest) -> dict:
        if data.amountMinorUnits <= 0:
            raise ValidationError(
                "Invalid amount. Please check your booking details.", field="amountMinorUnits"
            )

        today = date.today()
        if data.draft is not None:
            self._check_amount(data.draft, data.amountMinorUnits, today)

        order = self.gateway.create_order(
            data.amountMinorUnits,
            data.currency,
            data.receiptRef,
            notes={"customerId": str(data.draft.customerId)} if data.draft and data.draft.customerId else None,
        )
        order_id = order["id"]

        self.repo.create_order(
            self.db,
            order_id=order_id,
            cust_id=data.draft.customerId if data.draft else None,
            amount_minor_units=data.amountMinorUnits,
            currency=data.currency,
            receipt_ref=data.receiptRef,
            priced_on=today,
        )
        logger.info(f"✅ Payment order created: {order_id} ({data.amountMinorUnits} {data.currency})")
        return {
            "orderId": order_id,
            "amountMinorUnits": data.amountMinorUnits,
            "currency": data.currency,
            "receiptRef": data.receiptRef,
            "keyId": self.gateway.key_id,
        }

    def verify_payment(self, data: PaymentVerifyRequest) -> dict:
        """
        Verify the checkout signature and persist the finalized booking.

        Nothing is written unless the signature matches. A payment id that was
        already recorded returns success again without a second write.
        """
        order_id = (data.razorpayOrderId or "").strip()
        payment_id = (data.razorpayPaymentId or "").strip()
        signature = (data.razorpaySignature or "").strip()
        if not order_id or not payment_id or not signature:
            raise ValidationError("Missing payment verification fields")

        if not self.gateway.verify_signature(order_id, payment_id, signature):
            logger.warning(
                f"❌ Signature mismatch for order {order_id} payment {payment_id} "
                f"(signature {signature[:8]}...)"
            )
            raise VerificationFailed(
                "Payment verification failed. Please contact support.",
                details={"reason": "signature_mismatch"},
            )

        existing = self.repo.get_payment(self.db, payment_id)
        if existing:
            logger.info(f"Payment {payment_id} already recorded, returning existing booking")
            return {"status": "success", "bookingId": existing.booking_id, "paymentId": payment_id}

        order = self.repo.get_order(self.db, order_id)
        if not order:
            raise VerificationFailed(
                "Payment verification failed. Please contact support.",
                details={"reason": "unknown_order"},
            )

        draft = data.draft
        missing = [f for f in REQUIRED_DRAFT_FIELDS if draft is None or not getattr(draft, f)]
        if missing:
            raise ValidationError(
                "Missing booking details. Please go back and complete your booking.",
                details={"missing": missing},
            )
        try:
            booking_date = parse_iso_date(draft.date)
        except ValueError as e:
            raise ValidationError(str(e), field="date") from None

        # Coupon windows are judged on the day the order was priced
        priced_on = order.priced_on or (order.created_at.date() if order.created_at else None)
        quote = self.pricing.quote(draft, today=priced_on)
        if quote.breakdown.total_minor_units != order.amount_minor_units:
            logger.warning(
                f"⚠️ Order {order_id} was created for {order.amount_minor_units} "
                f"but the booking totals {quote.breakdown.total_minor_units}"
            )
            self._reject(order, "amount_mismatch")

        reservation = self.slots.find_reservation(
            self.db, draft.theaterId, draft.locationId, booking_date, draft.slot
        )
        if not reservation or reservation.cust_id not in (None, draft.customerId):
            logger.warning(
                f"⚠️ Order {order_id} paid for {draft.theaterId}/{draft.date}/{draft.slot} "
                f"without holding that slot"
            )
            self._reject(order, "slot_not_reserved")

        breakdown = quote.breakdown
        applied_coupon = breakdown.coupon_code if breakdown.coupon_status == "applied" else None
        booking_name = draft.bookingName or draft.bookingNickname

        try:
            booking, _payment = self.repo.finalize_booking(
                self.db,
                order,
                booking_data={
                    "cust_id": draft.customerId,
                    "theater_id": draft.theaterId,
                    "loc_id": draft.locationId,
                    "booking_name": booking_name,
                    "booking_date": booking_date,
                    "booking_slot": draft.slot,
                    "booked_type": "online",
                },
                payment_data={
                    "cust_id": draft.customerId,
                    "theater_id": draft.theaterId,
                    "loc_id": draft.locationId,
                    "booking_name": booking_name,
                    "order_id": order_id,
                    "payment_id": payment_id,
                    "payment_amount": breakdown.total,
                    "coupon_code": applied_coupon,
                    "coupon_discount": breakdown.discount,
                    "payment_flag": "Y",
                },
            )
        except IntegrityError as e:
            self.db.rollback()
            replayed = self._recorded_booking_id(payment_id)
            if replayed is not None:
                logger.info(f"Payment {payment_id} recorded concurrently, treating as replay")
                return {"status": "success", "bookingId": replayed, "paymentId": payment_id}
            logger.error(f"❌ Failed to persist booking for payment {payment_id}: {e}")
            raise PersistenceFailed(
                "Payment received but the booking could not be saved. Please contact support."
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to persist booking for payment {payment_id}: {e}")
            raise PersistenceFailed(
                "Payment received but the booking could not be saved. Please contact support."
            ) from e

        logger.info(f"✅ Payment verified and booking {booking.id} saved (order {order_id})")
        return {"status": "success", "bookingId": booking.id, "paymentId": payment_id}

    def _reject(self, order: PaymentOrder, reason: str) -> None:
        """Mark a genuinely signed order failed and refuse to book it"""
        self.repo.mark_order_failed(self.db, order)
        raise VerificationFailed(
            "Payment verification failed. Please contact support.", details={"reason": reason}
        )

    def _recorded_booking_id(self, payment_id: str) -> Optional[int]:
        existing = self.repo.get_payment(self.db, payment_id)
        return existing.booking_id if existing else None

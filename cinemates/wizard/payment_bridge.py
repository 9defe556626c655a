"""Client side of the payment step.

IDLE -> AWAITING_GATEWAY_SCRIPT -> ORDER_CREATED -> AWAITING_USER_ACTION
     -> VERIFYING -> CONFIRMED | FAILED

Any step can move to FAILED. Each failure carries its own user-facing
message and none is retried; the customer either fixes the draft or
contacts support.
"""

import logging
import uuid
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .. import config
from ..shared.errors import (
    BookingError,
    PersistenceFailed,
    PreconditionMissing,
    SignatureMismatch,
    UpstreamUnavailable,
    ValidationError,
    VerificationFailed,
)
from .api_client import CineMatesClient
from .draft import PAYMENT_PRECONDITIONS, DraftStore

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    IDLE = "idle"
    AWAITING_GATEWAY_SCRIPT = "awaiting_gateway_script"
    ORDER_CREATED = "order_created"
    AWAITING_USER_ACTION = "awaiting_user_action"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"
    FAILED = "failed"


MSG_MISSING_DETAILS = "Missing booking details. Please go back and complete your booking."
MSG_SCRIPT_FAILED = "Failed to load Razorpay SDK. Please check your internet connection and try again."
MSG_INVALID_AMOUNT = "Invalid amount. Please check your booking details."
MSG_ORDER_FAILED = "Failed to initiate payment. Please try again later."
MSG_CANCELLED = "Payment was cancelled. Please try again."
MSG_VERIFICATION_FAILED = "Payment verification failed. Please contact support."
MSG_VERIFICATION_UNREACHABLE = "Could not reach the verification service. Please contact support."
MSG_PERSISTENCE_FAILED = "Payment received but the booking could not be saved. Please contact support."


class WidgetResult(BaseModel):
    """What the checkout widget reports back"""

    completed: bool
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None

    @classmethod
    def dismissed(cls) -> "WidgetResult":
        return cls(completed=False)


class CheckoutWidget:
    """The gateway's checkout UI; opaque to the bridge"""

    def load_script(self) -> bool:
        raise NotImplementedError

    def open(self, order: dict) -> WidgetResult:
        raise NotImplementedError


class PaymentOutcome(BaseModel):
    state: PaymentState
    message: Optional[str] = None
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    booking_id: Optional[int] = None


class PaymentBridge:
    """Runs one payment attempt for the current draft"""

    def __init__(
        self,
        client: CineMatesClient,
        store: DraftStore,
        widget: CheckoutWidget,
        currency: Optional[str] = None,
        today: Optional[date] = None,
    ):
        self.client = client
        self.store = store
        self.widget = widget
        self.currency = currency or config.PAYMENT_CURRENCY
        self.today = today
        self.state = PaymentState.IDLE
        self.history: list[PaymentState] = [PaymentState.IDLE]
        self.error: Optional[BookingError] = None
        self.message: Optional[str] = None
        self.order: Optional[dict] = None

    def _transition(self, state: PaymentState) -> None:
        logger.debug(f"Payment state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _fail(self, message: str, error: Optional[BookingError] = None) -> PaymentOutcome:
        self.message = message
        self.error = error
        self._transition(PaymentState.FAILED)
        logger.warning(f"⚠️ Payment failed: {message}")
        return PaymentOutcome(
            state=self.state,
            message=message,
            order_id=self.order.get("orderId") if self.order else None,
        )

    def run(self) -> PaymentOutcome:
        if self.state != PaymentState.IDLE:
            raise RuntimeError(f"Payment already attempted (state {self.state.value})")

        self._transition(PaymentState.AWAITING_GATEWAY_SCRIPT)
        draft = self.store.load()
        missing = draft.missing_for_payment()
        if missing:
            return self._fail(
                MSG_MISSING_DETAILS,
                PreconditionMissing(
                    MSG_MISSING_DETAILS, step=PAYMENT_PRECONDITIONS[missing[0]], missing=missing
                ),
            )

        if not self.widget.load_script():
            return self._fail(MSG_SCRIPT_FAILED, UpstreamUnavailable(MSG_SCRIPT_FAILED))

        # Recompute rather than trusting the stored final price
        breakdown = draft.price(self.today)
        amount = breakdown.total_minor_units
        if amount <= 0:
            return self._fail(MSG_INVALID_AMOUNT, ValidationError(MSG_INVALID_AMOUNT, field="amount"))

        snapshot = draft.to_snapshot(self.today)
        receipt = f"cm_{draft.customer_id}_{uuid.uuid4().hex[:12]}"
        try:
            self.order = self.client.create_payment_order(amount, self.currency, receipt, snapshot)
        except BookingError as e:
            return self._fail(MSG_ORDER_FAILED, e)
        self._transition(PaymentState.ORDER_CREATED)

        self._transition(PaymentState.AWAITING_USER_ACTION)
        result = self.widget.open(self.order)
        if not result.completed:
            return self._fail(MSG_CANCELLED)

        self._transition(PaymentState.VERIFYING)
        try:
            verification = self.client.verify_payment(
                result.razorpay_order_id or self.order["orderId"],
                result.razorpay_payment_id or "",
                result.razorpay_signature or "",
                snapshot,
            )
        except (SignatureMismatch, VerificationFailed, ValidationError) as e:
            return self._fail(MSG_VERIFICATION_FAILED, e)
        except PersistenceFailed as e:
            return self._fail(MSG_PERSISTENCE_FAILED, e)
        except UpstreamUnavailable as e:
            return self._fail(MSG_VERIFICATION_UNREACHABLE, e)
        except BookingError as e:
            return self._fail(MSG_VERIFICATION_FAILED, e)

        if verification.get("status") != "success":
            return self._fail(MSG_VERIFICATION_FAILED)

        self._transition(PaymentState.CONFIRMED)
        self.store.clear()
        logger.info(f"✅ Booking confirmed: order {self.order['orderId']} payment {result.razorpay_payment_id}")
        return PaymentOutcome(
            state=self.state,
            order_id=self.order["orderId"],
            payment_id=result.razorpay_payment_id,
            booking_id=verification.get("bookingId"),
        )

"""Payment schemas - order creation and checkout verification"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..pricing.schemas import DraftSnapshot


class PaymentOrderRequest(BaseModel):
    amountMinorUnits: int
    currency: str = "INR"
    receiptRef: str = Field(min_length=1, max_length=40)
    draft: Optional[DraftSnapshot] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v):
        v = (v or "").strip().upper()
        if len(v) != 3:
            raise ValueError("currency must be a 3-letter ISO code")
        return v


class PaymentOrderResponse(BaseModel):
    orderId: str
    amountMinorUnits: int
    currency: str
    receiptRef: str
    keyId: Optional[str] = None


class PaymentVerifyRequest(BaseModel):
    """Fields returned by the checkout widget plus the full draft"""

    razorpayOrderId: Optional[str] = None
    razorpayPaymentId: Optional[str] = None
    razorpaySignature: Optional[str] = None
    draft: Optional[DraftSnapshot] = None


class PaymentVerifyResponse(BaseModel):
    status: str
    bookingId: Optional[int] = None
    paymentId: Optional[str] = None
    message: Optional[str] = None

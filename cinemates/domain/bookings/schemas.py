"""Booking schemas - customer draft and line-item payloads"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone


class BookingCreate(BaseModel):
    """Contact details captured when the customer first states booking intent"""

    bookingName: str = Field(min_length=1, max_length=255)
    email: str
    phone: str
    alternateNo: Optional[str] = None
    numberOfPersons: Optional[int] = Field(default=None, ge=1)
    decorationNeeded: bool = False

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone", "alternateNo")
    @classmethod
    def validate_phone_field(cls, v):
        if v:
            return validate_phone(v)
        return v


class BookingCreateResponse(BaseModel):
    customerId: int


class OccasionLineItem(BaseModel):
    customerId: int
    occasionName: str = Field(min_length=1, max_length=255)
    bookingNickname: str = Field(min_length=1, max_length=100)
    partnerNickname: Optional[str] = Field(default=None, max_length=100)


class CakeLineItemRequest(BaseModel):
    """One cake selection; quantity 0 removes it"""

    customerId: int
    cakeId: int
    weightGrams: int = Field(default=500, gt=0)
    quantity: int = Field(ge=0)


class AddonLineItemRequest(BaseModel):
    """One add-on selection; quantity 0 removes it"""

    customerId: int
    addonId: int
    quantity: int = Field(ge=0)


class LineItemResponse(BaseModel):
    customerId: int
    itemName: str
    quantity: int
    unitPrice: Optional[float] = None
    action: str  # saved | removed


class BookingHistoryItem(BaseModel):
    bookingName: Optional[str] = None
    theaterId: str
    locationId: str
    bookingDate: Optional[date] = None
    bookingSlot: Optional[str] = None
    orderId: str
    paymentId: str
    paymentAmount: float
    couponCode: Optional[str] = None
    couponDiscount: float = 0
    paymentDate: Optional[datetime] = None

    class Config:
        from_attributes = True

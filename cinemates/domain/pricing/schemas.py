"""Pricing schemas - the draft snapshot the server recomputes prices from"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CakeSelection(BaseModel):
    cakeId: int
    weightGrams: int = Field(default=500, gt=0)
    quantity: int = Field(default=1, ge=0)


class AddonSelection(BaseModel):
    addonId: int
    quantity: int = Field(default=1, ge=0)


class DraftSnapshot(BaseModel):
    """
    What the wizard sends with a quote or payment request.

    Only identifiers and quantities are trusted; every price is reloaded from
    the catalog. finalPrice is the client's own figure, kept for logging.
    """

    customerId: Optional[int] = None
    locationId: Optional[str] = None
    theaterId: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    occasionName: Optional[str] = None
    bookingNickname: Optional[str] = None
    partnerNickname: Optional[str] = None
    bookingName: Optional[str] = None
    decorationNeeded: bool = False
    cakes: list[CakeSelection] = []
    addons: list[AddonSelection] = []
    couponCode: Optional[str] = None
    finalPrice: Optional[float] = None

    @field_validator("couponCode")
    @classmethod
    def blank_coupon_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class PriceLine(BaseModel):
    name: str
    quantity: int
    unitPrice: float
    lineTotal: float
    weightGrams: Optional[int] = None


class QuoteResponse(BaseModel):
    subtotal: float
    discount: float
    total: float
    amountMinorUnits: int
    theaterCost: float
    decorationCost: float
    cakeLines: list[PriceLine] = []
    addonLines: list[PriceLine] = []
    couponCode: Optional[str] = None
    couponStatus: str = "none"
    couponMessage: Optional[str] = None

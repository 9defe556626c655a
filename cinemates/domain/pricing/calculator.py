"""Price calculation for a booking draft.

Pure functions only: no database, no clock unless ``today`` is omitted. The
wizard and the server both run ``compute_total`` on the same inputs, so the
client-computed total and the charged amount cannot drift apart.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from ...shared.validators import REFERENCE_WEIGHT_GRAMS

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]

CouponKind = Literal["percentage", "flat_amount"]
CouponStatus = Literal["none", "applied", "not_yet_valid", "expired"]


def to_money(value: Number) -> Decimal:
    """Round to paise, half-up. Floats go through str() so 0.1 stays 0.1"""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def scale_cake_price(reference_price: Number, weight_grams: int) -> Decimal:
    """Unit price of a cake at ``weight_grams``, linear in the 500g reference price"""
    if weight_grams <= 0:
        raise ValueError("weight_grams must be positive")
    price = Decimal(str(reference_price)) * weight_grams / REFERENCE_WEIGHT_GRAMS
    return to_money(price)


def to_minor_units(amount: Number) -> int:
    """Rupees to paise"""
    return int(to_money(amount) * 100)


class CakeLine(BaseModel):
    name: str
    reference_price: Decimal = Field(ge=0)
    weight_grams: int = Field(default=REFERENCE_WEIGHT_GRAMS, gt=0)
    quantity: int = Field(default=1, ge=0)
    egg_eggless: Optional[str] = None
    cake_id: Optional[int] = None

    @property
    def unit_price(self) -> Decimal:
        return scale_cake_price(self.reference_price, self.weight_grams)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


class AddonLine(BaseModel):
    name: str
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=0)
    addon_id: Optional[int] = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


class CouponTerms(BaseModel):
    code: str
    kind: CouponKind
    value: Decimal = Field(ge=0)
    start_date: date
    end_date: date


class PriceBreakdown(BaseModel):
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None
    coupon_status: CouponStatus = "none"
    coupon_message: Optional[str] = None

    @property
    def total_minor_units(self) -> int:
        return to_minor_units(self.total)


def coupon_status(coupon: CouponTerms, today: date) -> CouponStatus:
    """Validity window is inclusive on both ends"""
    if today < coupon.start_date:
        return "not_yet_valid"
    if today > coupon.end_date:
        return "expired"
    return "applied"


def compute_discount(subtotal: Decimal, coupon: CouponTerms) -> Decimal:
    if coupon.kind == "percentage":
        percent = min(max(coupon.value, Decimal(0)), HUNDRED)
        discount = subtotal * percent / HUNDRED
    else:
        discount = coupon.value
    # Never discount below zero
    return to_money(min(max(discount, Decimal(0)), subtotal))


def compute_total(
    theater_cost: Number,
    decoration_cost: Number,
    cake_items: list[CakeLine],
    addon_items: list[AddonLine],
    coupon: Optional[CouponTerms] = None,
    today: Optional[date] = None,
) -> PriceBreakdown:
    """
    Combine theater, decoration, cakes, add-ons and an optional coupon.

    subtotal = theater + decoration + sum(cake unit price x qty) + sum(add-on price x qty)

    A coupon outside its [start, end] window is not applied; the breakdown
    reports why instead of silently charging the full price.
    """
    subtotal = to_money(theater_cost) + to_money(decoration_cost)
    subtotal += sum((item.line_total for item in cake_items), Decimal(0))
    subtotal += sum((item.line_total for item in addon_items), Decimal(0))
    subtotal = to_money(subtotal)

    if coupon is None:
        return PriceBreakdown(subtotal=subtotal, discount=to_money(0), total=subtotal)

    status = coupon_status(coupon, today or date.today())
    if status == "not_yet_valid":
        message = f"Coupon {coupon.code} is not valid until {coupon.start_date.isoformat()}"
    elif status == "expired":
        message = f"Coupon {coupon.code} expired on {coupon.end_date.isoformat()}"
    else:
        message = f"Coupon {coupon.code} applied"

    discount = compute_discount(subtotal, coupon) if status == "applied" else to_money(0)
    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        total=to_money(subtotal - discount),
        coupon_code=coupon.code,
        coupon_status=status,
        coupon_message=message,
    )

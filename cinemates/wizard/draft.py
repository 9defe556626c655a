"""Typed booking draft over string-keyed session storage.

Every wizard step reads and writes the draft through ``DraftStore``. Storage
keys stay plain strings so a page refresh (or another process sharing the
Redis storage) sees exactly what was written; structured values are JSON.

Readers never trust a stored derived value: ``BookingDraft.price()``
recomputes from the line items, and every setter that changes a line item,
the coupon or the theater re-stores the derived subtotal and final price
immediately.
"""

import json
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.pricing.calculator import (
    AddonLine,
    CakeLine,
    CouponTerms,
    PriceBreakdown,
    compute_total,
    to_money,
)
from ..shared.validators import format_weight
from .session import SessionStorage

logger = logging.getLogger(__name__)

NOT_SELECTED = "Not selected"

# field name -> (storage key, codec)
FIELDS: dict[str, tuple[str, str]] = {
    "customer_id": ("customerId", "int"),
    "booking_name": ("bookingName", "str"),
    "email": ("email", "str"),
    "phone": ("phone", "str"),
    "number_of_persons": ("numberOfPersons", "int"),
    "decoration_needed": ("decorationNeeded", "bool"),
    "location_id": ("locationId", "str"),
    "location_name": ("locationName", "str"),
    "theater_id": ("theaterId", "str"),
    "theater_name": ("theaterName", "str"),
    "theater_cost": ("theaterCost", "decimal"),
    "decoration_price": ("decorationPrice", "decimal"),
    "selected_date": ("selectedDate", "str"),
    "selected_slot": ("selectedSlot", "str"),
    "occasion_name": ("occasionName", "str"),
    "occasion_names": ("occasionNames", "int"),
    "booking_nickname": ("bookingNickname", "str"),
    "partner_nickname": ("partnerNickname", "str"),
    "cake_line_items": ("cakeLineItems", "cakes"),
    "addon_line_items": ("addonLineItems", "addons"),
    "applied_coupon": ("appliedCoupon", "coupon"),
    "subtotal": ("subtotal", "decimal"),
    "discount_amount": ("discountAmount", "decimal"),
    "final_price": ("finalPrice", "decimal"),
    "coupon_status": ("couponStatus", "str"),
    "coupon_message": ("couponMessage", "str"),
}

# Wizard step that populates each field required before payment
PAYMENT_PRECONDITIONS: dict[str, str] = {
    "customer_id": "contact",
    "location_id": "location",
    "theater_id": "theater",
    "theater_cost": "theater",
    "selected_date": "theater",
    "selected_slot": "theater",
}


class BookingDraft(BaseModel):
    customer_id: Optional[int] = None
    booking_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    number_of_persons: Optional[int] = None
    decoration_needed: bool = False

    location_id: Optional[str] = None
    location_name: Optional[str] = None
    theater_id: Optional[str] = None
    theater_name: Optional[str] = None
    theater_cost: Optional[Decimal] = None
    decoration_price: Optional[Decimal] = None
    selected_date: Optional[str] = None
    selected_slot: Optional[str] = None

    occasion_name: Optional[str] = None
    occasion_names: int = 1
    booking_nickname: Optional[str] = None
    partner_nickname: Optional[str] = None

    cake_line_items: list[CakeLine] = []
    # keyed by add-on id
    addon_line_items: dict[str, AddonLine] = {}
    applied_coupon: Optional[CouponTerms] = None

    # Derived; recomputed by price()
    subtotal: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    coupon_status: Optional[str] = None
    coupon_message: Optional[str] = None

    @property
    def decoration_cost(self) -> Decimal:
        if not self.decoration_needed:
            return to_money(0)
        return to_money(self.decoration_price or 0)

    def price(self, today: Optional[date] = None) -> PriceBreakdown:
        """Recompute the breakdown from the current line items"""
        return compute_total(
            self.theater_cost or 0,
            self.decoration_cost,
            self.cake_line_items,
            list(self.addon_line_items.values()),
            coupon=self.applied_coupon,
            today=today,
        )

    def missing_for_payment(self) -> list[str]:
        return [name for name in PAYMENT_PRECONDITIONS if getattr(self, name) in (None, "")]

    def to_snapshot(self, today: Optional[date] = None) -> dict:
        """The wire form sent with quote, payment order and verification requests"""
        return {
            "customerId": self.customer_id,
            "locationId": self.location_id,
            "theaterId": self.theater_id,
            "date": self.selected_date,
            "slot": self.selected_slot,
            "occasionName": self.occasion_name,
            "bookingNickname": self.booking_nickname,
            "partnerNickname": self.partner_nickname,
            "bookingName": self.booking_name,
            "decorationNeeded": self.decoration_needed,
            "cakes": [
                {"cakeId": c.cake_id, "weightGrams": c.weight_grams, "quantity": c.quantity}
                for c in self.cake_line_items
                if c.cake_id is not None
            ],
            "addons": [
                {"addonId": a.addon_id, "quantity": a.quantity}
                for a in self.addon_line_items.values()
                if a.addon_id is not None
            ],
            "couponCode": self.applied_coupon.code if self.applied_coupon else None,
            "finalPrice": float(self.price(today).total),
        }


def _format_money(amount: Decimal) -> str:
    return f"₹{to_money(amount):,.2f}"


def _encode(codec: str, value: Any) -> str:
    if codec == "bool":
        return "true" if value else "false"
    if codec == "decimal":
        return str(to_money(value))
    if codec == "cakes":
        return json.dumps([CakeLine.model_validate(v).model_dump(mode="json") for v in value])
    if codec == "addons":
        return json.dumps(
            {str(k): AddonLine.model_validate(v).model_dump(mode="json") for k, v in value.items()}
        )
    if codec == "coupon":
        return json.dumps(CouponTerms.model_validate(value).model_dump(mode="json"))
    return str(value)


def _decode(codec: str, raw: str) -> Any:
    """Raises ValueError (or a pydantic error) for corrupt values"""
    if codec == "int":
        return int(raw)
    if codec == "bool":
        return raw.strip().lower() == "true"
    if codec == "decimal":
        try:
            return Decimal(raw)
        except InvalidOperation:
            raise ValueError(f"not a decimal: {raw!r}") from None
    if codec == "cakes":
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("cake line items must be a list")
        return [CakeLine.model_validate(item) for item in items]
    if codec == "addons":
        items = json.loads(raw)
        if not isinstance(items, dict):
            raise ValueError("add-on line items must be a mapping")
        return {str(k): AddonLine.model_validate(v) for k, v in items.items()}
    if codec == "coupon":
        return CouponTerms.model_validate(json.loads(raw))
    return raw


class DraftStore:
    """Typed read/write view of the booking draft"""

    def __init__(self, storage: SessionStorage, today: Optional[date] = None):
        self.storage = storage
        self.today = today

    # ------------------------------------------------------------------
    # String-keyed access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        return self.storage.get(key)

    def set(self, key: str, value: Any) -> None:
        """Store a scalar as-is and anything structured as JSON. None removes the key"""
        if value is None:
            self.storage.remove(key)
        elif isinstance(value, str):
            self.storage.set(key, value)
        else:
            self.storage.set(key, json.dumps(value, default=str))

    # ------------------------------------------------------------------
    # Typed access
    # ------------------------------------------------------------------

    def load(self) -> BookingDraft:
        """Read every known key. Absent keys are "not selected"; corrupt ones are logged and skipped"""
        values = {}
        for field, (key, codec) in FIELDS.items():
            raw = self.storage.get(key)
            if raw is None or raw == "":
                continue
            try:
                values[field] = _decode(codec, raw)
            except (ValueError, TypeError, PydanticValidationError) as e:
                logger.warning(f"⚠️ Ignoring corrupt draft value for {key}: {e}")
        return BookingDraft(**values)

    def _write(self, field: str, value: Any) -> None:
        key, codec = FIELDS[field]
        if value is None:
            self.storage.remove(key)
        else:
            self.storage.set(key, _encode(codec, value))

    def _write_many(self, **fields) -> None:
        for field, value in fields.items():
            self._write(field, value)

    def recompute(self) -> PriceBreakdown:
        """Recompute the derived prices and store them right away"""
        breakdown = self.load().price(self.today)
        self._write_many(
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount,
            final_price=breakdown.total,
            coupon_status=breakdown.coupon_status,
            coupon_message=breakdown.coupon_message,
        )
        return breakdown

    def set_contact(
        self,
        customer_id: int,
        booking_name: str,
        email: str,
        phone: str,
        number_of_persons: Optional[int] = None,
        decoration_needed: bool = False,
    ) -> PriceBreakdown:
        self._write_many(
            customer_id=customer_id,
            booking_name=booking_name,
            email=email,
            phone=phone,
            number_of_persons=number_of_persons,
            decoration_needed=decoration_needed,
        )
        return self.recompute()

    def set_location(self, location_id: str, location_name: Optional[str] = None) -> None:
        current = self.get(FIELDS["location_id"][0])
        if current is not None and current != location_id:
            # Theaters belong to one location
            self._clear_theater()
        self._write_many(location_id=location_id, location_name=location_name)

    def _clear_theater(self) -> None:
        self._write_many(
            theater_id=None,
            theater_name=None,
            theater_cost=None,
            decoration_price=None,
            selected_date=None,
            selected_slot=None,
        )
        self.recompute()

    def set_theater_slot(
        self,
        theater_id: str,
        theater_name: Optional[str],
        theater_cost: Decimal,
        decoration_price: Decimal,
        selected_date: Optional[str] = None,
        selected_slot: Optional[str] = None,
    ) -> PriceBreakdown:
        """Select a theater and optionally a slot. A different theater drops the old slot"""
        current = self.get(FIELDS["theater_id"][0])
        if current is not None and current != theater_id:
            self._write_many(selected_date=None, selected_slot=None)
        self._write_many(
            theater_id=theater_id,
            theater_name=theater_name,
            theater_cost=theater_cost,
            decoration_price=decoration_price,
        )
        if selected_date is not None and selected_slot is not None:
            self._write_many(selected_date=selected_date, selected_slot=selected_slot)
        return self.recompute()

    def set_occasion(
        self,
        occasion_name: str,
        occasion_names: int = 1,
        booking_nickname: Optional[str] = None,
        partner_nickname: Optional[str] = None,
    ) -> None:
        current = self.get(FIELDS["occasion_name"][0])
        if current != occasion_name:
            self._write_many(booking_nickname=None, partner_nickname=None)
        self._write_many(occasion_name=occasion_name, occasion_names=occasion_names)
        if booking_nickname is not None:
            self._write("booking_nickname", booking_nickname)
        if partner_nickname is not None:
            self._write("partner_nickname", partner_nickname)
        if occasion_names < 2:
            self._write("partner_nickname", None)

    def set_cakes(self, cake_items: list[CakeLine]) -> PriceBreakdown:
        self._write("cake_line_items", [item for item in cake_items if item.quantity > 0])
        return self.recompute()

    def set_addons(self, addon_items: list[AddonLine]) -> PriceBreakdown:
        mapping = {
            str(item.addon_id if item.addon_id is not None else item.name): item
            for item in addon_items
            if item.quantity > 0
        }
        self._write("addon_line_items", mapping)
        return self.recompute()

    def set_coupon(self, coupon: CouponTerms) -> PriceBreakdown:
        self._write("applied_coupon", coupon)
        return self.recompute()

    def clear_coupon(self) -> PriceBreakdown:
        self._write("applied_coupon", None)
        return self.recompute()

    def clear(self) -> None:
        """Destroy the draft"""
        self.storage.clear()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def summary(self) -> dict[str, str]:
        """Human-readable recap built only from the keys that are set"""
        draft = self.load()
        breakdown = draft.price(self.today)

        def or_placeholder(value) -> str:
            return NOT_SELECTED if value in (None, "") else str(value)

        nicknames = None
        if draft.booking_nickname:
            nicknames = draft.booking_nickname
            if draft.partner_nickname:
                nicknames = f"{nicknames} & {draft.partner_nickname}"

        cakes = None
        if draft.cake_line_items:
            cakes = ", ".join(
                f"{c.name} {format_weight(c.weight_grams)} x {c.quantity} ({_format_money(c.line_total)})"
                for c in draft.cake_line_items
            )

        addons = None
        if draft.addon_line_items:
            addons = ", ".join(
                f"{a.name} x {a.quantity} ({_format_money(a.line_total)})"
                for a in draft.addon_line_items.values()
            )

        coupon = None
        if draft.applied_coupon:
            coupon = f"{draft.applied_coupon.code} ({breakdown.coupon_message})"

        slot = None
        if draft.selected_date and draft.selected_slot:
            slot = f"{draft.selected_date} {draft.selected_slot}"

        return {
            "Booking name": or_placeholder(draft.booking_name),
            "Location": or_placeholder(draft.location_name or draft.location_id),
            "Theater": or_placeholder(draft.theater_name or draft.theater_id),
            "Slot": or_placeholder(slot),
            "Decoration": _format_money(draft.decoration_cost) if draft.decoration_needed else NOT_SELECTED,
            "Occasion": or_placeholder(draft.occasion_name),
            "Nicknames": or_placeholder(nicknames),
            "Cakes": or_placeholder(cakes),
            "Add-ons": or_placeholder(addons),
            "Coupon": or_placeholder(coupon),
            "Subtotal": _format_money(breakdown.subtotal),
            "Discount": _format_money(breakdown.discount),
            "Total": _format_money(breakdown.total),
        }

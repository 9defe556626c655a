"""Pricing service - recomputes a draft's total from catalog prices"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Coupon
from ...shared.errors import ValidationError
from ..catalog.repository import CatalogRepository
from ..catalog.service import coupon_kind_and_value
from .calculator import AddonLine, CakeLine, CouponTerms, PriceBreakdown, compute_total, to_money
from .schemas import DraftSnapshot

logger = logging.getLogger(__name__)


def coupon_to_terms(coupon: Coupon) -> CouponTerms:
    kind, value = coupon_kind_and_value(coupon)
    return CouponTerms(
        code=coupon.coupon_code_name,
        kind=kind,
        value=value,
        start_date=coupon.coupon_start_date,
        end_date=coupon.coupon_end_date,
    )


class Quote:
    """A price breakdown together with the lines it was computed from"""

    def __init__(
        self,
        breakdown: PriceBreakdown,
        theater_cost: Decimal,
        decoration_cost: Decimal,
        cake_lines: list[CakeLine],
        addon_lines: list[AddonLine],
    ):
        self.breakdown = breakdown
        self.theater_cost = theater_cost
        self.decoration_cost = decoration_cost
        self.cake_lines = cake_lines
        self.addon_lines = addon_lines

    def to_dict(self) -> dict:
        b = self.breakdown
        return {
            "subtotal": float(b.subtotal),
            "discount": float(b.discount),
            "total": float(b.total),
            "amountMinorUnits": b.total_minor_units,
            "theaterCost": float(self.theater_cost),
            "decorationCost": float(self.decoration_cost),
            "cakeLines": [
                {
                    "name": line.name,
                    "quantity": line.quantity,
                    "weightGrams": line.weight_grams,
                    "unitPrice": float(line.unit_price),
                    "lineTotal": float(line.line_total),
                }
                for line in self.cake_lines
            ],
            "addonLines": [
                {
                    "name": line.name,
                    "quantity": line.quantity,
                    "unitPrice": float(line.unit_price),
                    "lineTotal": float(line.line_total),
                }
                for line in self.addon_lines
            ],
            "couponCode": b.coupon_code,
            "couponStatus": b.coupon_status,
            "couponMessage": b.coupon_message,
        }


class PricingService:
    """Service layer for server-side price validation"""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogRepository()

    def quote(self, draft: DraftSnapshot, today: Optional[date] = None) -> Quote:
        if not draft.theaterId:
            raise ValidationError("theaterId is required to price a booking", field="theaterId")

        theater = self.catalog.get_theater(self.db, draft.theaterId)
        if not theater or (draft.locationId and theater.loc_id != draft.locationId):
            raise ValidationError(f"Unknown theater {draft.theaterId}", field="theaterId")

        theater_cost = to_money(theater.theater_cost or 0)
        decoration_cost = to_money(theater.decoration_price or 0) if draft.decorationNeeded else to_money(0)

        cakes = self.catalog.get_cakes_by_ids(self.db, [c.cakeId for c in draft.cakes])
        cake_lines = []
        for selection in draft.cakes:
            cake = cakes.get(selection.cakeId)
            if not cake:
                raise ValidationError(f"Unknown cake {selection.cakeId}", field="cakes")
            cake_lines.append(
                CakeLine(
                    name=cake.cake_name,
                    cake_id=cake.cake_id,
                    reference_price=cake.reference_price,
                    weight_grams=selection.weightGrams,
                    quantity=selection.quantity,
                    egg_eggless=cake.egg_eggless,
                )
            )

        addons = self.catalog.get_addons_by_ids(self.db, [a.addonId for a in draft.addons])
        addon_lines = []
        for selection in draft.addons:
            addon = addons.get(selection.addonId)
            if not addon:
                raise ValidationError(f"Unknown add-on {selection.addonId}", field="addons")
            addon_lines.append(
                AddonLine(
                    name=addon.addon_name,
                    addon_id=addon.addon_id,
                    unit_price=addon.addon_price,
                    quantity=selection.quantity,
                )
            )

        terms = None
        if draft.couponCode:
            coupon = self.catalog.get_coupon_by_code(self.db, draft.couponCode)
            if not coupon:
                raise ValidationError("Invalid coupon code", field="couponCode")
            terms = coupon_to_terms(coupon)

        breakdown = compute_total(
            theater_cost, decoration_cost, cake_lines, addon_lines, coupon=terms, today=today
        )
        logger.debug(
            f"Quote for theater {draft.theaterId}: subtotal={breakdown.subtotal} "
            f"discount={breakdown.discount} total={breakdown.total}"
        )
        return Quote(breakdown, theater_cost, decoration_cost, cake_lines, addon_lines)

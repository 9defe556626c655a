"""Catalog service - shapes catalog rows for the wizard and caches them in Redis"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import cached
from ...models import Cake, Coupon, Occasion, Theater
from ...shared.errors import NotFound, ValidationError
from ...shared.validators import REFERENCE_WEIGHT_GRAMS, format_weight, parse_weight_grams
from ..pricing.calculator import scale_cake_price
from .repository import CatalogRepository

logger = logging.getLogger(__name__)

EGG_TYPES = ("egg", "eggless")


def normalize_no_of_names(value) -> int:
    """Occasions print one or two nicknames; anything else counts as one"""
    try:
        names = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return names if names in (1, 2) else 1


def normalize_egg_type(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    return value if value in EGG_TYPES else "egg"


def coupon_kind_and_value(coupon: Coupon) -> tuple[str, Decimal]:
    """Percentage coupon when coupon_discount is positive, flat amount otherwise"""
    percent = Decimal(str(coupon.coupon_discount or 0))
    if percent > 0:
        return "percentage", percent
    return "flat_amount", Decimal(str(coupon.coupon_amount or 0))


def theater_to_dict(theater: Theater) -> dict:
    return {
        "theaterId": theater.theater_id,
        "locationId": theater.loc_id,
        "theaterName": theater.theater_name,
        "theaterCost": float(theater.theater_cost or 0),
        "decorationPrice": float(theater.decoration_price or 0),
        "perPersons": theater.per_persons,
        "maxPersons": theater.max_persons,
        "slotTimings": list(theater.slot_timings or []),
        "tagLines": list(theater.tag_lines or []),
        "galleryImageUrls": list(theater.gallery_image_urls or []),
    }


def occasion_to_dict(occasion: Occasion) -> dict:
    return {
        "occasionId": occasion.occasion_id,
        "occasionName": occasion.occasion_name,
        "imageUrl": occasion.occasion_image_url,
        "noOfNames": normalize_no_of_names(occasion.no_of_names),
    }


def cake_to_dict(cake: Cake) -> dict:
    labels = list(cake.weight_tiers or []) or [format_weight(REFERENCE_WEIGHT_GRAMS)]
    tiers = []
    for label in labels:
        grams = parse_weight_grams(label)
        tiers.append(
            {
                "label": str(label),
                "grams": grams,
                "price": float(scale_cake_price(cake.reference_price, grams)),
            }
        )
    return {
        "cakeId": cake.cake_id,
        "cakeName": cake.cake_name,
        "imageUrl": cake.cake_image_url,
        "eggEggless": normalize_egg_type(cake.egg_eggless),
        "referencePrice": float(cake.reference_price),
        "weightTiers": tiers,
        "tagLines": list(cake.tag_lines or []),
    }


def coupon_to_dict(coupon: Coupon) -> dict:
    kind, value = coupon_kind_and_value(coupon)
    return {
        "couponCode": coupon.coupon_code_name,
        "couponType": coupon.coupon_type,
        "kind": kind,
        "value": float(value),
        "description": coupon.coupon_description,
        "imageUrl": coupon.image_url,
        "startDate": coupon.coupon_start_date.isoformat(),
        "endDate": coupon.coupon_end_date.isoformat(),
    }


class CatalogService:
    """Service layer for catalog lookups"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    @cached(key_prefix="catalog:locations")
    def list_locations(self) -> list[dict]:
        locations = self.repo.list_public_locations(self.db)
        logger.debug(f"Loaded {len(locations)} public locations")
        return [
            {
                "locationId": loc.loc_id,
                "locationName": loc.location_name,
                "address": loc.address,
                "parkingAvailable": loc.parking_available == "Y",
                "isNew": loc.new_flag == "Y",
            }
            for loc in locations
        ]

    @cached(
        key_prefix="catalog:theaters",
        key_builder=lambda self, location_id: f"catalog:theaters:{location_id}",
    )
    def list_theaters(self, location_id: str) -> list[dict]:
        if not location_id:
            raise ValidationError("locationId is required", field="locationId")
        if not self.repo.get_location(self.db, location_id):
            raise NotFound(f"Location {location_id} not found")
        return [theater_to_dict(t) for t in self.repo.list_theaters(self.db, location_id)]

    @cached(
        key_prefix="catalog:theater",
        key_builder=lambda self, theater_id: f"catalog:theater:{theater_id}",
    )
    def get_theater(self, theater_id: str) -> dict:
        theater = self.repo.get_theater(self.db, theater_id)
        if not theater:
            raise NotFound(f"Theater {theater_id} not found")
        return theater_to_dict(theater)

    @cached(key_prefix="catalog:occasions")
    def list_occasions(self) -> list[dict]:
        return [occasion_to_dict(o) for o in self.repo.list_occasions(self.db)]

    @cached(
        key_prefix="catalog:cakes",
        key_builder=lambda self, egg_eggless=None: f"catalog:cakes:{egg_eggless or 'all'}",
    )
    def list_cakes(self, egg_eggless: Optional[str] = None) -> list[dict]:
        if egg_eggless and egg_eggless.lower() not in EGG_TYPES:
            raise ValidationError("eggEggless must be 'egg' or 'eggless'", field="eggEggless")
        return [cake_to_dict(c) for c in self.repo.list_cakes(self.db, egg_eggless)]

    @cached(key_prefix="catalog:addons")
    def list_addons(self) -> list[dict]:
        return [
            {
                "addonId": a.addon_id,
                "addonName": a.addon_name,
                "addonPrice": float(a.addon_price),
                "categoryName": a.category_name,
                "imageUrl": a.image_url,
            }
            for a in self.repo.list_addons(self.db)
        ]

    @cached(
        key_prefix="catalog:coupons",
        key_builder=lambda self, coupon_type=None: (
            f"catalog:coupons:{coupon_type or 'all'}:{date.today().isoformat()}"
        ),
    )
    def list_coupons(self, coupon_type: Optional[str] = None) -> list[dict]:
        coupons = self.repo.list_active_coupons(self.db, date.today(), coupon_type)
        return [coupon_to_dict(c) for c in coupons]

    @cached(key_prefix="catalog:coupon-types")
    def list_coupon_types(self) -> list[str]:
        return self.repo.list_coupon_types(self.db)

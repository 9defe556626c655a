"""Catalog repository - read-only queries over locations, theaters and the menu"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Addon, Cake, Coupon, Location, Occasion, Theater


class CatalogRepository:
    """Repository for catalog database operations"""

    @staticmethod
    def list_public_locations(db: Session) -> list[Location]:
        return (
            db.query(Location)
            .filter(Location.public_flag == "Y")
            .order_by(Location.location_name)
            .all()
        )

    @staticmethod
    def get_location(db: Session, loc_id: str) -> Optional[Location]:
        return db.query(Location).filter(Location.loc_id == loc_id).first()

    @staticmethod
    def list_theaters(db: Session, loc_id: str) -> list[Theater]:
        return (
            db.query(Theater)
            .filter(Theater.loc_id == loc_id)
            .order_by(Theater.theater_name)
            .all()
        )

    @staticmethod
    def get_theater(db: Session, theater_id: str) -> Optional[Theater]:
        return db.query(Theater).filter(Theater.theater_id == theater_id).first()

    @staticmethod
    def list_occasions(db: Session) -> list[Occasion]:
        return db.query(Occasion).order_by(Occasion.occasion_id).all()

    @staticmethod
    def list_cakes(db: Session, egg_eggless: Optional[str] = None) -> list[Cake]:
        query = db.query(Cake)
        if egg_eggless:
            query = query.filter(func.lower(Cake.egg_eggless) == egg_eggless.lower())
        return query.order_by(Cake.cake_id).all()

    @staticmethod
    def get_cakes_by_ids(db: Session, cake_ids: list[int]) -> dict[int, Cake]:
        if not cake_ids:
            return {}
        cakes = db.query(Cake).filter(Cake.cake_id.in_(cake_ids)).all()
        return {cake.cake_id: cake for cake in cakes}

    @staticmethod
    def list_addons(db: Session) -> list[Addon]:
        return db.query(Addon).order_by(Addon.category_name, Addon.addon_id).all()

    @staticmethod
    def get_addons_by_ids(db: Session, addon_ids: list[int]) -> dict[int, Addon]:
        if not addon_ids:
            return {}
        addons = db.query(Addon).filter(Addon.addon_id.in_(addon_ids)).all()
        return {addon.addon_id: addon for addon in addons}

    @staticmethod
    def list_active_coupons(
        db: Session, today: date, coupon_type: Optional[str] = None
    ) -> list[Coupon]:
        """Active coupons that have not expired yet (upcoming ones are listed too)"""
        query = db.query(Coupon).filter(Coupon.status == "Y", Coupon.coupon_end_date >= today)
        if coupon_type:
            query = query.filter(Coupon.coupon_type == coupon_type)
        return query.order_by(Coupon.coupon_start_date, Coupon.id).all()

    @staticmethod
    def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
        return (
            db.query(Coupon)
            .filter(
                func.upper(Coupon.coupon_code_name) == code.strip().upper(),
                Coupon.status == "Y",
            )
            .order_by(Coupon.id.desc())
            .first()
        )

    @staticmethod
    def list_coupon_types(db: Session) -> list[str]:
        rows = (
            db.query(Coupon.coupon_type)
            .filter(Coupon.status == "Y", Coupon.coupon_type.isnot(None))
            .distinct()
            .order_by(Coupon.coupon_type)
            .all()
        )
        return [row[0] for row in rows]

"""Catalog router - read-only lookups used by every wizard step"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    AddonResponse,
    CakeResponse,
    CouponResponse,
    LocationResponse,
    OccasionResponse,
    TheaterResponse,
)
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Catalog"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("/locations", response_model=list[LocationResponse])
def get_locations(service: CatalogService = Depends(get_catalog_service)):
    """Publicly listed locations"""
    return service.list_locations()


@router.get("/theaters", response_model=list[TheaterResponse])
def get_theaters(
    locationId: str = Query(..., description="Location the theaters belong to"),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.list_theaters(locationId)


@router.get("/theaters/{theater_id}", response_model=TheaterResponse)
def get_theater(theater_id: str, service: CatalogService = Depends(get_catalog_service)):
    return service.get_theater(theater_id)


@router.get("/occasions", response_model=list[OccasionResponse])
def get_occasions(service: CatalogService = Depends(get_catalog_service)):
    return service.list_occasions()


@router.get("/cakes", response_model=list[CakeResponse])
def get_cakes(
    eggEggless: Optional[str] = Query(None, description="Filter by egg or eggless"),
    service: CatalogService = Depends(get_catalog_service),
):
    """Cakes with their weight tiers priced from the 500g reference"""
    return service.list_cakes(eggEggless)


@router.get("/addons", response_model=list[AddonResponse])
def get_addons(service: CatalogService = Depends(get_catalog_service)):
    return service.list_addons()


@router.get("/coupons", response_model=list[CouponResponse])
def get_coupons(
    type: Optional[str] = Query(None, description="Coupon type, e.g. FESTIVE_OFFERS"),
    service: CatalogService = Depends(get_catalog_service),
):
    """Active coupons, optionally filtered by type"""
    return service.list_coupons(type)


@router.get("/coupon-types", response_model=list[str])
def get_coupon_types(service: CatalogService = Depends(get_catalog_service)):
    return service.list_coupon_types()

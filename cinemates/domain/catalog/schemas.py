"""Catalog schemas - response models for the read-only lookups"""

from datetime import date
from typing import Optional

from pydantic import BaseModel


class LocationResponse(BaseModel):
    locationId: str
    locationName: str
    address: Optional[str] = None
    parkingAvailable: bool = False
    isNew: bool = False


class TheaterResponse(BaseModel):
    theaterId: str
    locationId: str
    theaterName: str
    theaterCost: float
    decorationPrice: float
    perPersons: Optional[int] = None
    maxPersons: Optional[int] = None
    slotTimings: list[str] = []
    tagLines: list[str] = []
    galleryImageUrls: list[str] = []


class OccasionResponse(BaseModel):
    occasionId: int
    occasionName: str
    imageUrl: Optional[str] = None
    noOfNames: int = 1


class WeightTier(BaseModel):
    label: str
    grams: int
    price: float


class CakeResponse(BaseModel):
    cakeId: int
    cakeName: str
    imageUrl: Optional[str] = None
    eggEggless: str
    referencePrice: float
    weightTiers: list[WeightTier] = []
    tagLines: list[str] = []


class AddonResponse(BaseModel):
    addonId: int
    addonName: str
    addonPrice: float
    categoryName: Optional[str] = None
    imageUrl: Optional[str] = None


class CouponResponse(BaseModel):
    couponCode: str
    couponType: Optional[str] = None
    kind: str  # percentage | flat_amount
    value: float
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    startDate: date
    endDate: date

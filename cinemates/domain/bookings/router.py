"""Booking router - customer draft creation and line items"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    AddonLineItemRequest,
    BookingCreate,
    BookingCreateResponse,
    BookingHistoryItem,
    CakeLineItemRequest,
    LineItemResponse,
    OccasionLineItem,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("/bookings", response_model=BookingCreateResponse)
def create_booking(data: BookingCreate, service: BookingService = Depends(get_booking_service)):
    """Create the customer record that owns the draft"""
    customer = service.create_booking(data)
    return BookingCreateResponse(customerId=customer.cust_id)


@router.get("/bookings/history", response_model=list[BookingHistoryItem])
def get_booking_history(
    phone: str = Query(..., description="Phone number used at booking time"),
    service: BookingService = Depends(get_booking_service),
):
    """Paid bookings for a phone number"""
    return service.booking_history(phone)


@router.post("/occasion", response_model=LineItemResponse)
def save_occasion(data: OccasionLineItem, service: BookingService = Depends(get_booking_service)):
    return service.save_occasion(data)


@router.post("/cake-line-item", response_model=LineItemResponse)
def save_cake_line_item(
    data: CakeLineItemRequest, service: BookingService = Depends(get_booking_service)
):
    """Append or replace a cake line; quantity 0 removes it"""
    return service.save_cake_line(data)


@router.post("/addon-line-item", response_model=LineItemResponse)
def save_addon_line_item(
    data: AddonLineItemRequest, service: BookingService = Depends(get_booking_service)
):
    """Append or replace an add-on line; quantity 0 removes it"""
    return service.save_addon_line(data)

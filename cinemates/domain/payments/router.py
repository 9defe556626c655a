"""Payment router - gateway order creation and checkout verification"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.errors import BookingError
from .gateway import RazorpayGateway, get_payment_gateway
from .schemas import (
    PaymentOrderRequest,
    PaymentOrderResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


def get_payment_service(
    db: Session = Depends(get_db), gateway: RazorpayGateway = Depends(get_payment_gateway)
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, gateway)


@router.post("/payment-orders", response_model=PaymentOrderResponse)
def create_payment_order(
    data: PaymentOrderRequest, service: PaymentService = Depends(get_payment_service)
):
    """Create a gateway order for the exact booking total"""
    return service.create_order(data)


@router.post("/payment-verify", response_model=PaymentVerifyResponse)
def verify_payment(data: PaymentVerifyRequest, service: PaymentService = Depends(get_payment_service)):
    """Verify the checkout signature and finalize the booking"""
    try:
        return service.verify_payment(data)
    except BookingError as e:
        return JSONResponse(status_code=e.status_code, content={"status": "failure", **e.to_dict()})

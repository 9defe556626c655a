"""Pricing router - server-side quote for the confirmation step"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import DraftSnapshot, QuoteResponse
from .service import PricingService

router = APIRouter(prefix="/pricing", tags=["Pricing"])


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    """Dependency injection for PricingService"""
    return PricingService(db)


@router.post("/quote", response_model=QuoteResponse)
def quote(draft: DraftSnapshot, service: PricingService = Depends(get_pricing_service)):
    """Recompute the draft's total from catalog prices"""
    return service.quote(draft).to_dict()

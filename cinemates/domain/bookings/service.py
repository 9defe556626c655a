"""Booking service - customer drafts and append-or-replace line items"""

import logging

from sqlalchemy.orm import Session

from ...models import Customer, CustomerAddon, CustomerCake
from ...shared.errors import NotFound, ValidationError
from ...shared.validators import validate_phone
from ..catalog.repository import CatalogRepository
from ..catalog.service import normalize_egg_type
from ..pricing.calculator import scale_cake_price
from .repository import BookingRepository
from .schemas import (
    AddonLineItemRequest,
    BookingCreate,
    CakeLineItemRequest,
    OccasionLineItem,
)

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for customer draft business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.catalog = CatalogRepository()

    def create_booking(self, data: BookingCreate) -> Customer:
        logger.info(f"📥 Creating booking draft for {data.bookingName}")
        customer = self.repo.create_customer(
            self.db,
            booking_name=data.bookingName.strip(),
            email=data.email,
            phone_no1=data.phone,
            alternate_no=data.alternateNo,
            number_of_persons=data.numberOfPersons,
            decoration_needed="Y" if data.decorationNeeded else "N",
        )
        logger.info(f"✅ Booking draft created: customer {customer.cust_id}")
        return customer

    def get_customer(self, cust_id: int) -> Customer:
        customer = self.repo.get_customer(self.db, cust_id)
        if not customer:
            raise NotFound(f"Customer {cust_id} not found")
        return customer

    def save_occasion(self, data: OccasionLineItem) -> dict:
        self.get_customer(data.customerId)
        occasion = self.repo.replace_occasion(
            self.db,
            data.customerId,
            booking_occasion=data.occasionName,
            booking_nickname=data.bookingNickname,
            partner_nickname=data.partnerNickname,
        )
        return {
            "customerId": data.customerId,
            "itemName": occasion.booking_occasion,
            "quantity": 1,
            "action": "saved",
        }

    def save_cake_line(self, data: CakeLineItemRequest) -> dict:
        self.get_customer(data.customerId)
        cake = self.catalog.get_cakes_by_ids(self.db, [data.cakeId]).get(data.cakeId)
        if not cake:
            raise ValidationError(f"Unknown cake {data.cakeId}", field="cakeId")

        unit_price = scale_cake_price(cake.reference_price, data.weightGrams)
        line = self.repo.find_cake_line(self.db, data.customerId, cake.cake_name)

        if data.quantity == 0:
            if line:
                self.repo.delete_line(self.db, line)
            return {
                "customerId": data.customerId,
                "itemName": cake.cake_name,
                "quantity": 0,
                "action": "removed",
            }

        self.repo.save_line(
            self.db,
            line or CustomerCake(cust_id=data.customerId),
            cake_id=cake.cake_id,
            cake_name=cake.cake_name,
            weight_grams=data.weightGrams,
            egg_eggless=normalize_egg_type(cake.egg_eggless),
            quantity=data.quantity,
            item_price=unit_price,
        )
        return {
            "customerId": data.customerId,
            "itemName": cake.cake_name,
            "quantity": data.quantity,
            "unitPrice": float(unit_price),
            "action": "saved",
        }

    def save_addon_line(self, data: AddonLineItemRequest) -> dict:
        self.get_customer(data.customerId)
        addon = self.catalog.get_addons_by_ids(self.db, [data.addonId]).get(data.addonId)
        if not addon:
            raise ValidationError(f"Unknown add-on {data.addonId}", field="addonId")

        line = self.repo.find_addon_line(self.db, data.customerId, addon.addon_name)

        if data.quantity == 0:
            if line:
                self.repo.delete_line(self.db, line)
            return {
                "customerId": data.customerId,
                "itemName": addon.addon_name,
                "quantity": 0,
                "action": "removed",
            }

        self.repo.save_line(
            self.db,
            line or CustomerAddon(cust_id=data.customerId),
            addon_id=addon.addon_id,
            addon_name=addon.addon_name,
            quantity=data.quantity,
            addons_price=addon.addon_price,
        )
        return {
            "customerId": data.customerId,
            "itemName": addon.addon_name,
            "quantity": data.quantity,
            "unitPrice": float(addon.addon_price),
            "action": "saved",
        }

    def booking_history(self, phone: str) -> list[dict]:
        try:
            phone = validate_phone(phone)
        except ValueError as e:
            raise ValidationError(str(e), field="phone") from None
        if not phone:
            raise ValidationError("phone is required", field="phone")

        history = []
        for payment, booking in self.repo.history_for_phone(self.db, phone):
            history.append(
                {
                    "bookingName": payment.booking_name,
                    "theaterId": payment.theater_id,
                    "locationId": payment.loc_id,
                    "bookingDate": booking.booking_date if booking else None,
                    "bookingSlot": booking.booking_slot if booking else None,
                    "orderId": payment.order_id,
                    "paymentId": payment.payment_id,
                    "paymentAmount": float(payment.payment_amount),
                    "couponCode": payment.coupon_code,
                    "couponDiscount": float(payment.coupon_discount or 0),
                    "paymentDate": payment.payment_date,
                }
            )
        return history

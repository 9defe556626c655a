"""Step-by-step booking wizard.

contact -> location -> theater/slot -> occasion -> cakes -> add-ons
        -> confirmation -> payment

Each step checks that the earlier steps it depends on have populated the
draft and raises PreconditionMissing naming the step to go back to.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from ..domain.pricing.calculator import AddonLine, CakeLine, CouponTerms, PriceBreakdown
from ..shared.errors import PreconditionMissing, ValidationError
from ..shared.validators import parse_weight_grams
from .api_client import CineMatesClient
from .draft import PAYMENT_PRECONDITIONS, BookingDraft, DraftStore
from .payment_bridge import CheckoutWidget, PaymentBridge, PaymentOutcome

logger = logging.getLogger(__name__)


class CakeChoice:
    """A cake picked on the cakes step: weight as a label ("1kg") or grams"""

    def __init__(self, cake_id: int, weight: Union[str, int] = "500g", quantity: int = 1):
        self.cake_id = cake_id
        self.weight = weight
        self.quantity = quantity


class BookingWizard:
    def __init__(self, client: CineMatesClient, store: DraftStore, today: Optional[date] = None):
        self.client = client
        self.store = store
        self.today = today

    def _require(self, draft: BookingDraft, step: str, *fields: str) -> None:
        missing = [f for f in fields if getattr(draft, f) in (None, "")]
        if missing:
            raise PreconditionMissing(
                f"Please complete the {step} step first", step=step, missing=missing
            )

    # Steps

    def submit_contact(
        self,
        booking_name: str,
        email: str,
        phone: str,
        number_of_persons: Optional[int] = None,
        decoration_needed: bool = False,
    ) -> int:
        """Create the customer record that owns this draft"""
        response = self.client.create_booking(
            {
                "bookingName": booking_name,
                "email": email,
                "phone": phone,
                "numberOfPersons": number_of_persons,
                "decorationNeeded": decoration_needed,
            }
        )
        customer_id = response["customerId"]
        self.store.set_contact(
            customer_id,
            booking_name,
            email,
            phone,
            number_of_persons=number_of_persons,
            decoration_needed=decoration_needed,
        )
        logger.info(f"Draft started for customer {customer_id}")
        return customer_id

    def choose_location(self, location_id: str) -> dict:
        self._require(self.store.load(), "contact", "customer_id")
        location = next(
            (loc for loc in self.client.list_locations() if loc["locationId"] == location_id), None
        )
        if not location:
            raise ValidationError(f"Unknown location {location_id}", field="locationId")
        self.store.set_location(location_id, location["locationName"])
        return location

    def available_slots(self, theater_id: str, booked_date: str) -> list[str]:
        """The theater's windows that nobody has reserved on booked_date"""
        theater = self.client.get_theater(theater_id)
        taken = {
            r["slot"]
            for r in self.client.booked_slots(booked_date, theater["locationId"])
            if r["theaterId"] == theater_id
        }
        return [slot for slot in theater["slotTimings"] if slot not in taken]

    def choose_theater_slot(self, theater_id: str, booked_date: str, slot: str) -> PriceBreakdown:
        """Reserve the slot, then record the theater and slot in the draft. SlotConflict propagates"""
        draft = self.store.load()
        self._require(draft, "location", "location_id")

        theater = self.client.get_theater(theater_id)
        if theater["locationId"] != draft.location_id:
            raise ValidationError(
                f"Theater {theater_id} is not at the selected location", field="theaterId"
            )

        already_held = (
            draft.theater_id == theater_id
            and draft.selected_date == booked_date
            and draft.selected_slot == slot
        )
        if not already_held:
            self.client.reserve_slot(theater_id, draft.location_id, booked_date, slot, draft.customer_id)

        return self.store.set_theater_slot(
            theater_id,
            theater["theaterName"],
            Decimal(str(theater["theaterCost"])),
            Decimal(str(theater["decorationPrice"])),
            selected_date=booked_date,
            selected_slot=slot,
        )

    def choose_occasion(
        self, occasion_id: int, booking_nickname: str, partner_nickname: Optional[str] = None
    ) -> dict:
        draft = self.store.load()
        self._require(draft, "theater", "theater_id", "selected_slot")

        occasion = next(
            (o for o in self.client.list_occasions() if o["occasionId"] == occasion_id), None
        )
        if not occasion:
            raise ValidationError(f"Unknown occasion {occasion_id}", field="occasionId")
        if not booking_nickname or not booking_nickname.strip():
            raise ValidationError("Nickname is required", field="bookingNickname")
        if occasion["noOfNames"] == 2 and not (partner_nickname or "").strip():
            raise ValidationError(
                f"{occasion['occasionName']} needs two nicknames", field="partnerNickname"
            )
        if occasion["noOfNames"] < 2:
            partner_nickname = None

        self.client.save_occasion(
            {
                "customerId": draft.customer_id,
                "occasionName": occasion["occasionName"],
                "bookingNickname": booking_nickname.strip(),
                "partnerNickname": partner_nickname.strip() if partner_nickname else None,
            }
        )
        self.store.set_occasion(
            occasion["occasionName"],
            occasion["noOfNames"],
            booking_nickname=booking_nickname.strip(),
            partner_nickname=partner_nickname.strip() if partner_nickname else None,
        )
        return occasion

    def choose_cakes(self, choices: list[CakeChoice]) -> PriceBreakdown:
        """Replace the cake selection. Cakes dropped from the list are removed server-side too"""
        draft = self.store.load()
        self._require(draft, "occasion", "occasion_name")

        catalog = {c["cakeId"]: c for c in self.client.list_cakes()}
        chosen = [c.cake_id for c in choices if c.quantity > 0]
        if len(chosen) != len(set(chosen)):
            raise ValidationError("Choose one weight per cake", field="cakes")

        lines = []
        for choice in choices:
            cake = catalog.get(choice.cake_id)
            if not cake:
                raise ValidationError(f"Unknown cake {choice.cake_id}", field="cakes")
            grams = parse_weight_grams(choice.weight)
            offered = {tier["grams"] for tier in cake["weightTiers"]}
            if offered and grams not in offered:
                raise ValidationError(
                    f"{cake['cakeName']} is not available in {choice.weight}", field="cakes"
                )
            lines.append(
                CakeLine(
                    name=cake["cakeName"],
                    cake_id=cake["cakeId"],
                    reference_price=Decimal(str(cake["referencePrice"])),
                    weight_grams=grams,
                    quantity=choice.quantity,
                    egg_eggless=cake["eggEggless"],
                )
            )

        chosen_ids = {line.cake_id for line in lines if line.quantity > 0}
        for previous in draft.cake_line_items:
            if previous.cake_id is not None and previous.cake_id not in chosen_ids:
                self.client.save_cake_line(
                    {"customerId": draft.customer_id, "cakeId": previous.cake_id, "quantity": 0}
                )
        for line in lines:
            self.client.save_cake_line(
                {
                    "customerId": draft.customer_id,
                    "cakeId": line.cake_id,
                    "weightGrams": line.weight_grams,
                    "quantity": line.quantity,
                }
            )
        return self.store.set_cakes(lines)

    def choose_addons(self, quantities: dict[int, int]) -> PriceBreakdown:
        """Replace the add-on selection, {addon_id: quantity}"""
        draft = self.store.load()
        self._require(draft, "occasion", "occasion_name")

        catalog = {a["addonId"]: a for a in self.client.list_addons()}
        lines = []
        for addon_id, quantity in quantities.items():
            addon = catalog.get(addon_id)
            if not addon:
                raise ValidationError(f"Unknown add-on {addon_id}", field="addons")
            lines.append(
                AddonLine(
                    name=addon["addonName"],
                    addon_id=addon_id,
                    unit_price=Decimal(str(addon["addonPrice"])),
                    quantity=quantity,
                )
            )

        chosen_ids = {line.addon_id for line in lines if line.quantity > 0}
        for previous in draft.addon_line_items.values():
            if previous.addon_id is not None and previous.addon_id not in chosen_ids:
                self.client.save_addon_line(
                    {"customerId": draft.customer_id, "addonId": previous.addon_id, "quantity": 0}
                )
        for line in lines:
            self.client.save_addon_line(
                {"customerId": draft.customer_id, "addonId": line.addon_id, "quantity": line.quantity}
            )
        return self.store.set_addons(lines)

    def apply_coupon(self, code: str) -> PriceBreakdown:
        """Apply a coupon; one outside its validity window is rejected with the reason"""
        self._require(self.store.load(), "theater", "theater_id")
        if not code or not code.strip():
            raise ValidationError("Enter a coupon code", field="couponCode")

        coupon = next(
            (c for c in self.client.list_coupons() if c["couponCode"].upper() == code.strip().upper()),
            None,
        )
        if not coupon:
            raise ValidationError("Invalid coupon code", field="couponCode")

        terms = CouponTerms(
            code=coupon["couponCode"],
            kind=coupon["kind"],
            value=Decimal(str(coupon["value"])),
            start_date=date.fromisoformat(coupon["startDate"]),
            end_date=date.fromisoformat(coupon["endDate"]),
        )
        breakdown = self.store.set_coupon(terms)
        if breakdown.coupon_status != "applied":
            self.store.clear_coupon()
            raise ValidationError(breakdown.coupon_message, field="couponCode")
        return breakdown

    def remove_coupon(self) -> PriceBreakdown:
        return self.store.clear_coupon()

    def confirmation(self) -> dict:
        """
        Recap for the confirmation step.

        The local total is checked against the server quote. A mismatch means
        catalog prices moved since they were fetched; the payment order would
        be rejected, so the caller has to refresh the affected steps.
        """
        draft = self.store.load()
        missing = draft.missing_for_payment()
        if missing:
            raise PreconditionMissing(
                "Missing booking details. Please go back and complete your booking.",
                step=PAYMENT_PRECONDITIONS[missing[0]],
                missing=missing,
            )

        local = self.store.recompute()
        quote = self.client.quote(draft.to_snapshot(self.today))
        if quote["amountMinorUnits"] != local.total_minor_units:
            logger.warning(
                f"⚠️ Local total {local.total} differs from server quote {quote['total']}; "
                f"catalog prices changed"
            )
        return {
            "summary": self.store.summary(),
            "quote": quote,
            "pricesChanged": quote["amountMinorUnits"] != local.total_minor_units,
        }

    def pay(self, widget: CheckoutWidget, currency: Optional[str] = None) -> PaymentOutcome:
        return PaymentBridge(self.client, self.store, widget, currency=currency, today=self.today).run()

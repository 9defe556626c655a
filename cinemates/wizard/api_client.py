"""HTTP client for the CineMates booking API"""

import logging
from typing import Any, Optional

import httpx

from .. import config
from ..shared.errors import (
    ERRORS_BY_CODE,
    BookingError,
    NotFound,
    PreconditionMissing,
    SignatureMismatch,
    SlotConflict,
    UpstreamUnavailable,
    ValidationError,
    VerificationFailed,
)

logger = logging.getLogger(__name__)


def error_from_response(response: httpx.Response) -> BookingError:
    """Map an error response back to the booking error it was rendered from"""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("detail") or f"Request failed with status {response.status_code}"
    if not isinstance(message, str):
        message = str(message)
    code = body.get("code")
    details = body.get("details") or {}

    if code == VerificationFailed.code.value and details.get("reason") == "signature_mismatch":
        return SignatureMismatch(message, details)

    error_cls = ERRORS_BY_CODE.get(code)
    if error_cls is None:
        if response.status_code == 409:
            error_cls = SlotConflict
        elif response.status_code == 404:
            error_cls = NotFound
        elif response.status_code >= 500:
            error_cls = UpstreamUnavailable
        else:
            error_cls = ValidationError

    if error_cls is ValidationError:
        return ValidationError(message, field=details.get("field"), details=details)
    if error_cls is PreconditionMissing:
        return PreconditionMissing(message, step=details.get("step"), missing=details.get("missing"))
    return error_cls(message, details)


class CineMatesClient:
    """
    Synchronous client used by the booking wizard.

    Every request has a deadline (CINEMATES_HTTP_TIMEOUT). Nothing is retried.
    Catalog lookups fall back to the last good response when the API is
    unreachable.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or config.CINEMATES_API_URL).rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.Client(
            base_url=self.base_url, timeout=timeout or config.CINEMATES_HTTP_TIMEOUT
        )
        self._catalog_cache: dict[tuple, Any] = {}

    def close(self) -> None:
        if self._owns_client:
            self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"❌ {method} {path} failed: {e}")
            raise UpstreamUnavailable(f"Could not reach the booking service: {e}") from e

        if response.is_success:
            return response.json()

        error = error_from_response(response)
        logger.info(f"{method} {path} -> {response.status_code} {error.code.value}")
        raise error

    def _catalog_get(self, path: str, params: Optional[dict] = None) -> Any:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        cache_key = (path, tuple(sorted(params.items())))
        try:
            result = self._request("GET", path, params=params or None)
        except UpstreamUnavailable:
            if cache_key in self._catalog_cache:
                logger.warning(f"⚠️ Serving cached catalog response for {path}")
                return self._catalog_cache[cache_key]
            raise
        self._catalog_cache[cache_key] = result
        return result

    # Catalog

    def list_locations(self) -> list[dict]:
        return self._catalog_get("/locations")

    def list_theaters(self, location_id: str) -> list[dict]:
        return self._catalog_get("/theaters", {"locationId": location_id})

    def get_theater(self, theater_id: str) -> dict:
        return self._catalog_get(f"/theaters/{theater_id}")

    def list_occasions(self) -> list[dict]:
        return self._catalog_get("/occasions")

    def list_cakes(self, egg_eggless: Optional[str] = None) -> list[dict]:
        return self._catalog_get("/cakes", {"eggEggless": egg_eggless})

    def list_addons(self) -> list[dict]:
        return self._catalog_get("/addons")

    def list_coupons(self, coupon_type: Optional[str] = None) -> list[dict]:
        return self._catalog_get("/coupons", {"type": coupon_type})

    def list_coupon_types(self) -> list[str]:
        return self._catalog_get("/coupon-types")

    # Bookings and line items

    def create_booking(self, payload: dict) -> dict:
        return self._request("POST", "/bookings", json=payload)

    def booking_history(self, phone: str) -> list[dict]:
        return self._request("GET", "/bookings/history", params={"phone": phone})

    def save_occasion(self, payload: dict) -> dict:
        return self._request("POST", "/occasion", json=payload)

    def save_cake_line(self, payload: dict) -> dict:
        return self._request("POST", "/cake-line-item", json=payload)

    def save_addon_line(self, payload: dict) -> dict:
        return self._request("POST", "/addon-line-item", json=payload)

    # Slots

    def reserve_slot(
        self, theater_id: str, location_id: str, date: str, slot: str, customer_id: Optional[int] = None
    ) -> dict:
        return self._request(
            "POST",
            "/slots/check-and-reserve",
            json={
                "theaterId": theater_id,
                "locationId": location_id,
                "date": date,
                "slot": slot,
                "customerId": customer_id,
            },
        )

    def check_slot(self, theater_id: str, location_id: str, date: str, slot: str) -> dict:
        return self._request(
            "POST",
            "/slots/check",
            json={"theaterId": theater_id, "locationId": location_id, "date": date, "slot": slot},
        )

    def booked_slots(self, date: str, location_id: Optional[str] = None) -> list[dict]:
        params = {"date": date}
        if location_id:
            params["locationId"] = location_id
        return self._request("GET", "/slots/booked", params=params)

    # Pricing and payments

    def quote(self, snapshot: dict) -> dict:
        return self._request("POST", "/pricing/quote", json=snapshot)

    def create_payment_order(
        self, amount_minor_units: int, currency: str, receipt_ref: str, draft: Optional[dict] = None
    ) -> dict:
        return self._request(
            "POST",
            "/payment-orders",
            json={
                "amountMinorUnits": amount_minor_units,
                "currency": currency,
                "receiptRef": receipt_ref,
                "draft": draft,
            },
        )

    def verify_payment(self, order_id: str, payment_id: str, signature: str, draft: dict) -> dict:
        return self._request(
            "POST",
            "/payment-verify",
            json={
                "razorpayOrderId": order_id,
                "razorpayPaymentId": payment_id,
                "razorpaySignature": signature,
                "draft": draft,
            },
        )


"""Razorpay order creation"""

import logging
from typing import Optional

from ... import config
from ...shared.errors import UpstreamUnavailable
from .signature import verify_payment_signature

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK client"""

    def __init__(self, key_id: Optional[str], key_secret: Optional[str]):
        self.key_id = key_id
        self.key_secret = key_secret
        self._client = None

    def _get_client(self):
        if not self.key_id or not self.key_secret:
            raise UpstreamUnavailable(
                "Razorpay keys not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
            )
        if self._client is None:
            import razorpay

            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(
        self, amount_minor_units: int, currency: str, receipt: str, notes: Optional[dict] = None
    ) -> dict:
        """Create a gateway order; any SDK or network failure becomes UpstreamUnavailable"""
        client = self._get_client()
        try:
            order = client.order.create(
                {
                    "amount": amount_minor_units,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes or {},
                }
            )
        except Exception as e:
            logger.error(f"❌ Razorpay order creation failed for receipt {receipt}: {e}")
            raise UpstreamUnavailable("Failed to initiate payment. Please try again later.") from e

        if not order or not order.get("id"):
            logger.error(f"❌ Razorpay returned no order id for receipt {receipt}")
            raise UpstreamUnavailable("Failed to initiate payment. Please try again later.")
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_payment_signature(self.key_secret, order_id, payment_id, signature)


def get_payment_gateway() -> RazorpayGateway:
    """Dependency injection for the payment gateway"""
    return RazorpayGateway(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET)

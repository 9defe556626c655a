"""
Razorpay payment signature helpers

The checkout widget returns razorpay_signature =
HMAC-SHA256(key_secret, order_id + "|" + payment_id) as lowercase hex.
"""

import hashlib
import hmac


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_payment_signature(secret: str, order_id: str, payment_id: str) -> str:
    payload = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_payment_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    if not secret:
        return False
    expected = compute_payment_signature(secret, order_id, payment_id)
    return constant_time_compare(expected, (signature or "").strip())

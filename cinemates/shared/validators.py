"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

REFERENCE_WEIGHT_GRAMS = 500
MAX_KEY_LENGTH = 100


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an Indian mobile number.

    Args:
        phone: Phone number string, optionally with +91 / 0 prefix and separators

    Returns:
        The 10 digit number

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Handle +91 / 0 prefixes
    if digits.startswith("91") and len(digits) == 12:
        digits = digits[2:]
    elif digits.startswith("0") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits.")

    return digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
    if not re.match(email_pattern, email):
        raise ValueError("Enter a valid email address.")

    return email


def parse_iso_date(value: str) -> date:
    """
    Parse a strict YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the string is not an ISO calendar date
    """
    if not isinstance(value, str) or not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise ValueError("date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{value} is not a valid calendar date") from None


def validate_key(value: Optional[str], field: str) -> str:
    """Validate an identifier that is part of the slot natural key"""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    if len(value) > MAX_KEY_LENGTH:
        raise ValueError(f"{field} must be a string with maximum length of {MAX_KEY_LENGTH} characters")
    return value.strip()


def parse_weight_grams(label: Optional[str], default: int = REFERENCE_WEIGHT_GRAMS) -> int:
    """
    Convert a cake weight label to grams.

    "500g", "500 grams" -> 500; "1kg", "1.5 Kg" -> 1000, 1500.
    Labels without a number fall back to the reference weight.
    """
    if label is None:
        return default
    if isinstance(label, (int, float)):
        return int(label)

    match = re.search(r"(\d+(?:\.\d+)?)", label)
    if not match:
        return default

    value = float(match.group(1))
    if "kg" in label.lower():
        value *= 1000
    return int(round(value))


def format_weight(grams: int) -> str:
    """Render grams the way the catalog labels weights"""
    if grams >= 1000 and grams % 500 == 0:
        kilos = grams / 1000
        return f"{kilos:g}kg"
    return f"{grams}g"

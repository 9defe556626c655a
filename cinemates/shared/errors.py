"""Booking error taxonomy shared by the API and the wizard client.

Every error carries a stable code, a user-safe message and the HTTP status
the API renders it with. None of these are retried automatically.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SLOT_CONFLICT = "SLOT_CONFLICT"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    PRECONDITION_MISSING = "PRECONDITION_MISSING"
    NOT_FOUND = "NOT_FOUND"


class BookingError(Exception):
    """Base exception for booking-flow errors"""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BookingError):
    """Malformed or missing input, shown next to the offending field"""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.field = field
        if field:
            self.details.setdefault("field", field)


class SlotConflict(BookingError):
    """The slot is taken; the customer has to pick another one"""

    code = ErrorCode.SLOT_CONFLICT
    status_code = 409

    def __init__(
        self,
        message: str = "This time slot is already booked for the specified theater and location",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class UpstreamUnavailable(BookingError):
    """A catalog lookup or the payment gateway could not be reached"""

    code = ErrorCode.UPSTREAM_UNAVAILABLE
    status_code = 502


class SignatureMismatch(BookingError):
    """The gateway signature does not match the recomputed one"""

    code = ErrorCode.SIGNATURE_MISMATCH
    status_code = 400


class VerificationFailed(BookingError):
    """Payment verification was rejected; the customer must contact support"""

    code = ErrorCode.VERIFICATION_FAILED
    status_code = 400


class PersistenceFailed(BookingError):
    """Payment verified but the booking could not be written"""

    code = ErrorCode.PERSISTENCE_FAILED
    status_code = 500


class PreconditionMissing(BookingError):
    """The draft lacks a field an earlier wizard step should have set"""

    code = ErrorCode.PRECONDITION_MISSING
    status_code = 428

    def __init__(self, message: str, step: Optional[str] = None, missing: Optional[list] = None):
        details = {}
        if step:
            details["step"] = step
        if missing:
            details["missing"] = missing
        super().__init__(message, details)
        self.step = step
        self.missing = missing or []


class NotFound(BookingError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


ERRORS_BY_CODE = {
    cls.code.value: cls
    for cls in (
        ValidationError,
        SlotConflict,
        UpstreamUnavailable,
        SignatureMismatch,
        VerificationFailed,
        PersistenceFailed,
        PreconditionMissing,
        NotFound,
    )
}

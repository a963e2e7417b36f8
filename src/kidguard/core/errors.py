"""Typed failures raised by the pickup-authorization core.

Every failure carries a stable ``kind`` string, a ``category`` describing the
class of problem and a ``retryable`` flag. Transport layers map kinds to their
own status codes; nothing in here knows about HTTP.
"""

from __future__ import annotations

from typing import Any

CATEGORY_INPUT = "input"
CATEGORY_AUTHORIZATION = "authorization"
CATEGORY_TEMPORAL = "temporal"
CATEGORY_INTEGRITY = "integrity"
CATEGORY_CONCURRENCY = "concurrency"
CATEGORY_TRANSIENT = "transient"


class PickupError(Exception):
    """Base class for every failure surfaced by the core."""

    kind: str = "PickupError"
    category: str = CATEGORY_INPUT
    retryable: bool = False
    default_message: str = "Pickup operation failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return a serialisable description of the failure."""
        payload: dict[str, Any] = {
            "error": self.kind,
            "detail": self.message,
            "retryable": self.retryable,
        }
        payload.update(self.details)
        return payload


# --- Input errors ---------------------------------------------------------------


class InvalidInputError(PickupError):
    kind = "InvalidInput"
    default_message = "Request is missing or has malformed fields"


class MalformedTokenError(PickupError):
    kind = "MalformedToken"
    default_message = "QR code is not a valid pickup token"


class InvalidSignatureError(PickupError):
    """Raised when a wallet signature cannot be parsed or recovered."""

    kind = "InvalidSignature"
    default_message = "Signature is malformed or cannot be recovered"


# --- Authorization errors -------------------------------------------------------


class NotAuthorizedError(PickupError):
    kind = "NotAuthorized"
    category = CATEGORY_AUTHORIZATION
    default_message = "Not authorized to pick up this student"


class StudentNotFoundError(PickupError):
    kind = "StudentNotFound"
    category = CATEGORY_AUTHORIZATION
    default_message = "Student not found"


class NotFoundError(PickupError):
    kind = "NotFound"
    category = CATEGORY_AUTHORIZATION
    default_message = "No authorization exists for this QR code"


class RevokedError(PickupError):
    kind = "Revoked"
    category = CATEGORY_AUTHORIZATION
    default_message = "QR code has been revoked"


class StudentMismatchError(PickupError):
    kind = "StudentMismatch"
    category = CATEGORY_AUTHORIZATION
    default_message = "QR code is for a different student"


# --- Temporal errors ------------------------------------------------------------


class ExpiredError(PickupError):
    kind = "Expired"
    category = CATEGORY_TEMPORAL
    default_message = "QR code has expired; ask for a new one"


# --- Integrity errors -----------------------------------------------------------


class TamperedTokenError(PickupError):
    kind = "TamperedToken"
    category = CATEGORY_INTEGRITY
    default_message = "QR code verification hash does not match; possible forgery"


class AuditAppendError(PickupError):
    """The token was consumed but its audit entry could not be written."""

    kind = "AuditAppendFailed"
    category = CATEGORY_INTEGRITY
    default_message = "Pickup recorded as used but the audit entry could not be written"


# --- Concurrency errors ---------------------------------------------------------


class AlreadyConsumedError(PickupError):
    kind = "AlreadyConsumed"
    category = CATEGORY_CONCURRENCY
    default_message = "QR code has already been used"


# --- Transient errors -----------------------------------------------------------


class StoreUnavailableError(PickupError):
    """A backing store timed out or failed; the caller may retry."""

    kind = "StoreUnavailable"
    category = CATEGORY_TRANSIENT
    retryable = True
    default_message = "Authorization store is temporarily unavailable"


class AuditConflictError(StoreUnavailableError):
    """Concurrent appends kept colliding on the chain tail."""

    kind = "AuditConflict"
    default_message = "Audit log is busy; retry the operation"


REDEMPTION_ERRORS: tuple[type[PickupError], ...] = (
    MalformedTokenError,
    NotFoundError,
    RevokedError,
    ExpiredError,
    AlreadyConsumedError,
    StudentMismatchError,
    TamperedTokenError,
)

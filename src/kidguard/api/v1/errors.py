"""Map core failure kinds onto HTTP responses."""

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kidguard.core.errors import (
    CATEGORY_TRANSIENT,
    REDEMPTION_ERRORS,
    AuditAppendError,
    InvalidInputError,
    InvalidSignatureError,
    MalformedTokenError,
    NotAuthorizedError,
    PickupError,
    StudentNotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: dict[str, int] = {
    InvalidInputError.kind: status.HTTP_400_BAD_REQUEST,
    InvalidSignatureError.kind: status.HTTP_401_UNAUTHORIZED,
    NotAuthorizedError.kind: status.HTTP_403_FORBIDDEN,
    StudentNotFoundError.kind: status.HTTP_404_NOT_FOUND,
    **{error.kind: status.HTTP_400_BAD_REQUEST for error in REDEMPTION_ERRORS},
    AuditAppendError.kind: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Request fields holding a scanned QR payload.
_TOKEN_FIELDS = frozenset({"token"})


def status_for(error: PickupError) -> int:
    """Return the HTTP status for ``error``."""
    if error.category == CATEGORY_TRANSIENT:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return _STATUS_BY_KIND.get(error.kind, status.HTTP_400_BAD_REQUEST)


async def pickup_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a ``PickupError`` as ``{"error", "detail", "retryable", ...}``."""
    if not isinstance(exc, PickupError):
        raise exc
    code = status_for(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=code, content=exc.to_dict(), headers=headers)


def _field_name(loc: Sequence[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts) or "<body>"


def validation_error(errors: Sequence[dict[str, Any]]) -> PickupError:
    """Translate request validation problems into a typed input failure.

    A missing or non-string scanned token is a malformed token; everything
    else is invalid input naming the offending fields.
    """
    problems = [(_field_name(e.get("loc", ())), str(e.get("msg", "invalid"))) for e in errors]
    fields = sorted({field for field, _ in problems})
    detail = "; ".join(f"{field}: {msg}" for field, msg in problems) or "Invalid request"
    if _TOKEN_FIELDS.intersection(fields):
        return MalformedTokenError(f"QR code is not a valid pickup token ({detail})", invalid_fields=fields)
    return InvalidInputError(detail, invalid_fields=fields)


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer request validation failures with the same body as core errors."""
    if not isinstance(exc, RequestValidationError):
        raise exc
    error = validation_error(exc.errors())
    logger.debug("%s %s rejected: %s", request.method, request.url.path, error.message)
    return await pickup_error_handler(request, error)

"""Encoding and decoding of the QR token exchanged at pickup time."""

from __future__ import annotations

from pydantic import ValidationError

from kidguard.core.errors import MalformedTokenError
from kidguard.core.settings import settings
from kidguard.schemas.token import TokenPayload


class TokenCodec:
    """Serialize ``{id, verificationHash}`` pairs to compact JSON and back."""

    def __init__(self, max_length: int | None = None) -> None:
        self.max_length = max_length or settings.max_token_length

    @staticmethod
    def encode(authorization_id: str, verification_hash: str) -> str:
        payload = TokenPayload.model_validate(
            {"id": authorization_id, "verificationHash": verification_hash}
        )
        return payload.model_dump_json(by_alias=True)

    def decode(self, token: str) -> TokenPayload:
        """Parse a scanned token.

        Raises:
            MalformedTokenError: Unless the input is a JSON object with exactly
                the ``id`` and ``verificationHash`` string fields.
        """
        if not isinstance(token, str) or not token.strip():
            raise MalformedTokenError("QR code is empty")
        if len(token) > self.max_length:
            raise MalformedTokenError("QR code payload is too large")
        try:
            return TokenPayload.model_validate_json(token)
        except ValidationError as err:
            fields = sorted({".".join(str(part) for part in e["loc"]) or "<root>" for e in err.errors()})
            raise MalformedTokenError(
                "QR code is not a valid pickup token",
                invalid_fields=fields,
            ) from err

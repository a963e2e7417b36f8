"""Wire schema of the pickup QR token."""

from pydantic import BaseModel, ConfigDict, Field


class TokenPayload(BaseModel):
    """The only data carried by a rendered QR code: an opaque id and its hash.

    Student identity and wallet addresses never travel in the token.
    """

    id: str = Field(..., min_length=1, max_length=64)
    verification_hash: str = Field(..., alias="verificationHash", min_length=1, max_length=128)

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

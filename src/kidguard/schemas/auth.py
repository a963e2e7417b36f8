"""Wallet authentication schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VerifySignatureRequest(BaseModel):
    """Check that ``signature`` over ``message`` came from ``expectedAddress``."""

    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)
    expected_address: str = Field(..., alias="expectedAddress")

    model_config = ConfigDict(populate_by_name=True)


class VerifySignatureResponse(BaseModel):
    is_valid: bool = Field(..., alias="isValid")
    recovered_address: str | None = Field(None, alias="recoveredAddress")

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    """Signed sign-in message fields; the server rebuilds the exact text."""

    wallet: str
    role: Literal["parent", "pickup", "staff"]
    nonce: str = Field(..., min_length=8, max_length=128)
    timestamp: int = Field(..., description="Unix seconds embedded in the message")
    signature: str


class LoginResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(..., description="Token type (typically 'bearer')")
    wallet: str
    role: str


class AuthMessageResponse(BaseModel):
    """Exact text the wallet should sign for the given sign-in parameters."""

    message: str

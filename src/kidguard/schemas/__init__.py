# src/kidguard/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .audit import ChainStatus, PickupHistoryEntry
from .auth import LoginRequest, LoginResponse, VerifySignatureRequest, VerifySignatureResponse
from .pickup import IssueRequest, IssueResponse, RedeemRequest, RedeemResponse
from .token import TokenPayload

__all__ = [
    "ChainStatus", "PickupHistoryEntry",
    "LoginRequest", "LoginResponse", "VerifySignatureRequest", "VerifySignatureResponse",
    "IssueRequest", "IssueResponse", "RedeemRequest", "RedeemResponse",
    "TokenPayload",
]

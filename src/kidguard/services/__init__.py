# src/kidguard/services/__init__.py
"""Business logic services for the KidGuard pickup service."""

from .audit_log import AuditLog
from .delegation import DelegationService
from .issuer import AuthorizationIssuer
from .redemption import RedemptionEngine
from .replay import ReplayProtectionService
from .signing import SignatureVerifier
from .token_codec import TokenCodec
from .wallet_auth import WalletAuthService

__all__ = [
    "AuditLog",
    "AuthorizationIssuer",
    "DelegationService",
    "RedemptionEngine",
    "ReplayProtectionService",
    "SignatureVerifier",
    "TokenCodec",
    "WalletAuthService",
]

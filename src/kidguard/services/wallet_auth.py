"""Wallet sign-in: prove control of an address by signing a fresh message."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from kidguard.core.errors import InvalidInputError, InvalidSignatureError
from kidguard.core.security import is_valid_address, normalize_address
from kidguard.core.settings import settings
from kidguard.models.directory import ROLES
from kidguard.services.replay import ReplayProtectionService
from kidguard.services.signing import SignatureVerifier, build_auth_message

logger = logging.getLogger(__name__)


class WalletAuthService:
    """Verify sign-in signatures built by ``build_auth_message``."""

    def __init__(
        self,
        replay_service: ReplayProtectionService,
        *,
        max_age_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.replay_service = replay_service
        self.max_age_seconds = max_age_seconds or settings.auth_message_max_age_seconds
        self._clock = clock

    def verify_login(
        self,
        *,
        wallet: str,
        role: str,
        nonce: str,
        timestamp: int,
        signature: str,
    ) -> str:
        """Return the normalised wallet if the signed sign-in message is valid.

        Raises:
            InvalidInputError: Unknown role, malformed wallet or stale timestamp.
            InvalidSignatureError: The signature does not recover ``wallet`` or
                the nonce was already used.
        """
        if role not in ROLES:
            raise InvalidInputError(f"Unknown role {role!r}", field="role")
        if not is_valid_address(wallet):
            raise InvalidInputError("wallet is not a valid address", field="wallet")
        if not nonce:
            raise InvalidInputError("nonce is required", field="nonce")

        age = int(self._clock()) - timestamp
        if abs(age) > self.max_age_seconds:
            raise InvalidInputError("Sign-in message has expired; sign a new one", field="timestamp")

        normalized = normalize_address(wallet)
        message = build_auth_message(role, normalized, nonce, timestamp)
        check = SignatureVerifier.check(message, signature, normalized)
        if not check.valid:
            raise InvalidSignatureError(
                "Signature does not match wallet",
                recovered_address=check.recovered_address,
            )
        if not self.replay_service.claim(normalized, nonce):
            logger.warning("Replayed sign-in nonce for %s", normalized)
            raise InvalidSignatureError("Sign-in message has already been used")
        return normalized

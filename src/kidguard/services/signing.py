"""Wallet signature workflows used by the API layer.

Two kinds of signed text pass through here:

* the sign-in message a wallet signs to prove control of an address, and
* the delegation message a parent signs to let another wallet collect a child.

Both are verified by recovering the signer with EIP-191 personal-message
recovery and comparing it to the claimed address.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from kidguard.core.errors import InvalidSignatureError
from kidguard.core.security import normalize_address, recover_personal_sign

logger = logging.getLogger(__name__)

AUTH_MESSAGE_TITLE = "Welcome to KidGuard!"
DELEGATION_MESSAGE_TITLE = "KidGuard - Child Pickup Authorization"


@dataclass(frozen=True)
class SignatureCheck:
    """Outcome of checking a signature against a claimed address."""

    valid: bool
    recovered_address: str | None


@dataclass(frozen=True)
class AuthorizationMessage:
    """Fields a parent signs when delegating pickup rights."""

    parent_wallet: str
    pickup_wallet: str
    student_id: str
    student_name: str
    start_date: str
    end_date: str
    timestamp: int  # epoch milliseconds


class SignatureVerifier:
    """Stateless recovery and comparison of wallet signatures."""

    @staticmethod
    def recover_signer(message: str, signature: str | bytes) -> str:
        """Return the lowercase address that signed ``message``.

        Raises:
            InvalidSignatureError: If the signature is malformed.
        """
        return recover_personal_sign(message, signature)

    @classmethod
    def check(cls, message: str, signature: str | bytes, claimed_address: str) -> SignatureCheck:
        """Recover the signer and compare it case-insensitively to ``claimed_address``."""
        try:
            recovered = cls.recover_signer(message, signature)
        except InvalidSignatureError as err:
            logger.warning("Rejected malformed signature for %s: %s", claimed_address, err)
            return SignatureCheck(valid=False, recovered_address=None)
        valid = recovered == normalize_address(claimed_address)
        if not valid:
            logger.warning(
                "Signature mismatch: expected=%s recovered=%s",
                normalize_address(claimed_address),
                recovered,
            )
        return SignatureCheck(valid=valid, recovered_address=recovered)

    @classmethod
    def verify(cls, message: str, signature: str | bytes, expected_address: str) -> bool:
        return cls.check(message, signature, expected_address).valid


def build_auth_message(role: str, wallet: str, nonce: str, timestamp: int) -> str:
    """Return the deterministic sign-in text for a wallet and role.

    Args:
        role: Role the wallet is signing in as.
        wallet: Wallet address; lowercased in the message.
        nonce: Caller-supplied random nonce.
        timestamp: Unix seconds at which the message was produced.
    """
    return (
        f"{AUTH_MESSAGE_TITLE}\n"
        "\n"
        f"Sign this message to authenticate your {role} role.\n"
        "\n"
        f"Wallet: {normalize_address(wallet)}\n"
        f"Role: {role}\n"
        f"Nonce: {nonce}\n"
        f"Timestamp: {timestamp}\n"
        "\n"
        "This request will not trigger a blockchain transaction or cost any gas fees."
    )


def build_authorization_message(params: AuthorizationMessage) -> str:
    """Return the human-readable delegation text a parent wallet signs."""
    authorized_at = datetime.fromtimestamp(params.timestamp / 1000, tz=UTC)
    lines = [
        DELEGATION_MESSAGE_TITLE,
        "",
        f"I, the parent with wallet {normalize_address(params.parent_wallet)},",
        f"authorize wallet {normalize_address(params.pickup_wallet)}",
        f"to pick up my child: {params.student_name} (ID: {params.student_id})",
        "",
        f"Valid from: {params.start_date}",
        f"Valid until: {params.end_date}",
        "",
        f"Authorized at: {authorized_at.isoformat(timespec='milliseconds')}",
        "",
        "Only sign if you trust the pickup person.",
    ]
    return "\n".join(lines)

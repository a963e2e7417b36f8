"""Low-level cryptographic primitives: wallet signatures and QR hashes."""
from __future__ import annotations

import hashlib
import hmac
import re

from eth_account import Account
from eth_account.messages import encode_defunct

from kidguard.core.errors import InvalidSignatureError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_SIGNATURE_HEX_LENGTH = 130  # 65 bytes: r || s || v


def is_valid_address(address: str) -> bool:
    """Return True for a 0x-prefixed, 20-byte hex address."""
    return bool(_ADDRESS_RE.match(address or ""))


def normalize_address(address: str) -> str:
    """Return the lowercase form used everywhere addresses are stored."""
    return address.strip().lower()


def decode_signature(signature: str | bytes) -> bytes:
    """Decode a 65-byte signature given as raw bytes or 0x-prefixed hex."""
    if isinstance(signature, bytes):
        raw = signature
    else:
        cleaned = signature.strip()
        if cleaned.startswith(("0x", "0X")):
            cleaned = cleaned[2:]
        if len(cleaned) != _SIGNATURE_HEX_LENGTH:
            raise InvalidSignatureError("Signature must be 65 bytes of hex")
        try:
            raw = bytes.fromhex(cleaned)
        except ValueError as err:
            raise InvalidSignatureError(f"Invalid hex encoding: {err}") from err
    if len(raw) != _SIGNATURE_HEX_LENGTH // 2:
        raise InvalidSignatureError("Signature must be 65 bytes")
    return raw


def recover_personal_sign(message: str, signature: str | bytes) -> str:
    """Recover the lowercase address that produced an EIP-191 ``personal_sign``.

    Raises:
        InvalidSignatureError: If the signature is malformed or not recoverable.
    """
    raw = decode_signature(signature)
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=raw)
    except Exception as err:
        # eth-account raises a mix of ValueError and eth_keys BadSignature subclasses.
        raise InvalidSignatureError(f"Signature recovery failed: {err}") from err
    return normalize_address(recovered)


def compute_verification_hash(
    secret: str,
    student_id: str,
    pickup_wallet: str,
    issued_at_millis: int,
) -> str:
    """Return the keyed hash binding a QR token to its student, wallet and issue time."""
    data = f"{student_id}-{normalize_address(pickup_wallet)}-{issued_at_millis}"
    return hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).hexdigest()


def hashes_match(left: str, right: str) -> bool:
    """Constant-time comparison for hex digests."""
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))

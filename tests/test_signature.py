# tests/test_signature.py
"""Wallet signature recovery and the signed message formats."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from eth_account import Account

from kidguard.core.errors import InvalidSignatureError
from kidguard.core.security import (
    compute_verification_hash,
    decode_signature,
    hashes_match,
    is_valid_address,
    recover_personal_sign,
)
from kidguard.services.signing import (
    AuthorizationMessage,
    SignatureVerifier,
    build_auth_message,
    build_authorization_message,
)
from tests.conftest import sign_text


def _flip_hex_char(value: str, index: int) -> str:
    replacement = "0" if value[index] != "0" else "1"
    return value[:index] + replacement + value[index + 1:]


def test_round_trip_recovers_signer() -> None:
    account = Account.create()
    signature = sign_text(account, "hello gate")
    assert recover_personal_sign("hello gate", signature) == account.address.lower()
    assert SignatureVerifier.verify("hello gate", signature, account.address)


def test_verify_is_case_insensitive_on_address() -> None:
    account = Account.create()
    signature = sign_text(account, "case")
    assert SignatureVerifier.verify("case", signature, account.address.lower())
    assert SignatureVerifier.verify("case", signature, account.address.upper().replace("0X", "0x"))


def test_mutated_message_fails_verification() -> None:
    account = Account.create()
    signature = sign_text(account, "pick up Emma")
    check = SignatureVerifier.check("pick up Emmb", signature, account.address)
    assert check.valid is False
    assert check.recovered_address != account.address.lower()


def test_mutated_signature_fails_verification() -> None:
    account = Account.create()
    signature = sign_text(account, "pick up Emma")
    # Change a byte of ``r``; recovery either fails or yields another address.
    tampered = _flip_hex_char(signature, 10)
    assert SignatureVerifier.verify("pick up Emma", tampered, account.address) is False


def test_other_signer_is_rejected() -> None:
    signer, claimed = Account.create(), Account.create()
    signature = sign_text(signer, "message")
    check = SignatureVerifier.check("message", signature, claimed.address)
    assert check.valid is False
    assert check.recovered_address == signer.address.lower()


@pytest.mark.parametrize("signature", ["", "0x1234", "zz" * 65, "0x" + "g" * 130])
def test_malformed_signature_reports_invalid(signature: str) -> None:
    check = SignatureVerifier.check("message", signature, Account.create().address)
    assert check.valid is False
    assert check.recovered_address is None


def test_decode_signature_rejects_wrong_length() -> None:
    with pytest.raises(InvalidSignatureError):
        decode_signature(b"\x00" * 64)
    assert len(decode_signature("0x" + "ab" * 65)) == 65


def test_address_validation() -> None:
    assert is_valid_address("0x" + "aB" * 20)
    assert not is_valid_address("0x" + "a" * 39)
    assert not is_valid_address("a" * 42)
    assert not is_valid_address("")


def test_auth_message_is_deterministic() -> None:
    wallet = "0x" + "AB" * 20
    first = build_auth_message("parent", wallet, "n0nce-123", 1760884200)
    second = build_auth_message("parent", wallet.lower(), "n0nce-123", 1760884200)
    assert first == second
    assert first.startswith("Welcome to KidGuard!")
    assert f"Wallet: {wallet.lower()}" in first
    assert "Nonce: n0nce-123" in first
    assert "Timestamp: 1760884200" in first


def test_authorization_message_lists_every_field() -> None:
    params = AuthorizationMessage(
        parent_wallet="0x" + "11" * 20,
        pickup_wallet="0x" + "22" * 20,
        student_id="CH001",
        student_name="Emma Johnson",
        start_date="2026-10-19T00:00:00+00:00",
        end_date="2026-10-26T00:00:00+00:00",
        timestamp=int(datetime(2026, 10, 19, tzinfo=UTC).timestamp() * 1000),
    )
    text = build_authorization_message(params)
    assert text.splitlines()[0] == "KidGuard - Child Pickup Authorization"
    assert "Emma Johnson (ID: CH001)" in text
    assert "Valid until: 2026-10-26T00:00:00+00:00" in text
    assert "Authorized at: 2026-10-19T00:00:00.000+00:00" in text


def test_verification_hash_binds_every_input() -> None:
    base = compute_verification_hash("secret", "CH001", "0x" + "aa" * 20, 1000)
    assert base == compute_verification_hash("secret", "CH001", "0x" + "AA" * 20, 1000)
    assert base != compute_verification_hash("other", "CH001", "0x" + "aa" * 20, 1000)
    assert base != compute_verification_hash("secret", "CH002", "0x" + "aa" * 20, 1000)
    assert base != compute_verification_hash("secret", "CH001", "0x" + "bb" * 20, 1000)
    assert base != compute_verification_hash("secret", "CH001", "0x" + "aa" * 20, 1001)
    assert hashes_match(base, base)
    assert not hashes_match(base, base[:-1])

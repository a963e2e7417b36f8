# tests/v1/test_dependencies.py
"""Tests for bearer token validation."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from kidguard.api.v1.dependencies import get_current_principal
from kidguard.core.settings import settings


def _credentials(claims: dict, secret: str | None = None) -> HTTPAuthorizationCredentials:
    token = jwt.encode(claims, secret or settings.secret_key, algorithm=settings.jwt_algorithm)
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _future() -> datetime:
    return datetime.now(UTC) + timedelta(minutes=5)


def test_valid_token_yields_principal() -> None:
    principal = get_current_principal(_credentials({"sub": "0xabc", "role": "staff", "exp": _future()}))
    assert principal.wallet == "0xabc"
    assert principal.role == "staff"


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "parent"},
        {"sub": "0xabc"},
        {"sub": "0xabc", "role": "admin"},
        {"sub": "0xabc", "role": "parent", "exp": datetime.now(UTC) - timedelta(minutes=1)},
    ],
)
def test_invalid_claims_rejected(claims) -> None:
    with pytest.raises(HTTPException) as exc_info:
        get_current_principal(_credentials(claims))
    assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED


def test_wrong_secret_rejected() -> None:
    with pytest.raises(HTTPException):
        get_current_principal(
            _credentials({"sub": "0xabc", "role": "parent", "exp": _future()}, secret="wrong-secret")
        )


def test_requests_without_token_are_refused(client) -> None:
    response = client.post("/api/v1/pickup/qr", json={"studentId": "CH001"})
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_requests_with_garbage_token_are_refused(client) -> None:
    response = client.post(
        "/api/v1/pickup/qr",
        json={"studentId": "CH001"},
        headers={"Authorization": "Bearer not.a.valid.jwt"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

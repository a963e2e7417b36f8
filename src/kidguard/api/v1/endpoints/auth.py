# src/kidguard/api/v1/endpoints/auth.py
"""Wallet authentication endpoints for the KidGuard API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, HTTPException, status
from jose import jwt

from kidguard.api.v1.dependencies import SessionDep, WalletAuthDep
from kidguard.core.security import is_valid_address, normalize_address
from kidguard.core.settings import settings
from kidguard.models import WalletAccount
from kidguard.models.directory import ROLE_STAFF
from kidguard.schemas.auth import (
    AuthMessageResponse,
    LoginRequest,
    LoginResponse,
    VerifySignatureRequest,
    VerifySignatureResponse,
)
from kidguard.services.signing import SignatureVerifier, build_auth_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for wallet authentication."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


@router.get(
    "/message",
    summary="Return the exact sign-in text for a wallet to sign",
    response_model=AuthMessageResponse,
)
async def get_auth_message(wallet: str, role: str, nonce: str, timestamp: int) -> AuthMessageResponse:
    if not is_valid_address(wallet):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid wallet address")
    return AuthMessageResponse(
        message=build_auth_message(role, normalize_address(wallet), nonce, timestamp)
    )


@router.post(
    "/verify-signature",
    summary="Check that a personal_sign signature came from an address",
    response_model=VerifySignatureResponse,
)
async def verify_signature(payload: VerifySignatureRequest) -> VerifySignatureResponse:
    """Malformed signatures report ``isValid: false`` rather than an error."""
    check = SignatureVerifier.check(payload.message, payload.signature, payload.expected_address)
    return VerifySignatureResponse(
        is_valid=check.valid,
        recovered_address=check.recovered_address,
    )


@router.post(
    "/login",
    summary="Exchange a signed sign-in message for an access token",
    response_model=LoginResponse,
)
def login_wallet(
    payload: LoginRequest,
    wallet_auth: WalletAuthDep,
    db: SessionDep,
) -> LoginResponse:
    wallet = wallet_auth.verify_login(
        wallet=payload.wallet,
        role=payload.role,
        nonce=payload.nonce,
        timestamp=payload.timestamp,
        signature=payload.signature,
    )

    account = db.get(WalletAccount, wallet)
    account_role = account.role if account is not None else None
    if payload.role == ROLE_STAFF and account_role != ROLE_STAFF:
        logger.warning("Staff sign-in refused for unregistered wallet %s", wallet)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Wallet is not registered as school staff",
        )
    if account_role is not None and account_role != payload.role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Wallet is registered as {account_role}",
        )

    access_token = create_access_token(wallet, {"role": payload.role})
    logger.info("Wallet %s signed in as %s", wallet, payload.role)
    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        wallet=wallet,
        role=payload.role,
    )

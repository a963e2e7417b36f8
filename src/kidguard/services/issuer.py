"""Issuance of single-use pickup QR tokens."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from kidguard.core.errors import (
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    StudentNotFoundError,
)
from kidguard.core.security import compute_verification_hash, is_valid_address, normalize_address
from kidguard.core.settings import settings
from kidguard.db.time import to_millis, truncate_to_millis, utcnow
from kidguard.services.authorization_store import AuthorizationStore
from kidguard.services.bounded import bounded_call
from kidguard.services.directory import StudentDirectory
from kidguard.services.records import AuthorizationRecord, StudentRecord
from kidguard.services.token_codec import TokenCodec

logger = logging.getLogger(__name__)

SELF_PICKUP_RELATIONSHIP = "Parent"
_AUTHORIZATION_ID_BYTES = 16


@dataclass(frozen=True)
class IssuedAuthorization:
    """What the requester receives: the QR token plus display fields."""

    token: str
    authorization_id: str
    student_id: str
    student_name: str
    expires_at: datetime
    relationship: str


class AuthorizationIssuer:
    """Check a requester's pickup rights and mint a short-lived token.

    Validation happens entirely before persistence: a rejected request never
    leaves a record behind.
    """

    def __init__(
        self,
        store: AuthorizationStore,
        directory: StudentDirectory,
        codec: TokenCodec | None = None,
        *,
        secret: str | None = None,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.codec = codec or TokenCodec()
        self._secret = secret or settings.qr_secret_key
        self.ttl = ttl or timedelta(minutes=settings.qr_token_ttl_minutes)
        self._clock = clock
        self._timeout = timeout or settings.store_timeout_seconds

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        return await bounded_call(operation, func, *args, timeout=self._timeout)

    async def issue(self, student_id: str, requester_wallet: str) -> IssuedAuthorization:
        """Issue a pickup token for ``student_id`` to ``requester_wallet``.

        Raises:
            InvalidInputError: Missing student id or malformed wallet.
            StudentNotFoundError: The directory has no such student.
            NotAuthorizedError: The wallet is neither the parent nor a current delegate.
        """
        student_id = (student_id or "").strip()
        if not student_id:
            raise InvalidInputError("studentId is required", field="studentId")
        if not is_valid_address(requester_wallet):
            raise InvalidInputError("Requester wallet is not a valid address", field="wallet")
        wallet = normalize_address(requester_wallet)

        student: StudentRecord | None = await self._call(
            "student lookup", self.directory.get_student, student_id
        )
        if student is None:
            raise StudentNotFoundError(student_id=student_id)

        issued_at = truncate_to_millis(self._clock())
        relationship = await self._resolve_relationship(student, wallet, issued_at)

        record = AuthorizationRecord(
            id=secrets.token_hex(_AUTHORIZATION_ID_BYTES),
            verification_hash=compute_verification_hash(
                self._secret, student.id, wallet, to_millis(issued_at)
            ),
            student_id=student.id,
            pickup_wallet=wallet,
            parent_wallet=normalize_address(student.parent_wallet),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )
        await self._call("authorization create", self.store.create, record)
        logger.info(
            "Issued pickup authorization %s for student %s to %s (%s), expires %s",
            record.id,
            record.student_id,
            wallet,
            relationship,
            record.expires_at.isoformat(),
        )
        return IssuedAuthorization(
            token=self.codec.encode(record.id, record.verification_hash),
            authorization_id=record.id,
            student_id=student.id,
            student_name=student.name,
            expires_at=record.expires_at,
            relationship=relationship,
        )

    async def _resolve_relationship(
        self, student: StudentRecord, wallet: str, now: datetime
    ) -> str:
        """Return how ``wallet`` relates to the student, or raise NotAuthorizedError."""
        if wallet == normalize_address(student.parent_wallet):
            return SELF_PICKUP_RELATIONSHIP

        delegations = await self._call(
            "delegation lookup", self.store.list_delegations_for, wallet
        )
        for delegation in delegations:
            if delegation.student_id != student.id:
                continue
            if normalize_address(delegation.parent_wallet) != normalize_address(student.parent_wallet):
                continue
            if delegation.is_current(now):
                return delegation.relationship

        logger.info("Refused pickup token for %s: %s holds no current delegation", student.id, wallet)
        raise NotAuthorizedError(student_id=student.id)

    async def revoke(self, authorization_id: str, requester_wallet: str) -> AuthorizationRecord:
        """Deactivate an unexpired token; only its parent or pickup wallet may do so."""
        record: AuthorizationRecord | None = await self._call(
            "authorization fetch", self.store.get, authorization_id
        )
        if record is None:
            raise NotFoundError(authorization_id=authorization_id)
        wallet = normalize_address(requester_wallet)
        if wallet not in (record.parent_wallet, record.pickup_wallet):
            raise NotAuthorizedError("Only the parent or pickup wallet may revoke this QR code")
        await self._call("authorization revoke", self.store.set_active, authorization_id, False)
        logger.info("Revoked pickup authorization %s by %s", authorization_id, wallet)
        return await self._call("authorization fetch", self.store.get, authorization_id)

    async def list_active_for(self, pickup_wallet: str) -> list[AuthorizationRecord]:
        """Return the wallet's tokens that could still be redeemed right now."""
        records = await self._call(
            "authorization list", self.store.list_records_for, normalize_address(pickup_wallet)
        )
        now = self._clock()
        return [r for r in records if r.active and not r.consumed and not r.is_expired(now)]

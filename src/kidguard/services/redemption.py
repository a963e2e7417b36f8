"""Redemption of scanned pickup tokens.

A scanned token moves through these states::

    Unknown -> fetched -> {Valid, Expired, AlreadyConsumed, Revoked, Mismatched}
    Valid -> Consumed (terminal)

The checks before the compare-and-set only produce precise error messages.
What actually prevents a double pickup is the store's atomic
``conditional_set_consumed``; redemption never reads, checks and then writes
the consumed flag in separate steps.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from kidguard.core.errors import (
    AlreadyConsumedError,
    AuditAppendError,
    ExpiredError,
    InvalidInputError,
    MalformedTokenError,
    NotFoundError,
    RevokedError,
    StoreUnavailableError,
    StudentMismatchError,
    TamperedTokenError,
)
from kidguard.core.security import compute_verification_hash, hashes_match
from kidguard.core.settings import settings
from kidguard.db.time import to_millis, truncate_to_millis, utcnow
from kidguard.schemas.token import TokenPayload
from kidguard.services.audit_log import AuditLog
from kidguard.services.authorization_store import AuthorizationStore
from kidguard.services.bounded import bounded_call
from kidguard.services.records import AuditDraft, AuthorizationRecord, PickupAuditEntry
from kidguard.services.token_codec import TokenCodec

logger = logging.getLogger(__name__)


class RedemptionEngine:
    """Verify and consume pickup tokens at the school gate."""

    def __init__(
        self,
        store: AuthorizationStore,
        audit_log: AuditLog,
        codec: TokenCodec | None = None,
        *,
        secret: str | None = None,
        clock: Callable[[], datetime] = utcnow,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.audit_log = audit_log
        self.codec = codec or TokenCodec()
        self._secret = secret or settings.qr_secret_key
        self._clock = clock
        self._timeout = timeout or settings.store_timeout_seconds

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        return await bounded_call(operation, func, *args, timeout=self._timeout)

    def _decode(self, token: str) -> TokenPayload:
        try:
            return self.codec.decode(token)
        except MalformedTokenError as err:
            logger.debug("Rejected malformed pickup token: %s", err.details)
            raise

    async def check(self, token: str, claimed_student_id: str | None = None) -> AuthorizationRecord:
        """Run every redemption check without consuming the token."""
        payload = self._decode(token)
        return await self._validate(payload, claimed_student_id)

    async def redeem(
        self,
        token: str,
        staff_id: str,
        claimed_student_id: str | None = None,
    ) -> PickupAuditEntry:
        """Consume ``token`` and append the pickup to the audit chain.

        Raises:
            MalformedTokenError, NotFoundError, RevokedError, ExpiredError,
            AlreadyConsumedError, StudentMismatchError, TamperedTokenError:
                Terminal failures naming the violated invariant.
            StoreUnavailableError: The store timed out before the token was consumed.
            AuditAppendError: The token was consumed but the audit entry failed.
        """
        staff_id = (staff_id or "").strip()
        if not staff_id:
            raise InvalidInputError("staffId is required", field="staffId")
        payload = self._decode(token)
        record = await self._validate(payload, claimed_student_id)

        consumed_at = truncate_to_millis(self._clock())
        won = await self._call(
            "authorization consume",
            self.store.conditional_set_consumed,
            record.id,
            False,
            consumed_at,
        )
        if not won:
            logger.info("Lost consume race for authorization %s", record.id)
            raise AlreadyConsumedError(authorization_id=record.id)

        draft = AuditDraft(
            authorization_id=record.id,
            pickup_by=record.pickup_wallet,
            staff_id=staff_id,
            student_id=record.student_id,
            recorded_at=consumed_at,
        )
        try:
            entry: PickupAuditEntry = await self._call("audit append", self.audit_log.append, draft)
        except StoreUnavailableError as err:
            # The token stays consumed; the missing entry needs reconciliation.
            logger.error(
                "Authorization %s consumed but audit append failed: %s", record.id, err.message
            )
            raise AuditAppendError(authorization_id=record.id) from err

        logger.info(
            "Redeemed authorization %s: student %s collected by %s, staff %s",
            record.id,
            record.student_id,
            record.pickup_wallet,
            staff_id,
        )
        return entry

    async def _validate(
        self, payload: TokenPayload, claimed_student_id: str | None
    ) -> AuthorizationRecord:
        record: AuthorizationRecord | None = await self._call(
            "authorization fetch", self.store.get, payload.id
        )
        if record is None:
            raise NotFoundError(authorization_id=payload.id)
        if not record.active:
            raise RevokedError(authorization_id=record.id)

        now = self._clock()
        # Expiry is reported ahead of consumption: the remedies differ.
        if record.is_expired(now):
            raise ExpiredError(
                authorization_id=record.id,
                expired_at=record.expires_at.isoformat(),
            )
        if record.consumed:
            raise AlreadyConsumedError(
                authorization_id=record.id,
                consumed_at=record.consumed_at.isoformat() if record.consumed_at else None,
            )

        claimed = (claimed_student_id or "").strip()
        if claimed and claimed != record.student_id:
            raise StudentMismatchError(
                f"QR code is for student {record.student_id}, not {claimed}",
                token_student_id=record.student_id,
                claimed_student_id=claimed,
            )

        expected = compute_verification_hash(
            self._secret,
            record.student_id,
            record.pickup_wallet,
            to_millis(record.issued_at),
        )
        token_matches = hashes_match(payload.verification_hash, record.verification_hash)
        record_intact = hashes_match(expected, record.verification_hash)
        if not (token_matches and record_intact):
            logger.warning(
                "Security event: verification hash mismatch for authorization %s "
                "(token_matches=%s record_intact=%s)",
                record.id,
                token_matches,
                record_intact,
            )
            raise TamperedTokenError(authorization_id=record.id)
        return record

"""Parent-signed pickup delegations."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from typing import Any

from kidguard.core.errors import (
    InvalidInputError,
    InvalidSignatureError,
    NotAuthorizedError,
    NotFoundError,
    StudentNotFoundError,
)
from kidguard.core.security import is_valid_address, normalize_address
from kidguard.core.settings import settings
from kidguard.db.time import ensure_utc, utcnow
from kidguard.services.authorization_store import AuthorizationStore
from kidguard.services.bounded import bounded_call
from kidguard.services.directory import StudentDirectory
from kidguard.services.records import DelegationRecord, StudentRecord
from kidguard.services.signing import (
    AuthorizationMessage,
    SignatureVerifier,
    build_authorization_message,
)

logger = logging.getLogger(__name__)

_MAX_RELATIONSHIP_LENGTH = 64


class DelegationService:
    """Create and withdraw the grants that let a third party request pickup tokens."""

    def __init__(
        self,
        store: AuthorizationStore,
        directory: StudentDirectory,
        *,
        clock: Callable[[], datetime] = utcnow,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self._clock = clock
        self._timeout = timeout or settings.store_timeout_seconds

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        return await bounded_call(operation, func, *args, timeout=self._timeout)

    async def register(
        self,
        *,
        parent_wallet: str,
        pickup_wallet: str,
        student_id: str,
        relationship: str,
        start_date: datetime,
        end_date: datetime,
        timestamp: int,
        signature: str,
    ) -> DelegationRecord:
        """Store a delegation once the parent's signature over it checks out."""
        for field_name, address in (("parentWallet", parent_wallet), ("pickupWallet", pickup_wallet)):
            if not is_valid_address(address):
                raise InvalidInputError(f"{field_name} is not a valid address", field=field_name)
        parent = normalize_address(parent_wallet)
        pickup = normalize_address(pickup_wallet)
        if parent == pickup:
            raise InvalidInputError("A parent cannot delegate to their own wallet", field="pickupWallet")
        relationship = (relationship or "").strip()
        if not relationship or len(relationship) > _MAX_RELATIONSHIP_LENGTH:
            raise InvalidInputError("relationship is required", field="relationship")
        start = ensure_utc(start_date)
        end = ensure_utc(end_date)
        if end <= start:
            raise InvalidInputError("endDate must be after startDate", field="endDate")

        student: StudentRecord | None = await self._call(
            "student lookup", self.directory.get_student, student_id
        )
        if student is None:
            raise StudentNotFoundError(student_id=student_id)
        if normalize_address(student.parent_wallet) != parent:
            raise NotAuthorizedError("Only the student's parent can delegate pickup")

        message = build_authorization_message(
            AuthorizationMessage(
                parent_wallet=parent,
                pickup_wallet=pickup,
                student_id=student.id,
                student_name=student.name,
                start_date=start.isoformat(),
                end_date=end.isoformat(),
                timestamp=timestamp,
            )
        )
        check = SignatureVerifier.check(message, signature, parent)
        if not check.valid:
            raise InvalidSignatureError(
                "Signature does not match the parent wallet",
                recovered_address=check.recovered_address,
            )

        delegation = DelegationRecord(
            id=secrets.token_hex(16),
            student_id=student.id,
            parent_wallet=parent,
            pickup_wallet=pickup,
            relationship=relationship,
            start_date=start,
            end_date=end,
            message=message,
            signature=signature,
            created_at=self._clock(),
        )
        await self._call("delegation create", self.store.create_delegation, delegation)
        logger.info(
            "Parent %s delegated pickup of %s to %s until %s",
            parent,
            student.id,
            pickup,
            end.isoformat(),
        )
        return delegation

    async def deactivate(self, delegation_id: str, parent_wallet: str) -> None:
        delegation: DelegationRecord | None = await self._call(
            "delegation fetch", self.store.get_delegation, delegation_id
        )
        if delegation is None:
            raise NotFoundError("Delegation not found", delegation_id=delegation_id)
        if delegation.parent_wallet != normalize_address(parent_wallet):
            raise NotAuthorizedError("Only the granting parent can withdraw a delegation")
        await self._call(
            "delegation deactivate", self.store.set_delegation_active, delegation_id, False
        )
        logger.info("Delegation %s withdrawn by %s", delegation_id, delegation.parent_wallet)

    async def list_for_pickup(self, pickup_wallet: str) -> list[DelegationRecord]:
        """Return every delegation naming the wallet, with ``is_current`` evaluated by callers."""
        return await self._call(
            "delegation lookup", self.store.list_delegations_for, normalize_address(pickup_wallet)
        )

"""Storage of pickup authorizations and delegations.

Every ``AuthorizationStore`` implementation must make
``conditional_set_consumed`` atomic: of any number of concurrent callers
racing on one record, exactly one may observe ``True``. Redemption relies on
this and on nothing else to prevent a token being used twice.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from kidguard.db.time import ensure_utc, utcnow
from kidguard.models import Authorization, Delegation
from kidguard.services.records import AuthorizationRecord, DelegationRecord


class AuthorizationStore(Protocol):
    """Keyed storage for authorization records with compare-and-set."""

    def get(self, authorization_id: str) -> AuthorizationRecord | None: ...

    def create(self, record: AuthorizationRecord) -> str: ...

    def conditional_set_consumed(
        self,
        authorization_id: str,
        expected_consumed: bool = False,
        consumed_at: datetime | None = None,
    ) -> bool: ...

    def set_active(self, authorization_id: str, active: bool) -> bool: ...

    def list_records_for(self, pickup_wallet: str) -> list[AuthorizationRecord]: ...

    def list_delegations_for(self, pickup_wallet: str) -> list[DelegationRecord]: ...

    def get_delegation(self, delegation_id: str) -> DelegationRecord | None: ...

    def create_delegation(self, delegation: DelegationRecord) -> str: ...

    def set_delegation_active(self, delegation_id: str, active: bool) -> bool: ...


def _to_record(row: Authorization) -> AuthorizationRecord:
    return AuthorizationRecord(
        id=row.id,
        verification_hash=row.verification_hash,
        student_id=row.student_id,
        pickup_wallet=row.pickup_wallet,
        parent_wallet=row.parent_wallet,
        issued_at=ensure_utc(row.issued_at),
        expires_at=ensure_utc(row.expires_at),
        consumed=row.consumed,
        active=row.active,
        consumed_at=ensure_utc(row.consumed_at) if row.consumed_at else None,
    )


def _to_delegation(row: Delegation) -> DelegationRecord:
    return DelegationRecord(
        id=row.id,
        student_id=row.student_id,
        parent_wallet=row.parent_wallet,
        pickup_wallet=row.pickup_wallet,
        relationship=row.relationship,
        start_date=ensure_utc(row.start_date),
        end_date=ensure_utc(row.end_date),
        message=row.message,
        signature=row.signature,
        active=row.active,
        created_at=ensure_utc(row.created_at) if row.created_at else None,
    )


class SqlAlchemyAuthorizationStore:
    """Authorization store backed by the relational database.

    Each call runs in its own short transaction so the store can be used from
    worker threads; the consumed flip is a single conditional ``UPDATE``.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, authorization_id: str) -> AuthorizationRecord | None:
        with self._session_factory() as session:
            row = session.get(Authorization, authorization_id)
            return _to_record(row) if row is not None else None

    def create(self, record: AuthorizationRecord) -> str:
        with self._session_factory() as session, session.begin():
            session.add(
                Authorization(
                    id=record.id,
                    verification_hash=record.verification_hash,
                    student_id=record.student_id,
                    pickup_wallet=record.pickup_wallet,
                    parent_wallet=record.parent_wallet,
                    issued_at=record.issued_at,
                    expires_at=record.expires_at,
                    consumed=record.consumed,
                    active=record.active,
                )
            )
        return record.id

    def conditional_set_consumed(
        self,
        authorization_id: str,
        expected_consumed: bool = False,
        consumed_at: datetime | None = None,
    ) -> bool:
        stmt = (
            update(Authorization)
            .where(
                Authorization.id == authorization_id,
                Authorization.consumed == expected_consumed,
            )
            .values(
                consumed=not expected_consumed,
                consumed_at=(consumed_at or utcnow()) if not expected_consumed else None,
            )
        )
        with self._session_factory() as session, session.begin():
            result = session.execute(stmt)
            return result.rowcount == 1

    def set_active(self, authorization_id: str, active: bool) -> bool:
        stmt = (
            update(Authorization)
            .where(Authorization.id == authorization_id)
            .values(active=active)
        )
        with self._session_factory() as session, session.begin():
            return session.execute(stmt).rowcount == 1

    def list_records_for(self, pickup_wallet: str) -> list[AuthorizationRecord]:
        stmt = (
            select(Authorization)
            .where(Authorization.pickup_wallet == pickup_wallet)
            .order_by(Authorization.issued_at.desc())
        )
        with self._session_factory() as session:
            return [_to_record(row) for row in session.scalars(stmt)]

    def list_delegations_for(self, pickup_wallet: str) -> list[DelegationRecord]:
        stmt = select(Delegation).where(Delegation.pickup_wallet == pickup_wallet)
        with self._session_factory() as session:
            return [_to_delegation(row) for row in session.scalars(stmt)]

    def get_delegation(self, delegation_id: str) -> DelegationRecord | None:
        with self._session_factory() as session:
            row = session.get(Delegation, delegation_id)
            return _to_delegation(row) if row is not None else None

    def create_delegation(self, delegation: DelegationRecord) -> str:
        with self._session_factory() as session, session.begin():
            session.add(
                Delegation(
                    id=delegation.id,
                    student_id=delegation.student_id,
                    parent_wallet=delegation.parent_wallet,
                    pickup_wallet=delegation.pickup_wallet,
                    relationship=delegation.relationship,
                    start_date=delegation.start_date,
                    end_date=delegation.end_date,
                    message=delegation.message,
                    signature=delegation.signature,
                    active=delegation.active,
                    created_at=delegation.created_at or utcnow(),
                )
            )
        return delegation.id

    def set_delegation_active(self, delegation_id: str, active: bool) -> bool:
        stmt = update(Delegation).where(Delegation.id == delegation_id).values(active=active)
        with self._session_factory() as session, session.begin():
            return session.execute(stmt).rowcount == 1


class InMemoryAuthorizationStore:
    """Process-local store for embedding and tests.

    A single lock guards every mutation, which makes the compare-and-set
    atomic across threads in this process.
    """

    def __init__(self) -> None:
        self._records: dict[str, AuthorizationRecord] = {}
        self._delegations: dict[str, DelegationRecord] = {}
        self._lock = Lock()

    def get(self, authorization_id: str) -> AuthorizationRecord | None:
        with self._lock:
            return self._records.get(authorization_id)

    def create(self, record: AuthorizationRecord) -> str:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Authorization {record.id} already exists")
            self._records[record.id] = record
        return record.id

    def conditional_set_consumed(
        self,
        authorization_id: str,
        expected_consumed: bool = False,
        consumed_at: datetime | None = None,
    ) -> bool:
        with self._lock:
            record = self._records.get(authorization_id)
            if record is None or record.consumed != expected_consumed:
                return False
            if expected_consumed:
                self._records[authorization_id] = replace(record, consumed=False, consumed_at=None)
            else:
                self._records[authorization_id] = record.consumed_copy(consumed_at or utcnow())
            return True

    def set_active(self, authorization_id: str, active: bool) -> bool:
        with self._lock:
            record = self._records.get(authorization_id)
            if record is None:
                return False
            self._records[authorization_id] = replace(record, active=active)
            return True

    def list_records_for(self, pickup_wallet: str) -> list[AuthorizationRecord]:
        with self._lock:
            records = [r for r in self._records.values() if r.pickup_wallet == pickup_wallet]
        return sorted(records, key=lambda r: r.issued_at, reverse=True)

    def list_delegations_for(self, pickup_wallet: str) -> list[DelegationRecord]:
        with self._lock:
            return [d for d in self._delegations.values() if d.pickup_wallet == pickup_wallet]

    def get_delegation(self, delegation_id: str) -> DelegationRecord | None:
        with self._lock:
            return self._delegations.get(delegation_id)

    def create_delegation(self, delegation: DelegationRecord) -> str:
        with self._lock:
            self._delegations[delegation.id] = delegation
        return delegation.id

    def set_delegation_active(self, delegation_id: str, active: bool) -> bool:
        with self._lock:
            delegation = self._delegations.get(delegation_id)
            if delegation is None:
                return False
            self._delegations[delegation_id] = replace(delegation, active=active)
            return True

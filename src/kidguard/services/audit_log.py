"""Append-only, hash-chained log of completed pickups.

Every entry carries ``audit_hash`` (a BLAKE3 hash of its own fields) and
``chain_hash`` (a hash of the previous entry's ``chain_hash`` and its own
``audit_hash``). The log is a single global chain, so deleting, reordering or
editing any stored entry is detected by recomputing the chain forward.

Appends must be serialised per log: two writers that build from the same tail
would fork the chain. Backends therefore expose ``append_transactional``,
which hands the builder the tail as seen inside the write transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kidguard.core.errors import AuditConflictError
from kidguard.core.settings import settings
from kidguard.db.time import ensure_utc, to_millis
from kidguard.models import PickupAudit
from kidguard.services.records import AuditDraft, PickupAuditEntry
from kidguard.utils.hash import GENESIS_CHAIN_HASH, chain_hash, hash_fields

logger = logging.getLogger(__name__)

EntryBuilder = Callable[[PickupAuditEntry | None], PickupAuditEntry]


def compute_audit_hash(
    authorization_id: str,
    pickup_by: str,
    staff_id: str,
    student_id: str,
    recorded_at_millis: int,
) -> str:
    """Return the content hash of an audit entry's fields."""
    return hash_fields(
        "pickup",
        authorization_id,
        pickup_by,
        staff_id,
        student_id,
        str(recorded_at_millis),
    )


def chain_entry(draft: AuditDraft) -> EntryBuilder:
    """Return a builder that links ``draft`` onto whatever tail the backend supplies."""

    def _build(previous: PickupAuditEntry | None) -> PickupAuditEntry:
        audit_hash = compute_audit_hash(
            draft.authorization_id,
            draft.pickup_by,
            draft.staff_id,
            draft.student_id,
            to_millis(draft.recorded_at),
        )
        previous_chain = previous.chain_hash if previous else GENESIS_CHAIN_HASH
        return PickupAuditEntry(
            sequence=(previous.sequence + 1) if previous else 1,
            authorization_id=draft.authorization_id,
            pickup_by=draft.pickup_by,
            staff_id=draft.staff_id,
            student_id=draft.student_id,
            recorded_at=draft.recorded_at,
            audit_hash=audit_hash,
            chain_hash=chain_hash(previous_chain, audit_hash),
        )

    return _build


def verify_entries(entries: Sequence[PickupAuditEntry]) -> bool:
    """Recompute ``entries`` forward from the genesis value."""
    previous_chain = GENESIS_CHAIN_HASH
    for expected_sequence, entry in enumerate(entries, start=1):
        if entry.sequence != expected_sequence:
            logger.warning("Audit chain gap at sequence %d", expected_sequence)
            return False
        audit_hash = compute_audit_hash(
            entry.authorization_id,
            entry.pickup_by,
            entry.staff_id,
            entry.student_id,
            to_millis(entry.recorded_at),
        )
        if audit_hash != entry.audit_hash:
            logger.warning("Audit entry %d content hash mismatch", entry.sequence)
            return False
        expected_chain = chain_hash(previous_chain, audit_hash)
        if expected_chain != entry.chain_hash:
            logger.warning("Audit entry %d chain hash mismatch", entry.sequence)
            return False
        previous_chain = entry.chain_hash
    return True


@dataclass(frozen=True)
class ChainReport:
    """Verification result for one snapshot of the chain."""

    valid: bool
    length: int
    tail_hash: str | None


class AuditLogBackend(Protocol):
    """Storage primitive behind the audit chain."""

    def append_transactional(self, builder: EntryBuilder) -> PickupAuditEntry: ...

    def tail(self) -> PickupAuditEntry | None: ...

    def scan_all(self) -> list[PickupAuditEntry]: ...


def _to_entry(row: PickupAudit) -> PickupAuditEntry:
    return PickupAuditEntry(
        sequence=row.sequence,
        authorization_id=row.authorization_id,
        pickup_by=row.pickup_by,
        staff_id=row.staff_id,
        student_id=row.student_id,
        recorded_at=ensure_utc(row.recorded_at),
        audit_hash=row.audit_hash,
        chain_hash=row.chain_hash,
    )


class SqlAlchemyAuditLogBackend:
    """Audit chain stored in the ``pickup_audit`` table.

    The tail is read inside the inserting transaction (``FOR UPDATE`` where the
    dialect supports it) and ``sequence`` is the primary key, so a writer that
    built from a stale tail fails on commit and is retried.
    """

    # One chain per database; serialise appends from this process.
    _append_lock = Lock()

    def __init__(self, session_factory: Callable[[], Session], max_retries: int | None = None) -> None:
        self._session_factory = session_factory
        self._max_retries = max_retries or settings.audit_append_max_retries

    def append_transactional(self, builder: EntryBuilder) -> PickupAuditEntry:
        last_error: IntegrityError | None = None
        for attempt in range(1, self._max_retries + 1):
            with self._append_lock:
                try:
                    with self._session_factory() as session, session.begin():
                        tail_row = session.scalars(
                            select(PickupAudit)
                            .order_by(PickupAudit.sequence.desc())
                            .limit(1)
                            .with_for_update()
                        ).first()
                        entry = builder(_to_entry(tail_row) if tail_row else None)
                        session.add(
                            PickupAudit(
                                sequence=entry.sequence,
                                authorization_id=entry.authorization_id,
                                pickup_by=entry.pickup_by,
                                staff_id=entry.staff_id,
                                student_id=entry.student_id,
                                recorded_at=entry.recorded_at,
                                audit_hash=entry.audit_hash,
                                chain_hash=entry.chain_hash,
                            )
                        )
                    return entry
                except IntegrityError as err:
                    last_error = err
                    logger.warning("Audit append collided on chain tail (attempt %d)", attempt)
        raise AuditConflictError(attempts=self._max_retries) from last_error

    def tail(self) -> PickupAuditEntry | None:
        with self._session_factory() as session:
            row = session.scalars(
                select(PickupAudit).order_by(PickupAudit.sequence.desc()).limit(1)
            ).first()
            return _to_entry(row) if row else None

    def scan_all(self) -> list[PickupAuditEntry]:
        with self._session_factory() as session:
            rows = session.scalars(select(PickupAudit).order_by(PickupAudit.sequence))
            return [_to_entry(row) for row in rows]


class InMemoryAuditLogBackend:
    """Process-local audit chain guarded by a lock."""

    def __init__(self) -> None:
        self._entries: list[PickupAuditEntry] = []
        self._lock = Lock()

    def append_transactional(self, builder: EntryBuilder) -> PickupAuditEntry:
        with self._lock:
            entry = builder(self._entries[-1] if self._entries else None)
            self._entries.append(entry)
            return entry

    def tail(self) -> PickupAuditEntry | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def scan_all(self) -> list[PickupAuditEntry]:
        with self._lock:
            return list(self._entries)


class AuditLog:
    """Hash-chained pickup log on top of a storage backend."""

    def __init__(self, backend: AuditLogBackend) -> None:
        self.backend = backend

    def append(self, draft: AuditDraft) -> PickupAuditEntry:
        entry = self.backend.append_transactional(chain_entry(draft))
        logger.info(
            "Recorded pickup #%d of %s by %s (staff %s)",
            entry.sequence,
            entry.student_id,
            entry.pickup_by,
            entry.staff_id,
        )
        return entry

    def tail(self) -> PickupAuditEntry | None:
        return self.backend.tail()

    def entries(self) -> list[PickupAuditEntry]:
        return self.backend.scan_all()

    def history_for_student(self, student_id: str) -> list[PickupAuditEntry]:
        """Return a student's pickups, newest first."""
        return [e for e in reversed(self.backend.scan_all()) if e.student_id == student_id]

    def history_for_pickup(self, pickup_wallet: str) -> list[PickupAuditEntry]:
        """Return pickups performed by a wallet, newest first."""
        return [e for e in reversed(self.backend.scan_all()) if e.pickup_by == pickup_wallet]

    def verify_chain(self) -> bool:
        """Recompute every hash from the genesis value and compare to storage."""
        return verify_entries(self.backend.scan_all())

    def chain_report(self) -> ChainReport:
        """Verify one snapshot of the chain and describe its tail."""
        entries = self.backend.scan_all()
        tail = entries[-1] if entries else None
        return ChainReport(
            valid=verify_entries(entries),
            length=tail.sequence if tail else 0,
            tail_hash=tail.chain_hash if tail else None,
        )

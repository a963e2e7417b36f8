"""Immutable value objects exchanged between the core and its stores."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class AuthorizationRecord:
    """Snapshot of a pickup authorization as held by the store."""

    id: str
    verification_hash: str
    student_id: str
    pickup_wallet: str
    parent_wallet: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False
    active: bool = True
    consumed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be later than issued_at")

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def consumed_copy(self, when: datetime) -> AuthorizationRecord:
        return replace(self, consumed=True, consumed_at=when)


@dataclass(frozen=True)
class DelegationRecord:
    """A parent's signed grant letting another wallet collect a student."""

    id: str
    student_id: str
    parent_wallet: str
    pickup_wallet: str
    relationship: str
    start_date: datetime
    end_date: datetime
    message: str
    signature: str
    active: bool = True
    created_at: datetime | None = None

    def is_current(self, now: datetime) -> bool:
        """Return True only for active grants whose window contains ``now``."""
        return self.active and self.start_date <= now <= self.end_date


@dataclass(frozen=True)
class StudentRecord:
    id: str
    name: str
    parent_wallet: str
    grade: str | None = None


@dataclass(frozen=True)
class AuditDraft:
    """Audit fields known before the entry is placed on the chain."""

    authorization_id: str
    pickup_by: str
    staff_id: str
    student_id: str
    recorded_at: datetime


@dataclass(frozen=True)
class PickupAuditEntry:
    """A committed link of the pickup audit chain."""

    sequence: int
    authorization_id: str
    pickup_by: str
    staff_id: str
    student_id: str
    recorded_at: datetime
    audit_hash: str
    chain_hash: str

# src/kidguard/api/v1/endpoints/audit.py
"""Pickup audit trail endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from kidguard.api.v1.dependencies import AuditLogDep, CurrentPrincipalDep, DirectoryDep, StaffDep
from kidguard.core.security import normalize_address
from kidguard.core.settings import settings
from kidguard.models.directory import ROLE_STAFF
from kidguard.schemas.audit import ChainStatus, PickupHistoryEntry
from kidguard.services.audit_log import ChainReport
from kidguard.services.bounded import bounded_call
from kidguard.services.records import PickupAuditEntry, StudentRecord

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/students/{student_id}", response_model=list[PickupHistoryEntry])
async def student_pickup_history(
    student_id: str,
    principal: CurrentPrincipalDep,
    audit_log: AuditLogDep,
    directory: DirectoryDep,
) -> list[PickupHistoryEntry]:
    """Pickups of one student, newest first. Visible to staff and the student's parent."""
    if principal.role != ROLE_STAFF:
        student: StudentRecord | None = await bounded_call(
            "student lookup",
            directory.get_student,
            student_id,
            timeout=settings.store_timeout_seconds,
        )
        if student is None or normalize_address(student.parent_wallet) != principal.wallet:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to view this student's pickups",
            )
    history: list[PickupAuditEntry] = await bounded_call(
        "audit history",
        audit_log.history_for_student,
        student_id,
        timeout=settings.store_timeout_seconds,
    )
    return [PickupHistoryEntry.model_validate(entry) for entry in history]


@router.get("/verify", response_model=ChainStatus)
async def verify_audit_chain(principal: StaffDep, audit_log: AuditLogDep) -> ChainStatus:
    """Recompute the whole hash chain from genesis."""
    report: ChainReport = await bounded_call(
        "audit verification",
        audit_log.chain_report,
        timeout=settings.store_timeout_seconds,
    )
    return ChainStatus(valid=report.valid, length=report.length, tail_hash=report.tail_hash)

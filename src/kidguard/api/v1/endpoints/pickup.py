# src/kidguard/api/v1/endpoints/pickup.py
"""Pickup QR issuance, redemption and delegation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from kidguard.api.v1.dependencies import (
    DelegationDep,
    DirectoryDep,
    GuardianDep,
    IssuerDep,
    ParentDep,
    RedemptionDep,
    StaffDep,
)
from kidguard.core.errors import NotFoundError, StoreUnavailableError
from kidguard.core.settings import settings
from kidguard.db.time import utcnow
from kidguard.schemas.pickup import (
    AuthorizationSummary,
    CheckResponse,
    DelegationCreate,
    DelegationResponse,
    IssueRequest,
    IssueResponse,
    RedeemRequest,
    RedeemResponse,
)
from kidguard.services.bounded import bounded_call
from kidguard.services.directory import StudentDirectory
from kidguard.services.records import AuthorizationRecord, DelegationRecord, StudentRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pickup", tags=["pickup"])


def _summary(record: AuthorizationRecord) -> AuthorizationSummary:
    return AuthorizationSummary(
        authorization_id=record.id,
        student_id=record.student_id,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        consumed=record.consumed,
        active=record.active,
    )


def _delegation_response(delegation: DelegationRecord) -> DelegationResponse:
    return DelegationResponse(
        id=delegation.id,
        student_id=delegation.student_id,
        parent_wallet=delegation.parent_wallet,
        pickup_wallet=delegation.pickup_wallet,
        relationship=delegation.relationship,
        start_date=delegation.start_date,
        end_date=delegation.end_date,
        active=delegation.active,
        current=delegation.is_current(utcnow()),
    )


async def _lookup_student(directory: StudentDirectory, student_id: str) -> StudentRecord | None:
    result: StudentRecord | None = await bounded_call(
        "student lookup",
        directory.get_student,
        student_id,
        timeout=settings.store_timeout_seconds,
    )
    return result


@router.post("/qr", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def issue_pickup_qr(
    payload: IssueRequest,
    principal: GuardianDep,
    issuer: IssuerDep,
) -> IssueResponse:
    """Issue a single-use pickup QR token for the signed-in wallet."""
    issued = await issuer.issue(payload.student_id, principal.wallet)
    return IssueResponse(
        token=issued.token,
        authorization_id=issued.authorization_id,
        student_name=issued.student_name,
        expires_at=issued.expires_at,
        relationship=issued.relationship,
    )


@router.post("/redeem", response_model=RedeemResponse | CheckResponse)
async def redeem_pickup_qr(
    payload: RedeemRequest,
    principal: StaffDep,
    engine: RedemptionDep,
    directory: DirectoryDep,
) -> RedeemResponse | CheckResponse:
    """Verify a scanned token and, in commit mode, record the pickup."""
    if payload.mode == "check":
        record = await engine.check(payload.token, payload.claimed_student_id)
        student = await _lookup_student(directory, record.student_id)
        return CheckResponse(
            authorization_id=record.id,
            student_id=record.student_id,
            student_name=student.name if student else record.student_id,
            student_grade=student.grade if student else None,
            pickup_wallet=record.pickup_wallet,
            parent_wallet=record.parent_wallet,
            expires_at=record.expires_at,
        )

    entry = await engine.redeem(payload.token, principal.wallet, payload.claimed_student_id)
    # Consumed and audited at this point; fall back to the bare student id.
    try:
        student = await _lookup_student(directory, entry.student_id)
    except StoreUnavailableError:
        logger.warning(
            "Pickup %s recorded but student lookup failed; answering with the student id",
            entry.authorization_id,
        )
        student = None
    return RedeemResponse(
        student_name=student.name if student else entry.student_id,
        pickup_by=entry.pickup_by,
        staff_id=entry.staff_id,
        recorded_at=entry.recorded_at,
        audit_hash=entry.audit_hash,
    )


@router.post("/qr/{authorization_id}/revoke", response_model=AuthorizationSummary)
async def revoke_pickup_qr(
    authorization_id: str,
    principal: GuardianDep,
    issuer: IssuerDep,
) -> AuthorizationSummary:
    try:
        record = await issuer.revoke(authorization_id, principal.wallet)
    except NotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message) from err
    return _summary(record)


@router.get("/active", response_model=list[AuthorizationSummary])
async def list_active_authorizations(
    principal: GuardianDep,
    issuer: IssuerDep,
) -> list[AuthorizationSummary]:
    """Tokens held by the signed-in wallet that can still be redeemed."""
    records = await issuer.list_active_for(principal.wallet)
    return [_summary(record) for record in records]


@router.post(
    "/delegations",
    response_model=DelegationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_delegation(
    payload: DelegationCreate,
    principal: ParentDep,
    delegations: DelegationDep,
) -> DelegationResponse:
    delegation = await delegations.register(
        parent_wallet=principal.wallet,
        pickup_wallet=payload.pickup_wallet,
        student_id=payload.student_id,
        relationship=payload.relationship,
        start_date=payload.start_date,
        end_date=payload.end_date,
        timestamp=payload.timestamp,
        signature=payload.signature,
    )
    return _delegation_response(delegation)


@router.delete("/delegations/{delegation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_delegation(
    delegation_id: str,
    principal: ParentDep,
    delegations: DelegationDep,
) -> Response:
    try:
        await delegations.deactivate(delegation_id, principal.wallet)
    except NotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/delegations", response_model=list[DelegationResponse])
async def list_my_delegations(
    principal: GuardianDep,
    delegations: DelegationDep,
) -> list[DelegationResponse]:
    """Delegations naming the signed-in wallet as pickup person."""
    records = await delegations.list_for_pickup(principal.wallet)
    return [_delegation_response(record) for record in records]

"""Pickup issuance and redemption schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IssueRequest(_CamelModel):
    """Request for a fresh pickup QR token."""

    student_id: str = Field(..., alias="studentId", min_length=1, max_length=64)


class IssueResponse(_CamelModel):
    token: str = Field(..., description="QR payload: JSON with id and verificationHash")
    authorization_id: str = Field(..., alias="authorizationId")
    student_name: str = Field(..., alias="studentName")
    expires_at: datetime = Field(..., alias="expiresAt")
    relationship: str


class RedeemRequest(_CamelModel):
    """A scanned QR token submitted by gate staff."""

    token: str = Field(..., description="Raw scanned QR payload")
    claimed_student_id: str | None = Field(
        None,
        alias="claimedStudentId",
        max_length=64,
        description="Student the operator believes is being collected",
    )
    mode: Literal["check", "commit"] = Field(
        "commit",
        description="'check' validates without consuming; 'commit' records the pickup",
    )


class RedeemResponse(_CamelModel):
    """Result of a committed pickup."""

    student_name: str = Field(..., alias="studentName")
    pickup_by: str = Field(..., alias="pickupBy")
    staff_id: str = Field(..., alias="staffId")
    recorded_at: datetime = Field(..., alias="recordedAt")
    audit_hash: str = Field(..., alias="auditHash")


class CheckResponse(_CamelModel):
    """Preview of a token that would redeem successfully."""

    authorization_id: str = Field(..., alias="authorizationId")
    student_id: str = Field(..., alias="studentId")
    student_name: str = Field(..., alias="studentName")
    student_grade: str | None = Field(None, alias="studentGrade")
    pickup_wallet: str = Field(..., alias="pickupWallet")
    parent_wallet: str = Field(..., alias="parentWallet")
    expires_at: datetime = Field(..., alias="expiresAt")
    verified: bool = True


class AuthorizationSummary(_CamelModel):
    """A token as shown to its owner; never includes the verification hash."""

    authorization_id: str = Field(..., alias="authorizationId")
    student_id: str = Field(..., alias="studentId")
    issued_at: datetime = Field(..., alias="issuedAt")
    expires_at: datetime = Field(..., alias="expiresAt")
    consumed: bool
    active: bool


class DelegationCreate(_CamelModel):
    """Parent-signed grant for another wallet to collect a student."""

    pickup_wallet: str = Field(..., alias="pickupWallet")
    student_id: str = Field(..., alias="studentId", min_length=1, max_length=64)
    relationship: str = Field(..., min_length=1, max_length=64)
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    timestamp: int = Field(..., description="Epoch milliseconds embedded in the signed message")
    signature: str = Field(..., description="0x-prefixed personal_sign signature")


class DelegationResponse(_CamelModel):
    id: str
    student_id: str = Field(..., alias="studentId")
    parent_wallet: str = Field(..., alias="parentWallet")
    pickup_wallet: str = Field(..., alias="pickupWallet")
    relationship: str
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    active: bool
    current: bool = Field(..., description="True when active and today is inside the window")

"""Audit chain schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PickupHistoryEntry(BaseModel):
    sequence: int
    authorization_id: str = Field(..., alias="authorizationId")
    student_id: str = Field(..., alias="studentId")
    pickup_by: str = Field(..., alias="pickupBy")
    staff_id: str = Field(..., alias="staffId")
    recorded_at: datetime = Field(..., alias="recordedAt")
    audit_hash: str = Field(..., alias="auditHash")
    chain_hash: str = Field(..., alias="chainHash")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class ChainStatus(BaseModel):
    valid: bool
    length: int
    tail_hash: str | None = Field(None, alias="tailHash")

    model_config = ConfigDict(populate_by_name=True)

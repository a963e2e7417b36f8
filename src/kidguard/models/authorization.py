# src/kidguard/models/authorization.py
"""Models for single-use pickup authorizations and parent delegations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kidguard.db.session import Base
from kidguard.db.time import utcnow


class Authorization(Base):
    """Durable state of one issued pickup QR token."""

    __tablename__ = "authorization_record"
    __table_args__ = (
        CheckConstraint("expires_at > issued_at", name="ck_authorization_window"),
        Index("ix_authorization_pickup_wallet", "pickup_wallet"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    verification_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Lowercase 0x-prefixed addresses.
    pickup_wallet: Mapped[str] = mapped_column(String(42), nullable=False)
    parent_wallet: Mapped[str] = mapped_column(String(42), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Flipped exactly once, only through a conditional UPDATE.
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Delegation(Base):
    """Parent-signed permission for a third-party wallet to collect a student."""

    __tablename__ = "delegation"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_delegation_window"),
        Index("ix_delegation_pickup_wallet", "pickup_wallet"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    parent_wallet: Mapped[str] = mapped_column(String(42), nullable=False)
    pickup_wallet: Mapped[str] = mapped_column(String(42), nullable=False)
    relationship: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # The signed message is kept with its signature so the grant can be re-verified.
    message: Mapped[str] = mapped_column(Text, nullable=False)
    signature: Mapped[str] = mapped_column(String(132), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

# src/kidguard/models/audit.py
"""Append-only, hash-chained record of completed pickups."""

from datetime import datetime

from sqlalchemy import BigInteger, CHAR, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from kidguard.db.session import Base


class PickupAudit(Base):
    """One link of the global pickup audit chain."""

    __tablename__ = "pickup_audit"

    # Position in the single global chain; uniqueness stops two writers forking it.
    sequence: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    authorization_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    pickup_by: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    staff_id: Mapped[str] = mapped_column(String(64), nullable=False)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    audit_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    chain_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False, unique=True)

"""initial pickup schema

Revision ID: 5c1e0a7b9d24
Revises:
Create Date: 2026-10-19 09:12:41.402117

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a7b9d24"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create directory, authorization, delegation and audit tables."""
    op.create_table(
        "student",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("grade", sa.String(length=32), nullable=True),
        sa.Column("parent_wallet", sa.String(length=42), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_student_parent_wallet", "student", ["parent_wallet"])

    op.create_table(
        "wallet_account",
        sa.Column("wallet", sa.String(length=42), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("wallet"),
    )

    op.create_table(
        "authorization_record",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("verification_hash", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("pickup_wallet", sa.String(length=42), nullable=False),
        sa.Column("parent_wallet", sa.String(length=42), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.CheckConstraint("expires_at > issued_at", name="ck_authorization_window"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_authorization_record_student_id", "authorization_record", ["student_id"])
    op.create_index("ix_authorization_pickup_wallet", "authorization_record", ["pickup_wallet"])

    op.create_table(
        "delegation",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("parent_wallet", sa.String(length=42), nullable=False),
        sa.Column("pickup_wallet", sa.String(length=42), nullable=False),
        sa.Column("relationship", sa.String(length=64), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("signature", sa.String(length=132), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date > start_date", name="ck_delegation_window"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_delegation_student_id", "delegation", ["student_id"])
    op.create_index("ix_delegation_pickup_wallet", "delegation", ["pickup_wallet"])

    op.create_table(
        "pickup_audit",
        sa.Column("sequence", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("authorization_id", sa.String(length=32), nullable=False),
        sa.Column("pickup_by", sa.String(length=42), nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("audit_hash", sa.CHAR(length=64), nullable=False),
        sa.Column("chain_hash", sa.CHAR(length=64), nullable=False),
        sa.PrimaryKeyConstraint("sequence"),
        sa.UniqueConstraint("authorization_id"),
        sa.UniqueConstraint("chain_hash"),
    )
    op.create_index("ix_pickup_audit_pickup_by", "pickup_audit", ["pickup_by"])
    op.create_index("ix_pickup_audit_student_id", "pickup_audit", ["student_id"])


def downgrade() -> None:
    """Drop every pickup table."""
    op.drop_index("ix_pickup_audit_student_id", table_name="pickup_audit")
    op.drop_index("ix_pickup_audit_pickup_by", table_name="pickup_audit")
    op.drop_table("pickup_audit")
    op.drop_index("ix_delegation_pickup_wallet", table_name="delegation")
    op.drop_index("ix_delegation_student_id", table_name="delegation")
    op.drop_table("delegation")
    op.drop_index("ix_authorization_pickup_wallet", table_name="authorization_record")
    op.drop_index("ix_authorization_record_student_id", table_name="authorization_record")
    op.drop_table("authorization_record")
    op.drop_table("wallet_account")
    op.drop_index("ix_student_parent_wallet", table_name="student")
    op.drop_table("student")

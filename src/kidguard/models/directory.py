# src/kidguard/models/directory.py
"""Read-mostly directory tables owned by the surrounding application."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from kidguard.db.session import Base

ROLE_PARENT = "parent"
ROLE_PICKUP = "pickup"
ROLE_STAFF = "staff"
ROLES = (ROLE_PARENT, ROLE_PICKUP, ROLE_STAFF)


class Student(Base):
    """A child that can be collected, keyed by the school's student code (e.g. CH001)."""

    __tablename__ = "student"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    grade: Mapped[str | None] = mapped_column(String(32), nullable=True)
    parent_wallet: Mapped[str] = mapped_column(String(42), nullable=False, index=True)


class WalletAccount(Base):
    """Role bound to a wallet address."""

    __tablename__ = "wallet_account"

    wallet: Mapped[str] = mapped_column(String(42), primary_key=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

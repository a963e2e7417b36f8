# src/kidguard/models/__init__.py
"""SQLAlchemy models for the KidGuard pickup service."""

from .audit import PickupAudit
from .authorization import Authorization, Delegation
from .directory import Student, WalletAccount

__all__ = [
    "Authorization", "Delegation",
    "PickupAudit",
    "Student", "WalletAccount",
]

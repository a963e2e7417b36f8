# src/kidguard/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .audit import router as audit_router
from .auth import router as auth_router
from .pickup import router as pickup_router

__all__ = [
    "auth_router",
    "pickup_router",
    "audit_router",
]

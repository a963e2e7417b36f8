# src/kidguard/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import audit_router, auth_router, pickup_router

__all__ = [
    "auth_router",
    "pickup_router",
    "audit_router",
]

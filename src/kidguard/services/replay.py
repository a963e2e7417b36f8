"""Replay protection for wallet sign-in nonces."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Final

import redis

from kidguard.core.settings import settings

logger = logging.getLogger(__name__)

_NONCE_TTL_SECONDS: Final[int] = 86_400  # 24 hours


class ReplayProtectionService:
    """Remember sign-in nonces so a captured signature cannot be replayed.

    Uses Redis when ``REDIS_URL`` is configured and a process-local cache
    otherwise.
    """

    def __init__(self, redis_client: redis.Redis | None = None, ttl_seconds: int = _NONCE_TTL_SECONDS) -> None:
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds
        if self._redis is None and settings.redis_url:
            self._redis = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]

    def claim(self, wallet: str, nonce: str) -> bool:
        """Record ``nonce`` for ``wallet``; return False if it was already used."""
        key = f"signin:{wallet}:{nonce}"
        if self._redis is not None:
            # SET NX is the atomic "first writer wins" primitive.
            return bool(self._redis.set(key, "1", ex=self._ttl_seconds, nx=True))

        now = time.time()
        with _CACHE_LOCK:
            expired = [k for k, expiry in _NONCE_CACHE.items() if expiry < now]
            for stale in expired:
                _NONCE_CACHE.pop(stale, None)
            if key in _NONCE_CACHE:
                return False
            _NONCE_CACHE[key] = now + self._ttl_seconds
            return True


_NONCE_CACHE: dict[str, float] = {}
_CACHE_LOCK = Lock()


def get_replay_service() -> ReplayProtectionService:
    """Return a replay protection service instance."""
    return ReplayProtectionService()

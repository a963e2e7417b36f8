"""Bounded calls into blocking store backends."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from kidguard.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded_call(
    operation: str,
    func: Callable[..., T],
    *args: Any,
    timeout: float,
) -> T:
    """Run a blocking store call in a worker thread with a hard deadline.

    Timeouts and backend failures become ``StoreUnavailableError`` so callers
    can tell them apart from terminal authorization failures. A call that has
    already reached the backend when the deadline passes may still commit.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
    except TimeoutError as err:
        logger.error("%s timed out after %.2fs", operation, timeout)
        raise StoreUnavailableError(f"{operation} timed out", operation=operation) from err
    except (SQLAlchemyError, OSError) as err:
        logger.error("%s failed: %s", operation, err)
        raise StoreUnavailableError(f"{operation} failed", operation=operation) from err

"""
Timeouts
========

Bounds awaitables with asyncio.wait_for.

On expiry the pending work is cancelled (so an in-flight HTTP request is
aborted rather than left to finish) and ProviderTimeout is raised. A
TimeoutError raised by the work itself (e.g. a socket read timeout) is not
an expiry and propagates unchanged.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional

from core.errors import ProviderTimeout

logger = logging.getLogger(__name__)


class _OwnTimeout:
    """TimeoutError raised by the bounded work, carried past wait_for."""

    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


async def _capture_own_timeout(awaitable: Awaitable) -> Any:
    try:
        return await awaitable
    except (asyncio.TimeoutError, TimeoutError) as e:
        return _OwnTimeout(e)


async def run_with_timeout(awaitable: Awaitable, timeout_seconds: Optional[float], label: str = "call") -> Any:
    """
    Await ``awaitable``, cancelling it after ``timeout_seconds``.

    A timeout of None (or <= 0) disables the bound.

    Raises:
        ProviderTimeout: If the deadline expires before the awaitable finishes
    """
    if not timeout_seconds or timeout_seconds <= 0:
        return await awaitable
    try:
        result = await asyncio.wait_for(_capture_own_timeout(awaitable), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"⏱️ [Timeout] '{label}' exceeded timeout of {timeout_seconds}s")
        raise ProviderTimeout(timeout_seconds) from None

    if isinstance(result, _OwnTimeout):
        raise result.error
    return result

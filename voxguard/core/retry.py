"""
retry.py — Bounded exponential-backoff retry for remote model calls.

Only transient failures are retried. A failure counts as transient when its
text contains one of _TRANSIENT_SIGNALS (rate limit / quota, 5xx, transport
or RPC failure). Everything else is raised on the first occurrence.

Schedule for retry(op, max_attempts=3, initial_delay=3.0):

    call → fail → sleep 3s → call → fail → sleep 6s → call → fail → sleep 12s → call → raise

max_attempts counts retries after the first call, so max_attempts=0 means
"call once". The wait is asyncio.sleep, so the event loop keeps serving
other requests during backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from voxguard.core.errors import error_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_SIGNALS = (
    "429",
    "RESOURCE_EXHAUSTED",
    "quota",
    "xhr error",
    "Rpc failed",
    "503",
    "500",
)


def is_transient(exc: BaseException) -> bool:
    """True if *exc* looks like a failure that may clear up on its own."""
    msg = error_text(exc)
    return any(signal in msg for signal in _TRANSIENT_SIGNALS)


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 3.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await *operation* until it succeeds, a non-transient error occurs,
    or the retry budget is spent.

    Args:
        operation:     Zero-argument coroutine factory; called once per attempt.
        max_attempts:  Retries allowed after the first call.
        initial_delay: Seconds to wait before the first retry; doubles each time.
        sleep:         Awaitable sleep function (injectable for tests).

    Raises:
        The last error raised by *operation*.
    """
    remaining = max(0, max_attempts)
    delay = initial_delay
    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0 or not is_transient(exc):
                raise
            logger.warning(
                "Transient error detected (%s). Retrying in %.2fs (%d attempts remaining)",
                exc, delay, remaining,
            )
            await sleep(delay)
            remaining -= 1
            delay *= 2

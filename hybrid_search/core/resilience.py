"""Deadline and bounded retry for external calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_deadline(
    factory: Callable[[], Awaitable[T]],
    timeout: float,
    retries: int = 1,
    label: str = "call",
) -> T:
    """Await a fresh call with a deadline, retrying a bounded number of times.

    Args:
        factory: Creates the awaitable for each attempt.
        timeout: Per-attempt deadline in seconds.
        retries: Extra attempts after the first failure.
        label: Name used in log messages.

    Returns:
        Result of the first successful attempt.

    Raises:
        The last error once all attempts failed. Timeouts surface as
        ``asyncio.TimeoutError``. Cancellation is never retried.
    """
    attempts = max(0, retries) + 1
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(factory(), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if attempt < attempts:
                logger.warning(
                    f"[{label}] attempt {attempt}/{attempts} failed: {e!r}, retrying"
                )

    assert last_error is not None
    raise last_error

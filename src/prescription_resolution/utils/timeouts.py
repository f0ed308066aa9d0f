# ============================================================================
# src/prescription_resolution/utils/timeouts.py
# ============================================================================
"""
Bounded collaborator calls.

Catalog and classifier calls are the only blocking operations in a line's
resolution. Each one goes through call_with_timeout so an expired or failed
call degrades to a fallback value instead of failing the line.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


async def call_with_timeout(
    awaitable: Awaitable,
    timeout: Optional[float],
    fallback: Any = None,
    operation: str = "call",
    log: Optional[logging.Logger] = None,
) -> Any:
    """
    Await `awaitable` with a deadline.

    Args:
        awaitable: Coroutine to run
        timeout: Seconds; None or <= 0 means no deadline
        fallback: Returned on timeout or error
        operation: Name used in log messages
        log: Logger (or LogAdapter) to report through

    Returns:
        The awaited result, or `fallback`

    Cancellation of the caller is not swallowed.
    """
    log = log or logger
    try:
        if timeout and timeout > 0:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        return await awaitable
    except asyncio.TimeoutError:
        log.warning(f"{operation} timed out after {timeout}s")
        return fallback
    except asyncio.CancelledError:
        raise
    except Exception as e:
        log.warning(f"{operation} failed: {e}")
        return fallback

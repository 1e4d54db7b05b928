# ============================================================================
# DEADLINE SCOPES
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Ambient deadline shared by nested strategies
# PURPOSE: Bound every suspension point of a polling loop by one deadline
# CREATED: 18 OCT 2026
# ============================================================================
"""
Deadline Scopes

A wait evaluation carries one ambient deadline, held in a task-local
ContextVar. Scopes nest: an inner scope can only bring the deadline
closer, never push it out, so a composite's budget always caps its
children.

Loops never sleep or perform I/O directly; they go through:
- check_deadline(): raise if the budget is already spent
- bounded(awaitable): await with the remaining budget as a timeout
- pause(interval): poll-interval sleep that wakes early at the deadline

All three raise DeadlineExceededError, which is a TimeoutError, so the
caller can tell "my own timeout elapsed" from failures the target reports.
Task cancellation is not intercepted and propagates as CancelledError.
"""

import asyncio
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Awaitable, Iterator, Optional, TypeVar

from wait.errors import DeadlineExceededError

T = TypeVar("T")

# Absolute deadline on the time.monotonic() clock, None when unbounded
_deadline: ContextVar[Optional[float]] = ContextVar("wait_deadline", default=None)


@contextmanager
def deadline_scope(timeout: float) -> Iterator[float]:
    """
    Limit the enclosed block to `timeout` seconds.

    The effective deadline is the earlier of the new one and any deadline
    already in force.

    Yields:
        The effective absolute deadline (time.monotonic() clock)
    """
    when = time.monotonic() + timeout
    parent = _deadline.get()
    if parent is not None and parent < when:
        when = parent

    token = _deadline.set(when)
    try:
        yield when
    finally:
        _deadline.reset(token)


def current_deadline() -> Optional[float]:
    """Get the ambient absolute deadline, or None if unbounded."""
    return _deadline.get()


def remaining() -> Optional[float]:
    """Seconds left before the ambient deadline, or None if unbounded."""
    when = _deadline.get()
    if when is None:
        return None
    return max(0.0, when - time.monotonic())


def check_deadline(last_error: Optional[BaseException] = None) -> None:
    """Raise DeadlineExceededError if the ambient deadline has passed."""
    left = remaining()
    if left is not None and left <= 0:
        raise DeadlineExceededError(last_error=last_error)


async def bounded(
    awaitable: Awaitable[T],
    last_error: Optional[BaseException] = None,
) -> T:
    """
    Await `awaitable`, giving up at the ambient deadline.

    Args:
        awaitable: Probe I/O or sleep to run
        last_error: Transient failure to report if the deadline hits

    Raises:
        DeadlineExceededError: If the deadline expires first
    """
    left = remaining()
    if left is None:
        return await awaitable

    if left <= 0:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise DeadlineExceededError(last_error=last_error)

    scope = asyncio.timeout(left)
    try:
        async with scope:
            return await awaitable
    except TimeoutError as exc:
        if scope.expired() and not isinstance(exc, DeadlineExceededError):
            raise DeadlineExceededError(last_error=last_error) from None
        raise


async def pause(interval: float, last_error: Optional[BaseException] = None) -> None:
    """Sleep for one poll interval, waking early at the deadline."""
    await bounded(asyncio.sleep(interval), last_error=last_error)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "deadline_scope",
    "current_deadline",
    "remaining",
    "check_deadline",
    "bounded",
    "pause",
]

# ============================================================================
# WAIT STRATEGY CORE TYPES
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Base classes for wait strategies
# PURPOSE: Strategy interface, optional timeout capability, shared setters
# CREATED: 18 OCT 2026
# ============================================================================
"""
Wait Strategy Core Types

Defines the strategy interface and the timeout capability.

A strategy is a declarative readiness condition. It is configured with
chained setters before the container starts and evaluated once:

    strategy = for_log("ready to accept connections").with_startup_timeout(30)
    await strategy.wait_until_ready(target)

wait_until_ready() returns only when the condition holds and raises
otherwise (see wait.errors for the taxonomy).

StrategyTimeout is optional: a strategy implementing it tells a parent
composite whether it declared its own timeout, so the composite only
imposes its default on children that did not.
"""

from abc import ABC, abstractmethod
from typing import Optional, TypeVar

from core.config import get_defaults
from wait.target import StrategyTarget

S = TypeVar("S", bound="PollingStrategy")


class Strategy(ABC):
    """
    Base class for wait strategies.

    Subclass and implement wait_until_ready() to create custom strategies.
    """

    @abstractmethod
    async def wait_until_ready(self, target: StrategyTarget) -> None:
        """
        Block until the target satisfies this strategy.

        Args:
            target: Borrowed handle to the probed resource

        Raises:
            DeadlineExceededError: Budget exhausted
            ContainerStateError: Target died
            WaitError: Variant-specific permanent failure
        """


class StrategyTimeout(ABC):
    """Capability: the strategy may declare its own explicit timeout."""

    @property
    @abstractmethod
    def timeout(self) -> Optional[float]:
        """Explicit timeout in seconds, or None if not declared."""


def default_startup_timeout() -> float:
    """Budget used by a leaf that declares no timeout of its own."""
    return get_defaults().wait.startup_timeout


def default_poll_interval() -> float:
    """Delay between probe attempts unless overridden."""
    return get_defaults().wait.poll_interval


class PollingStrategy(Strategy, StrategyTimeout):
    """
    Shared configuration of the polling leaves.

    Holds the optional explicit timeout and the poll interval, with the
    chained setters every leaf exposes.
    """

    def __init__(self):
        self._timeout: Optional[float] = None
        self.poll_interval: float = default_poll_interval()

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def with_startup_timeout(self: S, timeout: float) -> S:
        """Change the startup timeout (seconds)."""
        self._timeout = timeout
        return self

    def with_timeout(self: S, timeout: float) -> S:
        """Alias of with_startup_timeout()."""
        return self.with_startup_timeout(timeout)

    def with_poll_interval(self: S, poll_interval: float) -> S:
        """Override the polling interval (seconds)."""
        self.poll_interval = poll_interval
        return self

    def effective_timeout(self) -> float:
        """Explicit timeout if declared, else the configured default."""
        if self._timeout is not None:
            return self._timeout
        return default_startup_timeout()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Strategy",
    "StrategyTimeout",
    "PollingStrategy",
    "default_startup_timeout",
    "default_poll_interval",
]

# ============================================================================
# MULTI STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Composite evaluator
# PURPOSE: Evaluate child strategies in order under a shared deadline
# CREATED: 18 OCT 2026
# ============================================================================
"""
Multi Strategy

Runs its children one after another; the first failure ends the wait and
is raised unchanged. Two budgets can be configured:

- with_deadline(s): one deadline over the whole composite, applied
  unconditionally
- with_startup_timeout_default(s): a per-child budget applied only to
  children that can declare a timeout (StrategyTimeout) but did not

A child that declared its own timeout keeps it; the composite deadline
still caps it, since nested deadlines only ever shrink.

Example:
    strategy = for_all(
        for_listening_port("5432/tcp"),
        for_log("database system is ready").with_occurrence(2),
    ).with_deadline(90)
"""

from contextlib import nullcontext
from typing import List, Optional

from core.logging import get_logger, log_context
from wait.deadline import deadline_scope
from wait.errors import StrategyConfigurationError
from wait.strategy import Strategy, StrategyTimeout
from wait.target import StrategyTarget

logger = get_logger(__name__)


class MultiStrategy(Strategy, StrategyTimeout):
    """
    Ordered composite of strategies.

    Attributes:
        strategies: Children in evaluation order; None entries are skipped
        deadline: Budget for the whole composite, or None
    """

    def __init__(self, *strategies: Optional[Strategy]):
        self.strategies: List[Optional[Strategy]] = list(strategies)
        self._timeout: Optional[float] = None
        self.deadline: Optional[float] = None

    @property
    def timeout(self) -> Optional[float]:
        """Default budget for children without their own timeout."""
        return self._timeout

    def with_startup_timeout_default(self, timeout: float) -> "MultiStrategy":
        """Budget for each child that declares no timeout of its own."""
        self._timeout = timeout
        return self

    def with_startup_timeout(self, timeout: float) -> "MultiStrategy":
        """Alias of with_startup_timeout_default()."""
        return self.with_startup_timeout_default(timeout)

    def with_deadline(self, deadline: float) -> "MultiStrategy":
        """Budget for the whole composite."""
        self.deadline = deadline
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        if not self.strategies:
            raise StrategyConfigurationError("no wait strategy supplied")

        scope = deadline_scope(self.deadline) if self.deadline is not None else nullcontext()
        with scope:
            for index, strategy in enumerate(self.strategies):
                if strategy is None:
                    continue

                name = type(strategy).__name__
                with log_context(strategy=name, child=index):
                    logger.debug(f"Waiting for {name} ({index + 1}/{len(self.strategies)})")

                    child_scope = nullcontext()
                    if (
                        self._timeout is not None
                        and isinstance(strategy, StrategyTimeout)
                        and strategy.timeout is None
                    ):
                        child_scope = deadline_scope(self._timeout)

                    with child_scope:
                        await strategy.wait_until_ready(target)


def for_all(*strategies: Optional[Strategy]) -> MultiStrategy:
    """Wait for every strategy, in order."""
    return MultiStrategy(*strategies)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "MultiStrategy",
    "for_all",
]

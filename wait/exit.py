# ============================================================================
# EXIT STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Wait for the target to stop
# PURPOSE: Ready once the container is no longer running (one-shot jobs)
# CREATED: 18 OCT 2026
# ============================================================================
"""
Exit Strategy

The inverse of every other strategy: succeeds once the target is not
running, or is gone altogether. Target state is therefore not classified
here. Without an explicit exit timeout the wait is bounded only by an
enclosing deadline.
"""

from contextlib import nullcontext
from typing import Optional

from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import DeadlineExceededError, ResourceNotFoundError, TargetError
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget

logger = get_logger(__name__)


class ExitStrategy(PollingStrategy):
    """Wait until the target has exited."""

    def with_exit_timeout(self, timeout: float) -> "ExitStrategy":
        """Alias of with_startup_timeout()."""
        return self.with_startup_timeout(timeout)

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        scope = deadline_scope(self._timeout) if self._timeout is not None else nullcontext()

        with scope:
            while True:
                check_deadline()

                try:
                    state = await bounded(target.state())
                except DeadlineExceededError:
                    raise
                except ResourceNotFoundError:
                    logger.debug("Container is gone, treating as exited")
                    return
                except Exception as e:
                    raise TargetError(f"get state: {e}") from e

                if not state.running:
                    logger.debug(f"Container exited with code {state.exit_code}")
                    return

                await pause(self.poll_interval)


def for_exit() -> ExitStrategy:
    """Wait until the target stops running."""
    return ExitStrategy()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ExitStrategy",
    "for_exit",
]

# ============================================================================
# HEALTH STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from the runtime health check
# PURPOSE: Wait until the container reports itself healthy
# CREATED: 18 OCT 2026
# ============================================================================
"""
Health Strategy

Relies on the health check baked into the image. The runtime may not have
produced a first health result yet; an absent health field is "not yet".
"""

from typing import Optional

from core.contracts import HealthStatus
from core.logging import get_logger
from wait.deadline import check_deadline, deadline_scope, pause
from wait.errors import WaitError
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)


class HealthStrategy(PollingStrategy):
    """Wait for health status "healthy"."""

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        last_error: Optional[BaseException] = None

        with deadline_scope(self.effective_timeout()):
            while True:
                check_deadline(last_error)

                state = await check_target(target)
                if state.is_healthy():
                    logger.debug("Container reported healthy")
                    return

                status = state.health.status if state.health else "unknown"
                last_error = WaitError(f"health status {status!r}, want {HealthStatus.HEALTHY.value!r}")
                await pause(self.poll_interval, last_error)


def for_health_check() -> HealthStrategy:
    """Wait until the container health check passes."""
    return HealthStrategy()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HealthStrategy",
    "for_health_check",
]

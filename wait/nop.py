# ============================================================================
# NOP STRATEGY AND TARGET
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Test seam - Pluggable strategy and canned target
# PURPOSE: Let callers supply readiness logic or a target without a runtime
# CREATED: 18 OCT 2026
# ============================================================================
"""
Nop Strategy and Target

NopStrategy delegates to a coroutine function, which makes it the
simplest way to plug custom readiness logic into a composite or to
observe what a composite passes to its children.

NopStrategyTarget answers every capability with canned data: its logs and
copied files are `data`, its state is `state` (running by default), and
exec always succeeds.
"""

from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

from core.contracts import ContainerInspect, ContainerState, ExecResult
from wait.strategy import Strategy, StrategyTimeout
from wait.target import StrategyTarget

WaitFunc = Callable[[StrategyTarget], Awaitable[None]]


class NopStrategy(Strategy, StrategyTimeout):
    """Strategy backed by a caller-supplied coroutine function."""

    def __init__(self, wait_until_ready: WaitFunc):
        self._wait_until_ready = wait_until_ready
        self._timeout: Optional[float] = None

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def with_startup_timeout(self, timeout: float) -> "NopStrategy":
        """Declare a timeout (reported to composites, not enforced here)."""
        self._timeout = timeout
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        await self._wait_until_ready(target)


def for_nop(wait_until_ready: WaitFunc) -> NopStrategy:
    """Wrap a coroutine function as a strategy."""
    return NopStrategy(wait_until_ready)


class NopStrategyTarget(StrategyTarget):
    """Target with canned answers."""

    def __init__(self, data: bytes = b"", state: Optional[ContainerState] = None):
        self.data = data
        self.container_state = state if state is not None else ContainerState(running=True, status="running")

    async def host(self) -> str:
        return ""

    async def inspect(self) -> ContainerInspect:
        return ContainerInspect()

    async def mapped_port(self, port: str) -> str:
        return ""

    async def logs(self) -> AsyncIterator[bytes]:
        yield self.data

    async def exec(self, cmd: Sequence[str]) -> ExecResult:
        return ExecResult(exit_code=0)

    async def state(self) -> ContainerState:
        return self.container_state

    async def copy_file_from_container(self, path: str) -> bytes:
        return self.data


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "NopStrategy",
    "NopStrategyTarget",
    "WaitFunc",
    "for_nop",
]

# ============================================================================
# STRATEGY TARGET
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Capability surface of a probeable resource
# PURPOSE: Read-only contract consumed by every wait strategy
# CREATED: 18 OCT 2026
# ============================================================================
"""
Strategy Target

The only contract the wait engine needs from the container runtime.
Implementations adapt whatever client manages the container; strategies
borrow the target for one evaluation and never mutate it.

Also hosts the shared target-state classification that every polling
loop interleaves with its probe, so a crashed container cannot cause an
indefinite wait.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Sequence

from core.contracts import (
    ContainerInspect,
    ContainerState,
    ContainerStatus,
    ExecResult,
    PortBinding,
)
from wait.deadline import bounded
from wait.errors import (
    ContainerExitedError,
    ContainerOOMKilledError,
    DeadlineExceededError,
    TargetError,
    UnexpectedContainerStatusError,
)


class StrategyTarget(ABC):
    """
    Read-only handle to the probed resource.

    All methods except logs() are coroutines. logs() returns a fresh async
    iterator over the accumulated output on every call, so it is usually
    written as an async generator.
    """

    @abstractmethod
    async def host(self) -> str:
        """Address the target is reachable on from the test process."""

    @abstractmethod
    async def inspect(self) -> ContainerInspect:
        """Network mode and port binding table."""

    async def ports(self) -> Dict[str, List[PortBinding]]:
        """Port binding table only."""
        return (await self.inspect()).ports

    @abstractmethod
    async def mapped_port(self, port: str) -> str:
        """
        Host port published for an internal port.

        Raises:
            PortNotFoundError: If the port is not published yet
        """

    @abstractmethod
    def logs(self) -> AsyncIterator[bytes]:
        """Stream of everything the target has logged so far."""

    @abstractmethod
    async def exec(self, cmd: Sequence[str]) -> ExecResult:
        """Run a one-shot command inside the target."""

    @abstractmethod
    async def state(self) -> ContainerState:
        """Current lifecycle state."""

    @abstractmethod
    async def copy_file_from_container(self, path: str) -> bytes:
        """
        Read a file out of the target.

        Raises:
            ResourceNotFoundError: If the file does not exist
        """


# ============================================================================
# STATE CLASSIFICATION
# ============================================================================

def raise_for_state(state: ContainerState) -> None:
    """
    Classify a lifecycle snapshot.

    Returns quietly while the target is running; raises the matching
    ContainerStateError when it can never become ready.
    """
    if state.running:
        return
    if state.oom_killed:
        raise ContainerOOMKilledError()
    if state.status == ContainerStatus.EXITED.value:
        raise ContainerExitedError(state.exit_code)
    raise UnexpectedContainerStatusError(state.status)


async def check_target(target: StrategyTarget) -> ContainerState:
    """
    Fetch the target state and classify it.

    Returns:
        The running state, for loops that inspect it further
    """
    try:
        state = await bounded(target.state())
    except (DeadlineExceededError, TargetError):
        raise
    except Exception as e:
        raise TargetError(f"get state: {e}") from e

    raise_for_state(state)
    return state


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "StrategyTarget",
    "raise_for_state",
    "check_target",
]

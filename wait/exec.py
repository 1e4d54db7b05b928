# ============================================================================
# EXEC STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from an in-container command
# PURPOSE: Run a command in the target until its exit code (and output) match
# CREATED: 18 OCT 2026
# ============================================================================
"""
Exec Strategy

Runs a one-shot command inside the target on every tick. Readiness is
decided by the exit code matcher (default: exit code 0) and, optionally,
a matcher on the command output.

A failure to execute at all is fatal. A non-matching exit code is only a
retry; that includes 126/127 when the image has no usable shell.
"""

from typing import Callable, List, Optional, Sequence

from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import DeadlineExceededError, TargetError, WaitError
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

ExitCodeMatcher = Callable[[int], bool]
ResponseMatcher = Callable[[bytes], bool]


def default_exit_code_matcher(exit_code: int) -> bool:
    return exit_code == 0


class ExecStrategy(PollingStrategy):
    """
    Wait for a command to succeed inside the target.

    Attributes:
        cmd: Command and arguments
        exit_code_matcher: Decides whether an exit code means ready
        response_matcher: Optional check on the command output
    """

    def __init__(self, cmd: Sequence[str]):
        super().__init__()
        self.cmd: List[str] = list(cmd)
        self.exit_code_matcher: ExitCodeMatcher = default_exit_code_matcher
        self.response_matcher: Optional[ResponseMatcher] = None

    def with_exit_code(self, exit_code: int) -> "ExecStrategy":
        """Require this exact exit code."""
        return self.with_exit_code_matcher(lambda code: code == exit_code)

    def with_exit_code_matcher(self, matcher: ExitCodeMatcher) -> "ExecStrategy":
        self.exit_code_matcher = matcher
        return self

    def with_response_matcher(self, matcher: ResponseMatcher) -> "ExecStrategy":
        self.response_matcher = matcher
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        last_error: Optional[BaseException] = None

        with deadline_scope(self.effective_timeout()):
            while True:
                check_deadline(last_error)
                await check_target(target)

                try:
                    result = await bounded(target.exec(self.cmd), last_error)
                except DeadlineExceededError:
                    raise
                except Exception as e:
                    raise TargetError(f"exec {self.cmd}: {e}") from e

                if not self.exit_code_matcher(result.exit_code):
                    last_error = WaitError(f"exec {self.cmd} exited with code {result.exit_code}")
                elif self.response_matcher is not None and not self.response_matcher(result.output):
                    last_error = WaitError(f"exec {self.cmd} output did not match")
                else:
                    logger.debug(f"Command {self.cmd} succeeded")
                    return

                await pause(self.poll_interval, last_error)


def for_exec(cmd: Sequence[str]) -> ExecStrategy:
    """Wait until `cmd` exits successfully inside the target."""
    return ExecStrategy(cmd)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ExecStrategy",
    "ExitCodeMatcher",
    "ResponseMatcher",
    "default_exit_code_matcher",
    "for_exec",
]

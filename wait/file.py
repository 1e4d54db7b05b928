# ============================================================================
# FILE STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from a file inside the target
# PURPOSE: Wait until a file exists and, optionally, satisfies a matcher
# CREATED: 18 OCT 2026
# ============================================================================
"""
File Strategy

Copies a file out of the target on every tick. A missing file is "not
yet"; any other copy failure is fatal.

With a matcher, the file content is handed to it once the file exists:
returning normally means ready, raising PermanentError aborts the wait,
any other exception means "not yet" and the file is copied again.

poll_file() is shared with the TLS strategy.
"""

from typing import Callable, Optional

from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import (
    DeadlineExceededError,
    PermanentError,
    ResourceNotFoundError,
    TargetError,
)
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

FileMatcher = Callable[[bytes], None]


async def poll_file(
    target: StrategyTarget,
    path: str,
    poll_interval: float,
    last_error: Optional[BaseException] = None,
) -> bytes:
    """
    Copy `path` out of the target, waiting for it to appear.

    Raises:
        DeadlineExceededError: File never appeared
        TargetError: Copy failed for a reason other than not-found
        ContainerStateError: Target died while waiting
    """
    while True:
        check_deadline(last_error)
        await check_target(target)

        try:
            return await bounded(target.copy_file_from_container(path), last_error)
        except DeadlineExceededError:
            raise
        except ResourceNotFoundError as e:
            logger.debug(f"File {path} not found yet")
            last_error = e
        except Exception as e:
            raise TargetError(f"copy {path} from container: {e}") from e

        await pause(poll_interval, last_error)


class FileStrategy(PollingStrategy):
    """
    Wait for a file to exist in the target.

    Attributes:
        file: Path inside the target
        matcher: Optional content check
    """

    def __init__(self, file: str):
        super().__init__()
        self.file = file
        self.matcher: Optional[FileMatcher] = None

    def with_matcher(self, matcher: FileMatcher) -> "FileStrategy":
        """Check the file content; raise to signal "not yet"."""
        self.matcher = matcher
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        last_error: Optional[BaseException] = None

        with deadline_scope(self.effective_timeout()):
            while True:
                content = await poll_file(target, self.file, self.poll_interval, last_error)
                if self.matcher is None:
                    return

                try:
                    self.matcher(content)
                except PermanentError:
                    raise
                except Exception as e:
                    logger.debug(f"File {self.file} did not match: {e}")
                    last_error = e
                else:
                    return

                await pause(self.poll_interval, last_error)


def for_file(file: str) -> FileStrategy:
    """Wait until `file` exists in the target."""
    return FileStrategy(file)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "FileStrategy",
    "FileMatcher",
    "poll_file",
    "for_file",
]

# ============================================================================
# LOG STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from container output
# PURPOSE: Wait until a text or pattern appears in the log stream
# CREATED: 18 OCT 2026
# ============================================================================
"""
Log Strategy

Waits until the target's accumulated log output contains a marker.

Matching modes:
- Plain text: the marker occurs exactly `occurrence` times
- Regexp (as_regexp()): the pattern matches exactly `occurrence` times
- Submatch (submatch(callback)): the callback inspects every match and
  decides. Returning normally means ready, raising PermanentError aborts
  the wait, any other exception means "not yet".

Every poll re-reads the whole stream from a fresh logs() call and scans
it from the start. Log output is append-only, so a later read never sees
fewer occurrences than an earlier one.

Example:
    strategy = for_log("database system is ready").with_occurrence(2)
"""

import re
from typing import Callable, List, Optional, Pattern, Tuple

from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import (
    DeadlineExceededError,
    PermanentError,
    StrategyConfigurationError,
    WaitError,
)
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

# callback(pattern, matches); each match is (full match, *groups)
SubmatchCallback = Callable[[str, List[Tuple[str, ...]]], None]


class LogMismatchError(WaitError):
    """The log output does not satisfy the condition yet."""


async def read_logs(target: StrategyTarget) -> str:
    """Read everything the target has logged so far."""
    chunks = []
    async for chunk in target.logs():
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


class LogStrategy(PollingStrategy):
    """
    Wait for a marker in the log stream.

    Attributes:
        log: Text or pattern to look for
        is_regexp: Treat `log` as a regular expression
        occurrence: Exact number of matches required
    """

    def __init__(self, log: str):
        super().__init__()
        self.log = log
        self.is_regexp = False
        self.occurrence = 1
        self._submatch: Optional[SubmatchCallback] = None

    def as_regexp(self) -> "LogStrategy":
        """Interpret the marker as a regular expression."""
        self.is_regexp = True
        return self

    def submatch(self, callback: SubmatchCallback) -> "LogStrategy":
        """Hand every regexp match to `callback`, which decides readiness."""
        self._submatch = callback
        return self

    def with_occurrence(self, occurrence: int) -> "LogStrategy":
        """Require the marker exactly `occurrence` times (at least once)."""
        self.occurrence = occurrence if occurrence > 0 else 1
        return self

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _compile(self) -> Pattern[str]:
        try:
            return re.compile(self.log)
        except re.error as e:
            raise StrategyConfigurationError(f"invalid log pattern {self.log!r}: {e}") from e

    def _build_check(self) -> Callable[[str], None]:
        if self._submatch is not None:
            pattern = self._compile()
            callback = self._submatch

            def check(text: str) -> None:
                matches = [
                    (m.group(0),) + tuple("" if g is None else g for g in m.groups())
                    for m in pattern.finditer(text)
                ]
                callback(self.log, matches)

            return check

        if self.is_regexp:
            pattern = self._compile()

            def check(text: str) -> None:
                found = sum(1 for _ in pattern.finditer(text))
                if found != self.occurrence:
                    raise LogMismatchError(
                        f"pattern {self.log!r} matched {found} time(s), want {self.occurrence}"
                    )

            return check

        def check(text: str) -> None:
            found = text.count(self.log)
            if found != self.occurrence:
                raise LogMismatchError(
                    f"log {self.log!r} seen {found} time(s), want {self.occurrence}"
                )

        return check

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        check = self._build_check()
        last_error: Optional[BaseException] = None

        with deadline_scope(self.effective_timeout()):
            while True:
                check_deadline(last_error)
                await check_target(target)

                try:
                    text = await bounded(read_logs(target), last_error)
                except DeadlineExceededError:
                    raise
                except Exception as e:
                    logger.debug(f"Reading logs failed, retrying: {e}")
                    last_error = e
                    await pause(self.poll_interval, last_error)
                    continue

                try:
                    check(text)
                except PermanentError:
                    raise
                except Exception as e:
                    last_error = e
                    await pause(self.poll_interval, last_error)
                    continue

                logger.debug(f"Log marker {self.log!r} found")
                return


def for_log(log: str) -> LogStrategy:
    """Wait until `log` appears in the target output."""
    return LogStrategy(log)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "LogStrategy",
    "LogMismatchError",
    "SubmatchCallback",
    "read_logs",
    "for_log",
]

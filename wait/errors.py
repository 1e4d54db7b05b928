# ============================================================================
# WAIT ERRORS
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Failure classification for polling loops
# PURPOSE: Distinguish deadline, target death, missing signal and permanent failure
# CREATED: 18 OCT 2026
# ============================================================================
"""
Wait Errors

Every polling loop classifies what it sees into one of these buckets:

- DeadlineExceededError: the caller's own budget ran out
- ContainerStateError (and subclasses): the target reported it died
- PortNotFoundError / NoHostPortError: the expected signal never appeared
- PermanentError: a callback declared the condition can never be met
- StrategyConfigurationError: the strategy itself is unusable as configured

Anything a loop treats as transient never leaves the loop except as the
`last_error` of the deadline error.
"""

from typing import Optional


class WaitError(Exception):
    """Base class for all wait engine errors."""


class DeadlineExceededError(WaitError, TimeoutError):
    """
    The ambient deadline expired before the condition held.

    Attributes:
        last_error: Most recent transient failure seen by the loop, if any
    """

    def __init__(self, message: str = "deadline exceeded", last_error: Optional[BaseException] = None):
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.last_error = last_error


# ============================================================================
# TARGET STATE
# ============================================================================

class ContainerStateError(WaitError):
    """The target is in a state it can never become ready from."""


class TargetError(WaitError):
    """A target operation failed in a way the loop does not retry."""


class ContainerExitedError(ContainerStateError):
    """Target exited."""

    def __init__(self, exit_code: int):
        super().__init__(f"container exited with code {exit_code}")
        self.exit_code = exit_code


class ContainerOOMKilledError(ContainerStateError):
    """Target was killed by the kernel OOM killer."""

    def __init__(self):
        super().__init__("container crashed with out-of-memory (OOMKilled)")


class UnexpectedContainerStatusError(ContainerStateError):
    """Target is neither running nor exited (dead, paused, removing...)."""

    def __init__(self, status: str):
        super().__init__(f'unexpected container status "{status}"')
        self.status = status


# ============================================================================
# MISSING SIGNAL
# ============================================================================

class PortNotFoundError(WaitError):
    """
    Port sentinel carrying the internal port that could not be resolved.

    Raised by port resolution when the deadline expires (the deadline error
    is chained as __cause__). Targets may also raise it from mapped_port()
    while a port is not published yet; loops treat that as transient.
    """

    def __init__(self, port: str = ""):
        super().__init__(f"port {port!r} not found" if port else "port not found")
        self.port = port


class NoHostPortError(WaitError, LookupError):
    """No binding matches any address family of the known host IPs."""


class ResourceNotFoundError(WaitError, LookupError):
    """
    Raised by targets when a file or the container itself does not exist.

    File-based strategies treat it as "not yet"; the exit strategy treats a
    missing container as exited.
    """


# ============================================================================
# PERMANENT / CONFIGURATION
# ============================================================================

class PermanentError(WaitError):
    """
    Wraps a terminal cause raised from a submatch or validation callback.

    The owning loop stops immediately, whatever budget remains.
    """

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause
        self.__cause__ = cause


def permanent(exc: BaseException) -> PermanentError:
    """Tag an exception as permanent so polling stops on it."""
    if isinstance(exc, PermanentError):
        return exc
    return PermanentError(exc)


class StrategyConfigurationError(WaitError, ValueError):
    """The strategy cannot be evaluated as configured."""


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "WaitError",
    "DeadlineExceededError",
    "ContainerStateError",
    "TargetError",
    "ContainerExitedError",
    "ContainerOOMKilledError",
    "UnexpectedContainerStatusError",
    "PortNotFoundError",
    "NoHostPortError",
    "ResourceNotFoundError",
    "PermanentError",
    "permanent",
    "StrategyConfigurationError",
]

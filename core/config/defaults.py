# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for wait timeouts, polling and logging
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for readiness probing.
These can be overridden via environment variables or per strategy through
the chained `with_*` setters.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class WaitDefaults:
    """
    Defaults for wait strategies.

    All durations are in seconds.
    """
    # Budget a leaf gets when neither it nor its parent declares one
    startup_timeout: float = 60.0

    # Delay between unsuccessful probe attempts
    poll_interval: float = 0.1

    # Per-attempt budgets for network probes
    http_request_timeout: float = 1.0
    dial_timeout: float = 1.0

    # Query issued by the SQL strategy on every tick
    sql_query: str = "SELECT 1"

    @classmethod
    def from_env(cls) -> "WaitDefaults":
        """Create from environment variables."""
        return cls(
            startup_timeout=float(os.getenv("WAIT_STARTUP_TIMEOUT", 60.0)),
            poll_interval=float(os.getenv("WAIT_POLL_INTERVAL", 0.1)),
            http_request_timeout=float(os.getenv("WAIT_HTTP_REQUEST_TIMEOUT", 1.0)),
            dial_timeout=float(os.getenv("WAIT_DIAL_TIMEOUT", 1.0)),
            sql_query=os.getenv("WAIT_SQL_QUERY", "SELECT 1"),
        )


@dataclass(frozen=True)
class LoggingDefaults:
    """Defaults for log output."""
    level: str = "INFO"
    json_output: bool = False

    @classmethod
    def from_env(cls) -> "LoggingDefaults":
        """Create from environment variables."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "").lower() == "json",
        )


@dataclass
class Defaults:
    """Container for all defaults."""
    wait: WaitDefaults = field(default_factory=WaitDefaults)
    logging: LoggingDefaults = field(default_factory=LoggingDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            wait=WaitDefaults.from_env(),
            logging=LoggingDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "WaitDefaults",
    "LoggingDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]

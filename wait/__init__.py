# ============================================================================
# WAIT MODULE
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Module initialization
# PURPOSE: Export strategy builders, core types and errors
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Wait strategies for ephemeral test containers.

    from wait import for_all, for_listening_port, for_log

    strategy = for_all(
        for_listening_port("5432/tcp"),
        for_log("database system is ready to accept connections").with_occurrence(2),
    ).with_deadline(60)

    await strategy.wait_until_ready(target)
"""

from wait.strategy import Strategy, StrategyTimeout, PollingStrategy
from wait.target import StrategyTarget, check_target, raise_for_state
from wait.deadline import deadline_scope, current_deadline, remaining
from wait.errors import (
    WaitError,
    DeadlineExceededError,
    ContainerStateError,
    ContainerExitedError,
    ContainerOOMKilledError,
    UnexpectedContainerStatusError,
    TargetError,
    PortNotFoundError,
    NoHostPortError,
    ResourceNotFoundError,
    PermanentError,
    permanent,
    StrategyConfigurationError,
)
from wait.port import (
    IPFamily,
    HostIP,
    PortDetails,
    resolve_host_ips,
    resolve_host_port_binding,
    host_port_mapping,
)

# Strategies
from wait.log import LogStrategy, for_log
from wait.host_port import HostPortStrategy, for_listening_port, for_exposed_port
from wait.http import HTTPStrategy, for_http
from wait.health import HealthStrategy, for_health_check
from wait.exec import ExecStrategy, for_exec
from wait.sql import SQLStrategy, for_sql
from wait.file import FileStrategy, for_file
from wait.tls import TLSStrategy, TLSConfig, for_tls_cert
from wait.exit import ExitStrategy, for_exit
from wait.all import MultiStrategy, for_all
from wait.nop import NopStrategy, NopStrategyTarget, for_nop
from wait.walk import Visit, StrategyRef, walk

__all__ = [
    # Core types
    "Strategy",
    "StrategyTimeout",
    "PollingStrategy",
    "StrategyTarget",
    "check_target",
    "raise_for_state",
    "deadline_scope",
    "current_deadline",
    "remaining",
    # Errors
    "WaitError",
    "DeadlineExceededError",
    "ContainerStateError",
    "ContainerExitedError",
    "ContainerOOMKilledError",
    "UnexpectedContainerStatusError",
    "TargetError",
    "PortNotFoundError",
    "NoHostPortError",
    "ResourceNotFoundError",
    "PermanentError",
    "permanent",
    "StrategyConfigurationError",
    # Port resolution
    "IPFamily",
    "HostIP",
    "PortDetails",
    "resolve_host_ips",
    "resolve_host_port_binding",
    "host_port_mapping",
    # Strategies
    "LogStrategy",
    "HostPortStrategy",
    "HTTPStrategy",
    "HealthStrategy",
    "ExecStrategy",
    "SQLStrategy",
    "FileStrategy",
    "TLSStrategy",
    "TLSConfig",
    "ExitStrategy",
    "MultiStrategy",
    "NopStrategy",
    "NopStrategyTarget",
    # Builders
    "for_log",
    "for_listening_port",
    "for_exposed_port",
    "for_http",
    "for_health_check",
    "for_exec",
    "for_sql",
    "for_file",
    "for_tls_cert",
    "for_exit",
    "for_all",
    "for_nop",
    # Walk
    "Visit",
    "StrategyRef",
    "walk",
]

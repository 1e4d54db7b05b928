# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core module initialization
# PURPOSE: Export container contracts shared by the wait engine and adapters
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================

from core.contracts import (
    ContainerStatus,
    HealthStatus,
    NetworkMode,
    Health,
    ContainerState,
    PortBinding,
    ContainerInspect,
    ExecResult,
)

__all__ = [
    # Enums
    "ContainerStatus",
    "HealthStatus",
    "NetworkMode",
    # Contracts
    "Health",
    "ContainerState",
    "PortBinding",
    "ContainerInspect",
    "ExecResult",
]

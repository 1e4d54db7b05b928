# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Foundation - Container enums and probe data contracts
# PURPOSE: Define the data shapes a probe target reports to the wait engine
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: ContainerStatus, HealthStatus, NetworkMode, ContainerState, Health,
#          PortBinding, ContainerInspect, ExecResult
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the readiness engine.

These define the minimal fields that cross the boundary between the
container runtime (whatever client drives docker) and the wait strategies:
- Lifecycle state (running flag, status, exit code, OOM, health)
- Port bindings reported by inspection
- One-shot exec results

The runtime adapter builds these; strategies only read them.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# STATUS ENUMS
# ============================================================================

class ContainerStatus(str, Enum):
    """
    Container lifecycle states as reported by the daemon.

    State transitions:
        CREATED -> RUNNING -> EXITED
                -> RESTARTING -> RUNNING
                           -> PAUSED -> RUNNING
                                     -> DEAD
    """
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"


class HealthStatus(str, Enum):
    """Docker HEALTHCHECK states."""
    NONE = "none"            # No healthcheck configured
    STARTING = "starting"    # Within start period
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class NetworkMode(str, Enum):
    """Network modes relevant to port resolution."""
    DEFAULT = "default"
    BRIDGE = "bridge"
    HOST = "host"
    NONE = "none"


# ============================================================================
# STATE CONTRACTS
# ============================================================================

class Health(BaseModel):
    """Health field of a container state."""
    status: str = Field(
        default=HealthStatus.NONE.value,
        description="Healthcheck status (starting, healthy, unhealthy)"
    )


class ContainerState(BaseModel):
    """
    Lifecycle snapshot of a probe target.

    `health` is None when the image declares no healthcheck or the daemon
    has not reported one yet.
    """
    running: bool = False
    status: str = ""
    exit_code: int = 0
    oom_killed: bool = False
    health: Optional[Health] = None

    def is_healthy(self) -> bool:
        """Check if the healthcheck currently reports healthy."""
        return self.health is not None and self.health.status == HealthStatus.HEALTHY.value


# ============================================================================
# PORT CONTRACTS
# ============================================================================

class PortBinding(BaseModel):
    """One host-side binding of an internal port."""
    host_ip: str = Field(default="", description="Bound host address, empty or unbound for all interfaces")
    host_port: str = Field(default="", description="Host port number as reported by the daemon")


class ContainerInspect(BaseModel):
    """
    Subset of container inspection consumed by port resolution.

    `ports` maps internal ports in "80/tcp" notation to their host bindings.
    A port with an empty binding list is exposed but not yet published.
    """
    network_mode: str = NetworkMode.DEFAULT.value
    ports: Dict[str, List[PortBinding]] = Field(default_factory=dict)

    @property
    def is_host_network(self) -> bool:
        """Check if the container shares the host network namespace."""
        return self.network_mode == NetworkMode.HOST.value


# ============================================================================
# EXEC CONTRACTS
# ============================================================================

class ExecResult(BaseModel):
    """Outcome of a one-shot command run inside the target."""
    exit_code: int
    output: bytes = b""


# ============================================================================
# EXPORTS
# ============================================================================

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

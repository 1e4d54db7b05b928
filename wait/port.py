# ============================================================================
# HOST PORT RESOLUTION
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Liveness port resolution shared by network strategies
# PURPOSE: Map an internal port to a reachable host address, dual-stack aware
# CREATED: 18 OCT 2026
# ============================================================================
"""
Host Port Resolution

Resolves the liveness port of a target from the binding table reported by
inspection. Two modes:

1. Specified internal port ("80/tcp"): poll until that port has at least
   one host binding. Host network mode needs no mapping.
2. Lowest port (no port given): poll until the numerically lowest bound
   port is stable, i.e. two consecutive inspections report the same number
   of exposed ports. This guards against a port table that is still being
   populated while the container starts. Host network mode is rejected,
   there is nothing to pick from.

When a port has several bindings (typically 0.0.0.0 and ::), the
dual-stack tie-break picks the one matching the first address family the
host is reachable on, in the order the host IPs were declared.
"""

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from core.contracts import ContainerInspect, PortBinding
from wait.deadline import bounded, pause
from wait.errors import (
    DeadlineExceededError,
    NoHostPortError,
    PortNotFoundError,
    StrategyConfigurationError,
    TargetError,
)
from wait.target import StrategyTarget, check_target

logger = logging.getLogger(__name__)

# Addresses used when a port is not bound to a specific interface
UNBOUND_IPV4 = "0.0.0.0"
UNBOUND_IPV6 = "::"
LOOPBACK_IPV4 = "127.0.0.1"

DEFAULT_PROTOCOL = "tcp"


# ============================================================================
# ADDRESS FAMILIES
# ============================================================================

class IPFamily(str, Enum):
    """IP address family."""
    IPV4 = "IPv4"
    IPV6 = "IPv6"


@dataclass(frozen=True)
class HostIP:
    """An address the host is known by, classified by family."""
    address: str
    family: IPFamily

    @classmethod
    def parse(cls, address: str) -> "HostIP":
        """
        Classify an address.

        Anything that does not parse as an IP (including the empty string
        the daemon reports for "all interfaces") is treated as IPv4 loopback.
        """
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            return cls(LOOPBACK_IPV4, IPFamily.IPV4)

        family = IPFamily.IPV6 if ip.version == 6 else IPFamily.IPV4
        return cls(address, family)

    def __str__(self) -> str:
        return f"{self.address} ({self.family.value})"


async def resolve_host_ips(host: str) -> List[HostIP]:
    """
    Ordered list of addresses a host is reachable on.

    Literal IPs are used as-is; names go through the event loop resolver,
    keeping resolver order and dropping duplicates. Unresolvable hosts fall
    back to IPv4 loopback.
    """
    fallback = [HostIP(LOOPBACK_IPV4, IPFamily.IPV4)]
    if not host:
        return fallback

    try:
        ipaddress.ip_address(host)
        return [HostIP.parse(host)]
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await bounded(loop.getaddrinfo(host, None, type=socket.SOCK_STREAM))
    except DeadlineExceededError:
        raise
    except OSError as e:
        logger.debug(f"Resolving host {host!r} failed, assuming IPv4 loopback: {e}")
        return fallback

    seen = set()
    host_ips: List[HostIP] = []
    for _family, _type, _proto, _canonname, sockaddr in infos:
        address = sockaddr[0]
        if address in seen:
            continue
        seen.add(address)
        host_ips.append(HostIP.parse(address))

    return host_ips or fallback


def resolve_host_port_binding(
    host_ips: Sequence[HostIP],
    bindings: Sequence[PortBinding],
) -> PortBinding:
    """
    Dual-stack tie-break.

    For each host IP in order, return the first binding whose address has
    the same family.

    Raises:
        NoHostPortError: If no binding matches any known family
    """
    for host_ip in host_ips:
        for binding in bindings:
            if HostIP.parse(binding.host_ip).family == host_ip.family:
                return binding

    considered = ", ".join(str(host_ip) for host_ip in host_ips)
    raise NoHostPortError(f"no host port found for host IPs [{considered}]")


# ============================================================================
# PORT NOTATION
# ============================================================================

def split_port(port: str) -> Tuple[int, str]:
    """
    Split "80/tcp" notation into number and protocol.

    A bare number means tcp.

    Raises:
        StrategyConfigurationError: If the number part is not an integer
    """
    number, _, proto = str(port).partition("/")
    try:
        value = int(number)
    except ValueError:
        raise StrategyConfigurationError(f"invalid port {port!r}") from None
    return value, (proto or DEFAULT_PROTOCOL).lower()


@dataclass
class PortDetails:
    """A resolved binding of a liveness port."""
    internal_port: str
    host_port: str
    host: str

    @property
    def address(self) -> str:
        """host:port, with IPv6 hosts bracketed."""
        host = self.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{host}:{self.host_port}"


# ============================================================================
# RESOLUTION
# ============================================================================

async def host_port_mapping(
    target: StrategyTarget,
    internal_port: Optional[str],
    poll_interval: float,
    force_ipv4_localhost: bool = False,
    protocol: str = "",
    single: bool = False,
) -> PortDetails:
    """
    Resolve the host address of a liveness port.

    Args:
        target: Probed resource
        internal_port: Port to resolve, or None/"" for the lowest bound port
        poll_interval: Delay between inspections
        force_ipv4_localhost: Rewrite "localhost" to 127.0.0.1
        protocol: Restrict lowest-port selection to this protocol
        single: Treat more than one exposed candidate as a configuration error

    Raises:
        PortNotFoundError: Deadline expired before the port was bound
        StrategyConfigurationError: Host network with no port, or ambiguous port
        ContainerStateError: Target died while waiting
    """
    try:
        ip_address = await bounded(target.host())
    except DeadlineExceededError:
        raise
    except Exception as e:
        raise TargetError(f"host: {e}") from e

    # Docker IPv6 port forwarding is unreliable on some hosts
    if force_ipv4_localhost:
        ip_address = ip_address.replace("localhost", LOOPBACK_IPV4, 1)

    host_ips = await resolve_host_ips(ip_address)

    if internal_port:
        port = await specified_port(target, internal_port, poll_interval, host_ips)
    else:
        port = await lowest_port(target, poll_interval, protocol, host_ips, single)

    # Ensure the target is still running
    await check_target(target)

    if port.host in (UNBOUND_IPV4, UNBOUND_IPV6, ""):
        port.host = ip_address

    return port


async def _inspect(target: StrategyTarget) -> ContainerInspect:
    try:
        return await bounded(target.inspect())
    except DeadlineExceededError:
        raise
    except Exception as e:
        raise TargetError(f"inspect container: {e}") from e


async def lowest_port(
    target: StrategyTarget,
    poll_interval: float,
    protocol: str,
    host_ips: Sequence[HostIP],
    single: bool = False,
) -> PortDetails:
    """Resolve the lowest bound port once the port table is stable."""
    last_exposed = 0
    try:
        while True:
            inspect = await _inspect(target)

            if inspect.is_host_network:
                raise StrategyConfigurationError(
                    f'unable to determine port: network mode "{inspect.network_mode}"'
                )

            exposed = 0
            lowest: Optional[Tuple[int, str]] = None
            lowest_bindings: List[PortBinding] = []
            for key, bindings in inspect.ports.items():
                number, proto = split_port(key)
                if not bindings or (protocol and proto != protocol):
                    # No bindings or not the protocol we are looking for
                    continue

                exposed += 1
                if lowest is None or number < lowest[0]:
                    lowest = (number, key)
                    lowest_bindings = bindings

            if lowest is not None and last_exposed == exposed:
                if single and exposed > 1:
                    raise StrategyConfigurationError(
                        f"cannot use a single liveness port: {exposed} {protocol or 'exposed'} "
                        f"ports are bound, set the port explicitly"
                    )
                binding = resolve_host_port_binding(host_ips, lowest_bindings)
                return PortDetails(
                    internal_port=lowest[1],
                    host_port=binding.host_port,
                    host=binding.host_ip,
                )

            logger.debug(f"Port table not stable yet ({last_exposed} -> {exposed} exposed ports)")
            last_exposed = exposed

            await pause(poll_interval)
            await check_target(target)
    except DeadlineExceededError as e:
        raise PortNotFoundError("") from e


async def specified_port(
    target: StrategyTarget,
    internal_port: str,
    poll_interval: float,
    host_ips: Sequence[HostIP],
) -> PortDetails:
    """Resolve the binding of one internal port."""
    expected_number, expected_proto = split_port(internal_port)
    try:
        while True:
            inspect = await _inspect(target)

            if inspect.is_host_network:
                # Sharing the host network, the port is already reachable
                return PortDetails(
                    internal_port=internal_port,
                    host_port=str(expected_number),
                    host=UNBOUND_IPV4,
                )

            for key, bindings in inspect.ports.items():
                number, proto = split_port(key)
                if number != expected_number or proto != expected_proto:
                    continue

                if not bindings:
                    # Exposed but not published yet
                    continue

                binding = resolve_host_port_binding(host_ips, bindings)
                return PortDetails(
                    internal_port=key,
                    host_port=binding.host_port,
                    host=binding.host_ip,
                )

            logger.debug(f"Port {internal_port} not bound yet")
            await pause(poll_interval)
            await check_target(target)
    except DeadlineExceededError as e:
        raise PortNotFoundError(internal_port) from e


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "UNBOUND_IPV4",
    "UNBOUND_IPV6",
    "IPFamily",
    "HostIP",
    "resolve_host_ips",
    "resolve_host_port_binding",
    "split_port",
    "PortDetails",
    "host_port_mapping",
    "lowest_port",
    "specified_port",
]

# ============================================================================
# HOST PORT STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from a listening port
# PURPOSE: Wait until a port is bound, reachable from the host and listening
# CREATED: 18 OCT 2026
# ============================================================================
"""
Host Port Strategy

Three stages, all under one deadline:

1. Resolve the port binding (wait.port)
2. External check: dial the host address until it accepts a connection.
   A refused connection is "not yet"; any other socket error is fatal.
3. Internal check: run a shell probe inside the target that looks for the
   port in /proc/net/tcp*, falling back to nc and bash /dev/tcp.
   Images without a usable shell (exit 126/127) only get the external
   check; this is logged as a warning and counts as ready.

The internal check catches port forwarders that accept connections on the
host before the service inside the container is listening.
"""

import asyncio
from typing import Optional

from core.config import get_defaults
from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import DeadlineExceededError, TargetError, WaitError
from wait.port import PortDetails, host_port_mapping, split_port
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

EXIT_SHELL_NOT_EXECUTABLE = 126
EXIT_SHELL_NOT_FOUND = 127


def build_internal_check_command(internal_port: int) -> str:
    """Shell probe that succeeds once something listens on the port."""
    return (
        f"true && ( cat /proc/net/tcp* | awk '{{print $2}}' | grep -i :{internal_port:04x} || "
        f"nc -vz -w 1 localhost {internal_port} || "
        f"/bin/sh -c '</dev/tcp/localhost/{internal_port}' )"
    )


class HostPortStrategy(PollingStrategy):
    """
    Wait for a port to listen.

    Attributes:
        port: Internal port ("5432/tcp"), or None for the lowest bound port
        skip_internal: Only perform the external check
    """

    def __init__(self, port: Optional[str] = None):
        super().__init__()
        self.port = port
        self.skip_internal = False

    def skip_internal_check(self) -> "HostPortStrategy":
        """Do not run the in-container shell probe."""
        self.skip_internal = True
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        with deadline_scope(self.effective_timeout()):
            details = await host_port_mapping(target, self.port, self.poll_interval)
            number, proto = split_port(details.internal_port)

            if proto != "tcp":
                logger.debug(f"Port {details.internal_port} is not tcp, binding is the only signal")
                return

            await self._external_check(target, details)

            if self.skip_internal:
                return

            await self._internal_check(target, number)

    async def _external_check(self, target: StrategyTarget, details: PortDetails) -> None:
        """Dial the host address until the connection is accepted."""
        dial_timeout = get_defaults().wait.dial_timeout
        host = details.host.strip("[]")
        last_error: Optional[BaseException] = None

        while True:
            check_deadline(last_error)

            try:
                _reader, writer = await bounded(
                    asyncio.wait_for(asyncio.open_connection(host, int(details.host_port)), dial_timeout),
                    last_error,
                )
            except DeadlineExceededError:
                raise
            except (ConnectionRefusedError, TimeoutError) as e:
                logger.debug(f"Dial {details.address} not accepted yet: {e!r}")
                last_error = e
            except OSError as e:
                raise TargetError(f"dial {details.address}: {e}") from e
            else:
                writer.close()
                try:
                    await writer.wait_closed()
                except ConnectionError as e:
                    # Peer hung up first; the port still accepted the dial
                    logger.debug(f"Closing dial to {details.address}: {e!r}")
                logger.debug(f"Port {details.address} accepted a connection")
                return

            await pause(self.poll_interval, last_error)
            await check_target(target)

    async def _internal_check(self, target: StrategyTarget, internal_port: int) -> None:
        """Confirm from inside the target that the port is listening."""
        command = ["/bin/sh", "-c", build_internal_check_command(internal_port)]
        last_error: Optional[BaseException] = None

        while True:
            check_deadline(last_error)

            try:
                result = await bounded(target.exec(command), last_error)
            except DeadlineExceededError:
                raise
            except Exception as e:
                raise TargetError(f"host port waiting failed: {e}") from e

            if result.exit_code == 0:
                return
            if result.exit_code == EXIT_SHELL_NOT_EXECUTABLE:
                logger.warning("Shell not executable in container, only external port validated")
                return
            if result.exit_code == EXIT_SHELL_NOT_FOUND:
                logger.warning("Shell not found in container")
                return

            last_error = WaitError(f"internal check exited with code {result.exit_code}")
            await pause(self.poll_interval, last_error)
            await check_target(target)


def for_listening_port(port: str) -> HostPortStrategy:
    """Wait until internal `port` listens."""
    return HostPortStrategy(port)


def for_exposed_port() -> HostPortStrategy:
    """Wait until the lowest exposed port listens."""
    return HostPortStrategy()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HostPortStrategy",
    "build_internal_check_command",
    "for_listening_port",
    "for_exposed_port",
]

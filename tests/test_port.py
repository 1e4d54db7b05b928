# ============================================================================
# PORT RESOLUTION TESTS
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Tests - Host port mapping and dual-stack tie-break
# PURPOSE: Verify binding selection, lowest-port stability and error categories
# CREATED: 18 OCT 2026
# ============================================================================
"""
Port Resolution Tests

Covers:
1. Dual-stack tie-break (first matching family, declared order)
2. Address classification and port notation
3. Specified internal port, including host network mode
4. Lowest port stability across consecutive inspections
5. Deadline -> PortNotFoundError, dead target -> ContainerStateError

Run with:
    pytest tests/test_port.py -v
"""

import asyncio

import pytest

from conftest import MockStrategyTarget, exited_state, inspect_with, sequence
from core.contracts import PortBinding
from wait.deadline import deadline_scope
from wait.errors import (
    ContainerExitedError,
    DeadlineExceededError,
    NoHostPortError,
    PortNotFoundError,
    StrategyConfigurationError,
)
from wait.port import (
    HostIP,
    IPFamily,
    PortDetails,
    host_port_mapping,
    resolve_host_ips,
    resolve_host_port_binding,
    split_port,
)


def resolve(target, port=None, timeout=1.0, **kwargs):
    async def run():
        with deadline_scope(timeout):
            return await host_port_mapping(target, port, 0.01, **kwargs)
    return asyncio.run(run())


# ============================================================================
# DUAL-STACK TIE-BREAK
# ============================================================================

class TestResolveHostPortBinding:

    def test_ipv6_first_picks_ipv6_binding(self):
        host_ips = [HostIP.parse("::1"), HostIP.parse("127.0.0.1")]
        bindings = [
            PortBinding(host_ip="0.0.0.0", host_port="50000"),
            PortBinding(host_ip="::", host_port="50001"),
        ]

        assert resolve_host_port_binding(host_ips, bindings).host_port == "50001"

    def test_ipv4_first_picks_ipv4_binding(self):
        host_ips = [HostIP.parse("127.0.0.1"), HostIP.parse("::1")]
        bindings = [
            PortBinding(host_ip="::", host_port="50001"),
            PortBinding(host_ip="0.0.0.0", host_port="50000"),
        ]

        assert resolve_host_port_binding(host_ips, bindings).host_port == "50000"

    def test_no_matching_family_names_host_ips(self):
        host_ips = [HostIP.parse("::1")]
        bindings = [PortBinding(host_ip="0.0.0.0", host_port="50000")]

        with pytest.raises(NoHostPortError) as exc_info:
            resolve_host_port_binding(host_ips, bindings)

        assert str(exc_info.value) == "no host port found for host IPs [::1 (IPv6)]"

    def test_empty_binding_address_counts_as_ipv4(self):
        host_ips = [HostIP.parse("127.0.0.1")]
        bindings = [PortBinding(host_ip="", host_port="50000")]

        assert resolve_host_port_binding(host_ips, bindings).host_port == "50000"


class TestAddresses:

    def test_parse_families(self):
        assert HostIP.parse("::1").family == IPFamily.IPV6
        assert HostIP.parse("10.0.0.1").family == IPFamily.IPV4

    def test_unparsable_is_loopback_ipv4(self):
        assert HostIP.parse("not-an-ip") == HostIP("127.0.0.1", IPFamily.IPV4)
        assert HostIP.parse("") == HostIP("127.0.0.1", IPFamily.IPV4)

    def test_str(self):
        assert str(HostIP.parse("::1")) == "::1 (IPv6)"

    def test_resolve_literal_ip(self):
        assert asyncio.run(resolve_host_ips("::1")) == [HostIP("::1", IPFamily.IPV6)]

    def test_resolve_empty_host_falls_back(self):
        assert asyncio.run(resolve_host_ips("")) == [HostIP("127.0.0.1", IPFamily.IPV4)]

    def test_split_port(self):
        assert split_port("80/tcp") == (80, "tcp")
        assert split_port("53/UDP") == (53, "udp")
        assert split_port("8080") == (8080, "tcp")

    def test_split_port_invalid(self):
        with pytest.raises(StrategyConfigurationError):
            split_port("http/tcp")

    def test_address_brackets_ipv6(self):
        assert PortDetails("80/tcp", "49153", "::1").address == "[::1]:49153"
        assert PortDetails("80/tcp", "49153", "127.0.0.1").address == "127.0.0.1:49153"


# ============================================================================
# SPECIFIED PORT
# ============================================================================

class TestSpecifiedPort:

    def test_waits_for_binding(self):
        target = MockStrategyTarget(inspect=sequence(
            inspect_with({"80/tcp": []}),
            inspect_with({"80/tcp": [("0.0.0.0", "49153")]}),
        ))

        details = resolve(target, "80/tcp")

        assert details.host_port == "49153"
        assert details.internal_port == "80/tcp"
        # Unbound address rewritten to the target host
        assert details.host == "127.0.0.1"
        assert target.calls["inspect"] == 2

    def test_matches_protocol(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({
            "53/udp": [("0.0.0.0", "40000")],
            "53/tcp": [("0.0.0.0", "40001")],
        }))

        assert resolve(target, "53/udp").host_port == "40000"
        assert resolve(target, "53").host_port == "40001"

    def test_host_network_needs_no_mapping(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({}, network_mode="host"))

        details = resolve(target, "8080/tcp")

        assert details.host_port == "8080"
        assert details.host == "127.0.0.1"

    def test_timeout_raises_port_not_found(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({}))

        with pytest.raises(PortNotFoundError) as exc_info:
            resolve(target, "80/tcp", timeout=0.1)

        assert exc_info.value.port == "80/tcp"
        assert isinstance(exc_info.value.__cause__, DeadlineExceededError)

    def test_exited_target_is_fatal(self):
        target = MockStrategyTarget(
            inspect=lambda: inspect_with({}),
            state=lambda: exited_state(1),
        )

        with pytest.raises(ContainerExitedError):
            resolve(target, "80/tcp", timeout=5.0)

    def test_force_ipv4_localhost(self):
        target = MockStrategyTarget(
            host=lambda: "localhost",
            inspect=lambda: inspect_with({"80/tcp": [("0.0.0.0", "49153")]}),
        )

        details = resolve(target, "80/tcp", force_ipv4_localhost=True)

        assert details.host == "127.0.0.1"


# ============================================================================
# LOWEST PORT
# ============================================================================

class TestLowestPort:

    def test_waits_for_stable_port_count(self):
        target = MockStrategyTarget(inspect=sequence(
            inspect_with({"8080/tcp": [("0.0.0.0", "40002")]}),
            inspect_with({
                "8080/tcp": [("0.0.0.0", "40002")],
                "5432/tcp": [("0.0.0.0", "40001")],
            }),
            inspect_with({
                "8080/tcp": [("0.0.0.0", "40002")],
                "5432/tcp": [("0.0.0.0", "40001")],
            }),
        ))

        details = resolve(target)

        assert details.internal_port == "5432/tcp"
        assert details.host_port == "40001"
        assert target.calls["inspect"] == 3

    def test_protocol_filter(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({
            "53/udp": [("0.0.0.0", "40000")],
            "8080/tcp": [("0.0.0.0", "40001")],
        }))

        assert resolve(target, protocol="tcp").internal_port == "8080/tcp"

    def test_single_rejects_several_ports(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({
            "80/tcp": [("0.0.0.0", "40000")],
            "443/tcp": [("0.0.0.0", "40001")],
        }))

        with pytest.raises(StrategyConfigurationError):
            resolve(target, protocol="tcp", single=True)

    def test_host_network_rejected(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({}, network_mode="host"))

        with pytest.raises(StrategyConfigurationError):
            resolve(target)

    def test_no_ports_times_out(self):
        target = MockStrategyTarget(inspect=lambda: inspect_with({}))

        with pytest.raises(PortNotFoundError) as exc_info:
            resolve(target, timeout=0.1)

        assert exc_info.value.port == ""

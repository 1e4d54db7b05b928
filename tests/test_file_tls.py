# ============================================================================
# FILE / TLS STRATEGY TESTS
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Tests - File based strategies
# PURPOSE: Verify file polling, matcher semantics and TLS context assembly
# CREATED: 18 OCT 2026
# ============================================================================
"""
File / TLS Strategy Tests

Certificates are generated per test with cryptography.

Run with:
    pytest tests/test_file_tls.py -v
"""

import asyncio
import ssl

import pytest

from conftest import MockStrategyTarget, exited_state, make_self_signed_cert, sequence
from wait import for_file, for_tls_cert
from wait.errors import (
    ContainerExitedError,
    DeadlineExceededError,
    PermanentError,
    ResourceNotFoundError,
    StrategyConfigurationError,
    TargetError,
    permanent,
)


def files_target(files, **impls) -> MockStrategyTarget:
    """Target serving `files` (path -> bytes); other paths are missing."""
    def copy(path):
        if path not in files:
            raise ResourceNotFoundError(f"no such file: {path}")
        return files[path]

    return MockStrategyTarget(copy_file=copy, **impls)


# ============================================================================
# FILE
# ============================================================================

class TestFileStrategy:

    def test_waits_for_file(self):
        target = MockStrategyTarget(copy_file=sequence(
            ResourceNotFoundError("missing"),
            ResourceNotFoundError("missing"),
            b"done",
        ))
        strategy = for_file("/tmp/ready").with_startup_timeout(1).with_poll_interval(0.01)

        asyncio.run(strategy.wait_until_ready(target))

        assert target.calls["copy_file"] == 3

    def test_missing_file_times_out(self):
        strategy = for_file("/tmp/ready").with_startup_timeout(0.1).with_poll_interval(0.01)

        with pytest.raises(DeadlineExceededError) as exc_info:
            asyncio.run(strategy.wait_until_ready(files_target({})))

        assert isinstance(exc_info.value.last_error, ResourceNotFoundError)

    def test_copy_error_is_fatal(self):
        def broken(path):
            raise PermissionError("permission denied")

        strategy = for_file("/root/secret").with_startup_timeout(30)

        with pytest.raises(TargetError):
            asyncio.run(strategy.wait_until_ready(MockStrategyTarget(copy_file=broken)))

    def test_matcher_retries_then_succeeds(self):
        target = MockStrategyTarget(copy_file=sequence(b"initializing", b"ready"))

        def matcher(content):
            if content != b"ready":
                raise ValueError(f"content is {content!r}")

        strategy = for_file("/state").with_matcher(matcher).with_startup_timeout(1).with_poll_interval(0.01)

        asyncio.run(strategy.wait_until_ready(target))

        assert target.calls["copy_file"] == 2

    def test_matcher_permanent_error_aborts(self):
        def matcher(content):
            raise permanent(ValueError("corrupt state file"))

        strategy = for_file("/state").with_matcher(matcher).with_startup_timeout(30)

        with pytest.raises(PermanentError):
            asyncio.run(strategy.wait_until_ready(files_target({"/state": b"x"})))

    def test_exited_target_is_fatal(self):
        target = files_target({}, state=lambda: exited_state(1))

        with pytest.raises(ContainerExitedError):
            asyncio.run(for_file("/tmp/ready").with_startup_timeout(30).wait_until_ready(target))

    def test_file_left_in_exited_target_is_fatal(self):
        target = files_target({"/tmp/ready": b"done"}, state=lambda: exited_state(1))

        with pytest.raises(ContainerExitedError):
            asyncio.run(for_file("/tmp/ready").with_startup_timeout(30).wait_until_ready(target))

        assert target.calls["copy_file"] == 0


# ============================================================================
# TLS
# ============================================================================

class TestTLSStrategy:

    def test_builds_context_from_ca_and_pair(self):
        ca_pem, _ = make_self_signed_cert("test-ca")
        cert_pem, key_pem = make_self_signed_cert("localhost")
        target = files_target({
            "/certs/ca.pem": ca_pem,
            "/certs/cert.pem": cert_pem,
            "/certs/key.pem": key_pem,
        })
        strategy = (
            for_tls_cert("/certs/cert.pem", "/certs/key.pem")
            .with_root_cas("/certs/ca.pem")
            .with_server_name("db.local")
            .with_startup_timeout(1)
        )

        asyncio.run(strategy.wait_until_ready(target))

        config = strategy.tls_config
        assert isinstance(config.context, ssl.SSLContext)
        assert config.server_name == "db.local"
        assert config.root_ca_pems == [ca_pem]
        assert config.cert_pem == cert_pem
        assert config.key_pem == key_pem
        assert len(config.context.get_ca_certs()) == 1

    def test_waits_for_files_to_appear(self):
        cert_pem, key_pem = make_self_signed_cert()
        files = {}

        async def run():
            loop = asyncio.get_running_loop()
            loop.call_later(0.05, lambda: files.update({"/c.pem": cert_pem, "/k.pem": key_pem}))
            strategy = for_tls_cert("/c.pem", "/k.pem").with_startup_timeout(2).with_poll_interval(0.01)
            await strategy.wait_until_ready(files_target(files))
            return strategy

        strategy = asyncio.run(run())

        assert strategy.tls_config.cert_pem == cert_pem

    def test_ca_only(self):
        ca_pem, _ = make_self_signed_cert("test-ca")
        strategy = for_tls_cert().with_root_cas("/ca.pem").with_startup_timeout(1)

        asyncio.run(strategy.wait_until_ready(files_target({"/ca.pem": ca_pem})))

        assert strategy.tls_config.cert_pem is None
        assert strategy.tls_config.context.verify_mode == ssl.CERT_REQUIRED

    def test_invalid_ca(self):
        strategy = for_tls_cert().with_root_cas("/ca.pem").with_startup_timeout(1)

        with pytest.raises(StrategyConfigurationError):
            asyncio.run(strategy.wait_until_ready(files_target({"/ca.pem": b"not a certificate"})))

    def test_mismatched_key(self):
        cert_pem, _ = make_self_signed_cert()
        _, other_key = make_self_signed_cert()
        target = files_target({"/c.pem": cert_pem, "/k.pem": other_key})

        with pytest.raises(StrategyConfigurationError):
            asyncio.run(for_tls_cert("/c.pem", "/k.pem").with_startup_timeout(1).wait_until_ready(target))

    def test_missing_files_time_out(self):
        strategy = for_tls_cert("/c.pem", "/k.pem").with_startup_timeout(0.1).with_poll_interval(0.01)

        with pytest.raises(DeadlineExceededError):
            asyncio.run(strategy.wait_until_ready(files_target({})))

        assert strategy.tls_config is None

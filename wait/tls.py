# ============================================================================
# TLS STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from generated TLS material
# PURPOSE: Wait for certificates inside the target and build a client context
# CREATED: 18 OCT 2026
# ============================================================================
"""
TLS Strategy

Images that generate their certificates at startup are ready for TLS
clients only once those files exist. This strategy waits for the CA files
and the certificate/key pair, then assembles a TLSConfig the test can use
to talk to the service:

    strategy = (
        for_tls_cert("/certs/client.pem", "/certs/client-key.pem")
        .with_root_cas("/certs/ca.pem")
        .with_server_name("db.local")
    )
    await strategy.wait_until_ready(target)
    context = strategy.tls_config.context

Files that are missing are polled for; files that are present but invalid
fail the wait with StrategyConfigurationError.
"""

import os
import ssl
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional

from core.logging import get_logger
from wait.deadline import deadline_scope
from wait.errors import StrategyConfigurationError
from wait.file import poll_file
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget

logger = get_logger(__name__)


@dataclass
class TLSConfig:
    """Client TLS material read from the target."""
    context: ssl.SSLContext
    server_name: Optional[str] = None
    root_ca_pems: List[bytes] = field(default_factory=list)
    cert_pem: Optional[bytes] = None
    key_pem: Optional[bytes] = None


def build_ssl_context(
    root_ca_pems: List[bytes],
    cert_pem: Optional[bytes] = None,
    key_pem: Optional[bytes] = None,
) -> ssl.SSLContext:
    """
    Client context trusting exactly `root_ca_pems` (system roots if none).

    Raises:
        StrategyConfigurationError: Invalid CA PEM or certificate/key pair
    """
    if root_ca_pems:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        for index, pem in enumerate(root_ca_pems):
            try:
                context.load_verify_locations(cadata=pem.decode("ascii"))
            except (ssl.SSLError, ValueError) as e:
                raise StrategyConfigurationError(f"invalid CA certificate #{index + 1}: {e}") from e
    else:
        context = ssl.create_default_context()

    if cert_pem is not None and key_pem is not None:
        # load_cert_chain only reads from files
        with tempfile.TemporaryDirectory() as tmp:
            cert_path = os.path.join(tmp, "cert.pem")
            key_path = os.path.join(tmp, "key.pem")
            with open(cert_path, "wb") as f:
                f.write(cert_pem)
            with open(key_path, "wb") as f:
                f.write(key_pem)
            try:
                context.load_cert_chain(cert_path, key_path)
            except (ssl.SSLError, ValueError) as e:
                raise StrategyConfigurationError(f"invalid certificate/key pair: {e}") from e

    return context


class TLSStrategy(PollingStrategy):
    """
    Wait for TLS files and expose them as a TLSConfig.

    Attributes:
        cert_file: Certificate path inside the target, or None
        key_file: Private key path inside the target, or None
        root_cas: CA certificate paths inside the target
        tls_config: Assembled after a successful wait
    """

    def __init__(self, cert_file: Optional[str] = None, key_file: Optional[str] = None):
        super().__init__()
        self.cert_file = cert_file
        self.key_file = key_file
        self.root_cas: List[str] = []
        self.server_name: Optional[str] = None
        self.tls_config: Optional[TLSConfig] = None

    def with_root_cas(self, *files: str) -> "TLSStrategy":
        """Trust the CA certificates at these paths."""
        self.root_cas = list(files)
        return self

    def with_server_name(self, server_name: str) -> "TLSStrategy":
        """Name to verify the server certificate against."""
        self.server_name = server_name
        return self

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        with deadline_scope(self.effective_timeout()):
            root_ca_pems = []
            for path in self.root_cas:
                root_ca_pems.append(await poll_file(target, path, self.poll_interval))

            cert_pem = key_pem = None
            if self.cert_file and self.key_file:
                cert_pem = await poll_file(target, self.cert_file, self.poll_interval)
                key_pem = await poll_file(target, self.key_file, self.poll_interval)

        context = build_ssl_context(root_ca_pems, cert_pem, key_pem)
        self.tls_config = TLSConfig(
            context=context,
            server_name=self.server_name,
            root_ca_pems=root_ca_pems,
            cert_pem=cert_pem,
            key_pem=key_pem,
        )
        logger.debug(f"TLS material ready ({len(root_ca_pems)} CA file(s), client cert: {cert_pem is not None})")


def for_tls_cert(cert_file: Optional[str] = None, key_file: Optional[str] = None) -> TLSStrategy:
    """Wait for a certificate/key pair (and CAs added with with_root_cas())."""
    return TLSStrategy(cert_file, key_file)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TLSStrategy",
    "TLSConfig",
    "build_ssl_context",
    "for_tls_cert",
]

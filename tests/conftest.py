# ============================================================================
# TEST FIXTURES
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Tests - Shared fixtures
# PURPOSE: Scriptable probe target, loopback servers and throwaway certificates
# CREATED: 18 OCT 2026
# ============================================================================
"""
Shared test fixtures.

MockStrategyTarget answers each capability through a plain callable
(`<capability>_impl`). An impl may return a value, return an awaitable,
or raise; tests swap impls per scenario and read `calls` afterwards.
"""

import datetime
import inspect as pyinspect
import ipaddress
import ssl
import socket
import threading
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Sequence, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from core.config import reset_defaults
from core.contracts import (
    ContainerInspect,
    ContainerState,
    ExecResult,
    PortBinding,
)
from wait.errors import ResourceNotFoundError
from wait.target import StrategyTarget


# ============================================================================
# TARGET HELPERS
# ============================================================================

def running_state() -> ContainerState:
    return ContainerState(running=True, status="running")


def exited_state(exit_code: int = 0) -> ContainerState:
    return ContainerState(running=False, status="exited", exit_code=exit_code)


def inspect_with(
    ports: Dict[str, List[Tuple[str, str]]],
    network_mode: str = "default",
) -> ContainerInspect:
    """Build an inspection from {"80/tcp": [("0.0.0.0", "49153")]}."""
    return ContainerInspect(
        network_mode=network_mode,
        ports={
            key: [PortBinding(host_ip=ip, host_port=port) for ip, port in bindings]
            for key, bindings in ports.items()
        },
    )


def sequence(*values):
    """Impl returning the given values in turn, repeating the last one."""
    remaining = list(values)

    def impl(*_args):
        value = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(value, BaseException):
            raise value
        return value

    return impl


def _missing_file(path: str) -> bytes:
    raise ResourceNotFoundError(f"no such file: {path}")


class MockStrategyTarget(StrategyTarget):
    """Scriptable target; every capability defers to an `*_impl` callable."""

    def __init__(self, **impls):
        self.host_impl = lambda: "127.0.0.1"
        self.inspect_impl = lambda: ContainerInspect()
        self.mapped_port_impl = lambda port: port.split("/")[0]
        self.logs_impl = lambda: b""
        self.exec_impl = lambda cmd: ExecResult(exit_code=0)
        self.state_impl = running_state
        self.copy_file_impl = _missing_file
        for name, impl in impls.items():
            setattr(self, f"{name}_impl", impl)

        self.calls: Counter = Counter()
        self.exec_commands: List[Sequence[str]] = []

    async def _call(self, name: str, *args):
        self.calls[name] += 1
        value = getattr(self, f"{name}_impl")(*args)
        if pyinspect.isawaitable(value):
            value = await value
        return value

    async def host(self) -> str:
        return await self._call("host")

    async def inspect(self) -> ContainerInspect:
        return await self._call("inspect")

    async def mapped_port(self, port: str) -> str:
        return await self._call("mapped_port", port)

    async def logs(self):
        data = await self._call("logs")
        yield data

    async def exec(self, cmd: Sequence[str]) -> ExecResult:
        self.exec_commands.append(list(cmd))
        return await self._call("exec", cmd)

    async def state(self) -> ContainerState:
        return await self._call("state")

    async def copy_file_from_container(self, path: str) -> bytes:
        return await self._call("copy_file", path)


# ============================================================================
# NETWORK HELPERS
# ============================================================================

class StubHTTPServer(ThreadingHTTPServer):
    """
    Loopback HTTP server replaying scripted responses.

    `responses` holds (status, body, headers); each request consumes one,
    the last one repeats.
    """

    daemon_threads = True

    def __init__(self):
        super().__init__(("127.0.0.1", 0), _StubHandler)
        self.responses: List[Tuple[int, bytes, Dict[str, str]]] = [(200, b"ok", {})]
        self.requests: List[Dict] = []
        self._lock = threading.Lock()

    @property
    def port(self) -> int:
        return self.server_address[1]

    def next_response(self) -> Tuple[int, bytes, Dict[str, str]]:
        with self._lock:
            if len(self.responses) > 1:
                return self.responses.pop(0)
            return self.responses[0]


class _StubHandler(BaseHTTPRequestHandler):

    def _respond(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        self.server.requests.append({
            "method": self.command,
            "path": self.path,
            "headers": {name.lower(): value for name, value in self.headers.items()},
            "body": body,
        })

        status, payload, headers = self.server.next_response()
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    do_GET = _respond
    do_POST = _respond
    do_PUT = _respond
    do_HEAD = _respond
    do_DELETE = _respond

    def log_message(self, format, *args):
        pass


def _serve(server: StubHTTPServer):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def http_server():
    yield from _serve(StubHTTPServer())


@pytest.fixture
def https_server(tmp_path):
    """
    Stub server speaking TLS with a fresh self-signed certificate.

    `cert_pem` on the server is the certificate clients must trust.
    """
    cert_pem, key_pem = make_self_signed_cert()
    cert_file = tmp_path / "server.crt"
    key_file = tmp_path / "server.key"
    cert_file.write_bytes(cert_pem)
    key_file.write_bytes(key_pem)

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(cert_file), str(key_file))

    server = StubHTTPServer()
    server.socket = context.wrap_socket(server.socket, server_side=True)
    server.cert_pem = cert_pem
    yield from _serve(server)


@pytest.fixture
def listening_port():
    """Port of a loopback socket that accepts connections."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def closed_port():
    """Loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


# ============================================================================
# CERTIFICATES
# ============================================================================

def make_self_signed_cert(common_name: str = "localhost") -> Tuple[bytes, bytes]:
    """Self-signed CA certificate (valid for the name and 127.0.0.1) and its PKCS8 key, both PEM."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName([
                x509.DNSName(common_name),
                x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
            ]),
            critical=False,
        )
        .add_extension(
            x509.KeyUsage(
                digital_signature=True, content_commitment=False, key_encipherment=False,
                data_encipherment=False, key_agreement=False, key_cert_sign=True,
                crl_sign=True, encipher_only=False, decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()), critical=False)
        .sign(key, hashes.SHA256())
    )

    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem


# ============================================================================
# DEFAULTS ISOLATION
# ============================================================================

@pytest.fixture(autouse=True)
def fresh_defaults():
    """Each test reads defaults from its own environment."""
    reset_defaults()
    yield
    reset_defaults()

# ============================================================================
# HTTP STRATEGY
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Strategy - Readiness from an HTTP endpoint
# PURPOSE: Poll an endpoint until status, body and headers match
# CREATED: 18 OCT 2026
# ============================================================================
"""
HTTP Strategy

Resolves exactly one TCP liveness port, then issues one request per tick
with httpx until the response matches.

Error classification:
- Connection not accepted yet (connect/read errors, protocol errors from a
  half-started server, per-request timeouts): retry
- TLS handshake or certificate failure: fatal, raised as TargetError
- Any other transport error: fatal, raised as TargetError
- Status, body or header mismatch: retry

Example:
    strategy = (
        for_http("/health")
        .with_port("8080/tcp")
        .with_status_code_matcher(lambda status: status < 500)
        .with_startup_timeout(30)
    )
"""

import ssl
from typing import Callable, Dict, Optional, Tuple, Union

import httpx

from core.config import get_defaults
from core.logging import get_logger
from wait.deadline import bounded, check_deadline, deadline_scope, pause
from wait.errors import DeadlineExceededError, StrategyConfigurationError, TargetError, WaitError
from wait.port import host_port_mapping, split_port
from wait.strategy import PollingStrategy
from wait.target import StrategyTarget, check_target

logger = get_logger(__name__)

HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE")

# Transport errors raised while the server is still coming up
TRANSIENT_ERRORS = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.RemoteProtocolError,
    httpx.TimeoutException,
)

StatusCodeMatcher = Callable[[int], bool]
BodyMatcher = Callable[[bytes], bool]
HeadersMatcher = Callable[[httpx.Headers], bool]


def default_status_code_matcher(status: int) -> bool:
    return status == 200


def tls_failure(exc: BaseException) -> Optional[ssl.SSLError]:
    """
    The TLS error behind a transport error, if any.

    httpx chains the ssl error through httpcore, so follow both __cause__
    and __context__. An unexpected EOF during the handshake is a server
    closing the connection, not a TLS failure.
    """
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLError) and not isinstance(current, ssl.SSLEOFError):
            return current
        current = current.__cause__ or current.__context__
    return None


class HTTPStrategy(PollingStrategy):
    """
    Wait for an HTTP endpoint to answer as expected.

    Attributes:
        path: Request path
        port: Internal port, or None for the single exposed TCP port
        method: HTTP method, validated at evaluation time
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self.port: Optional[str] = None
        self.status_code_matcher: StatusCodeMatcher = default_status_code_matcher
        self.response_matcher: Optional[BodyMatcher] = None
        self.response_headers_matcher: Optional[HeadersMatcher] = None
        self.use_tls = False
        self.ssl_context: Optional[ssl.SSLContext] = None
        self.allow_insecure = False
        self.method = "GET"
        self.body: Optional[bytes] = None
        self.headers: Dict[str, str] = {}
        self.basic_auth: Optional[Tuple[str, str]] = None
        self.force_ipv4_localhost = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def with_port(self, port: str) -> "HTTPStrategy":
        self.port = port
        return self

    def with_status_code_matcher(self, matcher: StatusCodeMatcher) -> "HTTPStrategy":
        self.status_code_matcher = matcher
        return self

    def with_response_matcher(self, matcher: BodyMatcher) -> "HTTPStrategy":
        self.response_matcher = matcher
        return self

    def with_response_headers_matcher(self, matcher: HeadersMatcher) -> "HTTPStrategy":
        self.response_headers_matcher = matcher
        return self

    def with_tls(self, use_tls: bool, ssl_context: Optional[ssl.SSLContext] = None) -> "HTTPStrategy":
        """Use https, optionally verifying against `ssl_context`."""
        self.use_tls = use_tls
        if ssl_context is not None:
            self.ssl_context = ssl_context
        return self

    def with_allow_insecure(self, allow_insecure: bool = True) -> "HTTPStrategy":
        """Skip certificate verification."""
        self.allow_insecure = allow_insecure
        return self

    def with_method(self, method: str) -> "HTTPStrategy":
        self.method = method
        return self

    def with_body(self, body: Union[bytes, str]) -> "HTTPStrategy":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def with_headers(self, headers: Dict[str, str]) -> "HTTPStrategy":
        self.headers.update(headers)
        return self

    def with_basic_auth(self, username: str, password: str) -> "HTTPStrategy":
        self.basic_auth = (username, password)
        return self

    def with_forced_ipv4_localhost(self) -> "HTTPStrategy":
        """Rewrite "localhost" to 127.0.0.1 when building the URL."""
        self.force_ipv4_localhost = True
        return self

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _validated_method(self) -> str:
        if not self.method:
            return "GET"
        method = self.method.upper()
        if method not in HTTP_METHODS:
            raise StrategyConfigurationError(f"invalid http method {self.method!r}")
        return method

    def _verify(self) -> Union[bool, ssl.SSLContext]:
        if self.allow_insecure:
            return False
        if self.ssl_context is not None:
            return self.ssl_context
        return True

    def _mismatch(self, response: httpx.Response) -> Optional[str]:
        """Reason the response is not ready yet, or None if it matches."""
        if not self.status_code_matcher(response.status_code):
            return f"unexpected status code {response.status_code}"
        if self.response_matcher is not None and not self.response_matcher(response.content):
            return "response body did not match"
        if self.response_headers_matcher is not None and not self.response_headers_matcher(response.headers):
            return "response headers did not match"
        return None

    async def wait_until_ready(self, target: StrategyTarget) -> None:
        method = self._validated_method()
        if self.port:
            _, proto = split_port(self.port)
            if proto != "tcp":
                raise StrategyConfigurationError(f"cannot use HTTP client on non-TCP port {self.port}")

        with deadline_scope(self.effective_timeout()):
            details = await host_port_mapping(
                target,
                self.port,
                self.poll_interval,
                force_ipv4_localhost=self.force_ipv4_localhost,
                protocol="tcp",
                single=True,
            )

            path = self.path if not self.path or self.path.startswith("/") else f"/{self.path}"
            scheme = "https" if self.use_tls else "http"
            url = f"{scheme}://{details.address}{path}"

            async with httpx.AsyncClient(
                verify=self._verify(),
                timeout=get_defaults().wait.http_request_timeout,
                auth=self.basic_auth,
                follow_redirects=True,
                trust_env=False,
            ) as client:
                await self._poll(client, target, method, url)

    async def _poll(self, client: httpx.AsyncClient, target: StrategyTarget, method: str, url: str) -> None:
        last_error: Optional[BaseException] = None

        while True:
            check_deadline(last_error)

            try:
                response = await bounded(
                    client.request(method, url, headers=self.headers, content=self.body),
                    last_error,
                )
            except DeadlineExceededError:
                raise
            except TRANSIENT_ERRORS as e:
                if tls_failure(e) is not None:
                    raise TargetError(f"{method} {url}: tls: {e}") from e
                logger.debug(f"{method} {url} not answering yet: {e!r}")
                last_error = e
            except httpx.TransportError as e:
                raise TargetError(f"{method} {url}: {e}") from e
            else:
                reason = self._mismatch(response)
                if reason is None:
                    logger.debug(f"{method} {url} ready ({response.status_code})")
                    return
                logger.debug(f"{method} {url}: {reason}")
                last_error = WaitError(reason)

            await pause(self.poll_interval, last_error)
            await check_target(target)


def for_http(path: str) -> HTTPStrategy:
    """Wait until GET `path` answers 200."""
    return HTTPStrategy(path)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HTTPStrategy",
    "HTTP_METHODS",
    "TRANSIENT_ERRORS",
    "default_status_code_matcher",
    "tls_failure",
    "for_http",
]

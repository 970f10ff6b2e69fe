"""
httpx transports for PagerDuty clients.

TransportPolicy captures connection tuning (dial, keep-alive, TLS, pooling,
header timeouts) as an immutable value. PRIMARY_TRANSPORT_POLICY is the
tuned policy for the REST API client; DEFAULT_TRANSPORT_POLICY is the shared
baseline the secondary client clones with dataclasses.replace().

Example:
    policy = dataclasses.replace(PRIMARY_TRANSPORT_POLICY, insecure_tls=True)
    transport = LoggingTransport("PagerDuty", policy.build_transport())
    client = httpx.Client(transport=transport, timeout=policy.client_timeout(120.0))
"""
import logging
import socket
import ssl
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from .console import is_debug_or_higher, mask_headers, print_panel, console

logger = logging.getLogger("pagerduty_client.transport")

SocketOption = Tuple[int, int, int]


@dataclass(frozen=True)
class TransportPolicy:
    """Connection tuning for an httpx transport.

    None means "no limit" for counts and timeouts. httpx applies its connect
    timeout to the TCP dial and the TLS handshake separately, so both are
    bounded by max(connect_timeout, tls_handshake_timeout).
    """

    connect_timeout: Optional[float] = 30.0
    keep_alive_interval: Optional[float] = 30.0
    tls_handshake_timeout: Optional[float] = 10.0
    max_idle_connections: Optional[int] = 100
    max_idle_connections_per_host: Optional[int] = None
    max_connections_per_host: Optional[int] = None
    idle_connection_timeout: Optional[float] = 90.0
    response_header_timeout: Optional[float] = None
    cipher_suites: Optional[Tuple[str, ...]] = None
    insecure_tls: bool = False

    def ssl_context(self) -> ssl.SSLContext:
        """Build the TLS context with the cipher allow-list and verification mode."""
        context = ssl.create_default_context()
        if self.cipher_suites:
            context.set_ciphers(":".join(self.cipher_suites))
        if self.insecure_tls:
            # check_hostname must be cleared before verify_mode can drop to CERT_NONE
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def limits(self) -> httpx.Limits:
        """Map pooling settings onto httpx.Limits.

        httpx pools are not partitioned per host; a client talks to a single
        API host, so per-host caps become pool-wide caps.
        """
        idle_caps = [
            cap
            for cap in (self.max_idle_connections, self.max_idle_connections_per_host)
            if cap is not None
        ]
        return httpx.Limits(
            max_connections=self.max_connections_per_host,
            max_keepalive_connections=min(idle_caps) if idle_caps else None,
            keepalive_expiry=self.idle_connection_timeout,
        )

    def socket_options(self) -> List[SocketOption]:
        """TCP keep-alive socket options for the configured interval."""
        if not self.keep_alive_interval:
            return []
        interval = max(1, int(self.keep_alive_interval))
        options: List[SocketOption] = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
        for name in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
            option = getattr(socket, name, None)
            if option is not None:
                options.append((socket.IPPROTO_TCP, option, interval))
        return options

    def client_timeout(self, overall: Optional[float] = None) -> httpx.Timeout:
        """Per-phase httpx timeouts, with overall bounding the open-ended phases."""
        connect = self.connect_timeout
        if connect is not None and self.tls_handshake_timeout is not None:
            connect = max(connect, self.tls_handshake_timeout)
        read = self.response_header_timeout if self.response_header_timeout is not None else overall
        return httpx.Timeout(connect=connect, read=read, write=overall, pool=overall)

    def build_transport(self) -> "PolicyHTTPTransport":
        return PolicyHTTPTransport(self)


# Baseline shared by clients that do not need bespoke tuning. Never mutated.
DEFAULT_TRANSPORT_POLICY = TransportPolicy()

PRIMARY_TRANSPORT_POLICY = TransportPolicy(
    connect_timeout=25.0,
    keep_alive_interval=20.0,
    tls_handshake_timeout=20.0,
    max_idle_connections=None,
    max_idle_connections_per_host=500,
    max_connections_per_host=None,
    idle_connection_timeout=60.0,
    response_header_timeout=20.0,
    cipher_suites=("ECDHE-RSA-AES256-GCM-SHA384",),
)


class PolicyHTTPTransport(httpx.HTTPTransport):
    """httpx.HTTPTransport built from a TransportPolicy.

    Keeps the policy and TLS context it was built with so callers can
    inspect them.
    """

    def __init__(self, policy: TransportPolicy):
        self.policy = policy
        self.ssl_context = policy.ssl_context()
        super().__init__(
            verify=self.ssl_context,
            limits=policy.limits(),
            socket_options=policy.socket_options(),
        )

    @property
    def verify_ssl(self) -> bool:
        return self.ssl_context.verify_mode != ssl.CERT_NONE


class LoggingTransport(httpx.BaseTransport):
    """
    Transport wrapper that logs every request under a service tag.

    Always emits a DEBUG log line per exchange; when debug output is enabled
    (see is_debug_or_higher) it also renders masked request and response
    headers as panels.

    Example:
        transport = LoggingTransport("PagerDuty", httpx.HTTPTransport())
        client = httpx.Client(transport=transport)
    """

    def __init__(self, name: str, inner: httpx.BaseTransport) -> None:
        self._name = name
        self._inner = inner

    @property
    def name(self) -> str:
        return self._name

    @property
    def inner(self) -> httpx.BaseTransport:
        return self._inner

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        debug = is_debug_or_higher()
        if debug:
            print_panel(
                f"[bold cyan]{request.method}[/bold cyan] {request.url}",
                title=f"[bold blue]{self._name} Request[/bold blue]",
            )
            console.print("[bold]Headers:[/bold]", mask_headers(request.headers))

        start = time.monotonic()
        try:
            response = self._inner.handle_request(request)
        except httpx.HTTPError as e:
            logger.debug(
                f"[{self._name}] {request.method} {request.url} failed after "
                f"{(time.monotonic() - start) * 1000:.1f}ms: {e!r}"
            )
            raise

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug(
            f"[{self._name}] {request.method} {request.url} -> "
            f"{response.status_code} in {elapsed_ms:.1f}ms"
        )
        if debug:
            color = "green" if 200 <= response.status_code < 300 else "red"
            print_panel(
                f"[bold {color}]{response.status_code}[/bold {color}] {elapsed_ms:.1f}ms",
                title=f"[bold blue]{self._name} Response[/bold blue] ({request.url})",
            )
            console.print("[bold]Headers:[/bold]", mask_headers(response.headers))
        return response

    def close(self) -> None:
        self._inner.close()

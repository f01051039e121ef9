"""Transport construction for talking to the daemon.

One DaemonTransport is built per client session and reused for every
request a command issues. How it connects depends on the protocol:

- unix: same-host socket. Compression is pointless here, proxies never
  apply, and every connection goes to the configured socket path no matter
  which URL the request names.
- tcp: routed network connection. Proxy settings are taken from the
  environment and each request dials the host:port its URL names.

Both dial with the same fixed connect timeout. Nothing here retries.
"""

from __future__ import annotations

import logging
import socket
import ssl
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import httpx

from .errors import InvalidHostError, InvalidProtocolError

logger = logging.getLogger(__name__)

# Long enough for a daemon that is still starting up, short enough that a
# dead endpoint does not hang the client.
DIAL_TIMEOUT = 32.0

DEFAULT_UNIX_SOCKET = "/var/run/daemon.sock"
DEFAULT_HOST = f"unix://{DEFAULT_UNIX_SOCKET}"
DEFAULT_HTTP_PORT = 2375
DEFAULT_TLS_PORT = 2376

# Host header used for requests over the local socket
UNIX_SOCKET_HOST = "localhost"

Dialer = Callable[[str, str], socket.socket]


class ConnectionProtocol(str, Enum):
    """How the daemon is reached."""

    UNIX = "unix"  # Local interprocess socket
    TCP = "tcp"  # Network connection


def split_host_port(address: str) -> tuple[str, int]:
    """Split ``host:port`` (``[v6]:port`` for IPv6) into its parts."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise InvalidHostError(f"missing port in address {address!r}")
    return host.strip("[]"), int(port)


def dial_network(network: str, address: str) -> socket.socket:
    """Dial the address named at call time."""
    host, port = split_host_port(address)
    logger.debug(f"Dialing {network} {host}:{port}")
    return socket.create_connection((host, port), timeout=DIAL_TIMEOUT)


def fixed_socket_dialer(address: str) -> Dialer:
    """Build a dialer that always connects to the local socket ``address``.

    The network and address passed at call time are ignored.
    """

    def dial(_network: str, _address: str) -> socket.socket:
        logger.debug(f"Dialing unix socket {address}")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(DIAL_TIMEOUT)
        try:
            sock.connect(address)
        except OSError:
            sock.close()
            raise
        return sock

    return dial


@dataclass(frozen=True)
class DaemonTransport:
    """Immutable connection settings shared by all requests of a session.

    Attributes:
        protocol: Local socket or network
        address: Socket path (unix) or host:port (tcp)
        tls_config: TLS settings, None for plain HTTP
        disable_compression: Ask the daemon for uncompressed responses
        proxy_from_environment: Honour HTTP(S)_PROXY / NO_PROXY
        dial_timeout: Connect timeout in seconds
        dial: Connection strategy, called as ``dial(network, address)``, for
            callers that need a raw socket to the daemon. The HTTP client
            applies the same policy itself: open_client() binds unix
            clients to the socket path and passes dial_timeout as the
            connect timeout, and httpx dials the request URL for tcp.
    """

    protocol: ConnectionProtocol
    address: str
    tls_config: ssl.SSLContext | None = None
    disable_compression: bool = False
    proxy_from_environment: bool = False
    dial_timeout: float = DIAL_TIMEOUT
    dial: Dialer = field(default=dial_network, compare=False, repr=False)

    @property
    def scheme(self) -> str:
        """URL scheme implied by the TLS configuration."""
        return "https" if self.tls_config is not None else "http"

    @property
    def base_url(self) -> str:
        """Base URL requests are resolved against."""
        if self.protocol is ConnectionProtocol.UNIX:
            return f"{self.scheme}://{UNIX_SOCKET_HOST}"
        return f"{self.scheme}://{self.address}"

    @property
    def timeout(self) -> httpx.Timeout:
        """Connect timeout only; streamed responses may run indefinitely."""
        return httpx.Timeout(None, connect=self.dial_timeout)

    def default_headers(self) -> dict[str, str]:
        """Headers every request carries."""
        if self.disable_compression:
            return {"Accept-Encoding": "identity"}
        return {}

    def open_client(self, transport: httpx.BaseTransport | None = None) -> httpx.Client:
        """Create the HTTP client for this session.

        Args:
            transport: Override the underlying httpx transport (tests)

        Returns:
            httpx.Client configured for the protocol
        """
        verify: ssl.SSLContext | bool = self.tls_config if self.tls_config is not None else True

        if transport is None and self.protocol is ConnectionProtocol.UNIX:
            transport = httpx.HTTPTransport(uds=self.address, verify=verify, retries=0)

        # httpx only consults proxy variables when trust_env is set and no
        # explicit transport was given.
        return httpx.Client(
            base_url=self.base_url,
            headers=self.default_headers(),
            timeout=self.timeout,
            verify=verify,
            trust_env=self.proxy_from_environment,
            transport=transport,
        )


def build_transport(
    protocol: ConnectionProtocol | str,
    address: str,
    tls_config: ssl.SSLContext | None = None,
) -> DaemonTransport:
    """Build the session transport for ``protocol`` and ``address``.

    Args:
        protocol: "unix" or "tcp"
        address: Socket path or host:port
        tls_config: Optional TLS settings

    Returns:
        DaemonTransport ready to open clients

    Raises:
        InvalidProtocolError: If protocol is not unix or tcp
    """
    try:
        protocol = ConnectionProtocol(protocol)
    except ValueError as e:
        raise InvalidProtocolError(f"unsupported protocol: {protocol!r}") from e

    if protocol is ConnectionProtocol.UNIX:
        transport = DaemonTransport(
            protocol=protocol,
            address=address,
            tls_config=tls_config,
            disable_compression=True,
            proxy_from_environment=False,
            dial=fixed_socket_dialer(address),
        )
    else:
        transport = DaemonTransport(
            protocol=protocol,
            address=address,
            tls_config=tls_config,
            disable_compression=False,
            proxy_from_environment=True,
            dial=dial_network,
        )

    logger.debug(
        f"Built {protocol.value} transport to {address} "
        f"(scheme={transport.scheme}, compression={not transport.disable_compression})"
    )
    return transport


def parse_host(host: str | None, tls: bool = False) -> tuple[ConnectionProtocol, str]:
    """Parse a daemon host specification.

    Accepts ``unix://PATH``, ``tcp://HOST:PORT`` and bare ``HOST:PORT``.
    A missing tcp port defaults to 2375, or 2376 when TLS is on.

    Raises:
        InvalidHostError: For unknown schemes or malformed ports
    """
    host = (host or DEFAULT_HOST).strip()

    if host.startswith("unix://"):
        return ConnectionProtocol.UNIX, host[len("unix://") :] or DEFAULT_UNIX_SOCKET

    if "://" in host:
        scheme, _, rest = host.partition("://")
        if scheme != "tcp":
            raise InvalidHostError(f"invalid bind address format: {host}")
        host = rest

    host = host.rstrip("/")
    default_port = DEFAULT_TLS_PORT if tls else DEFAULT_HTTP_PORT

    if host.startswith("["):
        bracket_end = host.find("]")
        if bracket_end == -1:
            raise InvalidHostError(f"invalid bind address format: {host}")
        name, port = host[: bracket_end + 1], host[bracket_end + 1 :].lstrip(":")
    elif host.count(":") == 1:
        name, _, port = host.partition(":")
    elif ":" in host:
        raise InvalidHostError(f"invalid bind address format: {host}")
    else:
        name, port = host, ""

    if port and not port.isdigit():
        raise InvalidHostError(f"invalid bind address format: {host}")

    return ConnectionProtocol.TCP, f"{name or '127.0.0.1'}:{port or default_port}"


def build_tls_config(
    ca_file: str | None = None,
    cert_file: str | None = None,
    key_file: str | None = None,
    verify: bool = False,
) -> ssl.SSLContext:
    """Build the client TLS context.

    Args:
        ca_file: CA bundle used to verify the daemon
        cert_file: Client certificate
        key_file: Client certificate key
        verify: Verify the daemon certificate and hostname

    Returns:
        ssl.SSLContext for the transport
    """
    context = ssl.create_default_context(cafile=ca_file if verify else None)
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    if cert_file:
        context.load_cert_chain(cert_file, key_file)
    return context

"""The client context shared by every command handler.

A DaemonCli is created once per process. Construction probes the streams
for terminals and builds the session transport; after that ``cmd()``
resolves the command line and runs one handler, which uses the context to
parse its options, check terminal requirements and talk to the daemon.

Ownership:
- The input stream and the HTTP client are owned here and released by
  ``close()``.
- Handlers borrow both and must not close them.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TextIO

import click
import httpx

from . import PROG_NAME
from . import commands  # noqa: F401  # registers the built-in commands
from .config import ConfigFile, load_config
from .errors import (
    ConfigLoadError,
    DaemonConnectionError,
    DaemonResponseError,
    ExitRequested,
    TtyInputError,
    UnknownCommandError,
)
from .flags import FlagSet
from .registry import CommandRegistry, default_registry
from .terminal import probe_stream
from .transport import ConnectionProtocol, DaemonTransport, build_transport

logger = logging.getLogger(__name__)


class DaemonCli:
    """Client context for one invocation.

    Attributes:
        proto: How the daemon is reached
        addr: Socket path or host:port
        key_file: Client key path, passed through to handlers untouched
        config_file: Stored configuration, set by load_config_file()
        in_fd: Descriptor of the input stream, 0 if it has none
        out_fd: Descriptor of the output stream, 0 if it has none
        is_terminal_in: Whether the input stream is a terminal
        is_terminal_out: Whether the output stream is a terminal
    """

    def __init__(
        self,
        in_stream: TextIO | None,
        out: TextIO,
        err: TextIO | None = None,
        key_file: str = "",
        proto: ConnectionProtocol | str = ConnectionProtocol.UNIX,
        addr: str = "",
        tls_config: ssl.SSLContext | None = None,
        *,
        registry: CommandRegistry | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client context.

        Args:
            in_stream: Input stream, closed by close()
            out: Output stream
            err: Error stream; defaults to the output stream
            key_file: Client key path
            proto: "unix" or "tcp"
            addr: Socket path or host:port
            tls_config: TLS settings; selects https when given
            registry: Commands to dispatch against (default: all registered)
            http_transport: Replace the network layer of the HTTP client
        """
        self._transport: DaemonTransport = build_transport(proto, addr, tls_config)

        self.proto = self._transport.protocol
        self.addr = addr
        self.key_file = key_file
        self.config_file: ConfigFile = ConfigFile()
        self.registry = registry if registry is not None else default_registry

        self.in_stream = in_stream
        self.out = out
        self.err = err if err is not None else out

        in_state = probe_stream(in_stream)
        out_state = probe_stream(out)
        self.in_fd = in_state.fd
        self.is_terminal_in = in_state.is_terminal
        self.out_fd = out_state.fd
        self.is_terminal_out = out_state.is_terminal

        self._http_transport = http_transport
        self._http_client: httpx.Client | None = None

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    @property
    def transport(self) -> DaemonTransport:
        """The session transport."""
        return self._transport

    @property
    def tls_config(self) -> ssl.SSLContext | None:
        """TLS settings, None for plain HTTP."""
        return self._transport.tls_config

    @property
    def scheme(self) -> str:
        """URL scheme: "https" when TLS is configured, else "http"."""
        return self._transport.scheme

    @property
    def http_client(self) -> httpx.Client:
        """HTTP client reused for every request of the session."""
        if self._http_client is None:
            self._http_client = self._transport.open_client(self._http_transport)
        return self._http_client

    def close(self) -> None:
        """Release the input stream and the HTTP client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None
        if self.in_stream is not None:
            self.in_stream.close()

    def __enter__(self) -> DaemonCli:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def cmd(self, *args: str) -> Any:
        """Run the command named by ``args``.

        The handler's return value and exceptions are passed through
        unchanged.

        Raises:
            ExitRequested: With status 1 when the command is unknown
        """
        try:
            entry, rest = self.registry.resolve(args)
        except UnknownCommandError as e:
            self.echo(
                f"{PROG_NAME}: '{e.token}' is not a {PROG_NAME} command. "
                f"See '{PROG_NAME} --help'.",
                err=True,
            )
            raise ExitRequested(1, printed=True) from e

        logger.debug(f"Running {entry.name} with {len(rest)} argument(s)")
        return entry.handler(self, *rest)

    def subcmd(
        self,
        name: str,
        signature: str,
        description: str,
        exit_on_error: bool = True,
    ) -> FlagSet:
        """Create the option-parsing scope for a subcommand."""
        return FlagSet(
            name,
            signature,
            description,
            exit_on_error=exit_on_error,
            out=self.out,
            err=self.err,
        )

    def load_config_file(self, path: Path | None = None) -> ConfigLoadError | None:
        """Load stored configuration.

        Failure is not fatal: a warning goes to the error stream and an
        empty configuration is used.

        Returns:
            The load error, or None on success
        """
        try:
            self.config_file = load_config(path)
        except ConfigLoadError as e:
            logger.info(f"Using empty configuration: {e}")
            self.echo(f"WARNING: {e}", err=True)
            self.config_file = ConfigFile(filename=path)
            return e
        return None

    def check_tty_input(self, attach_stdin: bool, tty_mode: bool) -> None:
        """Check that TTY mode is possible with the current input.

        Attaching a TTY needs the input stream itself to be a terminal;
        redirected or piped input cannot drive it.

        Raises:
            TtyInputError: If tty_mode and attach_stdin are set but the
                input stream is not a terminal
        """
        if tty_mode and attach_stdin and not self.is_terminal_in:
            raise TtyInputError("cannot enable tty mode on non tty input")

    # -------------------------------------------------------------------------
    # Daemon requests
    # -------------------------------------------------------------------------

    def _check_response(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        response.read()
        message = response.text.strip()
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            message = str(body["message"])
        raise DaemonResponseError(response.status_code, message or response.reason_phrase)

    def _connection_error(self, error: httpx.RequestError) -> DaemonConnectionError:
        logger.debug(f"Request to {self.proto.value}://{self.addr} failed: {error!r}")
        if not isinstance(error, httpx.TransportError):
            # Connected, but the exchange itself failed (decoding, redirects)
            return DaemonConnectionError(
                f"Request to the daemon at {self.proto.value}://{self.addr} failed: {error}"
            )
        return DaemonConnectionError(
            f"Cannot connect to the daemon at {self.proto.value}://{self.addr}. "
            f"Is the daemon running on this host? ({error})"
        )

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the daemon.

        Args:
            method: HTTP method
            path: Path on the daemon API, e.g. /version
            **kwargs: Passed to httpx

        Returns:
            The successful response

        Raises:
            DaemonConnectionError: If the daemon cannot be reached or the
                exchange fails before a response is read
            DaemonResponseError: If the daemon answers with an error status
        """
        logger.debug(f"{method} {self.scheme}://{self.addr}{path}")
        try:
            response = self.http_client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise self._connection_error(e) from e

        self._check_response(response)
        return response

    def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET ``path`` and decode the JSON body."""
        response = self.request("GET", path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise DaemonResponseError(
                response.status_code, f"invalid JSON in response to {path}: {e}"
            ) from e

    def stream_lines(self, method: str, path: str, **kwargs: Any) -> Iterator[str]:
        """Yield response lines as the daemon produces them.

        Used for progress output; each non-empty line is yielded once.

        Raises:
            DaemonConnectionError: If the daemon cannot be reached or the
                exchange fails before a response is read
            DaemonResponseError: If the daemon answers with an error status
        """
        try:
            with self.http_client.stream(method, path, **kwargs) as response:
                self._check_response(response)
                for line in response.iter_lines():
                    if line:
                        yield line
        except httpx.RequestError as e:
            raise self._connection_error(e) from e

    def echo(self, message: str = "", err: bool = False) -> None:
        """Write a line to the output (or error) stream."""
        click.echo(message, file=self.err if err else self.out)

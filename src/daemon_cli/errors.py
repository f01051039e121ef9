"""Error types for daemon-cli.

All library errors derive from DaemonCliError so the entry point can report
them uniformly. ExitRequested is deliberately separate: it is not a failure
but a request to end the process with a specific status, raised from deep in
the call stack (usage output, unknown commands) and honoured only by
``daemon_cli.cli.main``.
"""

from __future__ import annotations


class DaemonCliError(Exception):
    """Base class for all daemon-cli errors."""


class UnknownCommandError(DaemonCliError):
    """No handler is registered for the given command token."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"'{token}' is not a daemon-cli command")


class TtyInputError(DaemonCliError):
    """TTY mode was requested while the input stream is not a terminal."""


class FlagParseError(DaemonCliError):
    """A subcommand's options could not be parsed."""


class InvalidProtocolError(DaemonCliError):
    """Connection protocol is neither a local socket nor a network one."""


class InvalidHostError(DaemonCliError):
    """A daemon host specification could not be parsed."""


class ConfigLoadError(DaemonCliError):
    """The stored configuration file could not be read or decoded."""


class DaemonConnectionError(DaemonCliError):
    """The daemon could not be reached."""


class DaemonResponseError(DaemonCliError):
    """The daemon answered with an error status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Error response from daemon ({status_code}): {message}")


class ExitRequested(Exception):
    """Request to terminate the process with ``code``.

    Attributes:
        code: Process exit status
        printed: True when the user-facing output was already written
    """

    def __init__(self, code: int = 0, printed: bool = True) -> None:
        self.code = code
        self.printed = printed
        super().__init__(f"exit requested with status {code}")


class TemplateError(DaemonCliError):
    """An output template referenced an unknown field or function."""

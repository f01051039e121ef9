"""Per-command option parsing.

Every command handler that takes options asks its DaemonCli for a FlagSet
via ``subcmd()``. A FlagSet is a thin scope over a ``click.Command``: options
are declared on it, ``parse()`` splits the handler's arguments into option
values and positionals, and ``usage()`` prints the command's help.

Parsing stops at the first positional argument, so everything after it
(e.g. a command to run inside a container) is passed through untouched.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, TextIO

import click

from . import PROG_NAME
from .errors import ExitRequested, FlagParseError

# Exit status for option errors when the flag set exits on error
USAGE_ERROR_STATUS = 2


@dataclass
class ParsedFlags:
    """Outcome of FlagSet.parse()."""

    options: dict[str, Any] = field(default_factory=dict)
    args: tuple[str, ...] = ()

    def get(self, name: str, default: Any = None) -> Any:
        """Get an option value by its parameter name."""
        value = self.options.get(name)
        return default if value is None else value

    def __getitem__(self, name: str) -> Any:
        return self.options[name]


class FlagSet:
    """Option-parsing scope for one subcommand.

    Attributes:
        name: Subcommand name as typed by the user
        signature: Positional argument synopsis, e.g. "CONTAINER [CONTAINER...]"
        description: One-line description shown in usage
        exit_on_error: Print usage and exit on parse errors instead of raising
    """

    def __init__(
        self,
        name: str,
        signature: str,
        description: str,
        exit_on_error: bool = True,
        out: TextIO | None = None,
        err: TextIO | None = None,
        prog: str = PROG_NAME,
    ) -> None:
        self.name = name
        self.signature = signature
        self.description = description
        self.exit_on_error = exit_on_error
        self.prog = prog
        self._out = out or sys.stdout
        self._err = err or self._out
        self._options: list[click.Option] = []
        self._deprecated: set[str] = set()

    def add_option(
        self,
        *param_decls: str,
        help: str = "",
        deprecated: bool = False,
        **attrs: Any,
    ) -> click.Option:
        """Declare an option.

        Deprecated options still parse but are left out of usage output and
        do not count toward the ``[OPTIONS]`` marker.
        """
        option = click.Option(list(param_decls), help=help, hidden=deprecated, **attrs)
        self._options.append(option)
        if deprecated and option.name:
            self._deprecated.add(option.name)
        return option

    def add_flag(self, *param_decls: str, help: str = "", deprecated: bool = False) -> click.Option:
        """Declare a boolean flag defaulting to False."""
        return self.add_option(
            *param_decls, help=help, deprecated=deprecated, is_flag=True, default=False
        )

    @property
    def options(self) -> list[click.Option]:
        """Declared options, deprecated ones included."""
        return list(self._options)

    @property
    def undeprecated_count(self) -> int:
        """Number of options that are not deprecated."""
        return sum(1 for option in self._options if option.name not in self._deprecated)

    def _build_command(self) -> click.Command:
        params: list[click.Parameter] = [
            *self._options,
            click.Option(["--help", "help_requested"], is_flag=True, hidden=True),
            click.Argument(["args"], nargs=-1),
        ]
        return click.Command(
            self.name,
            params=params,
            add_help_option=False,
            context_settings={"allow_interspersed_args": False},
        )

    def parse(self, args: tuple[str, ...] | list[str]) -> ParsedFlags:
        """Parse a handler's arguments.

        Raises:
            ExitRequested: On ``--help`` (status 0), or on a parse error when
                exit_on_error is set (status 2)
            FlagParseError: On a parse error when exit_on_error is not set
        """
        command = self._build_command()
        try:
            ctx = command.make_context(self.name, list(args))
        except click.UsageError as e:
            self._fail(e)

        params = dict(ctx.params)
        positionals = tuple(params.pop("args", ()))
        if params.pop("help_requested", False):
            self.usage()
        return ParsedFlags(options=params, args=positionals)

    def _fail(self, error: click.UsageError) -> NoReturn:
        message = error.format_message()
        if not self.exit_on_error:
            raise FlagParseError(message) from error
        click.echo(f"{self.prog} {self.name}: {message}", file=self._err)
        click.echo(self.format_usage(), file=self._err, nl=False)
        raise ExitRequested(USAGE_ERROR_STATUS, printed=True) from error

    def format_usage(self) -> str:
        """Render the usage text."""
        marker = "[OPTIONS] " if self.undeprecated_count > 0 else ""
        header = (
            f"\nUsage: {self.prog} {self.name} {marker}{self.signature}\n\n"
            f"{self.description}\n\n"
        )

        command = self._build_command()
        ctx = click.Context(command, info_name=self.name)
        records = []
        for option in self._options:
            record = option.get_help_record(ctx)
            if record is not None:
                records.append(record)

        if not records:
            return header
        formatter = click.HelpFormatter()
        formatter.write_dl(records)
        return header + formatter.getvalue()

    def usage(self) -> None:
        """Print usage to the output stream and request a clean exit.

        Raises:
            ExitRequested: Always, with status 0
        """
        click.echo(self.format_usage(), file=self._out, nl=False)
        raise ExitRequested(0, printed=True)

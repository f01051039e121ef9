"""Built-in commands.

Importing this module registers the commands on the default registry.
"""

from __future__ import annotations

import platform
import sys
from typing import TYPE_CHECKING

from . import PROG_NAME, __version__
from .formatting import render_template
from .registry import command

if TYPE_CHECKING:
    from .client import DaemonCli


@command("help", description="Show help for the client or a command")
def help_command(cli: DaemonCli, *args: str) -> None:
    """List commands, or show usage for ``help COMMAND``."""
    flags = cli.subcmd("help", "[COMMAND]", "Show help for the client or a command")
    parsed = flags.parse(args)

    if parsed.args:
        cli.cmd(*parsed.args, "--help")
        return

    cli.echo(f"Usage: {PROG_NAME} [OPTIONS] COMMAND [arg...]")
    cli.echo()
    cli.echo("A command-line client for the daemon.")
    cli.echo()
    cli.echo("Commands:")
    entries = cli.registry.list_commands()
    width = max((len(entry.name) for entry in entries), default=0)
    for entry in entries:
        cli.echo(f"    {entry.name:<{width}}   {entry.description}")
    cli.echo()
    cli.echo(f"Run '{PROG_NAME} COMMAND --help' for more information on a command.")


@command("version", description="Show the client and daemon version information")
def version_command(cli: DaemonCli, *args: str) -> None:
    flags = cli.subcmd("version", "", "Show the client and daemon version information")
    flags.add_option("-f", "--format", "template", help="Format the output using the given template")
    parsed = flags.parse(args)
    if parsed.args:
        flags.usage()

    client_info = {
        "Version": __version__,
        "PythonVersion": platform.python_version(),
        "Os": sys.platform,
        "Arch": platform.machine(),
    }
    template = parsed.get("template")

    if template is None:
        cli.echo(f"Client version: {client_info['Version']}")
        cli.echo(f"Python version (client): {client_info['PythonVersion']}")
        cli.echo(f"OS/Arch (client): {client_info['Os']}/{client_info['Arch']}")

    server_info = cli.get_json("/version")

    if template is not None:
        cli.echo(render_template(template, {"Client": client_info, "Server": server_info}))
        return

    if not isinstance(server_info, dict):
        server_info = {}
    cli.echo(f"Server version: {server_info.get('Version', 'unknown')}")
    if server_info.get("ApiVersion"):
        cli.echo(f"Server API version: {server_info['ApiVersion']}")
    if server_info.get("Os"):
        cli.echo(f"OS/Arch (server): {server_info['Os']}/{server_info.get('Arch', 'unknown')}")


@command("ping", description="Check that the daemon is reachable")
def ping_command(cli: DaemonCli, *args: str) -> None:
    flags = cli.subcmd("ping", "", "Check that the daemon is reachable")
    parsed = flags.parse(args)
    if parsed.args:
        flags.usage()

    response = cli.request("GET", "/_ping")
    cli.echo(response.text.strip() or "OK")

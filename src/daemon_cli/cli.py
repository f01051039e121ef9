"""daemon-cli entry point.

Usage:
    daemon-cli [OPTIONS] COMMAND [arg...]

    daemon-cli version                         # Client and daemon versions
    daemon-cli -H tcp://10.0.0.5:2375 ping     # Talk to a remote daemon
    daemon-cli --tlsverify -H host:2376 ping   # ... over verified TLS
    daemon-cli help version                    # Usage for one command

Global options are parsed here; everything from COMMAND on is handed to
DaemonCli.cmd(). This module is the only place that ends the process:
commands raise ExitRequested or DaemonCliError and main() turns them into
an exit status.
"""

from __future__ import annotations

import logging
import os
import ssl
import sys
from collections.abc import Sequence
from pathlib import Path

import click

from . import PROG_NAME, __version__
from .client import DaemonCli
from .errors import DaemonCliError, ExitRequested
from .transport import DEFAULT_HOST, build_tls_config, parse_host

logger = logging.getLogger(__name__)

CERT_PATH_ENV_VAR = "DAEMON_CERT_PATH"
DEFAULT_CA_FILE = "ca.pem"
DEFAULT_CERT_FILE = "cert.pem"
DEFAULT_KEY_FILE = "key.pem"

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


def _cert_dir() -> Path:
    override = os.environ.get(CERT_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".daemon-cli"


def _default_cert(filename: str) -> str | None:
    """Certificate file from the cert directory, if present."""
    path = _cert_dir() / filename
    return str(path) if path.exists() else None


def _configure_logging(debug: bool, log_level: str) -> None:
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.WARNING)
    # Log to stderr; stdout carries command output
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def run(cli: DaemonCli, args: Sequence[str], config_path: Path | None = None) -> int:
    """Run one command line against a client and return the exit status."""
    with cli:
        cli.load_config_file(config_path)
        try:
            cli.cmd(*args)
        except ExitRequested as e:
            return e.code
        except DaemonCliError as e:
            cli.echo(f"Error: {e}", err=True)
            return 1
    return 0


@click.command(
    add_help_option=False,
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
)
@click.option(
    "-H",
    "--host",
    envvar="DAEMON_HOST",
    default=DEFAULT_HOST,
    show_default=True,
    help="Daemon socket to connect to (unix://PATH or tcp://HOST:PORT)",
)
@click.option("--tls", is_flag=True, help="Use TLS; implied by --tlsverify")
@click.option(
    "--tlsverify",
    is_flag=True,
    envvar="DAEMON_TLS_VERIFY",
    help="Use TLS and verify the daemon certificate",
)
@click.option("--tlscacert", type=click.Path(dir_okay=False), help="Trust certs signed only by this CA")
@click.option("--tlscert", type=click.Path(dir_okay=False), help="Path to TLS certificate file")
@click.option("--tlskey", type=click.Path(dir_okay=False), help="Path to TLS key file")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="DAEMON_CONFIG",
    help="Location of the client config file",
)
@click.option("-D", "--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="warning",
    help="Logging level",
)
@click.option("-v", "--version", "show_version", is_flag=True, help="Print version and exit")
@click.option("-h", "--help", "show_help", is_flag=True, help="Print usage")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def main(
    host: str,
    tls: bool,
    tlsverify: bool,
    tlscacert: str | None,
    tlscert: str | None,
    tlskey: str | None,
    config_path: Path | None,
    debug: bool,
    log_level: str,
    show_version: bool,
    show_help: bool,
    args: tuple[str, ...],
) -> None:
    """A command-line client for the daemon."""
    _configure_logging(debug, log_level)

    if show_version:
        click.echo(f"{PROG_NAME} version {__version__}")
        return

    if show_help:
        args = ("help",)

    use_tls = tls or tlsverify
    key_file = tlskey or (_default_cert(DEFAULT_KEY_FILE) if use_tls else None) or ""

    try:
        proto, addr = parse_host(host, tls=use_tls)
        tls_config = None
        if use_tls:
            tls_config = build_tls_config(
                ca_file=tlscacert or _default_cert(DEFAULT_CA_FILE),
                cert_file=tlscert or _default_cert(DEFAULT_CERT_FILE),
                key_file=key_file or None,
                verify=tlsverify,
            )
    except DaemonCliError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (OSError, ssl.SSLError) as e:
        click.echo(f"Error: could not load TLS configuration: {e}", err=True)
        sys.exit(1)

    cli = DaemonCli(
        click.get_text_stream("stdin"),
        click.get_text_stream("stdout"),
        click.get_text_stream("stderr"),
        key_file=key_file,
        proto=proto,
        addr=addr,
        tls_config=tls_config,
    )
    logger.debug(f"Connecting to {proto.value}://{addr} over {cli.scheme}")
    sys.exit(run(cli, args, config_path))

"""Tests for the daemon-cli entry point."""

from __future__ import annotations

import io

import pytest
from click.testing import CliRunner

from daemon_cli import __version__
from daemon_cli.cli import main, run
from daemon_cli.client import DaemonCli
from daemon_cli.errors import DaemonConnectionError
from daemon_cli.registry import CommandRegistry


@pytest.fixture
def runner(isolated_config, monkeypatch) -> CliRunner:
    for name in ("DAEMON_HOST", "DAEMON_TLS_VERIFY", "DAEMON_CERT_PATH"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


class TestMain:
    """Tests for the click entry point."""

    def test_version_flag(self, runner):
        result = runner.invoke(main, ["-v"])

        assert result.exit_code == 0
        assert f"daemon-cli version {__version__}" in result.output

    def test_no_arguments_shows_help(self, runner):
        """An empty command line shows help and succeeds."""
        result = runner.invoke(main, [])

        assert result.exit_code == 0
        assert "Commands:" in result.output

    def test_help_flag(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Commands:" in result.output

    def test_unknown_command(self, runner):
        """Unknown commands name the token and exit with status 1."""
        result = runner.invoke(main, ["bogus"])

        assert result.exit_code == 1
        assert "'bogus' is not a daemon-cli command" in result.output

    def test_command_help(self, runner):
        """Usage output is a help path and exits with status 0."""
        result = runner.invoke(main, ["help", "ping"])

        assert result.exit_code == 0
        assert "Usage: daemon-cli ping" in result.output

    def test_command_option_error(self, runner):
        result = runner.invoke(main, ["ping", "--bogus"])

        assert result.exit_code == 2
        assert "--bogus" in result.output

    def test_invalid_host(self, runner):
        result = runner.invoke(main, ["-H", "ftp://example.com", "ping"])

        assert result.exit_code == 1
        assert "invalid bind address" in result.output

    def test_unreachable_daemon(self, runner, tmp_path):
        """Connection failures are reported, not swallowed."""
        result = runner.invoke(main, ["-H", f"unix://{tmp_path}/missing.sock", "ping"])

        assert result.exit_code == 1
        assert "Cannot connect to the daemon" in result.output

    def test_broken_config_is_a_warning(self, runner, isolated_config):
        """A broken config file warns but the command still runs."""
        isolated_config.write_text("{")

        result = runner.invoke(main, ["help"])

        assert result.exit_code == 0
        assert "WARNING:" in result.output
        assert "Commands:" in result.output


class TestRun:
    """Tests for run(), the exit status translation."""

    @pytest.fixture
    def registry(self) -> CommandRegistry:
        registry = CommandRegistry()

        def ok(cli, *args):
            cli.echo("ok")

        def fail(cli, *args):
            raise DaemonConnectionError("daemon is down")

        registry.register(ok, "help")
        registry.register(fail, "fail")
        return registry

    def _cli(self, registry) -> DaemonCli:
        return DaemonCli(
            io.StringIO(),
            io.StringIO(),
            io.StringIO(),
            proto="tcp",
            addr="127.0.0.1:2375",
            registry=registry,
        )

    def test_success(self, registry, isolated_config):
        cli = self._cli(registry)

        assert run(cli, []) == 0
        assert cli.out.getvalue() == "ok\n"

    def test_handler_error(self, registry, isolated_config):
        """Handler errors become status 1 with the message on stderr."""
        cli = self._cli(registry)

        assert run(cli, ["fail"]) == 1
        assert cli.err.getvalue() == "Error: daemon is down\n"

    def test_unknown_command(self, registry, isolated_config):
        cli = self._cli(registry)

        assert run(cli, ["nope"]) == 1
        assert "'nope'" in cli.err.getvalue()

    def test_closes_input(self, registry, isolated_config):
        cli = self._cli(registry)

        run(cli, [])

        assert cli.in_stream.closed

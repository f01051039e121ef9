"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from daemon_cli.client import DaemonCli
from daemon_cli.registry import CommandRegistry


class FakeTerminal(io.StringIO):
    """In-memory stream that reports itself as a terminal on fd 7."""

    def fileno(self) -> int:
        return 7

    def isatty(self) -> bool:
        return True


@pytest.fixture
def fake_terminal() -> FakeTerminal:
    """A stream that looks like an interactive terminal."""
    return FakeTerminal()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the client configuration at an empty temp location."""
    path = tmp_path / "config.json"
    monkeypatch.setenv("DAEMON_CONFIG", str(path))
    return path


@pytest.fixture
def make_cli() -> Callable[..., DaemonCli]:
    """Factory for a DaemonCli wired to in-memory streams.

    Usage:
        cli = make_cli(registry=registry)
        cli = make_cli(handler=lambda request: httpx.Response(200, json={}))
    """

    def factory(
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
        registry: CommandRegistry | None = None,
        in_stream: Any = None,
        err: Any = None,
        proto: str = "tcp",
        addr: str = "127.0.0.1:2375",
        **kwargs: Any,
    ) -> DaemonCli:
        transport = httpx.MockTransport(handler) if handler is not None else None
        return DaemonCli(
            in_stream if in_stream is not None else io.StringIO(),
            io.StringIO(),
            err,
            proto=proto,
            addr=addr,
            registry=registry,
            http_transport=transport,
            **kwargs,
        )

    return factory

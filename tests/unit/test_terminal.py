"""Unit tests for terminal capability detection."""

from __future__ import annotations

import io
import os

from daemon_cli.terminal import TerminalCapable, TerminalState, probe_stream


class BrokenTerminal(io.StringIO):
    """Has a descriptor but the terminal query fails."""

    def fileno(self) -> int:
        return 9

    def isatty(self) -> bool:
        raise OSError("bad descriptor")


class TestProbeStream:
    """Tests for probe_stream()."""

    def test_none_stream(self):
        """A missing stream is not a terminal and has no descriptor."""
        assert probe_stream(None) == TerminalState(fd=0, is_terminal=False)

    def test_object_without_capability(self):
        """Objects that cannot report a descriptor degrade to not a terminal."""
        stream = object()

        assert not isinstance(stream, TerminalCapable)
        assert probe_stream(stream) == TerminalState()

    def test_in_memory_buffer(self):
        """StringIO has the methods but no descriptor."""
        assert probe_stream(io.StringIO()) == TerminalState()

    def test_terminal_stream(self, fake_terminal):
        """A terminal reports its descriptor and terminal status."""
        state = probe_stream(fake_terminal)

        assert state.fd == 7
        assert state.is_terminal is True

    def test_regular_file_exposes_descriptor(self, tmp_path):
        """A real file has a descriptor but is not a terminal."""
        with open(tmp_path / "out.txt", "w") as f:
            state = probe_stream(f)

            assert state.fd == f.fileno()
            assert state.is_terminal is False

    def test_pipe_is_not_terminal(self):
        """Piped input is not a terminal."""
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd) as reader, os.fdopen(write_fd, "w"):
            state = probe_stream(reader)

        assert state.is_terminal is False

    def test_closed_file(self, tmp_path):
        """A closed file degrades instead of raising."""
        f = open(tmp_path / "closed.txt", "w")
        f.close()

        assert probe_stream(f) == TerminalState()

    def test_failing_terminal_query(self):
        """A failing isatty() keeps the descriptor but reports no terminal."""
        state = probe_stream(BrokenTerminal())

        assert state.fd == 9
        assert state.is_terminal is False

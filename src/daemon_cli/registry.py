"""Command handler registry and resolution.

Handlers are plain functions called as ``handler(cli, *args)``. Each is
registered under a canonical key built from one or two command words:
every word is capitalised (first character upper, rest lower) and the
words are joined behind the ``Cmd`` marker.

    ["container", "list"] -> "CmdContainerList"
    ["PS"]                -> "CmdPs"

Resolution tries the first two arguments as a compound name, then falls
back to the first argument alone. New commands are added by registering
them; the resolver itself never changes.

Usage:
    from daemon_cli.registry import command

    @command("container", "list", description="List containers")
    def container_list(cli, *args):
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import UnknownCommandError

logger = logging.getLogger(__name__)

COMMAND_MARKER = "Cmd"

# Longest compound command name, in words
MAX_COMMAND_WORDS = 2

HELP_COMMAND = "help"

# The actual signature is: Callable[[DaemonCli, *str], Any]
Handler = Callable[..., Any]


def normalize_token(token: str) -> str:
    """Capitalise a command word independent of its original casing."""
    return token[:1].upper() + token[1:].lower()


def command_key(*tokens: str) -> str | None:
    """Build the canonical lookup key for command words.

    Returns None when there are no words or any word is empty, so an empty
    argument can never look like a valid command.
    """
    if not tokens:
        return None
    parts = []
    for token in tokens:
        if not token:
            return None
        parts.append(normalize_token(token))
    return COMMAND_MARKER + "".join(parts)


@dataclass(frozen=True)
class RegisteredCommand:
    """A handler and the words it is registered under."""

    key: str
    words: tuple[str, ...]
    handler: Handler
    description: str = ""

    @property
    def name(self) -> str:
        """Command name as typed on the command line."""
        return " ".join(self.words)


class CommandRegistry:
    """Maps canonical command keys to handlers.

    Example:
        registry = CommandRegistry()
        registry.register(container_list, "container", "list")

        entry, rest = registry.resolve(["container", "list", "-a"])
        entry.handler(cli, *rest)
    """

    def __init__(self) -> None:
        self._commands: dict[str, RegisteredCommand] = {}

    def register(
        self,
        handler: Handler,
        *words: str,
        description: str = "",
        replace: bool = False,
    ) -> RegisteredCommand:
        """Register a handler under one or two command words.

        Raises:
            ValueError: For an invalid name or an already registered key
        """
        if not callable(handler):
            raise ValueError("Command handler must be callable")
        if not 1 <= len(words) <= MAX_COMMAND_WORDS:
            raise ValueError(f"Command name must have 1 to {MAX_COMMAND_WORDS} words: {words!r}")

        key = command_key(*words)
        if key is None:
            raise ValueError(f"Command name contains an empty word: {words!r}")
        if key in self._commands and not replace:
            raise ValueError(f"Command '{' '.join(words)}' already registered")

        entry = RegisteredCommand(
            key=key,
            words=tuple(word.lower() for word in words),
            handler=handler,
            description=description,
        )
        self._commands[key] = entry
        logger.debug(f"Registered command {key}")
        return entry

    def command(self, *words: str, description: str = "") -> Callable[[Handler], Handler]:
        """Decorator form of register()."""

        def decorator(func: Handler) -> Handler:
            self.register(func, *words, description=description)
            return func

        return decorator

    def unregister(self, *words: str) -> bool:
        """Remove a command. Returns True if it was registered."""
        key = command_key(*words)
        if key is None or key not in self._commands:
            return False
        del self._commands[key]
        return True

    def lookup(self, *words: str) -> RegisteredCommand | None:
        """Find the command registered for exactly these words."""
        key = command_key(*words)
        if key is None:
            return None
        return self._commands.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def list_commands(self) -> list[RegisteredCommand]:
        """All registered commands sorted by name."""
        return sorted(self._commands.values(), key=lambda entry: entry.name)

    def resolve(self, args: Sequence[str]) -> tuple[RegisteredCommand, tuple[str, ...]]:
        """Find the handler for an argument list.

        The first two arguments are tried as a compound name before the first
        argument alone. With no arguments at all the help command is chosen.

        Returns:
            The matched command and the arguments it did not consume

        Raises:
            UnknownCommandError: If nothing matches
        """
        if len(args) >= MAX_COMMAND_WORDS:
            entry = self.lookup(*args[:MAX_COMMAND_WORDS])
            if entry is not None:
                logger.debug(f"Resolved {entry.key}")
                return entry, tuple(args[MAX_COMMAND_WORDS:])

        if args:
            entry = self.lookup(args[0])
            if entry is None:
                raise UnknownCommandError(args[0])
            logger.debug(f"Resolved {entry.key}")
            return entry, tuple(args[1:])

        entry = self.lookup(HELP_COMMAND)
        if entry is None:
            raise UnknownCommandError(HELP_COMMAND)
        return entry, ()


# Registry populated by command modules as they are imported
default_registry = CommandRegistry()

command = default_registry.command

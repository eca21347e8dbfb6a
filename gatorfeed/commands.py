"""Named commands, the state they run against and their dispatch."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Callable

from gatorfeed.config import Config
from gatorfeed.database import Database
from gatorfeed.models import User


class CommandError(Exception):
    """A command was used wrongly or could not complete."""


class CommandNotFoundError(CommandError):
    """No handler is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__("command not found")
        self.name = name


@dataclass
class Command:
    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class State:
    db: Database
    config: Config


Handler = Callable[[State, Command], None]


class CommandRegistry:
    """Maps command names to handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def run(self, state: State, command: Command) -> None:
        """Run the handler for ``command``; raises CommandNotFoundError if none."""
        if command.name not in self._handlers:
            raise CommandNotFoundError(command.name)
        self._handlers[command.name](state, command)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers


def logged_in(handler: Callable[[State, Command, User], None]) -> Handler:
    """Wrap ``handler`` so it receives the current user."""

    @functools.wraps(handler)
    def wrapper(state: State, command: Command) -> None:
        handler(state, command, state.db.get_user(state.config.current_user_name))

    return wrapper
"""Command-line entry point."""

from __future__ import annotations

import logging
import sys

from gatorfeed.aggregator import handler_agg
from gatorfeed.commands import Command, CommandError, CommandRegistry, State, logged_in
from gatorfeed.config import read_config
from gatorfeed.database import Database, DatabaseError
from gatorfeed import handlers as h


def build_registry() -> CommandRegistry:
    """Return a registry holding every command of the program."""
    registry = CommandRegistry()
    for name, handler in {
        "register": h.handler_register,
        "login": h.handler_login,
        "reset": h.handler_reset,
        "users": h.handler_list_users,
        "agg": handler_agg,
        "addfeed": logged_in(h.handler_add_feed),
        "feeds": h.handler_list_feeds,
        "follow": logged_in(h.handler_follow),
        "following": logged_in(h.handler_list_feed_follows),
        "unfollow": logged_in(h.handler_unfollow),
        "browse": logged_in(h.handler_browse),
    }.items():
        registry.register(name, handler)
    return registry


def main(argv: list[str] | None = None) -> int:
    """Run one command; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s",
                        datefmt="%Y/%m/%d %H:%M:%S")
    try:
        config = read_config()
    except (OSError, ValueError) as exc:
        print(f"error reading config: {exc}", file=sys.stderr)
        return 1
    try:
        db = Database(config.db_url)
    except DatabaseError as exc:
        print(f"error connecting to db: {exc}", file=sys.stderr)
        return 1

    with db:
        if not args:
            print("Usage: cli <command> [args...]", file=sys.stderr)
            return 1
        try:
            build_registry().run(State(db=db, config=config), Command(args[0], args[1:]))
        except (CommandError, DatabaseError) as exc:
            print(exc, file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
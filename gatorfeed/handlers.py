"""Handlers for the user, feed, follow and browse commands."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from gatorfeed.commands import Command, CommandError, State
from gatorfeed.database import DatabaseError
from gatorfeed.models import Feed, FeedFollow, User, new_id, utc_now

SEPARATOR = "====================================="
DEFAULT_BROWSE_LIMIT = 2

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_INTEGER = re.compile(r"[+-]?[0-9]+", re.ASCII)


def _format_time(moment: datetime | None) -> str:
    """Render a timestamp as date, time, numeric offset and zone."""
    if moment is None:
        moment = _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%d %H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.strftime("%z")
    zone = "UTC" if moment.utcoffset().total_seconds() == 0 else offset
    return f"{text} {offset} {zone}"


def _short_date(moment: datetime | None) -> str:
    if moment is None:
        moment = _ZERO_TIME
    return f"{moment:%a %b} {moment.day}"


def format_user(user: User) -> str:
    """Describe a user on two lines."""
    return f" * ID:      {user.id}\n * Name:    {user.name}"


def format_feed(feed: Feed, user: User) -> str:
    """Describe a feed and the user who added it."""
    lines = [
        f"* ID:            {feed.id}",
        f"* Created:       {_format_time(feed.created_at)}",
        f"* Updated:       {_format_time(feed.updated_at)}",
        f"* Name:          {feed.name}",
        f"* URL:           {feed.url}",
        f"* User:          {user.name}",
        f"* LastFetchedAt: {_format_time(feed.last_fetched_at)}",
    ]
    return "\n".join(lines)


def format_feed_follow(user_name: str, feed_name: str) -> str:
    """Describe which user follows which feed."""
    return f"* User:          {user_name}\n* Feed:          {feed_name}"


def _set_current_user(state: State, name: str) -> None:
    try:
        state.config.set_user(name)
    except OSError as exc:
        raise CommandError(f"couldn't set current user: {exc}") from exc


def handler_register(state: State, command: Command) -> None:
    """Create a user and make it the current one."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <name>")
    now = utc_now()
    try:
        user = state.db.create_user(
            User(id=new_id(), created_at=now, updated_at=now, name=command.args[0])
        )
    except DatabaseError as exc:
        raise CommandError(f"couldn't create user: {exc}") from exc
    _set_current_user(state, user.name)
    print("User created successfully:")
    print(format_user(user))


def handler_login(state: State, command: Command) -> None:
    """Switch the current user to an existing one."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <name>")
    name = command.args[0]
    try:
        state.db.get_user(name)
    except DatabaseError as exc:
        raise CommandError(f"couldn't find user: {exc}") from exc
    _set_current_user(state, name)
    print("User switched successfully!")


def handler_reset(state: State, command: Command) -> None:
    """Delete every user, and with them everything they own."""
    try:
        state.db.delete_users()
    except DatabaseError as exc:
        raise CommandError(f"couldn't delete users: {exc}") from exc
    print("Database reset successfully!")


def handler_list_users(state: State, command: Command) -> None:
    """List all users, marking the current one."""
    try:
        users = state.db.get_users()
    except DatabaseError as exc:
        raise CommandError(f"couldn't list users: {exc}") from exc
    for user in users:
        if user.name == state.config.current_user_name:
            print(f"* {user.name} (current)")
        else:
            print(f"* {user.name}")


def handler_add_feed(state: State, command: Command, user: User) -> None:
    """Add a feed owned by ``user`` and follow it."""
    if len(command.args) != 2:
        raise CommandError(f"usage: {command.name} <name> <url>")
    name, url = command.args
    now = utc_now()
    try:
        feed = state.db.create_feed(
            Feed(id=new_id(), created_at=now, updated_at=now, name=name, url=url, user_id=user.id)
        )
    except DatabaseError as exc:
        raise CommandError(f"couldn't create feed: {exc}") from exc

    now = utc_now()
    try:
        follow = state.db.create_feed_follow(
            FeedFollow(id=new_id(), created_at=now, updated_at=now, user_id=user.id, feed_id=feed.id)
        )
    except DatabaseError as exc:
        raise CommandError(f"couldn't create feed follow: {exc}") from exc

    print("Feed created successfully:")
    print(format_feed(feed, user))
    print()
    print("Feed followed successfully:")
    print(format_feed_follow(follow.user_name, follow.feed_name))
    print(SEPARATOR)


def handler_list_feeds(state: State, command: Command) -> None:
    """List every feed with the user who added it."""
    try:
        feeds = state.db.get_feeds()
    except DatabaseError as exc:
        raise CommandError(f"couldn't get feeds: {exc}") from exc
    if not feeds:
        print("No feeds found.")
        return
    print(f"Found {len(feeds)} feeds:")
    for feed in feeds:
        try:
            owner = state.db.get_user_by_id(feed.user_id)
        except DatabaseError as exc:
            raise CommandError(f"couldn't get user: {exc}") from exc
        print(format_feed(feed, owner))
        print(SEPARATOR)


def handler_follow(state: State, command: Command, user: User) -> None:
    """Follow the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <feed_url>")
    try:
        feed = state.db.get_feed_by_url(command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"couldn't get feed: {exc}") from exc
    now = utc_now()
    try:
        follow = state.db.create_feed_follow(
            FeedFollow(id=new_id(), created_at=now, updated_at=now, user_id=user.id, feed_id=feed.id)
        )
    except DatabaseError as exc:
        raise CommandError(f"couldn't create feed follow: {exc}") from exc
    print("Feed follow created:")
    print(format_feed_follow(follow.user_name, follow.feed_name))


def handler_list_feed_follows(state: State, command: Command, user: User) -> None:
    """List the feeds ``user`` follows."""
    try:
        follows = state.db.get_feed_follows_for_user(user.id)
    except DatabaseError as exc:
        raise CommandError(f"couldn't get feed follows: {exc}") from exc
    if not follows:
        print("No feed follows found for this user.")
        return
    print(f"Feed follows for user {user.name}:")
    for follow in follows:
        print(f"* {follow.feed_name}")


def handler_unfollow(state: State, command: Command, user: User) -> None:
    """Stop following the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <feed_url>")
    try:
        feed = state.db.get_feed_by_url(command.args[0])
    except DatabaseError as exc:
        raise CommandError(f"couldn't get feed: {exc}") from exc
    try:
        state.db.delete_feed_follow(feed.id, user.id)
    except DatabaseError as exc:
        raise CommandError(f"couldn't delete feed follow: {exc}") from exc
    print(f"{feed.name} unfollowed successfully!")


def handler_browse(state: State, command: Command, user: User) -> None:
    """Show the latest posts from the feeds ``user`` follows."""
    limit = DEFAULT_BROWSE_LIMIT
    if len(command.args) == 1:
        text = command.args[0]
        if not _INTEGER.fullmatch(text):
            raise CommandError(f'invalid limit: parsing "{text}": invalid syntax')
        limit = int(text)
    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except DatabaseError as exc:
        raise CommandError(f"couldn't get posts for user: {exc}") from exc

    print(f"Found {len(posts)} posts for user {user.name}:")
    for post in posts:
        print(f"{_short_date(post.published_at)} from {post.feed_name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print(SEPARATOR)
"""Periodic collection of posts from the stored feeds."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta
from fractions import Fraction
from typing import Callable

from gatorfeed.commands import Command, CommandError, State
from gatorfeed.database import Database, DatabaseError, DuplicateError
from gatorfeed.models import Feed, Post, new_id, utc_now
from gatorfeed.rss import RSSFeed, fetch_feed

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], RSSFeed]

_NANOS = {"ns": 1, "us": 10**3, "\u00b5s": 10**3, "\u03bcs": 10**3,
          "ms": 10**6, "s": 10**9, "m": 60 * 10**9, "h": 3600 * 10**9}
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "1h30m", "1.5s" or "300ms"; raises ValueError."""
    negative = text[:1] == "-"
    rest = text[1:] if text[:1] in ("-", "+") else text
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')
    total = 0
    while rest:
        match = _COMPONENT.match(rest)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise ValueError(f'time: invalid duration "{text}"')
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _NANOS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        value = Fraction(int(whole or "0")) + (Fraction(int(frac), 10 ** len(frac)) if frac else 0)
        total += int(value * _NANOS[unit])
        if total > (1 << 63) - 1 + negative:
            raise ValueError(f'time: invalid duration "{text}"')
        rest = rest[match.end():]
    interval = timedelta(microseconds=total // 1000)
    return -interval if negative else interval


def parse_pub_date(text: str) -> datetime | None:
    """Parse an RFC 1123 date with numeric zone; None if it does not parse."""
    try:
        return datetime.strptime(text, "%a, %d %b %Y %H:%M:%S %z")
    except ValueError:
        return None


def scrape_feed(db: Database, feed: Feed, fetcher: Fetcher = fetch_feed) -> int:
    """Mark ``feed`` fetched and store its new posts; failures are logged.

    Returns the number of posts stored.
    """
    try:
        db.mark_feed_fetched(feed.id)
    except DatabaseError as exc:
        logger.warning("Couldn't mark feed %s fetched: %s", feed.name, exc)
        return 0
    try:
        data = fetcher(feed.url)
    except (OSError, ValueError) as exc:
        logger.warning("Couldn't collect feed %s: %s", feed.name, exc)
        return 0

    created = 0
    for item in data.items:
        now = utc_now()
        try:
            db.create_post(Post(
                id=new_id(), created_at=now, updated_at=now, title=item.title,
                url=item.link, description=item.description,
                published_at=parse_pub_date(item.pub_date), feed_id=feed.id,
            ))
        except DuplicateError:
            continue
        except DatabaseError as exc:
            logger.warning("Couldn't create post: %s", exc)
            continue
        created += 1
    logger.info("Feed %s collected, %d posts found", feed.name, len(data.items))
    return created


def scrape_feeds(state: State, fetcher: Fetcher = fetch_feed) -> int | None:
    """Scrape the most overdue feed; None when there is none."""
    try:
        feed = state.db.get_next_feed_to_fetch()
    except DatabaseError as exc:
        logger.warning("Couldn't get next feeds to fetch %s", exc)
        return None
    logger.info("Found a feed to fetch!")
    return scrape_feed(state.db, feed, fetcher)


def handler_agg(state: State, command: Command, rounds: int | None = None) -> None:
    """Scrape at once and then once per interval, forever or for ``rounds`` scrapes."""
    if not 1 <= len(command.args) <= 2:
        raise CommandError(f"usage: {command.name} <time_between_reqs>")
    try:
        interval = parse_duration(command.args[0])
    except ValueError as exc:
        raise CommandError(f"invalid duration: {exc}") from exc
    if interval <= timedelta(0):
        raise CommandError("non-positive interval for ticker")

    logger.info("Collecting feeds every %s...", command.args[0])
    next_tick = time.monotonic()
    completed = 0
    while True:
        scrape_feeds(state)
        completed += 1
        if rounds is not None and completed >= rounds:
            return
        next_tick = max(next_tick + interval.total_seconds(), time.monotonic())
        time.sleep(max(0.0, next_tick - time.monotonic()))
"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, TypeVar

from gatorfeed.models import Feed, FeedFollow, FeedFollowRow, Post, PostWithFeed, User, utc_now

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "users.id, users.created_at, users.updated_at, users.name"
_FEED_COLUMNS = (
    "feeds.id, feeds.created_at, feeds.updated_at, feeds.name, feeds.url, "
    "feeds.user_id, feeds.last_fetched_at"
)
_FOLLOW_ROW_SELECT = (
    "SELECT feed_follows.id, feed_follows.created_at, feed_follows.updated_at, "
    "feed_follows.user_id, feed_follows.feed_id, feeds.name AS feed_name, users.name AS user_name "
    "FROM feed_follows "
    "INNER JOIN feeds ON feed_follows.feed_id = feeds.id "
    "INNER JOIN users ON feed_follows.user_id = users.id "
)
_POST_COLUMNS = (
    "posts.id, posts.created_at, posts.updated_at, posts.title, posts.url, "
    "posts.description, posts.published_at, posts.feed_id"
)


class DatabaseError(Exception):
    """A storage operation failed."""


class NotFoundError(DatabaseError):
    """A query that must return one row returned none."""


class DuplicateError(DatabaseError):
    """An insert violated a unique constraint."""


@contextmanager
def _translate() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise DuplicateError(f"duplicate key value violates unique constraint: {exc}") from exc
        raise DatabaseError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _dt(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


def _user(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=uuid.UUID(row["user_id"]),
        last_fetched_at=_dt(row["last_fetched_at"]),
    )


def _follow_row(row: sqlite3.Row) -> FeedFollowRow:
    return FeedFollowRow(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        user_id=uuid.UUID(row["user_id"]),
        feed_id=uuid.UUID(row["feed_id"]),
        feed_name=row["feed_name"],
        user_name=row["user_name"],
    )


def _post(row: sqlite3.Row) -> Post:
    return Post(
        id=uuid.UUID(row["id"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=_dt(row["published_at"]),
        feed_id=uuid.UUID(row["feed_id"]),
    )


def _post_with_feed(row: sqlite3.Row) -> PostWithFeed:
    post = _post(row)
    return PostWithFeed(
        id=post.id,
        created_at=post.created_at,
        updated_at=post.updated_at,
        title=post.title,
        url=post.url,
        description=post.description,
        published_at=post.published_at,
        feed_id=post.feed_id,
        feed_name=row["feed_name"],
    )


def _sqlite_target(url: str) -> str:
    if url in ("", ":memory:"):
        return ":memory:"
    if url.startswith("sqlite://"):
        rest = url[len("sqlite://"):]
        if rest.startswith("/"):
            rest = rest[1:]
        return rest or ":memory:"
    if "://" in url:
        raise DatabaseError(f"unsupported database url: {url}")
    return url


class Database:
    """Queries over a SQLite database; usable as a context manager."""

    def __init__(self, url: str) -> None:
        target = _sqlite_target(url)
        with _translate():
            self._conn = sqlite3.connect(target, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
        self._in_transaction = False

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the enclosed operations atomically; nested use joins the outer one."""
        if self._in_transaction:
            yield self
            return
        with _translate():
            self._conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            with _translate():
                self._conn.execute("ROLLBACK")
            raise
        else:
            with _translate():
                self._conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with _translate():
            return self._conn.execute(sql, params)

    def _fetch_one(self, sql: str, params: tuple, convert: Callable[[sqlite3.Row], T], missing: str) -> T:
        with _translate():
            row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError(missing)
        return convert(row)

    def _fetch_all(self, sql: str, params: tuple, convert: Callable[[sqlite3.Row], T]) -> list[T]:
        with _translate():
            rows = self._conn.execute(sql, params).fetchall()
        return [convert(row) for row in rows]

    # users

    def create_user(self, user: User) -> User:
        with self.transaction():
            self._execute(
                "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
                (str(user.id), _ts(user.created_at), _ts(user.updated_at), user.name),
            )
            return self.get_user_by_id(user.id)

    def delete_users(self) -> None:
        self._execute("DELETE FROM users")

    def get_user(self, name: str) -> User:
        return self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?",
            (name,),
            _user,
            f"no user named {name!r}",
        )

    def get_user_by_id(self, user_id: uuid.UUID) -> User:
        return self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
            (str(user_id),),
            _user,
            f"no user with id {user_id}",
        )

    def get_users(self) -> list[User]:
        return self._fetch_all(f"SELECT {_USER_COLUMNS} FROM users ORDER BY rowid", (), _user)

    # feeds

    def create_feed(self, feed: Feed) -> Feed:
        with self.transaction():
            self._execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    str(feed.id),
                    _ts(feed.created_at),
                    _ts(feed.updated_at),
                    feed.name,
                    feed.url,
                    str(feed.user_id),
                ),
            )
            return self._feed_by_id(feed.id)

    def _feed_by_id(self, feed_id: uuid.UUID) -> Feed:
        return self._fetch_one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?",
            (str(feed_id),),
            _feed,
            f"no feed with id {feed_id}",
        )

    def get_feed_by_url(self, url: str) -> Feed:
        return self._fetch_one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?",
            (url,),
            _feed,
            f"no feed with url {url!r}",
        )

    def get_feeds(self) -> list[Feed]:
        return self._fetch_all(f"SELECT {_FEED_COLUMNS} FROM feeds ORDER BY rowid", (), _feed)

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return self._fetch_one(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1",
            (),
            _feed,
            "no feeds to fetch",
        )

    def mark_feed_fetched(self, feed_id: uuid.UUID) -> Feed:
        now = _ts(utc_now())
        with self.transaction():
            cursor = self._execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (now, now, str(feed_id)),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"no feed with id {feed_id}")
            return self._feed_by_id(feed_id)

    # feed follows

    def create_feed_follow(self, follow: FeedFollow) -> FeedFollowRow:
        with self.transaction():
            self._execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    str(follow.id),
                    _ts(follow.created_at),
                    _ts(follow.updated_at),
                    str(follow.user_id),
                    str(follow.feed_id),
                ),
            )
            return self._fetch_one(
                _FOLLOW_ROW_SELECT + "WHERE feed_follows.id = ?",
                (str(follow.id),),
                _follow_row,
                f"no feed follow with id {follow.id}",
            )

    def delete_feed_follow(self, feed_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self._execute(
            "DELETE FROM feed_follows WHERE feed_id = ? AND user_id = ?",
            (str(feed_id), str(user_id)),
        )

    def get_feed_follows_for_user(self, user_id: uuid.UUID) -> list[FeedFollowRow]:
        return self._fetch_all(
            _FOLLOW_ROW_SELECT + "WHERE feed_follows.user_id = ? ORDER BY feed_follows.rowid",
            (str(user_id),),
            _follow_row,
        )

    # posts

    def create_post(self, post: Post) -> Post:
        with self.transaction():
            self._execute(
                "INSERT INTO posts (id, created_at, updated_at, title, url, description, "
                "published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(post.id),
                    _ts(post.created_at),
                    _ts(post.updated_at),
                    post.title,
                    post.url,
                    post.description,
                    _ts(post.published_at),
                    str(post.feed_id),
                ),
            )
            return self._fetch_one(
                f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?",
                (str(post.id),),
                _post,
                f"no post with id {post.id}",
            )

    def get_posts_for_user(self, user_id: uuid.UUID, limit: int) -> list[PostWithFeed]:
        """Newest posts from the feeds a user follows; undated posts come first."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        return self._fetch_all(
            f"SELECT {_POST_COLUMNS}, feeds.name AS feed_name FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NOT NULL, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), int(limit)),
            _post_with_feed,
        )
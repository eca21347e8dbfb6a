# gatorfeed

`gatorfeed` is a small command-line RSS aggregator. Users register, add
feeds, follow feeds that others have added, and browse the latest posts
from everything they follow. The `agg` command keeps collecting new
posts at a fixed interval until it is stopped.

Everything is kept in a SQLite database; the package has no
dependencies outside the standard library.

## Installation

```
pip install .
```

This installs the `gator` command.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home
directory. The file must exist before the first run:

```json
{"db_url": "/home/you/gator.db", "current_user_name": ""}
```

`db_url` names the SQLite database. It may be a file path, a
`sqlite://` URL (`sqlite:///home/you/gator.db` or `sqlite://gator.db`),
or `:memory:`; an empty value also means an in-memory database, which
is discarded when the command ends. Any other URL scheme is rejected
with "unsupported database url". The tables are created on first use.

`current_user_name` is rewritten by `gator register` and `gator login`,
so normally you only set `db_url` yourself.

## Usage

```
gator <command> [args...]
```

With no command, `gator` prints a usage line and exits with status 1.
A failing command prints its error to standard error and exits with
status 1; Ctrl+C exits with status 130.

### Users

```
gator register alice        # create a user and log in as them
gator login alice           # switch to an existing user
gator users                 # list users, marking the current one
gator reset                 # delete all users, with their feeds, follows and posts
```

User names are unique; registering a name twice fails.

### Feeds

```
gator addfeed "Example Blog" https://blog.example.com/index.xml
gator feeds                 # list every feed and who added it
gator follow https://blog.example.com/index.xml
gator following             # feeds the current user follows
gator unfollow https://blog.example.com/index.xml
```

Adding a feed also makes the current user follow it. Feed URLs are
unique, and a user can follow a given feed only once.

### Collecting and reading posts

```
gator agg 1m                # scrape one feed now, then once a minute
gator browse                # show the 2 newest posts from followed feeds
gator browse 10             # show the 10 newest
```

`agg` takes a duration made of numbers and units, such as `30s`, `1m`,
`1h30m`, `1.5s` or `300ms` (units `ns`, `us`, `ms`, `s`, `m`, `h`);
zero or negative intervals are refused. On each tick it picks the feed
fetched least recently (feeds never fetched come first), marks it
fetched, downloads it with a 10-second timeout, and stores its items as
posts. Items whose link is already stored are skipped. Publication
dates are read in the form `Mon, 02 Jan 2006 15:04:05 -0700`; items
with other date forms are stored undated. Progress is logged to
standard error. Stop it with Ctrl+C.

`browse` lists posts newest first; undated posts are listed before
dated ones.

Commands that act on behalf of a user (`addfeed`, `follow`,
`following`, `unfollow`, `browse`) fail unless the current user exists.

## Using the modules

- `gatorfeed.config`: `Config`, `read_config(path)`,
  `config_file_path(home)`.
- `gatorfeed.database`: `Database(url)`, a context manager with
  query methods such as `create_user`, `get_feeds`,
  `get_next_feed_to_fetch` and `get_posts_for_user`, plus
  `transaction()`. Failures raise `DatabaseError`, `NotFoundError` or
  `DuplicateError`.
- `gatorfeed.models`: the `User`, `Feed`, `FeedFollow`,
  `FeedFollowRow`, `Post` and `PostWithFeed` records.
- `gatorfeed.rss`: `parse_feed(data)` and `fetch_feed(url, timeout)`,
  returning an `RSSFeed` of `RSSItem`s with titles and descriptions
  HTML-unescaped.
- `gatorfeed.aggregator`: `parse_duration`, `parse_pub_date`,
  `scrape_feed` and `scrape_feeds`, which accept a custom fetcher.
- `gatorfeed.commands` and `gatorfeed.cli`: `CommandRegistry`,
  `logged_in`, `build_registry()` and `main(argv)`.

## What it does not do

- Storage is SQLite only; there is no support for a database server
  such as PostgreSQL.
- There are no passwords: `login` only switches the name stored in the
  configuration file.
- `agg` runs in the foreground and scrapes one feed per tick; it is not
  a background service.

## Development

```
pip install -e ".[test]"
pytest
```
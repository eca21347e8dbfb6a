"""Downloading and decoding RSS documents."""

from __future__ import annotations

import html
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


def _name(element: ET.Element) -> str:
    return element.tag.rsplit("}", 1)[-1] if isinstance(element.tag, str) else ""


def _fields(element: ET.Element, wanted: dict[str, str]) -> dict[str, str]:
    """Direct character data of the children named in ``wanted``, by attribute."""
    return {
        wanted[_name(child)]: (child.text or "") + "".join(c.tail or "" for c in child)
        for child in element
        if _name(child) in wanted
    }


def parse_feed(data: bytes | str) -> RSSFeed:
    """Decode an RSS document, unescaping titles and descriptions; raises ValueError."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ValueError(f"invalid feed document: {exc}") from exc

    channel_keys = {"title": "title", "link": "link", "description": "description"}
    item_keys = {**channel_keys, "pubDate": "pub_date"}
    feed = RSSFeed()
    for channel in (c for c in root if _name(c) == "channel"):
        for key, value in _fields(channel, channel_keys).items():
            setattr(feed, key, value)
        feed.items += [RSSItem(**_fields(i, item_keys)) for i in channel if _name(i) == "item"]

    for record in (feed, *feed.items):
        record.title = html.unescape(record.title)
        record.description = html.unescape(record.description)
    return feed


def fetch_feed(url: str, timeout: float = 10.0) -> RSSFeed:
    """Download and decode the feed at ``url``, whatever the HTTP status."""
    request = urllib.request.Request(url, headers={"User-Agent": "gator"})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            data = response.read()
    except urllib.error.HTTPError as exc:
        with exc:
            data = exc.read()
    return parse_feed(data)
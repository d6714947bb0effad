from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Literal, Optional

FeedFormat = Literal["rss", "atom", "rdf", "json", "unknown"]


@dataclass(slots=True)
class Enclosure:
    """A media attachment referenced by an entry."""

    url: str
    mime_type: str = ""
    size: int = 0


@dataclass(slots=True)
class Entry:
    title: str = ""
    url: str = ""
    comments_url: str = ""
    author: str = ""
    content: str = ""
    date: Optional[datetime.datetime] = None
    hash: str = ""
    enclosures: list[Enclosure] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Feed:
    """Normalized representation of one subscribed source."""

    title: str = ""
    site_url: str = ""
    feed_url: str = ""
    icon_url: str = ""
    entries: list[Entry] = field(default_factory=list)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class EnclosureList(list):
    """Enclosures de-duplicated by URL, first occurrence wins."""

    def __init__(self) -> None:
        super().__init__()
        self._seen: set[str] = set()

    def has(self, url: str) -> bool:
        return url in self._seen

    def add(self, url: str, mime_type: str = "", size: int = 0) -> bool:
        if not url or url in self._seen:
            return False
        self._seen.add(url)
        self.append(Enclosure(url=url, mime_type=mime_type, size=size))
        return True

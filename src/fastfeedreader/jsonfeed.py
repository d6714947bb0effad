"""JSON Feed 1.0 / 1.1 reader.

Format reference: https://www.jsonfeed.org/version/1.1/
"""

from __future__ import annotations

import logging
from typing import Any

import orjson

from .dates import parse_date_or_none
from .errors import FeedParseError
from .hashing import hash_value
from .model import EnclosureList, Entry, Feed, utcnow
from .sanitizer import truncate_html
from .urls import resolve_or_keep

logger = logging.getLogger(__name__)


def _string(mapping: dict[str, Any], key: str) -> str:
    value = mapping.get(key)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _author_names(value: Any) -> list[str]:
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return []
    names = []
    for author in value:
        if isinstance(author, dict):
            name = _string(author, "name")
            if name:
                names.append(name)
    return names


def _size(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def load_json_feed(data: str | bytes) -> dict[str, Any]:
    try:
        document = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise FeedParseError(str(e)) from e
    if not isinstance(document, dict):
        raise FeedParseError("JSON Feed document must be an object")
    return document


def parse_json_feed(base_url: str, data: str | bytes) -> Feed:
    document = load_json_feed(data)
    base_url = base_url.strip()

    feed_url = _string(document, "feed_url") or base_url
    site_url = _string(document, "home_page_url") or feed_url
    feed = Feed(
        title=_string(document, "title"),
        feed_url=resolve_or_keep(base_url, feed_url),
        site_url=resolve_or_keep(base_url, site_url),
    )
    if not feed.title:
        feed.title = feed.site_url

    for key in ("favicon", "icon"):
        icon = _string(document, key)
        if icon:
            feed.icon_url = resolve_or_keep(feed.site_url, icon)
            break

    feed_authors = _author_names(document.get("authors")) or _author_names(
        document.get("author")
    )

    items = document.get("items")
    if not isinstance(items, list):
        items = []

    for item in items:
        if not isinstance(item, dict):
            continue
        entry = Entry()

        raw_url = _string(item, "url")
        entry.url = resolve_or_keep(feed.site_url, raw_url) if raw_url else feed.site_url

        summary = _string(item, "summary")
        content_text = _string(item, "content_text")
        content_html = _string(item, "content_html")

        entry.title = _string(item, "title")
        if not entry.title:
            for value in (summary, content_text, content_html):
                if value:
                    entry.title = truncate_html(value, 100)
                    break
        if not entry.title:
            entry.title = entry.url

        entry.content = content_html or content_text or summary

        for key in ("date_published", "date_modified"):
            value = _string(item, key)
            if not value:
                continue
            parsed = parse_date_or_none(value)
            if parsed is not None:
                entry.date = parsed
                break
            logger.debug("Unable to parse date %r from JSON Feed item %s", value, entry.url)
        if entry.date is None:
            entry.date = utcnow()

        authors = (
            _author_names(item.get("authors"))
            or _author_names(item.get("author"))
            or feed_authors
        )
        entry.author = ", ".join(sorted(set(authors)))

        enclosures = EnclosureList()
        attachments = item.get("attachments")
        if isinstance(attachments, list):
            for attachment in attachments:
                if not isinstance(attachment, dict):
                    continue
                attachment_url = _string(attachment, "url")
                if attachment_url:
                    enclosures.add(
                        resolve_or_keep(feed.site_url, attachment_url),
                        _string(attachment, "mime_type"),
                        _size(attachment.get("size_in_bytes")),
                    )
        entry.enclosures = list(enclosures)

        tags = item.get("tags")
        if isinstance(tags, list):
            entry.tags = [str(tag).strip() for tag in tags if str(tag).strip()]

        for value in (_string(item, "id"), raw_url, content_text + content_html + summary):
            if value:
                entry.hash = hash_value(value)
                break

        feed.entries.append(entry)

    return feed

"""RDF Site Summary (RSS 0.90 / 1.0) reader."""

from __future__ import annotations

import html as _html_mod
import logging
from typing import TYPE_CHECKING, Optional

from .dates import parse_date_or_none
from .hashing import hash_value
from .model import Entry, Feed, utcnow
from .sanitizer import strip_tags
from .urls import resolve_or_keep
from .xmlutil import NS_CONTENT, NS_DC, NS_RSS10, child_text, local_name, namespace, qname

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger(__name__)

_CONTENT_ENCODED = qname(NS_CONTENT, "encoded")
_DC_CREATOR = qname(NS_DC, "creator")
_DC_DATE = qname(NS_DC, "date")
_DC_TITLE = qname(NS_DC, "title")


def _find_by_local_name(root: _Element, name: str) -> list[_Element]:
    return [node for node in root if local_name(node) == name]


def _stripped(value: str) -> str:
    return strip_tags(value).strip()


def parse_rdf(feed_url: str, root: _Element) -> Feed:
    channels = _find_by_local_name(root, "channel")
    channel: Optional[_Element] = channels[0] if channels else None
    # RSS 1.0 and RSS 0.90 only differ by namespace
    ns = namespace(channel) if channel is not None else NS_RSS10

    def text(element: Optional[_Element], name: str) -> str:
        if element is None:
            return ""
        return child_text(element, qname(ns, name))

    feed = Feed(title=_stripped(text(channel, "title")), feed_url=feed_url)
    if not feed.title:
        feed.title = feed_url

    channel_link = text(channel, "link")
    feed.site_url = resolve_or_keep(feed_url, channel_link)

    channel_creator = child_text(channel, _DC_CREATOR) if channel is not None else ""

    for item in _find_by_local_name(root, "item"):
        entry = Entry()
        item_link = text(item, "link")

        if not item_link:
            entry.url = feed.site_url
        else:
            entry.url = resolve_or_keep(feed.site_url, item_link)

        title = text(item, "title") or child_text(item, _DC_TITLE)
        entry.title = _html_mod.unescape(title) if title else entry.url

        description = text(item, "description")
        entry.content = child_text(item, _CONTENT_ENCODED) or description

        entry.hash = hash_value(item_link or text(item, "title") + description)

        entry.date = utcnow()
        dc_date = child_text(item, _DC_DATE)
        if dc_date:
            parsed = parse_date_or_none(dc_date)
            if parsed is None:
                logger.debug("Unable to parse date %r from RDF item %s", dc_date, item_link)
            else:
                entry.date = parsed

        creator = child_text(item, _DC_CREATOR) or channel_creator
        entry.author = _stripped(creator)

        feed.entries.append(entry)

    return feed

"""RSS 2.0 reader with Dublin Core, iTunes, Google Play, FeedBurner and Media RSS support."""

from __future__ import annotations

import html as _html_mod
import logging
import posixpath
from typing import TYPE_CHECKING, Optional

from . import media
from .dates import parse_date_or_none
from .hashing import hash_value
from .model import EnclosureList, Entry, Feed, utcnow
from .sanitizer import strip_tags, truncate_html
from .urls import absolute_url, is_absolute_url, resolve_or_keep
from .xmlutil import (
    NS_ATOM,
    NS_CONTENT,
    NS_DC,
    NS_FEEDBURNER,
    NS_GOOGLEPLAY,
    NS_ITUNES,
    attr,
    child,
    child_text,
    children,
    first_child_text,
    qname,
    text_of,
)

if TYPE_CHECKING:
    import datetime

    from lxml.etree import _Element

logger = logging.getLogger(__name__)

_ATOM_LINK = qname(NS_ATOM, "link")
_ATOM_AUTHOR = qname(NS_ATOM, "author")
_ATOM_NAME = qname(NS_ATOM, "name")
_ATOM_EMAIL = qname(NS_ATOM, "email")
_CONTENT_ENCODED = qname(NS_CONTENT, "encoded")
_DC_CREATOR = qname(NS_DC, "creator")
_DC_DATE = qname(NS_DC, "date")
_DC_TITLE = qname(NS_DC, "title")
_ITUNES_AUTHOR = qname(NS_ITUNES, "author")
_ITUNES_SUMMARY = qname(NS_ITUNES, "summary")
_ITUNES_SUBTITLE = qname(NS_ITUNES, "subtitle")
_ITUNES_OWNER = qname(NS_ITUNES, "owner")
_ITUNES_NAME = qname(NS_ITUNES, "name")
_ITUNES_EMAIL = qname(NS_ITUNES, "email")
_ITUNES_CATEGORY = qname(NS_ITUNES, "category")
_GOOGLEPLAY_AUTHOR = qname(NS_GOOGLEPLAY, "author")
_GOOGLEPLAY_DESCRIPTION = qname(NS_GOOGLEPLAY, "description")
_GOOGLEPLAY_CATEGORY = qname(NS_GOOGLEPLAY, "category")
_FEEDBURNER_ORIG_LINK = qname(NS_FEEDBURNER, "origLink")
_FEEDBURNER_ORIG_ENCLOSURE_LINK = qname(NS_FEEDBURNER, "origEnclosureLink")


def _channel(root: _Element) -> _Element:
    channel = child(root, "channel")
    return channel if channel is not None else root


def _items(root: _Element, channel: _Element) -> list[_Element]:
    items = list(children(channel, "item"))
    if channel is not root:
        # Some RSS 0.9x producers put items next to the channel
        items.extend(children(root, "item"))
    return items


def _atom_person_name(element: _Element) -> str:
    author = child(element, _ATOM_AUTHOR)
    if author is None:
        return ""
    return child_text(author, _ATOM_NAME) or child_text(author, _ATOM_EMAIL)


def _itunes_owner(channel: _Element) -> str:
    owner = child(channel, _ITUNES_OWNER)
    if owner is None:
        return ""
    return child_text(owner, _ITUNES_NAME) or child_text(owner, _ITUNES_EMAIL)


def _itunes_categories(channel: _Element) -> list[str]:
    categories = []
    for category in children(channel, _ITUNES_CATEGORY):
        name = attr(category, "text")
        if name:
            categories.append(name)
        for sub_category in children(category, _ITUNES_CATEGORY):
            sub_name = attr(sub_category, "text")
            if sub_name:
                categories.append(sub_name)
    return categories


def _feed_author(channel: _Element) -> str:
    author = (
        child_text(channel, _ITUNES_AUTHOR)
        or child_text(channel, _GOOGLEPLAY_AUTHOR)
        or _itunes_owner(channel)
        or child_text(channel, "managingEditor")
        or child_text(channel, "webMaster")
    )
    return strip_tags(author).strip()


def _feed_url(channel: _Element, base_url: str) -> str:
    for link in children(channel, _ATOM_LINK):
        href = attr(link, "href")
        if href and attr(link, "rel") == "self":
            try:
                return absolute_url(base_url, href)
            except ValueError:
                continue
    return base_url


def _entry_url(item: _Element) -> str:
    link = first_child_text(item, _FEEDBURNER_ORIG_LINK, "link")
    if link:
        return link

    for atom_link in children(item, _ATOM_LINK):
        href = attr(atom_link, "href")
        if href and attr(atom_link, "rel").lower() in ("alternate", ""):
            return href

    guid = child(item, "guid")
    if guid is not None and attr(guid, "isPermaLink") in ("true", ""):
        return text_of(guid)
    return ""


def _entry_title(item: _Element) -> str:
    title = child_text(item, _DC_TITLE) or child_text(item, "title")
    return _html_mod.unescape(title)


def _entry_content(item: _Element) -> str:
    return first_child_text(
        item,
        _CONTENT_ENCODED,
        "description",
        _GOOGLEPLAY_DESCRIPTION,
        _ITUNES_SUMMARY,
        _ITUNES_SUBTITLE,
    )


def _entry_author(item: _Element) -> str:
    author = (
        child_text(item, _GOOGLEPLAY_AUTHOR)
        or child_text(item, _ITUNES_AUTHOR)
        or child_text(item, _DC_CREATOR)
        or _atom_person_name(item)
        or child_text(item, "author")
    )
    return strip_tags(author).strip()


def _entry_date(item: _Element) -> Optional[datetime.datetime]:
    for tag in ("pubDate", _DC_DATE):
        value = child_text(item, tag)
        if not value:
            continue
        parsed = parse_date_or_none(value)
        if parsed is not None:
            return parsed
        logger.debug(
            "Unable to parse date %r from RSS item %s", value, child_text(item, "guid")
        )
    return None


def _enclosure_elements(item: _Element) -> list[media.MediaFile]:
    files = []
    orig_enclosure_link = child_text(item, _FEEDBURNER_ORIG_ENCLOSURE_LINK)
    for enclosure in children(item, "enclosure"):
        enclosure_url = attr(enclosure, "url")
        if orig_enclosure_link and enclosure_url.endswith(
            posixpath.basename(orig_enclosure_link)
        ):
            enclosure_url = orig_enclosure_link
        try:
            size = max(int(attr(enclosure, "length")), 0)
        except ValueError:
            size = 0
        files.append(
            media.MediaFile(url=enclosure_url, mime_type=attr(enclosure, "type"), size=size)
        )
    return files


def _add_enclosure_elements(
    enclosures: EnclosureList, site_url: str, files: list[media.MediaFile]
) -> None:
    # Unlike media elements, an enclosure URL that cannot be resolved keeps its literal value.
    for media_file in files:
        enclosure_url = media_file.url.strip()
        if not enclosure_url:
            continue
        enclosures.add(
            resolve_or_keep(site_url, enclosure_url), media_file.mime_type, media_file.size
        )


def _entry_tags(item: _Element, channel_tags: list[str]) -> list[str]:
    tags = [value for value in (text_of(node) for node in children(item, "category")) if value]
    tags.extend(media.category_labels(item))
    tags.extend(channel_tags)
    return tags


def parse_rss(base_url: str, root: _Element) -> Feed:
    channel = _channel(root)
    base_url = base_url.strip()

    site_url = child_text(channel, "link")
    site_url = resolve_or_keep(base_url, site_url)

    feed = Feed(
        title=_html_mod.unescape(child_text(channel, "title")),
        site_url=site_url,
        feed_url=_feed_url(channel, base_url),
    )
    if not feed.title:
        feed.title = feed.site_url

    image = child(channel, "image")
    if image is not None:
        icon = child_text(image, "url")
        if icon:
            feed.icon_url = resolve_or_keep(site_url, icon)

    feed_author = _feed_author(channel)
    channel_tags = [
        value for value in (text_of(node) for node in children(channel, "category")) if value
    ]
    channel_tags.extend(_itunes_categories(channel))
    googleplay_category = attr(child(channel, _GOOGLEPLAY_CATEGORY), "text")
    if googleplay_category:
        channel_tags.append(googleplay_category)

    for item in _items(root, channel):
        entry = Entry()
        entry.date = _entry_date(item) or utcnow()
        entry.content = _entry_content(item)

        raw_url = _entry_url(item)
        entry.url = resolve_or_keep(site_url, raw_url) if raw_url else site_url

        entry.title = _entry_title(item) or truncate_html(entry.content, 100) or entry.url
        entry.author = _entry_author(item) or feed_author

        identity = child_text(item, "guid") or raw_url or _entry_title(item) + entry.content
        if identity:
            entry.hash = hash_value(identity)

        comments_url = child_text(item, "comments")
        if comments_url and is_absolute_url(comments_url):
            entry.comments_url = comments_url

        entry.tags = _entry_tags(item, channel_tags)

        enclosures = EnclosureList()
        media.add_enclosures(enclosures, site_url, media.thumbnails(item))
        _add_enclosure_elements(enclosures, site_url, _enclosure_elements(item))
        media.add_enclosures(enclosures, site_url, media.contents(item))
        media.add_enclosures(enclosures, site_url, media.peer_links(item))
        entry.enclosures = list(enclosures)

        feed.entries.append(entry)

    return feed

"""Atom 0.3 and Atom 1.0 readers."""

from __future__ import annotations

import base64
import binascii
import html as _html_mod
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Optional

from . import media
from .dates import parse_date_or_none
from .hashing import hash_value
from .model import EnclosureList, Entry, Feed, utcnow
from .sanitizer import escape, truncate_html
from .urls import is_absolute_url, resolve_or_keep
from .xmlutil import NS_ATOM03, attr, inner_xml, local_name, namespace, text_of

if TYPE_CHECKING:
    import datetime

    from lxml.etree import _Element

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _atom_ns_tags(atom_ns: str) -> dict[str, str]:
    """Namespace-qualified tag names, computed once per namespace."""
    ns = f"{{{atom_ns}}}" if atom_ns else ""
    return {
        name: ns + name
        for name in (
            "entry",
            "id",
            "title",
            "subtitle",
            "summary",
            "content",
            "link",
            "author",
            "name",
            "email",
            "category",
            "published",
            "updated",
            "issued",
            "modified",
            "created",
            "icon",
            "logo",
        )
    }


def is_atom03(root: _Element) -> bool:
    return root.get("version") == "0.3" or namespace(root) == NS_ATOM03


@dataclass(slots=True)
class _Link:
    href: str
    rel: str
    type: str
    length: str


def _links(element: _Element, tags: dict[str, str]) -> list[_Link]:
    return [
        _Link(
            href=attr(node, "href"),
            rel=attr(node, "rel").lower(),
            type=attr(node, "type").lower(),
            length=attr(node, "length"),
        )
        for node in element.iterchildren(tags["link"])
    ]


def _original_link(links: list[_Link]) -> str:
    for link in links:
        if link.rel in ("alternate", "") and link.href:
            return link.href
    return ""


def _first_link_with_relation(links: list[_Link], rel: str, *types: str) -> str:
    for link in links:
        if link.rel == rel and link.href and (not types or link.type in types):
            return link.href
    return ""


def _person_name(element: Optional[_Element], tags: dict[str, str]) -> str:
    if element is None:
        return ""
    name = text_of(next(element.iterchildren(tags["name"]), None))
    if name:
        return name
    return text_of(next(element.iterchildren(tags["email"]), None))


def _person_names(element: _Element, tags: dict[str, str]) -> list[str]:
    names = []
    for author in element.iterchildren(tags["author"]):
        name = _person_name(author, tags)
        if name:
            names.append(name)
    return names


def _text_construct(element: Optional[_Element]) -> str:
    """Atom 1.0 text construct as HTML."""
    if element is None:
        return ""
    kind = attr(element, "type").lower()
    if kind in ("", "text", "text/plain"):
        content = escape("".join(element.itertext()))
    elif kind == "xhtml":
        div = next((node for node in element if local_name(node) == "div"), None)
        content = inner_xml(div if div is not None else element)
    else:
        content = "".join(element.itertext())
    return content.strip()


def _atom03_content(element: Optional[_Element]) -> str:
    if element is None:
        return ""
    mode = attr(element, "mode")
    if mode == "xml":
        content = inner_xml(element)
    elif mode == "base64":
        try:
            content = base64.b64decode(text_of(element), validate=True).decode(
                "utf-8", errors="replace"
            )
        except (binascii.Error, ValueError):
            content = ""
    else:
        content = "".join(element.itertext())

    if attr(element, "type") != "text/html":
        content = escape(content)
    return content.strip()


def _first_date(values: list[str], entry_url: str) -> Optional[datetime.datetime]:
    for value in values:
        if not value:
            continue
        parsed = parse_date_or_none(value)
        if parsed is not None:
            return parsed
        logger.debug("Unable to parse date %r from Atom entry %s", value, entry_url)
    return None


def _categories(element: _Element, tags: dict[str, str]) -> list[str]:
    names = []
    for node in element.iterchildren(tags["category"]):
        name = attr(node, "label") or attr(node, "term")
        if name:
            names.append(name)
    return names


def _find(element: _Element, tag: str) -> Optional[_Element]:
    return next(element.iterchildren(tag), None)


def _feed_urls(root: _Element, tags: dict[str, str], base_url: str) -> tuple[str, str]:
    links = _links(root, tags)
    self_link = _first_link_with_relation(links, "self")
    feed_url = resolve_or_keep(base_url, self_link) if self_link else base_url
    site_link = _original_link(links)
    site_url = resolve_or_keep(base_url, site_link) if site_link else base_url
    return feed_url, site_url


def parse_atom10(base_url: str, root: _Element) -> Feed:
    tags = _atom_ns_tags(namespace(root))
    feed_url, site_url = _feed_urls(root, tags, base_url)
    feed = Feed(feed_url=feed_url, site_url=site_url)

    feed.title = _html_mod.unescape(_text_construct(_find(root, tags["title"]))) or site_url

    icon = text_of(_find(root, tags["icon"])) or text_of(_find(root, tags["logo"]))
    if icon:
        feed.icon_url = resolve_or_keep(site_url, icon)

    feed_authors = _person_names(root, tags)
    feed_categories = _categories(root, tags)

    for item in root.iterchildren(tags["entry"]):
        links = _links(item, tags)
        entry = Entry()

        original_link = _original_link(links)
        entry.url = resolve_or_keep(site_url, original_link) if original_link else site_url

        entry.content = (
            _text_construct(_find(item, tags["content"]))
            or _text_construct(_find(item, tags["summary"]))
            or media.first_description(item)
        )

        entry.title = (
            _html_mod.unescape(_text_construct(_find(item, tags["title"])))
            or truncate_html(entry.content, 100)
            or entry.url
        )

        authors = _person_names(item, tags) or feed_authors
        entry.author = ", ".join(sorted(set(authors)))

        entry.date = (
            _first_date(
                [
                    text_of(_find(item, tags["published"])),
                    text_of(_find(item, tags["updated"])),
                ],
                entry.url,
            )
            or utcnow()
        )

        entry.tags = sorted(set(_categories(item, tags) or feed_categories))

        comments_url = _first_link_with_relation(
            links, "replies", "text/html", "application/xhtml+xml"
        )
        if is_absolute_url(comments_url):
            entry.comments_url = comments_url

        identity = text_of(_find(item, tags["id"])) or original_link or entry.title + entry.content
        if identity:
            entry.hash = hash_value(identity)

        enclosures = EnclosureList()
        media.add_enclosures(enclosures, site_url, media.thumbnails(item))
        media.add_enclosures(
            enclosures,
            site_url,
            (
                media.MediaFile(url=link.href, mime_type=link.type, size=_parse_length(link.length))
                for link in links
                if link.rel == "enclosure"
            ),
        )
        media.add_enclosures(enclosures, site_url, media.contents(item))
        media.add_enclosures(enclosures, site_url, media.peer_links(item))
        entry.enclosures = list(enclosures)

        feed.entries.append(entry)

    return feed


def _parse_length(value: str) -> int:
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def parse_atom03(base_url: str, root: _Element) -> Feed:
    tags = _atom_ns_tags(namespace(root))
    feed_url, site_url = _feed_urls(root, tags, base_url)
    feed = Feed(feed_url=feed_url, site_url=site_url)
    feed.title = _html_mod.unescape(_atom03_content(_find(root, tags["title"]))) or site_url

    feed_author = _person_name(_find(root, tags["author"]), tags)

    for item in root.iterchildren(tags["entry"]):
        links = _links(item, tags)
        entry = Entry()

        original_link = _original_link(links)
        entry.url = resolve_or_keep(site_url, original_link) if original_link else site_url

        entry.content = _atom03_content(_find(item, tags["content"])) or _atom03_content(
            _find(item, tags["summary"])
        )

        entry.title = (
            _html_mod.unescape(_atom03_content(_find(item, tags["title"])))
            or truncate_html(entry.content, 100)
            or entry.url
        )

        entry.author = _person_name(_find(item, tags["author"]), tags) or feed_author

        entry.date = (
            _first_date(
                [
                    text_of(_find(item, tags["issued"])),
                    text_of(_find(item, tags["modified"])),
                    text_of(_find(item, tags["created"])),
                ],
                entry.url,
            )
            or utcnow()
        )

        identity = text_of(_find(item, tags["id"])) or original_link or entry.title + entry.content
        if identity:
            entry.hash = hash_value(identity)

        feed.entries.append(entry)

    return feed


def parse_atom(base_url: str, root: _Element) -> Feed:
    if is_atom03(root):
        return parse_atom03(base_url, root)
    return parse_atom10(base_url, root)

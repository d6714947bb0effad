"""Media RSS (``media:*``) elements shared by the RSS and Atom readers.

See https://www.rssboard.org/media-rss
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator

from .model import EnclosureList
from .urls import absolute_url
from .xmlutil import NS_MEDIA, attr, qname, text_of

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger(__name__)

_RE_TEXT_LINK = re.compile(
    r"(\bhttps?://[-A-Z0-9+&@#/%?=~_|!:,.;]*[-A-Z0-9+&@#/%=~_|])", re.IGNORECASE | re.MULTILINE
)

_GROUP = qname(NS_MEDIA, "group")
_CONTENT = qname(NS_MEDIA, "content")
_THUMBNAIL = qname(NS_MEDIA, "thumbnail")
_PEER_LINK = qname(NS_MEDIA, "peerLink")
_DESCRIPTION = qname(NS_MEDIA, "description")
_CATEGORY = qname(NS_MEDIA, "category")

_MEDIUM_MIME_TYPES = {
    "image": "image/*",
    "video": "video/*",
    "audio": "audio/*",
}


@dataclass(slots=True)
class MediaFile:
    url: str
    mime_type: str
    size: int = 0


def _parse_size(value: str) -> int:
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def _with_groups(item: _Element, tag: str) -> Iterator[_Element]:
    yield from item.iterchildren(tag)
    for group in item.iterchildren(_GROUP):
        yield from group.iterchildren(tag)


def thumbnails(item: _Element) -> list[MediaFile]:
    return [
        MediaFile(url=attr(node, "url"), mime_type="image/*")
        for node in _with_groups(item, _THUMBNAIL)
    ]


def contents(item: _Element) -> list[MediaFile]:
    files = []
    for node in _with_groups(item, _CONTENT):
        mime_type = attr(node, "type") or _MEDIUM_MIME_TYPES.get(
            attr(node, "medium"), "application/octet-stream"
        )
        files.append(
            MediaFile(
                url=attr(node, "url"),
                mime_type=mime_type,
                size=_parse_size(attr(node, "fileSize")),
            )
        )
    return files


def peer_links(item: _Element) -> list[MediaFile]:
    return [
        MediaFile(
            url=attr(node, "href"),
            mime_type=attr(node, "type") or "application/octet-stream",
        )
        for node in _with_groups(item, _PEER_LINK)
    ]


def description_html(node: _Element) -> str:
    """A ``media:description`` as HTML; plain text gets line breaks and links."""
    text = text_of(node)
    if attr(node, "type") == "html":
        return text
    text = text.replace("\n", "<br>")
    return _RE_TEXT_LINK.sub(r'<a href="\1">\1</a>', text)


def first_description(item: _Element) -> str:
    for node in item.iterchildren(_DESCRIPTION):
        html = description_html(node)
        if html:
            return html
    for group in item.iterchildren(_GROUP):
        for node in group.iterchildren(_DESCRIPTION):
            html = description_html(node)
            if html:
                return html
    return ""


def category_labels(item: _Element) -> list[str]:
    labels = []
    for node in item.iterchildren(_CATEGORY):
        label = attr(node, "label")
        if label:
            labels.append(label)
    return labels


def add_enclosures(enclosures: EnclosureList, base_url: str, files: Iterable[MediaFile]) -> None:
    """Resolve and append ``files``; empty and already-seen URLs are skipped."""
    for media_file in files:
        media_url = media_file.url.strip()
        if not media_url:
            continue
        try:
            media_url = absolute_url(base_url, media_url)
        except ValueError:
            logger.debug("Unable to build absolute URL for %r (base %r)", media_url, base_url)
            continue
        enclosures.add(media_url, media_file.mime_type, media_file.size)

"""Format dispatch: detect the dialect, then hand the document to its reader."""

from __future__ import annotations

import logging
from typing import Callable

from .atom import parse_atom
from .detector import detect_format
from .encoding import decode_body
from .errors import UnsupportedFormatError
from .jsonfeed import parse_json_feed
from .model import Feed
from .rdf import parse_rdf
from .rss import parse_rss
from .xmlutil import parse_xml

logger = logging.getLogger(__name__)

_XML_READERS: dict[str, Callable[..., Feed]] = {
    "rss": parse_rss,
    "atom": parse_atom,
    "rdf": parse_rdf,
}


def parse_feed(base_url: str, data: str | bytes, content_type: str = "") -> Feed:
    """Parse ``data`` into a :class:`Feed`, resolving relative links against ``base_url``.

    Raises:
        UnsupportedFormatError: the document is neither JSON Feed nor RSS/Atom/RDF
        FeedParseError: the document is malformed beyond recovery
    """
    feed_format = detect_format(data, content_type)
    logger.debug("Detected feed format %s for %s", feed_format, base_url)

    if feed_format == "json":
        text = decode_body(data, content_type) if isinstance(data, bytes) else data
        return parse_json_feed(base_url, text.lstrip("\ufeff"))

    reader = _XML_READERS.get(feed_format)
    if reader is None:
        raise UnsupportedFormatError(feed_format)

    return reader(base_url, parse_xml(data, content_type))

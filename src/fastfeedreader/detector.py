from __future__ import annotations

import codecs
import logging

from lxml import etree

from .model import FeedFormat
from .xmlutil import prepare_xml

logger = logging.getLogger(__name__)

_ROOT_FORMATS: dict[str, FeedFormat] = {
    "rss": "rss",
    "feed": "atom",
    "rdf": "rdf",
}

_CHUNK_SIZE = 4096


def _root_local_name(tag: str) -> str:
    # Unbound prefixes survive recover mode as "rdf:RDF"
    return tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1].lower()


def detect_format(data: str | bytes, content_type: str = "") -> FeedFormat:
    """Classify a document as JSON Feed or by its first XML start element."""
    if isinstance(data, bytes):
        if data.startswith(codecs.BOM_UTF8):
            data = data[len(codecs.BOM_UTF8) :]
        if data.lstrip(b" \t\r\n").startswith(b"{"):
            return "json"
    elif data.lstrip("\ufeff \t\r\n").startswith("{"):
        return "json"

    xml_content = prepare_xml(data, content_type)
    parser = etree.XMLPullParser(
        events=("start",), recover=True, resolve_entities=False, no_network=True
    )
    try:
        for offset in range(0, len(xml_content), _CHUNK_SIZE):
            parser.feed(xml_content[offset : offset + _CHUNK_SIZE])
            for _event, element in parser.read_events():
                if not isinstance(element.tag, str):
                    continue
                return _ROOT_FORMATS.get(_root_local_name(element.tag), "unknown")
    except etree.XMLSyntaxError as e:
        logger.debug("Unable to scan document for format detection: %s", e)
    return "unknown"

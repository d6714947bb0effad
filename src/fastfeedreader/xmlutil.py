"""Lenient XML loading shared by the RSS, RDF and Atom readers."""

from __future__ import annotations

import copy
import html as _html_mod
import re
from html.entities import html5 as _HTML5_ENTITIES
from typing import TYPE_CHECKING, Iterator, Optional

from lxml import etree

from .encoding import decode_body
from .errors import FeedParseError

if TYPE_CHECKING:
    from lxml.etree import _Element

NS_ATOM = "http://www.w3.org/2005/Atom"
NS_ATOM03 = "http://purl.org/atom/ns#"
NS_RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
NS_RSS10 = "http://purl.org/rss/1.0/"
NS_DC = "http://purl.org/dc/elements/1.1/"
NS_CONTENT = "http://purl.org/rss/1.0/modules/content/"
NS_MEDIA = "http://search.yahoo.com/mrss/"
NS_ITUNES = "http://www.itunes.com/dtds/podcast-1.0.dtd"
NS_GOOGLEPLAY = "http://www.google.com/schemas/play-podcasts/1.0"
NS_FEEDBURNER = "http://rssnamespace.org/feedburner/ext/1.0"

_XML_ENTITIES = frozenset(("amp", "lt", "gt", "quot", "apos"))

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_RE_INVALID_XML_CHARS = re.compile(
    "[^\t\n\r\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)
_XML_START_PATTERNS = ("<?xml", "<rss", "<feed", "<rdf:rdf", "<rdf")

_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
    no_network=True,
    huge_tree=False,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
    no_network=True,
    huge_tree=False,
)


def filter_invalid_xml_characters(text: str) -> str:
    return _RE_INVALID_XML_CHARS.sub("", text)


def _numeric_entity(match: re.Match[str]) -> str:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)
    replacement = _HTML5_ENTITIES.get(name + ";")
    if replacement is None:
        return match.group(0)
    return "".join(f"&#{ord(char)};" for char in replacement)


def replace_html_entities(text: str) -> str:
    """Rewrite HTML named entities unknown to XML as numeric references."""
    if "&" not in text:
        return text
    return _RE_NAMED_ENTITY.sub(_numeric_entity, text)


def _strip_leading_junk(text: str) -> str:
    stripped = text.lstrip("\ufeff \t\r\n")
    if stripped.startswith("<"):
        return stripped
    lowered = stripped[:8192].lower()
    earliest = -1
    for pattern in _XML_START_PATTERNS:
        idx = lowered.find(pattern)
        if idx != -1 and (earliest == -1 or idx < earliest):
            earliest = idx
    if earliest > 0:
        return stripped[earliest:]
    return stripped


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Make the XML declaration agree with the UTF-8 bytes handed to lxml."""
    if not content.startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def prepare_xml(data: str | bytes, content_type: str = "") -> bytes:
    """Decode and clean a document so lxml sees well-formed-ish UTF-8."""
    text = decode_body(data, content_type)
    text = _strip_leading_junk(text)
    if "\u2028" in text or "\u2029" in text:
        text = text.replace("\u2028", "\n").replace("\u2029", "\n")
    text = filter_invalid_xml_characters(text)
    text = replace_html_entities(text)
    text = _ensure_utf8_xml_declaration(text)
    return text.encode("utf-8")


def parse_xml(data: str | bytes, content_type: str = "") -> _Element:
    """Parse a feed document, strict first and in recover mode second."""
    xml_content = prepare_xml(data, content_type)
    if not xml_content.strip():
        raise FeedParseError("empty document")

    try:
        root = etree.fromstring(xml_content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError:
        try:
            root = etree.fromstring(xml_content, parser=_RECOVER_XML_PARSER)
        except etree.XMLSyntaxError as e:
            raise FeedParseError(str(e)) from e

    if root is None:
        preview = xml_content[:200].decode("utf-8", errors="replace").strip()
        raise FeedParseError(f"no XML root element (first 200 chars: {preview})")
    return root


def local_name(element: _Element) -> str:
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def namespace(element: _Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def qname(ns: str, name: str) -> str:
    return f"{{{ns}}}{name}" if ns else name


def children(element: _Element, tag: str) -> Iterator[_Element]:
    """Direct children matching ``tag`` (Clark notation)."""
    return element.iterchildren(tag)


def child(element: _Element, tag: str) -> Optional[_Element]:
    return next(element.iterchildren(tag), None)


def text_of(element: Optional[_Element]) -> str:
    """Character data of ``element`` and its descendants, stripped."""
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def child_text(element: _Element, tag: str) -> str:
    return text_of(child(element, tag))


def children_texts(element: _Element, tag: str) -> list[str]:
    return [text_of(item) for item in children(element, tag)]


def first_child_text(element: _Element, *tags: str) -> str:
    for tag in tags:
        for item in children(element, tag):
            value = text_of(item)
            if value:
                return value
    return ""


def attr(element: Optional[_Element], name: str) -> str:
    if element is None:
        return ""
    return (element.get(name) or "").strip()


def _strip_namespaces(element: _Element) -> None:
    for node in element.iter():
        if not isinstance(node.tag, str):
            continue
        if node.tag.startswith("{"):
            node.tag = node.tag.split("}", 1)[1]
        for key in list(node.attrib):
            if key.startswith("{"):
                value = node.attrib.pop(key)
                node.set(key.split("}", 1)[1], value)
    etree.cleanup_namespaces(element)


def inner_xml(element: Optional[_Element]) -> str:
    """Serialized content of ``element`` without its own tags or namespace noise."""
    if element is None:
        return ""
    parts = [_html_mod.escape(element.text, quote=False)] if element.text else []
    for node in element:
        if isinstance(node.tag, str):
            node_copy = copy.deepcopy(node)
            _strip_namespaces(node_copy)
            parts.append(etree.tostring(node_copy, encoding="unicode", with_tail=False))
        if node.tail:
            parts.append(_html_mod.escape(node.tail, quote=False))
    return "".join(parts)

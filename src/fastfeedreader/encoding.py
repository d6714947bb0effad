"""Turn response bodies into text, whatever charset they claim."""

from __future__ import annotations

import codecs
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

FALLBACK_ENCODING = codecs.lookup("windows-1252").name

_RE_XML_DECL_ENCODING_BYTES = re.compile(
    rb'<\?xml[^>]*encoding=["\']([^"\']+)["\'][^>]*\?>', re.IGNORECASE
)
_RE_META_CHARSET_BYTES = re.compile(
    rb'<meta[^>]+charset\s*=\s*["\']?\s*([A-Za-z0-9_\-:.]+)', re.IGNORECASE
)
_RE_CONTENT_TYPE_CHARSET = re.compile(r'charset\s*=\s*["\']?([^"\';\s]+)', re.IGNORECASE)

# Labels browsers decode differently from their literal codec.
_LABEL_ALIASES: dict[str, str] = {
    "iso-8859-1": "windows-1252",
    "iso8859-1": "windows-1252",
    "latin1": "windows-1252",
    "latin-1": "windows-1252",
    "us-ascii": "windows-1252",
    "ascii": "windows-1252",
    "x-sjis": "shift_jis",
    "gb2312": "gb18030",
    "gbk": "gb18030",
}


def _normalize_label(label: str) -> Optional[str]:
    label = label.strip().strip("\"'").lower()
    if not label:
        return None
    label = _LABEL_ALIASES.get(label, label)
    try:
        return codecs.lookup(label).name
    except LookupError:
        return None


def document_charset(content: bytes) -> Optional[str]:
    """Charset declared inside the document (XML prolog or HTML meta)."""
    head = content[:2048]
    match = _RE_XML_DECL_ENCODING_BYTES.search(head) or _RE_META_CHARSET_BYTES.search(head)
    if match is None:
        return None
    return _normalize_label(match.group(1).decode("ascii", errors="replace"))


def content_type_charset(content_type: str) -> Optional[str]:
    if not content_type:
        return None
    match = _RE_CONTENT_TYPE_CHARSET.search(content_type)
    if match is None:
        return None
    return _normalize_label(match.group(1))


def _bom_encoding(content: bytes) -> Optional[str]:
    if content.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if content.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    return None


def is_utf8(content: bytes) -> bool:
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def detect_encoding(content: bytes, content_type: str = "") -> str:
    """Pick the codec used to decode ``content``.

    Valid UTF-8 wins even when a header or declaration says otherwise; after that
    the document's own declaration, then the Content-Type charset, then
    windows-1252.
    """
    bom = _bom_encoding(content)
    if bom is not None:
        return bom
    if is_utf8(content):
        return "utf-8"

    declared = document_charset(content)
    if declared is not None and declared not in ("utf-8", "utf-16"):
        return declared

    from_header = content_type_charset(content_type)
    if from_header is not None and from_header not in ("utf-8", "utf-16"):
        return from_header

    return FALLBACK_ENCODING


def decode_body(content: bytes | str, content_type: str = "") -> str:
    """Return ``content`` as text."""
    if isinstance(content, str):
        return content
    encoding = detect_encoding(content, content_type)
    if encoding not in ("utf-8", "utf-8-sig"):
        logger.debug("Decoding body as %s (content type %r)", encoding, content_type)
    return content.decode(encoding, errors="replace")

import pytest

from fastfeedreader.encoding import (
    content_type_charset,
    decode_body,
    detect_encoding,
    document_charset,
)


def test_valid_utf8_wins_over_declaration():
    xml_bytes = '<?xml version="1.0" encoding="iso-8859-1"?><rss><title>café</title></rss>'.encode()
    assert detect_encoding(xml_bytes, "text/xml; charset=iso-8859-1") == "utf-8"
    assert "café" in decode_body(xml_bytes)


def test_xml_declaration_is_used_for_non_utf8_bytes():
    xml_bytes = b'<?xml version="1.0" encoding="iso-8859-1"?><rss><title>caf\xe9</title></rss>'
    assert detect_encoding(xml_bytes) == "cp1252"
    assert "café" in decode_body(xml_bytes)


def test_content_type_charset_is_used_without_declaration():
    body = "<rss><title>Привет</title></rss>".encode("koi8-r")
    assert detect_encoding(body, "application/rss+xml; charset=KOI8-R") == "koi8-r"
    assert "Привет" in decode_body(body, "application/rss+xml; charset=KOI8-R")


def test_html_meta_charset():
    body = b'<html><head><meta charset="windows-1251"></head><body>\xcf\xf0\xe8\xe2\xe5\xf2</body></html>'
    assert document_charset(body) == "cp1251"
    assert "Привет" in decode_body(body)


def test_fallback_is_windows_1252():
    assert detect_encoding(b"<rss>\x93quoted\x94</rss>") == "cp1252"
    assert decode_body(b"<rss>\x93quoted\x94</rss>") == "<rss>“quoted”</rss>"


def test_byte_order_marks():
    assert detect_encoding(b"\xef\xbb\xbf<rss/>") == "utf-8-sig"
    assert decode_body(b"\xef\xbb\xbf<rss/>") == "<rss/>"
    assert decode_body("<rss/>".encode("utf-16")) == "<rss/>"


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [
        ("text/html; charset=UTF-8", "utf-8"),
        ('text/xml; charset="iso-8859-1"', "cp1252"),
        ("text/xml", None),
        ("", None),
        ("text/xml; charset=no-such-charset", None),
    ],
)
def test_content_type_charset(content_type, expected):
    assert content_type_charset(content_type) == expected


def test_text_is_returned_unchanged():
    assert decode_body("already text", "text/plain; charset=latin1") == "already text"

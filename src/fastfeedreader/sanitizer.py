"""Allow-list HTML sanitizer for entry content."""

from __future__ import annotations

import logging
import re
from html.parser import HTMLParser
from typing import Optional

from .srcset import ImageCandidates, parse_srcset
from .urls import absolute_url, domain

logger = logging.getLogger(__name__)

_RE_WHITESPACE = re.compile(r"\s+")
_RE_YOUTUBE_EMBED = re.compile(r"//www\.youtube\.com/embed/(.*)")

YOUTUBE_NOCOOKIE_EMBED = "https://www.youtube-nocookie.com/embed/"

TAG_ALLOW_LIST: dict[str, frozenset[str]] = {
    "a": frozenset(("href", "title", "id")),
    "abbr": frozenset(("title",)),
    "acronym": frozenset(("title",)),
    "audio": frozenset(("src",)),
    "blockquote": frozenset(),
    "br": frozenset(),
    "caption": frozenset(),
    "cite": frozenset(),
    "code": frozenset(),
    "dd": frozenset(("id",)),
    "del": frozenset(),
    "dfn": frozenset(),
    "dl": frozenset(("id",)),
    "dt": frozenset(("id",)),
    "em": frozenset(),
    "figcaption": frozenset(),
    "figure": frozenset(),
    "h1": frozenset(("id",)),
    "h2": frozenset(("id",)),
    "h3": frozenset(("id",)),
    "h4": frozenset(("id",)),
    "h5": frozenset(("id",)),
    "h6": frozenset(("id",)),
    "iframe": frozenset(("width", "height", "frameborder", "src", "allowfullscreen")),
    "img": frozenset(("alt", "title", "src", "srcset", "sizes", "width", "height")),
    "ins": frozenset(),
    "kbd": frozenset(),
    "li": frozenset(("id",)),
    "ol": frozenset(("id",)),
    "p": frozenset(),
    "picture": frozenset(),
    "pre": frozenset(),
    "q": frozenset(("cite",)),
    "rp": frozenset(),
    "rt": frozenset(),
    "rtc": frozenset(),
    "ruby": frozenset(),
    "s": frozenset(),
    "samp": frozenset(),
    "source": frozenset(("src", "type", "srcset", "sizes", "media")),
    "strong": frozenset(),
    "sub": frozenset(),
    "sup": frozenset(("id",)),
    "table": frozenset(),
    "td": frozenset(("rowspan", "colspan")),
    "tfooter": frozenset(),
    "th": frozenset(("rowspan", "colspan")),
    "thead": frozenset(),
    "time": frozenset(("datetime",)),
    "tr": frozenset(),
    "ul": frozenset(("id",)),
    "var": frozenset(),
    "video": frozenset(("poster", "height", "width", "src")),
    "wbr": frozenset(),
}

BLOCKED_TAGS = frozenset(("noscript", "script", "style"))

_REQUIRED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset(("href",)),
    "iframe": frozenset(("src",)),
    "img": frozenset(("src",)),
    "source": frozenset(("src", "srcset")),
}

_RESOURCE_ATTRIBUTES = frozenset(("src", "href", "poster", "cite"))

_EXTRA_ATTRIBUTES: dict[str, tuple[tuple[str, Optional[str]], ...]] = {
    "a": (
        ("rel", "noopener noreferrer"),
        ("target", "_blank"),
        ("referrerpolicy", "no-referrer"),
    ),
    "video": (("controls", None),),
    "audio": (("controls", None),),
    "iframe": (
        ("sandbox", "allow-scripts allow-same-origin allow-popups"),
        ("loading", "lazy"),
    ),
    "img": (("loading", "lazy"),),
}

# See https://www.iana.org/assignments/uri-schemes/uri-schemes.xhtml
URI_SCHEME_ALLOW_LIST = (
    "apt:",
    "bitcoin:",
    "callto:",
    "dav:",
    "davs:",
    "ed2k://",
    "facetime://",
    "feed:",
    "ftp://",
    "geo:",
    "gopher://",
    "git://",
    "http://",
    "https://",
    "irc://",
    "irc6://",
    "ircs://",
    "itms://",
    "itms-apps://",
    "magnet:",
    "mailto:",
    "news:",
    "nntp:",
    "rtmp://",
    "sip:",
    "sips:",
    "skype:",
    "spotify:",
    "ssh://",
    "sftp://",
    "steam://",
    "svn://",
    "svn+ssh://",
    "tel:",
    "webcal://",
    "xmpp:",
)

BLOCKED_RESOURCES = (
    "feedsportal.com",
    "api.flattr.com",
    "stats.wordpress.com",
    "plus.google.com/share",
    "twitter.com/share",
    "feeds.feedburner.com",
)

IFRAME_SOURCE_ALLOW_LIST = (
    "//www.youtube.com",
    "http://www.youtube.com",
    "https://www.youtube.com",
    "https://www.youtube-nocookie.com",
    "http://player.vimeo.com",
    "https://player.vimeo.com",
    "http://www.dailymotion.com",
    "https://www.dailymotion.com",
    "http://vk.com",
    "https://vk.com",
    "http://soundcloud.com",
    "https://soundcloud.com",
    "http://w.soundcloud.com",
    "https://w.soundcloud.com",
    "http://bandcamp.com",
    "https://bandcamp.com",
    "https://cdn.embedly.com",
    "https://player.bilibili.com",
)

_DATA_IMAGE_PREFIXES = (
    "data:image/avif",
    "data:image/apng",
    "data:image/png",
    "data:image/svg",
    "data:image/svg+xml",
    "data:image/jpg",
    "data:image/jpeg",
    "data:image/gif",
    "data:image/webp",
)

_MAX_IMAGE_WIDTH = 750

_ESCAPE_TABLE = str.maketrans(
    {"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"}
)

Attributes = list[tuple[str, Optional[str]]]


def escape(value: str) -> str:
    return value.translate(_ESCAPE_TABLE)


def has_valid_uri_scheme(url: str) -> bool:
    return url.startswith(URI_SCHEME_ALLOW_LIST)


def is_blocked_resource(url: str) -> bool:
    return any(blocked in url for blocked in BLOCKED_RESOURCES)


def is_valid_iframe_source(base_url: str, src: str) -> bool:
    if not src.startswith(("https://", "http://", "//")):
        return False
    src_domain = domain(src)
    if src_domain and src_domain == domain(base_url):
        return True
    return src.startswith(IFRAME_SOURCE_ALLOW_LIST)


def rewrite_iframe_url(link: str) -> str:
    match = _RE_YOUTUBE_EMBED.search(link)
    if match:
        return YOUTUBE_NOCOOKIE_EMBED + match.group(1)
    return link


def _attribute_value(attrs: Attributes, name: str) -> str:
    for key, value in attrs:
        if key == name:
            return value or ""
    return ""


def _is_positive_integer(value: str) -> bool:
    try:
        return int(value) > 0
    except ValueError:
        return False


def _is_pixel_tracker(tag: str, attrs: Attributes) -> bool:
    if tag != "img":
        return False
    return _attribute_value(attrs, "width") == "1" and _attribute_value(attrs, "height") == "1"


def _sanitize_srcset(base_url: str, value: str) -> str:
    """Absolute, allowed srcset candidates only; empty when none survive."""
    kept = ImageCandidates()
    for candidate in parse_srcset(value):
        try:
            candidate.image_url = absolute_url(base_url, candidate.image_url)
        except ValueError:
            logger.debug("Unable to resolve srcset URL %r against %s", candidate.image_url, base_url)
            continue
        if not has_valid_uri_scheme(candidate.image_url) or is_blocked_resource(candidate.image_url):
            continue
        kept.append(candidate)
    return str(kept)


def _sanitize_attributes(base_url: str, tag: str, attrs: Attributes) -> tuple[list[str], str]:
    allowed = TAG_ALLOW_LIST[tag]
    names: list[str] = []
    rendered: list[str] = []
    is_anchor_link = False

    image_too_wide = False
    if tag == "img":
        try:
            image_too_wide = int(_attribute_value(attrs, "width")) > _MAX_IMAGE_WIDTH
        except ValueError:
            image_too_wide = False

    for key, raw_value in attrs:
        if key not in allowed:
            continue
        value = raw_value or ""

        if key == "srcset" and tag in ("img", "source"):
            value = _sanitize_srcset(base_url, value)
            if not value:
                continue

        if tag == "img" and key in ("width", "height"):
            if not _is_positive_integer(value) or image_too_wide:
                continue

        if key in _RESOURCE_ATTRIBUTES:
            if tag == "iframe":
                if not is_valid_iframe_source(base_url, value):
                    continue
                value = rewrite_iframe_url(value)
            elif tag == "img" and key == "src" and value.startswith(_DATA_IMAGE_PREFIXES):
                pass
            elif tag == "a" and key == "href" and value.startswith("#"):
                is_anchor_link = True
            else:
                try:
                    value = absolute_url(base_url, value)
                except ValueError:
                    logger.debug("Dropping %s=%r: unable to resolve against %s", key, value, base_url)
                    continue
                if not has_valid_uri_scheme(value) or is_blocked_resource(value):
                    continue

        names.append(key)
        rendered.append(f'{key}="{escape(value)}"')

    if not is_anchor_link:
        for key, extra in _EXTRA_ATTRIBUTES.get(tag, ()):
            names.append(key)
            rendered.append(key if extra is None else f'{key}="{extra}"')

    return names, " ".join(rendered)


def _has_required_attributes(tag: str, names: list[str]) -> bool:
    required = _REQUIRED_ATTRIBUTES.get(tag)
    if required is None:
        return True
    return any(name in required for name in names)


class _Sanitizer(HTMLParser):
    def __init__(self, base_url: str) -> None:
        super().__init__(convert_charrefs=True)
        self.base_url = base_url
        self.parts: list[str] = []
        self.opened: set[str] = set()
        self.blocked_depth = 0
        self.iframe_depth = 0

    def _render_tag(self, tag: str, attrs: Attributes, self_closing: bool) -> bool:
        if tag not in TAG_ALLOW_LIST or _is_pixel_tracker(tag, attrs):
            return False
        names, rendered = _sanitize_attributes(self.base_url, tag, attrs)
        if not _has_required_attributes(tag, names):
            return False
        close = "/>" if self_closing else ">"
        self.parts.append(f"<{tag} {rendered}{close}" if rendered else f"<{tag}{close}")
        return True

    def handle_starttag(self, tag: str, attrs: Attributes) -> None:
        if self.blocked_depth:
            if tag in BLOCKED_TAGS:
                self.blocked_depth += 1
            return
        if tag in BLOCKED_TAGS:
            self.blocked_depth += 1
            return
        if self.iframe_depth:
            return
        if self._render_tag(tag, attrs, self_closing=False):
            self.opened.add(tag)
            if tag == "iframe":
                self.iframe_depth += 1

    def handle_startendtag(self, tag: str, attrs: Attributes) -> None:
        if self.blocked_depth or self.iframe_depth:
            return
        self._render_tag(tag, attrs, self_closing=True)

    def handle_endtag(self, tag: str) -> None:
        if tag in BLOCKED_TAGS:
            if self.blocked_depth:
                self.blocked_depth -= 1
            return
        if self.blocked_depth:
            return
        if tag == "iframe" and self.iframe_depth:
            self.iframe_depth -= 1
        elif self.iframe_depth:
            return
        if tag in TAG_ALLOW_LIST and tag in self.opened:
            self.parts.append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        if self.blocked_depth or self.iframe_depth:
            return
        self.parts.append(escape(data))


def sanitize(base_url: str, html: str) -> str:
    """Return ``html`` reduced to allow-listed markup with URLs made absolute."""
    if not html:
        return ""
    parser = _Sanitizer(base_url)
    parser.feed(html)
    parser.close()
    return "".join(parser.parts)


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []

    def handle_data(self, data: str) -> None:
        self.parts.append(data)


def strip_tags(html: str) -> str:
    """Text content of ``html`` with entities decoded."""
    if not html:
        return ""
    if "<" not in html and "&" not in html:
        return html
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    return "".join(parser.parts)


def truncate_html(html: str, max_len: int) -> str:
    """Plain-text excerpt of ``html`` at most ``max_len`` characters plus an ellipsis."""
    text = _RE_WHITESPACE.sub(" ", strip_tags(html)).strip()
    if len(text) <= max_len:
        return text
    return text[:max_len].rstrip() + "…"

"""Feed discovery: turn a website URL into candidate feed subscriptions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import SplitResult, parse_qs, urljoin, urlsplit

import httpx
import lxml.html
from lxml import etree

from .config import FetchConfig
from .detector import detect_format
from .encoding import decode_body
from .errors import FeedParseError, HTMLDocumentError, InvalidSiteURLError, LocalizedError
from .fetcher import Response, fetch
from .urls import absolute_url, is_absolute_url, join_base_url_and_path, root_url
from .xmlutil import local_name, parse_xml, text_of

logger = logging.getLogger(__name__)

_RE_YOUTUBE_CHANNEL = re.compile(r"channel/(.*)$")
_RE_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")

YOUTUBE_CHANNEL_FEED = "https://www.youtube.com/feeds/videos.xml?channel_id={}"
YOUTUBE_PLAYLIST_FEED = "https://www.youtube.com/feeds/videos.xml?playlist_id={}"

# <link type="..."> values that point at a feed
_LINK_TYPES = {
    "application/rss+xml": "rss",
    "application/atom+xml": "atom",
    "application/json": "json",
    "application/feed+json": "json",
}

WELL_KNOWN_PATHS = (
    ("atom.xml", "atom"),
    ("feed.xml", "atom"),
    ("feed/", "atom"),
    ("rss.xml", "rss"),
    ("rss/", "rss"),
)


@dataclass(slots=True)
class Subscription:
    title: str
    url: str
    type: str


def _is_youtube(host: str) -> bool:
    return host.endswith("youtube.com")


def _split(website_url: str) -> SplitResult:
    try:
        return urlsplit(website_url)
    except ValueError as e:
        raise InvalidSiteURLError(website_url) from e


def youtube_channel_subscriptions(website_url: str) -> list[Subscription]:
    parts = _split(website_url)
    if not _is_youtube(parts.hostname or ""):
        return []
    match = _RE_YOUTUBE_CHANNEL.search(parts.path)
    if match is None:
        return []
    return [Subscription(website_url, YOUTUBE_CHANNEL_FEED.format(match.group(1)), "atom")]


def youtube_playlist_subscriptions(website_url: str) -> list[Subscription]:
    parts = _split(website_url)
    if not _is_youtube(parts.hostname or ""):
        return []
    query = parse_qs(parts.query)
    if parts.path.startswith("/playlist") or (
        parts.path.startswith("/watch") and "list" in query
    ):
        playlist_id = query.get("list", [""])[0]
        return [Subscription(website_url, YOUTUBE_PLAYLIST_FEED.format(playlist_id), "atom")]
    return []


def _is_youtube_video_page(website_url: str) -> bool:
    parts = _split(website_url)
    return (
        _is_youtube(parts.hostname or "")
        and parts.path.startswith("/watch")
        and "v" in parse_qs(parts.query)
    )


def _parse_html(body: bytes | str, content_type: str) -> lxml.html.HtmlElement:
    # lxml refuses str input that carries an encoding declaration
    text = _RE_XML_DECLARATION.sub("", decode_body(body, content_type), count=1)
    try:
        return lxml.html.document_fromstring(text)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        raise HTMLDocumentError(str(e)) from e


def youtube_video_subscriptions(
    website_url: str, body: bytes | str, content_type: str = ""
) -> list[Subscription]:
    """Channel feed for a video page, read from the page metadata."""
    document = _parse_html(body, content_type)
    channel_id = ""
    for meta in document.iter("meta"):
        if meta.get("itemprop") == "channelId" and meta.get("content"):
            channel_id = meta.get("content").strip()
            break
    if not channel_id:
        for link in document.iter("link"):
            match = _RE_YOUTUBE_CHANNEL.search(link.get("href") or "")
            if match:
                channel_id = match.group(1)
                break
    if not channel_id:
        return []
    return [Subscription(website_url, YOUTUBE_CHANNEL_FEED.format(channel_id), "atom")]


def web_page_subscriptions(
    website_url: str, body: bytes | str, content_type: str = ""
) -> list[Subscription]:
    """Feeds announced by ``<link>`` elements of an HTML page."""
    document = _parse_html(body, content_type)

    base_href = ""
    for base in document.iterfind(".//head/base"):
        base_href = (base.get("href") or "").strip()
        break
    if base_href and is_absolute_url(base_href):
        website_url = base_href

    subscriptions: list[Subscription] = []
    seen: set[str] = set()
    for link in document.iter("link"):
        kind = _LINK_TYPES.get((link.get("type") or "").strip().lower())
        if kind is None:
            continue
        href = (link.get("href") or "").strip()
        if not href:
            continue
        try:
            feed_url = absolute_url(website_url, href)
        except ValueError:
            continue
        if feed_url in seen:
            continue
        seen.add(feed_url)
        title = (link.get("title") or "").strip() or feed_url
        subscriptions.append(Subscription(title, feed_url, kind))
    return subscriptions


def sitemap_feed_subscriptions(body: bytes | str, content_type: str = "") -> list[Subscription]:
    """Feed-looking URLs listed in the ``<loc>`` elements of a sitemap."""
    subscriptions: list[Subscription] = []
    for element in parse_xml(body, content_type).iter():
        if local_name(element) != "loc":
            continue
        url = text_of(element)
        lowered = url.lower()
        # Sitemap indexes point at other sitemaps
        if not url or "sitemap" in lowered:
            continue
        if ".xml" in lowered or "rss" in lowered:
            subscriptions.append(Subscription(url, url, "rss"))
        elif "feed" in lowered or "atom" in lowered:
            subscriptions.append(Subscription(url, url, "atom"))
    return subscriptions


class SubscriptionFinder:
    """Runs the discovery steps for one website URL.

    After :meth:`find`, ``feed_downloaded`` tells whether the URL itself was a feed, in
    which case ``feed_response`` holds its body and cache validators.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config or FetchConfig()
        self.transport = transport
        self.feed_downloaded = False
        self.feed_response: Optional[Response] = None

    def _fetch(self, url: str, config: FetchConfig) -> Response:
        return fetch(url, config, transport=self.transport)

    def find(self, website_url: str) -> list[Subscription]:
        website_url = website_url.strip()

        for step in (youtube_channel_subscriptions, youtube_playlist_subscriptions):
            subscriptions = step(website_url)
            if subscriptions:
                logger.debug("Subscriptions found from YouTube URL %s", website_url)
                return subscriptions

        try:
            response = self._fetch(website_url, self.config)
            response.raise_for_error()
        except LocalizedError as e:
            logger.warning("Unable to find subscriptions for %s: %s", website_url, e)
            raise

        self.feed_response = response
        feed_format = detect_format(response.body, response.content_type)
        if feed_format != "unknown":
            self.feed_downloaded = True
            return [Subscription(response.effective_url, response.effective_url, feed_format)]

        if _is_youtube_video_page(website_url):
            logger.debug("Try to detect the channel feed of YouTube video %s", website_url)
            subscriptions = youtube_video_subscriptions(
                website_url, response.body, response.content_type
            )
            if subscriptions:
                return subscriptions

        logger.debug("Try to detect feeds from HTML link elements of %s", website_url)
        subscriptions = web_page_subscriptions(website_url, response.body, response.content_type)
        if subscriptions:
            return subscriptions

        logger.debug("Try to detect feeds from well-known URLs of %s", website_url)
        subscriptions = self.well_known_subscriptions(website_url)
        if subscriptions:
            return subscriptions

        logger.debug("Try to detect feeds from the sitemap of %s", website_url)
        return self.sitemap_subscriptions(website_url)

    def well_known_subscriptions(self, website_url: str) -> list[Subscription]:
        website_root = root_url(website_url)
        base_urls = [website_root]
        # Current subdirectory, such as "example.org/blog/"
        current_directory = urljoin(website_url, "./")
        if current_directory != website_root:
            base_urls.append(current_directory)

        # Some websites redirect unknown URLs to their home page
        request_config = self.config.without_redirects()
        subscriptions = []
        for base_url in base_urls:
            for path, kind in WELL_KNOWN_PATHS:
                try:
                    full_url = absolute_url(base_url, path)
                except ValueError:
                    continue
                try:
                    response = self._fetch(full_url, request_config)
                except LocalizedError as e:
                    logger.debug("Unable to fetch %s: %s", full_url, e)
                    continue
                if response.status_code != 200:
                    logger.debug("Request to %s returned status %d", full_url, response.status_code)
                    continue
                subscriptions.append(Subscription(full_url, full_url, kind))
        return subscriptions

    def sitemap_subscriptions(self, website_url: str) -> list[Subscription]:
        try:
            sitemap_url = join_base_url_and_path(root_url(website_url), "sitemap.xml")
        except ValueError:
            return []
        try:
            response = self._fetch(sitemap_url, self.config)
            response.raise_for_error()
        except LocalizedError as e:
            logger.warning("Unable to find subscriptions in the sitemap of %s: %s", website_url, e)
            return []
        try:
            return sitemap_feed_subscriptions(response.body, response.content_type)
        except FeedParseError as e:
            logger.warning("Unable to parse the sitemap of %s: %s", website_url, e)
            return []


def find_subscriptions(
    website_url: str,
    config: Optional[FetchConfig] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> list[Subscription]:
    return SubscriptionFinder(config, transport).find(website_url)

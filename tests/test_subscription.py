import logging

import httpx
import pytest

from fastfeedreader import (
    EmptyResponseError,
    HTTPStatusError,
    InvalidSiteURLError,
    Subscription,
    SubscriptionFinder,
    find_subscriptions,
)
from fastfeedreader.subscription import (
    sitemap_feed_subscriptions,
    web_page_subscriptions,
    youtube_channel_subscriptions,
    youtube_playlist_subscriptions,
    youtube_video_subscriptions,
)

RSS = b'<?xml version="1.0"?><rss version="2.0"><channel><title>T</title></channel></rss>'
EMPTY_PAGE = b"<!DOCTYPE html><html><head><title>Blog</title></head><body><p>Hi</p></body></html>"


def _no_network(request):
    raise AssertionError(f"unexpected request to {request.url}")


def _serve(pages: dict):
    def handler(request):
        path = request.url.path
        if path in pages:
            status, body = pages[path]
            return httpx.Response(status, content=body, headers={"Content-Type": "text/html"})
        return httpx.Response(404, content=b"not found")

    return httpx.MockTransport(handler)


def test_url_is_already_a_feed():
    finder = SubscriptionFinder(transport=_serve({"/feed.xml": (200, RSS)}))
    subscriptions = finder.find("https://example.org/feed.xml")

    assert subscriptions == [
        Subscription("https://example.org/feed.xml", "https://example.org/feed.xml", "rss")
    ]
    assert finder.feed_downloaded
    assert finder.feed_response.body == RSS


def test_html_link_elements():
    page = b"""<html><head>
        <link rel="alternate" type="application/rss+xml" title="RSS Feed" href="/rss.xml">
        <link rel="alternate" type="application/atom+xml" href="atom.xml">
        <link rel="alternate" type="application/rss+xml" href="https://example.org/rss.xml">
        <link rel="alternate" type="application/feed+json" title=" JSON " href="/feed.json">
        <link rel="stylesheet" type="text/css" href="/style.css">
        <link rel="alternate" type="application/rss+xml" href="">
    </head><body></body></html>"""
    finder = SubscriptionFinder(transport=_serve({"/blog/": (200, page)}))
    subscriptions = finder.find("https://example.org/blog/")

    assert subscriptions == [
        Subscription("RSS Feed", "https://example.org/rss.xml", "rss"),
        Subscription("https://example.org/blog/atom.xml", "https://example.org/blog/atom.xml", "atom"),
        Subscription("JSON", "https://example.org/feed.json", "json"),
    ]
    assert not finder.feed_downloaded


def test_base_element_changes_resolution():
    page = """<html><head><base href="https://cdn.example.org/feeds/">
        <link type="application/rss+xml" href="rss.xml"></head></html>"""
    subscriptions = web_page_subscriptions("https://example.org/", page)
    assert [s.url for s in subscriptions] == ["https://cdn.example.org/feeds/rss.xml"]


def test_relative_base_element_is_ignored():
    page = """<html><head><base href="/feeds/">
        <link type="application/rss+xml" href="rss.xml"></head></html>"""
    subscriptions = web_page_subscriptions("https://example.org/blog/", page)
    assert [s.url for s in subscriptions] == ["https://example.org/blog/rss.xml"]


def test_youtube_channel_url_needs_no_request():
    url = "https://www.youtube.com/channel/UC-Qj80avWItNRjkZ41rzHyw"
    subscriptions = find_subscriptions(url, transport=httpx.MockTransport(_no_network))
    assert subscriptions == [
        Subscription(
            url,
            "https://www.youtube.com/feeds/videos.xml?channel_id=UC-Qj80avWItNRjkZ41rzHyw",
            "atom",
        )
    ]


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/playlist?list=PLOOwEPgFWm_NHcQd9aCi5JXWASHO_n5uR",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PLOOwEPgFWm_NHcQd9aCi5JXWASHO_n5uR",
    ],
)
def test_youtube_playlist_url(url):
    subscriptions = find_subscriptions(url, transport=httpx.MockTransport(_no_network))
    assert [s.url for s in subscriptions] == [
        "https://www.youtube.com/feeds/videos.xml?playlist_id=PLOOwEPgFWm_NHcQd9aCi5JXWASHO_n5uR"
    ]


def test_youtube_helpers_ignore_other_hosts():
    assert youtube_channel_subscriptions("https://example.org/channel/abc") == []
    assert youtube_playlist_subscriptions("https://example.org/playlist?list=abc") == []
    assert youtube_playlist_subscriptions("https://www.youtube.com/watch?v=abc") == []


def test_youtube_video_page():
    page = b"""<html><head><meta itemprop="channelId" content="UCxyz"></head><body></body></html>"""
    finder = SubscriptionFinder(transport=_serve({"/watch": (200, page)}))
    subscriptions = finder.find("https://www.youtube.com/watch?v=abc123")
    assert [s.url for s in subscriptions] == [
        "https://www.youtube.com/feeds/videos.xml?channel_id=UCxyz"
    ]


def test_youtube_video_channel_from_link():
    page = '<html><head><link itemprop="url" href="http://www.youtube.com/channel/UCabc"></head></html>'
    subscriptions = youtube_video_subscriptions("https://www.youtube.com/watch?v=abc", page)
    assert [s.url for s in subscriptions] == [
        "https://www.youtube.com/feeds/videos.xml?channel_id=UCabc"
    ]
    assert youtube_video_subscriptions("https://www.youtube.com/watch?v=abc", "<html></html>") == []


def test_well_known_urls_are_tried():
    def handler(request):
        path = request.url.path
        if path == "/blog/":
            return httpx.Response(200, content=EMPTY_PAGE)
        if path in ("/feed.xml", "/blog/rss/"):
            return httpx.Response(200, content=RSS)
        if path == "/atom.xml":
            return httpx.Response(302, headers={"Location": "https://example.org/"})
        if path == "/rss.xml":
            raise httpx.ConnectError("connection reset")
        return httpx.Response(404)

    subscriptions = find_subscriptions("https://example.org/blog/", transport=httpx.MockTransport(handler))
    assert subscriptions == [
        Subscription("https://example.org/feed.xml", "https://example.org/feed.xml", "atom"),
        Subscription("https://example.org/blog/rss/", "https://example.org/blog/rss/", "rss"),
    ]


def test_nothing_found():
    subscriptions = find_subscriptions("https://example.org/", transport=_serve({"/": (200, EMPTY_PAGE)}))
    assert subscriptions == []


def test_http_error_is_raised(caplog):
    with caplog.at_level(logging.WARNING, logger="fastfeedreader.subscription"):
        with pytest.raises(HTTPStatusError) as excinfo:
            find_subscriptions("https://example.org/missing", transport=_serve({}))
    assert excinfo.value.status_code == 404
    assert "Unable to find subscriptions" in caplog.text


def test_empty_page_is_raised():
    with pytest.raises(EmptyResponseError):
        find_subscriptions("https://example.org/", transport=_serve({"/": (200, b"")}))


def test_invalid_site_url():
    with pytest.raises(InvalidSiteURLError):
        find_subscriptions("http://[::1", transport=httpx.MockTransport(_no_network))


def test_xhtml_page_with_xml_declaration():
    page = (
        b'<?xml version="1.0" encoding="utf-8"?>\n'
        b'<html xmlns="http://www.w3.org/1999/xhtml"><head>'
        b'<link rel="alternate" type="application/rss+xml" href="/feed.xml"/>'
        b"</head><body/></html>"
    )
    finder = SubscriptionFinder(transport=_serve({"/": (200, page)}))
    assert finder.find("https://example.org/") == [
        Subscription("https://example.org/feed.xml", "https://example.org/feed.xml", "rss")
    ]

    text = page.decode("utf-8")
    assert [s.url for s in web_page_subscriptions("https://example.org/", text)] == [
        "https://example.org/feed.xml"
    ]


SITEMAP = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.org/</loc></url>
  <url><loc>https://example.org/index.xml</loc></url>
  <url><loc>https://example.org/news/atom</loc></url>
  <url><loc>https://example.org/post-sitemap.xml</loc></url>
  <url><loc>https://example.org/about/</loc></url>
</urlset>"""


def test_sitemap_feed_subscriptions():
    assert sitemap_feed_subscriptions(SITEMAP) == [
        Subscription("https://example.org/index.xml", "https://example.org/index.xml", "rss"),
        Subscription("https://example.org/news/atom", "https://example.org/news/atom", "atom"),
    ]


def test_sitemap_is_the_last_resort():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        if request.url.path == "/blog/":
            return httpx.Response(200, content=EMPTY_PAGE)
        if request.url.path == "/sitemap.xml":
            return httpx.Response(200, content=SITEMAP, headers={"Content-Type": "application/xml"})
        return httpx.Response(404)

    subscriptions = find_subscriptions("https://example.org/blog/", transport=httpx.MockTransport(handler))
    assert [s.url for s in subscriptions] == [
        "https://example.org/index.xml",
        "https://example.org/news/atom",
    ]
    assert requested[-1] == "/sitemap.xml"


def test_broken_sitemap_finds_nothing(caplog):
    pages = {"/": (200, EMPTY_PAGE), "/sitemap.xml": (200, b"   ")}
    with caplog.at_level(logging.WARNING, logger="fastfeedreader.subscription"):
        assert find_subscriptions("https://example.org/", transport=_serve(pages)) == []
    assert "sitemap" in caplog.text

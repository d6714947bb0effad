import datetime

from fastfeedreader import parse_feed
from fastfeedreader.hashing import hash_value

UTC = datetime.timezone.utc


def _atom(entries: str, head: str = "<title>Example Feed</title>", namespaces: str = "") -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" {namespaces}>
  {head}
  <link href="http://example.org/"/>
  <updated>2003-12-13T18:30:02Z</updated>
  <author><name>John Doe</name></author>
  <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
  {entries}
</feed>"""


def test_minimal_feed():
    data = _atom(
        """<entry>
    <title>Atom-Powered Robots Run Amok</title>
    <link href="http://example.org/2003/12/13/atom03"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2003-12-13T18:30:02Z</updated>
    <summary>Some text.</summary>
  </entry>"""
    )
    feed = parse_feed("http://example.org/feed.xml", data)

    assert feed.title == "Example Feed"
    assert feed.feed_url == "http://example.org/feed.xml"
    assert feed.site_url == "http://example.org/"
    assert len(feed.entries) == 1

    entry = feed.entries[0]
    assert entry.url == "http://example.org/2003/12/13/atom03"
    assert entry.date == datetime.datetime(2003, 12, 13, 18, 30, 2, tzinfo=UTC)
    assert entry.hash == hash_value("urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a")
    assert entry.title == "Atom-Powered Robots Run Amok"
    assert entry.content == "Some text."
    assert entry.author == "John Doe"

    again = parse_feed("http://example.org/feed.xml", data)
    assert again.entries[0].hash == entry.hash


def test_feed_without_title_uses_site_url():
    feed = parse_feed("http://example.org/feed.xml", _atom("", head=""))
    assert feed.title == "http://example.org/"


def test_self_link_is_feed_url():
    data = _atom("", head='<title>T</title><link rel="self" href="/atom.xml"/>')
    feed = parse_feed("http://example.org/feed", data)
    assert feed.feed_url == "http://example.org/atom.xml"


def test_relative_entry_link():
    data = _atom('<entry><title>T</title><link rel="alternate" href="/posts/1"/></entry>')
    feed = parse_feed("http://example.org/feed.xml", data)
    assert feed.entries[0].url == "http://example.org/posts/1"


def test_published_date_wins_over_updated():
    data = _atom(
        """<entry><title>T</title>
        <published>2020-01-01T00:00:00Z</published>
        <updated>2021-01-01T00:00:00Z</updated></entry>"""
    )
    entry = parse_feed("http://example.org/feed.xml", data).entries[0]
    assert entry.date == datetime.datetime(2020, 1, 1, tzinfo=UTC)


def test_text_construct_types():
    data = _atom(
        """<entry>
        <title type="text">AT&amp;T &lt;rocks&gt;</title>
        <summary type="html">&lt;p&gt;Escaped HTML&lt;/p&gt;</summary>
        </entry>
        <entry>
        <title type="html"><![CDATA[<b>Bold</b> title]]></title>
        <content type="html"><![CDATA[<p>CDATA &amp; HTML</p>]]></content>
        </entry>
        <entry>
        <title>XHTML</title>
        <content type="xhtml"><div xmlns="http://www.w3.org/1999/xhtml"><p>Hello <em>world</em></p></div></content>
        </entry>
        <entry>
        <title>Text</title>
        <content type="text">1 &lt; 2</content>
        </entry>"""
    )
    entries = parse_feed("http://example.org/feed.xml", data).entries

    assert entries[0].title == "AT&T <rocks>"
    assert entries[0].content == "<p>Escaped HTML</p>"
    assert entries[1].title == "<b>Bold</b> title"
    assert entries[1].content == "<p>CDATA &amp; HTML</p>"
    assert entries[2].content == "<p>Hello <em>world</em></p>"
    assert entries[3].content == "1 &lt; 2"


def test_title_falls_back_to_content_then_url():
    data = _atom(
        """<entry><link href="http://example.org/a"/><content type="html">&lt;p&gt;Only content&lt;/p&gt;</content></entry>
        <entry><link href="http://example.org/b"/></entry>"""
    )
    entries = parse_feed("http://example.org/feed.xml", data).entries
    assert entries[0].title == "Only content"
    assert entries[1].title == "http://example.org/b"


def test_authors_are_sorted_and_deduplicated():
    data = _atom(
        """<entry><title>T</title>
        <author><name>Zoe</name></author>
        <author><email>amy@example.org</email></author>
        <author><name>Zoe</name></author>
        </entry>"""
    )
    entry = parse_feed("http://example.org/feed.xml", data).entries[0]
    assert entry.author == "Zoe, amy@example.org"


def test_categories():
    data = _atom(
        """<entry><title>A</title>
        <category term="b-term"/><category term="a-term" label="Label"/><category term="b-term"/>
        </entry>
        <entry><title>B</title></entry>""",
        head='<title>T</title><category term="feed-tag"/>',
    )
    entries = parse_feed("http://example.org/feed.xml", data).entries
    assert entries[0].tags == ["Label", "b-term"]
    assert entries[1].tags == ["feed-tag"]


def test_comments_url():
    data = _atom(
        """<entry><title>T</title>
        <link rel="replies" type="text/html" href="http://example.org/comments/1"/>
        </entry>"""
    )
    assert parse_feed("http://example.org/feed.xml", data).entries[0].comments_url == (
        "http://example.org/comments/1"
    )


def test_enclosures():
    data = _atom(
        """<entry><title>T</title>
        <link rel="enclosure" type="audio/mpeg" length="1337" href="http://example.org/audio.mp3"/>
        <link rel="enclosure" href=""/>
        <media:thumbnail url="http://example.org/thumb.jpg"/>
        <media:content url="http://example.org/audio.mp3" type="audio/mpeg"/>
        </entry>""",
        namespaces='xmlns:media="http://search.yahoo.com/mrss/"',
    )
    enclosures = parse_feed("http://example.org/feed.xml", data).entries[0].enclosures
    assert [(e.url, e.mime_type, e.size) for e in enclosures] == [
        ("http://example.org/thumb.jpg", "image/*", 0),
        ("http://example.org/audio.mp3", "audio/mpeg", 1337),
    ]


def test_media_description_as_content():
    data = _atom(
        """<entry><title>Video</title>
        <media:group><media:description>Watch https://example.org/v
now</media:description></media:group>
        </entry>""",
        namespaces='xmlns:media="http://search.yahoo.com/mrss/"',
    )
    entry = parse_feed("http://example.org/feed.xml", data).entries[0]
    assert entry.content == 'Watch <a href="https://example.org/v">https://example.org/v</a><br>now'


def test_icon():
    data = _atom("", head="<title>T</title><logo>/logo.png</logo>")
    assert parse_feed("http://example.org/feed.xml", data).icon_url == "http://example.org/logo.png"


def test_atom03_feed():
    data = """<?xml version="1.0" encoding="utf-8"?>
<feed version="0.3" xmlns="http://purl.org/atom/ns#">
  <title>dive into mark</title>
  <link rel="alternate" type="text/html" href="http://diveintomark.org/"/>
  <modified>2003-12-13T18:30:02Z</modified>
  <author><name>Mark Pilgrim</name></author>
  <entry>
    <title>Atom 0.3 snapshot</title>
    <link rel="alternate" type="text/html" href="http://diveintomark.org/2003/12/13/atom03"/>
    <id>tag:diveintomark.org,2003:3.2397</id>
    <issued>2003-12-13T08:29:29-04:00</issued>
    <modified>2003-12-13T18:30:02Z</modified>
    <summary type="text/plain">It's a test</summary>
    <content type="text/html" mode="escaped"><![CDATA[<p>HTML content</p>]]></content>
  </entry>
  <entry>
    <link rel="alternate" href="http://diveintomark.org/b"/>
    <content mode="base64">PGI+Ym9sZDwvYj4=</content>
  </entry>
</feed>"""
    feed = parse_feed("http://diveintomark.org/atom.xml", data)

    assert feed.title == "dive into mark"
    assert feed.site_url == "http://diveintomark.org/"
    assert feed.feed_url == "http://diveintomark.org/atom.xml"

    entry = feed.entries[0]
    assert entry.title == "Atom 0.3 snapshot"
    assert entry.url == "http://diveintomark.org/2003/12/13/atom03"
    assert entry.date == datetime.datetime(2003, 12, 13, 12, 29, 29, tzinfo=UTC)
    assert entry.hash == hash_value("tag:diveintomark.org,2003:3.2397")
    assert entry.content == "<p>HTML content</p>"
    assert entry.author == "Mark Pilgrim"

    second = feed.entries[1]
    assert second.content == "&lt;b&gt;bold&lt;/b&gt;"
    assert second.hash == hash_value("http://diveintomark.org/b")
    assert second.title == "<b>bold</b>"


def test_entry_without_link_uses_site_url():
    data = _atom(
        """<entry><id>urn:uuid:1</id><title></title><updated>2003-12-13T18:30:02Z</updated></entry>
  <entry><title>Only a title</title><content>Body one</content></entry>
  <entry><title>Only a title</title><content>Body two</content></entry>"""
    )
    feed = parse_feed("http://example.org/feed.xml", data)
    first, second, third = feed.entries

    assert first.url == "http://example.org/"
    assert first.title == "http://example.org/"
    assert first.hash == hash_value("urn:uuid:1")
    assert second.url == "http://example.org/"
    assert second.hash == hash_value("Only a titleBody one")
    assert second.hash != third.hash


def test_atom03_entry_without_link_or_id():
    data = """<?xml version="1.0" encoding="utf-8"?>
<feed version="0.3" xmlns="http://purl.org/atom/ns#">
  <title>Example</title>
  <link rel="alternate" type="text/html" href="http://example.org/"/>
  <entry><title>One</title><content>First body</content></entry>
  <entry><content>Second body</content></entry>
</feed>"""
    first, second = parse_feed("http://example.org/atom.xml", data).entries

    assert first.url == "http://example.org/"
    assert first.title == "One"
    assert first.hash == hash_value("OneFirst body")
    assert second.url == "http://example.org/"
    assert second.title == "Second body"
    assert second.hash not in ("", first.hash)

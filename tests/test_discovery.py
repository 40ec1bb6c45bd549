from infodash.discovery import (
    COMMON_FEED_PATHS,
    DISCOVERED_ITEM_LIMIT,
    FeedDiscovery,
    is_feed_document,
    normalise_url,
    scan_feed_hrefs,
)
from infodash.models import DiscoveredFeed


def html_page(head="", body=""):
    return f"<html><head><title>Blog</title>{head}</head><body>{body}</body></html>"


def test_direct_feed_needs_a_single_request(fake_client, rss_feed):
    fake_client.add("https://example.com/rss.xml", rss_feed(count=3))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/rss.xml")

    assert [item.title for item in items] == ["Story 0", "Story 1", "Story 2"]
    assert all(item.source_name == "example.com" for item in items)
    assert fake_client.calls == ["https://example.com/rss.xml"]


def test_direct_feed_is_not_capped(fake_client, rss_feed):
    fake_client.add("https://example.com/rss.xml", rss_feed(count=35))
    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/rss.xml")
    assert len(items) == 35


def test_alternate_link_is_followed_from_origin(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/blog",
        html_page('<link rel="alternate" type="application/rss+xml" href="/feed.xml">'),
    )
    fake_client.add("https://example.com/feed.xml", rss_feed(count=2))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/blog")

    assert [item.link for item in items] == [
        "https://example.com/story/0",
        "https://example.com/story/1",
    ]
    assert fake_client.calls == ["https://example.com/blog", "https://example.com/feed.xml"]


def test_discovered_items_are_capped(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/blog",
        html_page('<link rel="alternate" type="application/rss+xml" href="/feed.xml">'),
    )
    fake_client.add("https://example.com/feed.xml", rss_feed(count=35))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/blog")

    assert len(items) == DISCOVERED_ITEM_LIMIT == 20
    assert items[0].title == "Story 0"


def test_link_matching_ignores_case(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/news",
        html_page('<link REL="Alternate" TYPE="Application/Atom+XML" href="atom.xml">'),
    )
    fake_client.add("https://example.com/atom.xml", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/news")

    assert len(items) == 1


def test_any_link_mentioning_feed_is_tried(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/",
        html_page('<link rel="stylesheet" href="/style.css"><link href="/comments/feed/">'),
    )
    fake_client.add("https://example.com/comments/feed/", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/")

    assert [item.title for item in items] == ["Story 0"]


def test_linked_page_gets_one_more_hop(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/",
        html_page('<link rel="alternate" type="application/rss+xml" href="/feeds">'),
    )
    fake_client.add(
        "https://example.com/feeds",
        html_page('<link rel="alternate" type="application/rss+xml" href="/feeds/main.xml">'),
    )
    fake_client.add("https://example.com/feeds/main.xml", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/")

    assert len(items) == 1
    assert fake_client.calls[:3] == [
        "https://example.com/",
        "https://example.com/feeds",
        "https://example.com/feeds/main.xml",
    ]


def test_raw_href_scan_finds_anchor_links(fake_client, rss_feed):
    fake_client.add(
        "https://example.com/",
        html_page(body='<a href="/about">About</a> <a href="/news/RSS">Subscribe</a>'),
    )
    fake_client.add("https://example.com/news/RSS", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/")

    assert len(items) == 1
    assert "https://example.com/about" not in fake_client.calls


def test_common_paths_are_probed_in_order(fake_client, rss_feed):
    fake_client.add("https://example.com/blog", html_page(body="<p>No links here</p>"))
    fake_client.add("https://example.com/feed.xml", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/blog")

    assert len(items) == 1
    assert fake_client.calls == [
        "https://example.com/blog",
        "https://example.com/rss",
        "https://example.com/feed",
        "https://example.com/feeds",
        "https://example.com/rss.xml",
        "https://example.com/feed.xml",
    ]


def test_page_without_any_feed_returns_empty(fake_client):
    fake_client.add("https://example.com/blog", html_page(body="<p>Nothing</p>"))

    items = FeedDiscovery(fake_client).fetch_feed("https://example.com/blog")

    assert items == []
    assert fake_client.calls == ["https://example.com/blog"] + [
        "https://example.com" + path for path in COMMON_FEED_PATHS
    ]


def test_failed_direct_fetch_still_probes(fake_client, rss_feed):
    fake_client.add("https://example.com/rss", rss_feed(count=1))

    items = FeedDiscovery(fake_client).fetch_feed("example.com/missing")

    assert len(items) == 1
    assert items[0].source_name == "example.com"
    assert fake_client.calls == ["https://example.com/missing", "https://example.com/rss"]


def test_no_url_is_fetched_twice(fake_client):
    fake_client.add(
        "https://example.com/rss",
        html_page('<link rel="alternate" type="application/rss+xml" href="/rss">'),
    )
    FeedDiscovery(fake_client).fetch_feed("https://example.com/rss")
    assert len(fake_client.calls) == len(set(fake_client.calls))


def test_normalise_url():
    assert normalise_url("example.com") == "https://example.com"
    assert normalise_url(" http://example.com ") == "http://example.com"
    assert normalise_url("") == ""


def test_is_feed_document():
    assert is_feed_document('<?xml version="1.0"?><rss version="2.0">')
    assert is_feed_document('<feed xmlns="http://www.w3.org/2005/Atom">')
    assert not is_feed_document("<html><body>hi</body></html>")


def test_scan_feed_hrefs_deduplicates():
    text = "<a href='/rss'>a</a><a HREF=\"/Feed/\">b</a><a href='/rss'>c</a><a href='/x'>d</a>"
    assert scan_feed_hrefs(text) == ["/rss", "/Feed/"]


def test_discover_feeds_lists_declared_links(fake_client):
    fake_client.add(
        "https://example.com",
        html_page(
            '<link rel="alternate" type="application/rss+xml" title="Posts" href="/posts.rss">'
            '<link rel="alternate" type="application/atom+xml" href="https://example.com/atom">'
            '<link rel="alternate" type="text/html" href="/other">'
        ),
    )

    feeds = FeedDiscovery(fake_client).discover_feeds("example.com")

    assert feeds == [
        DiscoveredFeed("https://example.com/posts.rss", "Posts", "application/rss+xml"),
        DiscoveredFeed(
            "https://example.com/atom", "https://example.com/atom", "application/atom+xml"
        ),
    ]


def test_discover_feeds_recognises_direct_feed(fake_client, rss_feed):
    fake_client.add("https://example.com/rss", rss_feed(count=1))

    feeds = FeedDiscovery(fake_client).discover_feeds("https://example.com/rss")

    assert feeds == [DiscoveredFeed("https://example.com/rss", "Direct RSS Feed", "rss")]


def test_discover_feeds_on_failure(fake_client):
    assert FeedDiscovery(fake_client).discover_feeds("https://example.com/") == []

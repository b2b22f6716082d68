"""News normalization, merge rules and feed fan-out."""

import threading
from datetime import datetime, timezone

import feedparser
import httpx
import pytest

from sportrays.models import NewsRecord
from sportrays.news import NewsAggregator
from sportrays.news_parser import extract_image, merge_news, normalize_entry
from sportrays.rss_client import RssClient

RSS_A = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
<channel>
  <title>Feed A</title>
  <item>
    <title>Derby ends level</title>
    <link>https://news.example/derby</link>
    <guid>derby-1</guid>
    <pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate>
    <description><![CDATA[<p>A <b>tense</b> draw.</p><img src="https://img.example/derby.jpg">]]></description>
  </item>
  <item>
    <title>Transfer news</title>
    <link>https://news.example/transfer</link>
    <pubDate>Thu, 02 May 2024 10:00:00 GMT</pubDate>
    <enclosure url="https://img.example/transfer.jpg" type="image/jpeg" length="1000"/>
  </item>
</channel>
</rss>
"""

RSS_B = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>Feed B</title>
  <item>
    <title>Derby ends level (syndicated)</title>
    <link>https://news.example/derby</link>
    <pubDate>Wed, 01 May 2024 11:00:00 GMT</pubDate>
  </item>
  <item>
    <title>Undated</title>
    <link>https://news.example/undated</link>
  </item>
</channel>
</rss>
"""

FEEDS = [
    {"url": "https://a.example/rss", "source": "A"},
    {"url": "https://broken.example/rss", "source": "Broken"},
    {"url": "https://b.example/rss", "source": "B"},
]


def _record(url, published=None, source="S"):
    return NewsRecord(id=url or "x", url=url, source=source, published_at=published)


def test_extract_image_prefers_enclosure():
    entry = {
        "enclosures": [{"href": "https://img/enc.jpg"}],
        "media_content": [{"url": "https://img/media.jpg"}],
        "summary": '<img src="https://img/body.jpg">',
    }
    assert extract_image(entry) == "https://img/enc.jpg"


def test_extract_image_falls_back_to_media_then_body():
    assert extract_image({"media_content": [{"url": "https://img/media.jpg"}]}) == "https://img/media.jpg"
    assert extract_image({"media_thumbnail": [{"url": "https://img/thumb.jpg"}]}) == "https://img/thumb.jpg"
    body = {"content": [{"value": "<p>x</p><IMG class='c' SRC='https://img/body.jpg'>"}]}
    assert extract_image(body) == "https://img/body.jpg"
    assert extract_image({"summary": "no images here"}) is None


def test_normalize_entry_composite_id_without_link():
    record = normalize_entry({"id": "guid-9", "title": "Hello"}, "Goal")
    assert record.id == "Goal:guid-9"
    assert record.url is None

    untitled = normalize_entry({"title": "Only title"}, "Goal")
    assert untitled.id == "Goal:Only title"


def test_normalize_entry_strips_summary_markup():
    record = normalize_entry({
        "link": "https://n/1",
        "summary": "<p>A <b>tense</b> draw &amp; more.</p>\n<p>Later</p>",
        "published_parsed": (2024, 5, 1, 10, 0, 0, 2, 122, 0),
    }, "BBC")
    assert record.summary == "A tense draw & more. Later"
    assert record.published_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)


def test_merge_news_dedupes_by_url_keeping_first():
    first = _record("https://n/1", datetime(2024, 5, 1, tzinfo=timezone.utc), source="first")
    second = _record("https://n/1", datetime(2024, 5, 2, tzinfo=timezone.utc), source="second")

    merged = merge_news([first, second])

    assert len(merged) == 1
    assert merged[0].source == "first"


def test_merge_news_sorts_undated_last_in_stable_order():
    undated_a = _record("https://n/a")
    old = _record("https://n/old", datetime(2023, 1, 1, tzinfo=timezone.utc))
    undated_b = _record("https://n/b")
    new = _record("https://n/new", datetime(2024, 1, 1, tzinfo=timezone.utc))

    merged = merge_news([undated_a, old, undated_b, new])

    assert [r.url for r in merged] == ["https://n/new", "https://n/old", "https://n/a", "https://n/b"]


def test_merge_news_truncates():
    records = [_record(f"https://n/{i}", datetime(2024, 1, 1, tzinfo=timezone.utc)) for i in range(200)]
    assert len(merge_news(records)) == 150


def _serve_feeds(stub):
    def rss(body):
        return lambda request: httpx.Response(200, content=body.encode(), headers={"content-type": "application/rss+xml"})

    stub.add("a.example", "/rss", rss(RSS_A))
    stub.add("broken.example", "/rss", lambda request: 503)
    stub.add("b.example", "/rss", rss(RSS_B))


@pytest.mark.asyncio
async def test_aggregator_merges_feeds_and_skips_failures(stub, http, cache):
    _serve_feeds(stub)
    aggregator = NewsAggregator(RssClient(http), cache, FEEDS)

    feed = await aggregator.get_news()

    urls = [item.url for item in feed.items]
    assert urls == [
        "https://news.example/transfer",
        "https://news.example/derby",
        "https://news.example/undated",
    ]
    derby = feed.items[1]
    assert derby.source == "A"
    assert derby.image == "https://img.example/derby.jpg"
    assert feed.items[0].image == "https://img.example/transfer.jpg"
    assert feed.items[2].published_at is None


@pytest.mark.asyncio
async def test_aggregator_caches_result(stub, http, cache):
    _serve_feeds(stub)
    aggregator = NewsAggregator(RssClient(http), cache, FEEDS)

    await aggregator.get_news()
    calls = len(stub.requests)
    await aggregator.get_news()

    assert len(stub.requests) == calls


@pytest.mark.asyncio
async def test_aggregator_serves_stale_when_every_feed_fails(stub, http, cache, clock):
    _serve_feeds(stub)
    aggregator = NewsAggregator(RssClient(http), cache, FEEDS)
    first = await aggregator.get_news()

    for feed in FEEDS:
        host = httpx.URL(feed["url"]).host
        stub.add(host, "/rss", lambda request: 500)
    clock.advance(601)

    assert (await aggregator.get_news()).items == first.items


@pytest.mark.asyncio
async def test_aggregator_returns_empty_when_nothing_available(stub, http, cache):
    aggregator = NewsAggregator(RssClient(http), cache, FEEDS)

    feed = await aggregator.get_news()

    assert feed.items == []
    assert feed.next_cursor is None


@pytest.mark.asyncio
async def test_feed_parsing_runs_in_worker_thread(stub, http, monkeypatch):
    stub.add("a.example", "/rss", lambda request: httpx.Response(200, content=RSS_A.encode()))
    parse = feedparser.parse
    threads = []

    def recording_parse(content):
        threads.append(threading.get_ident())
        return parse(content)

    monkeypatch.setattr(feedparser, "parse", recording_parse)

    feed = await RssClient(http).fetch_feed("https://a.example/rss")

    assert len(feed.entries) == 2
    assert threads and threads[0] != threading.get_ident()

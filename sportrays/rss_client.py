"""
Syndication feed fetcher.
"""

import asyncio

import feedparser
import httpx

from sportrays.errors import UpstreamUnavailable
from sportrays.upstream import fetch

_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5"


class RssClient:
    """Downloads feeds over the shared HTTP client and parses them with feedparser."""

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def fetch_feed(self, url: str) -> feedparser.FeedParserDict:
        """
        Fetch and parse one feed.

        Args:
            url: Feed URL

        Returns:
            Parsed feed

        Raises:
            UpstreamUnavailable: If the download fails or the body is not a feed
        """
        response = await fetch(self.http, url, headers={"accept": _ACCEPT}, label=f"feed {url}")
        # parsing is CPU bound; keep it off the event loop while sibling feeds download
        feed = await asyncio.to_thread(feedparser.parse, response.content)

        # feedparser sets bozo for recoverable quirks too; only give up
        # when nothing usable came out.
        if feed.bozo and not feed.entries:
            reason = getattr(feed, "bozo_exception", None)
            raise UpstreamUnavailable(f"feed {url} could not be parsed: {reason}")
        return feed

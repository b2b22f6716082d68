"""
News aggregation across syndication feeds.
"""

import asyncio
import logging
from typing import Dict, List, Sequence, Tuple

from sportrays.cache import TTLCache
from sportrays.config import TTL_TEN_MIN
from sportrays.errors import UpstreamUnavailable
from sportrays.models import NewsFeed, NewsRecord
from sportrays.news_parser import merge_news, normalize_entry
from sportrays.rss_client import RssClient

logger = logging.getLogger(__name__)


class NewsAggregator:
    """Merges all configured feeds into one cached news list."""

    def __init__(
        self,
        rss: RssClient,
        cache: TTLCache,
        feeds: Sequence[Dict[str, str]],
        stale_retry: int = 60,
    ):
        self.rss = rss
        self.cache = cache
        self.feeds = list(feeds)
        self.stale_retry = stale_retry

    async def _fetch_feed_branch(self, feed: Dict[str, str]) -> Tuple[bool, List[NewsRecord]]:
        try:
            parsed = await self.rss.fetch_feed(feed["url"])
            return True, [normalize_entry(entry, feed["source"]) for entry in parsed.entries]
        except Exception as e:
            logger.warning("RSS failed for %s: %s", feed["url"], e)
            return False, []

    async def _refresh(self) -> NewsFeed:
        results = await asyncio.gather(*(self._fetch_feed_branch(f) for f in self.feeds))
        if results and not any(ok for ok, _ in results):
            raise UpstreamUnavailable("Every news feed failed")

        records = [record for _, batch in results for record in batch]
        items = merge_news(records)
        logger.info("Aggregated %d news items from %d feeds", len(items), len(self.feeds))
        return NewsFeed(items=items)

    async def get_news(self) -> NewsFeed:
        """
        Get the merged news feed.

        Returns:
            NewsFeed, newest first; stale when every feed fails, empty when
            there is nothing cached either
        """
        try:
            return await self.cache.get_or_refresh(
                "news",
                TTL_TEN_MIN,
                self._refresh,
                fallback_on=(UpstreamUnavailable,),
                stale_retry=self.stale_retry,
            )
        except UpstreamUnavailable as e:
            logger.warning("No news data: %s", e)
            return NewsFeed()

"""
Service context: the cache, quota state, clients and aggregators owned by
one running instance.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from sportrays.cache import TTLCache
from sportrays.config import CHANNEL_HANDLES, NEWS_FEEDS, Settings
from sportrays.database import Database
from sportrays.news import NewsAggregator
from sportrays.poll_store import PollStore
from sportrays.polls import PollEngine
from sportrays.quota import QuotaGovernor
from sportrays.rss_client import RssClient
from sportrays.scores import ScoreAggregator
from sportrays.scores_client import AllSportsProvider, ApiFootballProvider
from sportrays.upstream import new_http_client
from sportrays.videos import VideoAggregator
from sportrays.youtube_client import YouTubeClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """
    Everything a request handler needs.

    Cache and quota live here rather than in module globals, so several
    independent instances can coexist (tests build one per case). State is
    not shared across processes.
    """
    settings: Settings
    cache: TTLCache
    quota: QuotaGovernor
    http: httpx.AsyncClient
    youtube: YouTubeClient
    videos: VideoAggregator
    news: NewsAggregator
    scores: ScoreAggregator
    database: Optional[Database] = None
    polls: Optional[PollEngine] = None

    async def startup(self):
        if self.database is not None:
            await self.database.init_db()

    async def aclose(self):
        """Close HTTP client and database engine."""
        await self.http.aclose()
        if self.database is not None:
            await self.database.dispose()


def build_services(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    database: Optional[Database] = None,
) -> Services:
    """
    Wire up a service context from settings.

    Args:
        settings: Application settings
        transport: Optional HTTP transport override for all upstream calls
        clock: Time source for cache and quota
        database: Poll database; created from settings.database_url when omitted

    Returns:
        Services
    """
    for name in settings.missing_keys():
        logger.warning("%s is not set", name)

    cache = TTLCache(ttl_jitter=settings.cache_ttl_jitter, clock=clock)
    quota = QuotaGovernor(
        daily_max=settings.youtube_daily_quota,
        safety_margin=settings.youtube_quota_safety_margin,
        costs=settings.youtube_quota_costs,
        clock=clock,
    )
    http = new_http_client(settings.upstream_timeout, transport=transport)
    youtube = YouTubeClient(settings.youtube_api_key, http, quota)

    if database is None and settings.database_url:
        database = Database(settings.database_url)
    polls = PollEngine(PollStore(database)) if database is not None else None

    return Services(
        settings=settings,
        cache=cache,
        quota=quota,
        http=http,
        youtube=youtube,
        videos=VideoAggregator(youtube, cache, CHANNEL_HANDLES, stale_retry=settings.stale_retry_seconds),
        news=NewsAggregator(RssClient(http), cache, NEWS_FEEDS, stale_retry=settings.stale_retry_seconds),
        scores=ScoreAggregator(
            [
                ApiFootballProvider(settings.api_football_key, http),
                AllSportsProvider(settings.all_sports_api_key, http),
            ],
            cache,
        ),
        database=database,
        polls=polls,
    )

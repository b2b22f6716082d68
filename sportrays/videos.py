"""
Video aggregation across channel handles.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sportrays.cache import TTLCache
from sportrays.config import TTL_CHANNEL_ID, TTL_TEN_MIN
from sportrays.errors import NotFound, QuotaExceeded, UpstreamUnavailable
from sportrays.models import ChannelList, ChannelSummary, VideoFeed, VideoRecord
from sportrays.youtube_client import YouTubeClient
from sportrays.youtube_parser import first_channel_id, parse_channel_details, parse_videos, video_ids

logger = logging.getLogger(__name__)

HANDLE_VIDEO_LIMIT = 12
PER_CHANNEL_LIMIT = 6
GLOBAL_VIDEO_LIMIT = 60

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

# Failures that may be covered by a stale cache entry.
_RECOVERABLE = (QuotaExceeded, UpstreamUnavailable)


def _newest_first(videos: List[VideoRecord]) -> List[VideoRecord]:
    return sorted(videos, key=lambda v: v.published_at or _EPOCH, reverse=True)


class VideoAggregator:
    """
    Per-handle and global video feeds built on the YouTube client.

    Owns no state besides references to the shared cache and client.
    """

    def __init__(
        self,
        youtube: YouTubeClient,
        cache: TTLCache,
        handles: Sequence[str],
        stale_retry: int = 60,
    ):
        self.youtube = youtube
        self.cache = cache
        self.handles = list(handles)
        self.stale_retry = stale_retry

    async def resolve_channel_id(self, handle: str) -> str:
        """
        Resolve a handle to its channel ID.

        Channel IDs never change, so a resolved ID is kept for a week and a
        stale one is reused when the quota is exhausted.

        Args:
            handle: Channel handle, e.g. "@fifa"

        Returns:
            Channel ID

        Raises:
            QuotaExceeded: If denied and no ID was ever resolved
            NotFound: If the search returns no channel
        """
        async def lookup() -> str:
            response = await self.youtube.search_channel(handle)
            channel_id = first_channel_id(response)
            if not channel_id:
                raise NotFound(f"Cannot resolve channel for handle {handle}")
            return channel_id

        return await self.cache.get_or_refresh(
            f"channel_id:{handle.lower()}",
            TTL_CHANNEL_ID,
            lookup,
            fallback_on=_RECOVERABLE,
        )

    async def fetch_recent_videos(self, channel_id: str, max_results: int) -> List[VideoRecord]:
        """
        Fetch recent uploads and enrich them with duration and thumbnails.

        Args:
            channel_id: Channel ID
            max_results: Number of videos to request

        Returns:
            List of VideoRecord, in search order
        """
        ids = video_ids(await self.youtube.search_recent_videos(channel_id, max_results))
        if not ids:
            return []
        details = await self.youtube.list_videos(ids)
        return parse_videos(ids, details)

    async def _refresh_handle(self, handle: str) -> VideoFeed:
        channel_id = await self.resolve_channel_id(handle)
        videos = await self.fetch_recent_videos(channel_id, HANDLE_VIDEO_LIMIT)
        return VideoFeed(items=_newest_first(videos))

    async def _fetch_channel_branch(self, handle: str) -> Tuple[bool, List[VideoRecord], Optional[Exception]]:
        try:
            channel_id = await self.resolve_channel_id(handle)
            return True, await self.fetch_recent_videos(channel_id, PER_CHANNEL_LIMIT), None
        except Exception as e:
            logger.warning("Channel fetch failed for %s: %s", handle, e)
            return False, [], e

    async def _refresh_all(self) -> VideoFeed:
        results = await asyncio.gather(*(self._fetch_channel_branch(h) for h in self.handles))

        if results and not any(ok for ok, _, _ in results):
            errors = [e for _, _, e in results]
            if all(isinstance(e, QuotaExceeded) for e in errors):
                raise QuotaExceeded("Quota exhausted for every channel")
            raise UpstreamUnavailable("Every channel fetch failed")

        merged = [video for _, videos, _ in results for video in videos]
        return VideoFeed(items=_newest_first(merged)[:GLOBAL_VIDEO_LIMIT])

    async def get_videos(self, handle: Optional[str] = None) -> VideoFeed:
        """
        Get the video feed for one handle, or the merged feed of all handles.

        A refresh that fails with quota denial or an upstream error serves
        the stale feed when there is one, and an empty feed otherwise.

        Args:
            handle: Optional channel handle

        Returns:
            VideoFeed, newest first

        Raises:
            ConfigurationMissing: If no API key is configured
            NotFound: If ``handle`` cannot be resolved
        """
        if handle:
            key = f"videos:{handle.lower()}"

            async def refresh() -> VideoFeed:
                return await self._refresh_handle(handle)
        else:
            key = "videos:all"
            refresh = self._refresh_all

        try:
            return await self.cache.get_or_refresh(
                key,
                TTL_TEN_MIN,
                refresh,
                fallback_on=_RECOVERABLE,
                stale_retry=self.stale_retry,
            )
        except _RECOVERABLE as e:
            logger.warning("No video data for %s: %s", key, e)
            return VideoFeed()

    async def _channel_summary(self, handle: str) -> ChannelSummary:
        try:
            channel_id = await self.resolve_channel_id(handle)
            title, avatar = parse_channel_details(await self.youtube.get_channel(channel_id))
            return ChannelSummary(handle=handle, channel_id=channel_id, title=title, avatar=avatar)
        except Exception as e:
            logger.warning("Channel details failed for %s: %s", handle, e)
            return ChannelSummary(handle=handle, channel_id=None, title=handle.lstrip("@"), avatar=None)

    async def get_channels(self) -> ChannelList:
        """
        List the channel roster with titles and avatars.

        A channel whose lookup fails is listed with a placeholder entry.
        """
        async def refresh() -> ChannelList:
            items = await asyncio.gather(*(self._channel_summary(h) for h in self.handles))
            return ChannelList(items=list(items))

        return await self.cache.get_or_refresh("channels", TTL_TEN_MIN, refresh)

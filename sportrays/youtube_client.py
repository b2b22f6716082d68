"""
YouTube Data API v3 client.
Every call is charged against the quota governor.
"""

from typing import Any, Dict, List, Optional

import httpx

from sportrays.errors import ConfigurationMissing, UpstreamUnavailable
from sportrays.quota import QuotaGovernor
from sportrays.upstream import fetch_json

_API_BASE = "https://www.googleapis.com/youtube/v3"


class YouTubeClient:
    """
    Thin wrapper around the search, videos and channels endpoints.

    Consults the quota governor before each call and records usage only
    after the call succeeded.
    """

    def __init__(self, api_key: Optional[str], http: httpx.AsyncClient, quota: QuotaGovernor):
        """
        Initialize YouTube client.

        Args:
            api_key: Data API key, None when unconfigured
            http: Shared async HTTP client
            quota: Governor tracking the daily unit budget
        """
        self.api_key = api_key
        self.http = http
        self.quota = quota

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _call(self, op: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call one Data API endpoint.

        Args:
            op: Endpoint name, also the quota operation (search, videos, channels)
            params: Query parameters, without the key

        Returns:
            Parsed JSON response

        Raises:
            ConfigurationMissing: If no API key is configured
            QuotaExceeded: If the governor denies the call (no request is sent)
            UpstreamUnavailable: On API errors
        """
        if not self.api_key:
            raise ConfigurationMissing("Server missing YOUTUBE_API_KEY")

        self.quota.ensure(op)
        data = await fetch_json(
            self.http,
            f"{_API_BASE}/{op}",
            params={**params, "key": self.api_key},
            label=f"youtube {op}",
        )
        if "error" in data:
            message = data["error"].get("message", "error") if isinstance(data["error"], dict) else str(data["error"])
            raise UpstreamUnavailable(f"youtube {op}: {message}")

        self.quota.record_usage(op)
        return data

    async def search_channel(self, handle: str) -> Dict[str, Any]:
        """
        Search for the channel behind a handle.

        Args:
            handle: Channel handle, e.g. "@fifa"
        """
        return await self._call("search", {
            "part": "snippet",
            "type": "channel",
            "maxResults": 1,
            "q": handle,
        })

    async def search_recent_videos(self, channel_id: str, max_results: int) -> Dict[str, Any]:
        """
        List the most recent uploads of a channel.

        Args:
            channel_id: Channel ID (UC...)
            max_results: Number of videos to return
        """
        return await self._call("search", {
            "part": "snippet",
            "channelId": channel_id,
            "maxResults": max_results,
            "order": "date",
            "type": "video",
        })

    async def list_videos(self, video_ids: List[str]) -> Dict[str, Any]:
        """Fetch snippet and contentDetails for a batch of video IDs."""
        return await self._call("videos", {
            "part": "contentDetails,snippet",
            "id": ",".join(video_ids),
        })

    async def get_channel(self, channel_id: str) -> Dict[str, Any]:
        """Fetch the snippet of one channel."""
        return await self._call("channels", {
            "part": "snippet",
            "id": channel_id,
        })

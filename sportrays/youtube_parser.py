"""
YouTube Data API response parser.
Converts search, videos and channels payloads into our models.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sportrays.models import ChannelRef, Thumbnails, VideoRecord

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_duration(value: Optional[str]) -> int:
    """
    Convert a PT#H#M#S duration to seconds.

    Missing components count as zero, and so does a string that does not
    match at all.

    Examples:
        >>> parse_duration("PT1H2M3S")
        3723
        >>> parse_duration("PT")
        0
    """
    match = _DURATION_RE.search(value or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp to an aware UTC datetime.

    Timestamps without an offset are read as UTC. Unparseable values give None.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def first_channel_id(search_response: Dict[str, Any]) -> Optional[str]:
    """Channel ID of the first search hit, if any."""
    items = search_response.get("items") or []
    if not items:
        return None
    return (items[0].get("id") or {}).get("channelId")


def video_ids(search_response: Dict[str, Any]) -> List[str]:
    """Video IDs of a search response, in result order."""
    ids = []
    for item in search_response.get("items") or []:
        video_id = (item.get("id") or {}).get("videoId")
        if video_id:
            ids.append(video_id)
    return ids


def _thumb(thumbnails: Dict[str, Any], *sizes: str) -> Optional[str]:
    for size in sizes:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return None


def _parse_video(video_id: str, detail: Dict[str, Any]) -> VideoRecord:
    """
    Build a VideoRecord from a videos.list item.

    Args:
        video_id: Video ID from the search call
        detail: Matching item of the videos.list response
    """
    snippet = detail.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    content = detail.get("contentDetails") or {}

    return VideoRecord(
        id=video_id,
        url=f"https://www.youtube.com/watch?v={video_id}",
        title=snippet.get("title"),
        channel=ChannelRef(
            id=snippet.get("channelId"),
            name=snippet.get("channelTitle"),
            avatar=None,
        ),
        thumbnails=Thumbnails(
            sm=_thumb(thumbnails, "medium", "default"),
            md=_thumb(thumbnails, "high", "medium"),
        ),
        duration_sec=parse_duration(content.get("duration")),
        published_at=parse_published_at(snippet.get("publishedAt")),
    )


def parse_videos(ids: List[str], details_response: Dict[str, Any]) -> List[VideoRecord]:
    """
    Join search IDs with their detail records.

    IDs without a detail record are dropped. Order follows ``ids``.

    Args:
        ids: Video IDs gathered from the search call
        details_response: videos.list response for those IDs

    Returns:
        List of VideoRecord
    """
    by_id = {
        item.get("id"): item
        for item in details_response.get("items") or []
        if item.get("id")
    }
    return [_parse_video(video_id, by_id[video_id]) for video_id in ids if video_id in by_id]


def parse_channel_details(channels_response: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract title and avatar URL from a channels.list response.

    Returns:
        (title, avatar), both None when the channel is missing
    """
    items = channels_response.get("items") or []
    if not items:
        return None, None
    snippet = items[0].get("snippet") or {}
    avatar = ((snippet.get("thumbnails") or {}).get("default") or {}).get("url")
    return snippet.get("title"), avatar

"""Video aggregation: per-handle, global fan-out, quota denial and stale fallback."""

import pytest

from sportrays.config import TTL_TEN_MIN
from sportrays.errors import NotFound, QuotaExceeded
from sportrays.videos import GLOBAL_VIDEO_LIMIT, VideoAggregator
from sportrays.youtube_client import YouTubeClient
from tests.youtube_fixtures import HOST, YouTubeFake


def _uploads(channel_id, count, day):
    return [(f"{channel_id}-v{i}", f"2024-05-{day:02d}T{23 - i:02d}:00:00Z") for i in range(count)]


@pytest.fixture
def fake():
    return YouTubeFake(
        channel_ids={"@fifa": "UCfifa", "@arsenal": "UCars", "@ghost": None},
        uploads={
            "UCfifa": [("f1", "2024-05-01T10:00:00Z"), ("f2", "2024-05-03T10:00:00Z"), ("f3", "2024-05-02T10:00:00Z")],
            "UCars": [("a1", "2024-05-04T10:00:00Z")],
        },
    )


@pytest.fixture
def videos(fake, stub, http, cache, quota):
    fake.install(stub)
    return VideoAggregator(YouTubeClient("yt-key", http, quota), cache, ["@fifa", "@arsenal"], stale_retry=60)


@pytest.mark.asyncio
async def test_handle_feed_is_sorted_newest_first(videos, stub):
    feed = await videos.get_videos("@FIFA")

    assert [v.id for v in feed.items] == ["f2", "f3", "f1"]
    assert feed.next_cursor is None
    assert all(r.url.params["key"] == "yt-key" for r in stub.requests)


@pytest.mark.asyncio
async def test_handle_feed_is_cached_per_lowercased_handle(videos, stub):
    await videos.get_videos("@fifa")
    calls = len(stub.requests)

    await videos.get_videos("@FiFa")

    assert len(stub.requests) == calls


@pytest.mark.asyncio
async def test_channel_id_resolution_is_reused(videos, stub, clock):
    await videos.get_videos("@fifa")
    clock.advance(TTL_TEN_MIN + 1)

    await videos.get_videos("@fifa")

    channel_searches = [r for r in stub.requests if r.url.params.get("type") == "channel"]
    assert len(channel_searches) == 1


@pytest.mark.asyncio
async def test_unresolvable_handle_raises_not_found(videos):
    with pytest.raises(NotFound):
        await videos.get_videos("@ghost")


@pytest.mark.asyncio
async def test_quota_usage_is_recorded_after_success(videos, quota):
    await videos.get_videos("@fifa")
    # channel search + video search + videos.list
    assert quota.used == 100 + 100 + 1


@pytest.mark.asyncio
async def test_global_feed_merges_and_survives_channel_failure(fake, stub, http, cache, quota):
    fake.channel_ids["@broken"] = "UCbroken"
    fake.failing_channels.add("UCbroken")
    fake.install(stub)
    aggregator = VideoAggregator(YouTubeClient("yt-key", http, quota), cache, ["@fifa", "@broken", "@arsenal"])

    feed = await aggregator.get_videos()

    assert [v.id for v in feed.items] == ["a1", "f2", "f3", "f1"]


@pytest.mark.asyncio
async def test_global_feed_requests_six_per_channel_and_truncates(stub, http, cache, quota):
    handles = [f"@club{i}" for i in range(12)]
    fake = YouTubeFake(
        channel_ids={h: f"UC{i}" for i, h in enumerate(handles)},
        uploads={f"UC{i}": _uploads(f"UC{i}", 8, day=i + 1) for i in range(12)},
    )
    fake.install(stub)
    aggregator = VideoAggregator(YouTubeClient("yt-key", http, quota), cache, handles)

    feed = await aggregator.get_videos()

    assert len(feed.items) == GLOBAL_VIDEO_LIMIT
    published = [v.published_at for v in feed.items]
    assert published == sorted(published, reverse=True)
    video_searches = [r for r in stub.requests if r.url.params.get("type") == "video"]
    assert {r.url.params["maxResults"] for r in video_searches} == {"6"}


@pytest.mark.asyncio
async def test_video_without_details_is_dropped(fake, videos):
    fake.missing_details.add("f3")

    feed = await videos.get_videos("@fifa")

    assert [v.id for v in feed.items] == ["f2", "f1"]


@pytest.mark.asyncio
async def test_quota_denial_without_cache_returns_empty_without_network(videos, stub, quota):
    quota.state.used = 9450

    feed = await videos.get_videos()

    assert feed.items == []
    assert stub.requests == []


@pytest.mark.asyncio
async def test_quota_denial_with_expired_cache_serves_stale(videos, stub, quota, clock):
    first = await videos.get_videos("@fifa")
    clock.advance(TTL_TEN_MIN + 5)
    quota.state.used = 9450
    calls = len(stub.requests)

    again = await videos.get_videos("@fifa")

    assert [v.id for v in again.items] == [v.id for v in first.items]
    assert len(stub.requests) == calls


@pytest.mark.asyncio
async def test_global_quota_denial_serves_stale(videos, stub, quota, clock):
    first = await videos.get_videos()
    clock.advance(TTL_TEN_MIN + 5)
    quota.state.used = 9450
    calls = len(stub.requests)

    again = await videos.get_videos()

    assert again.items == first.items
    assert len(stub.requests) == calls


@pytest.mark.asyncio
async def test_resolve_channel_id_serves_stale_id_when_denied(videos, quota, clock):
    assert await videos.resolve_channel_id("@fifa") == "UCfifa"
    clock.advance(8 * 24 * 3600)
    assert quota.used == 0  # the rolling window reset meanwhile
    quota.state.used = 9450

    assert await videos.resolve_channel_id("@fifa") == "UCfifa"


@pytest.mark.asyncio
async def test_resolve_channel_id_denied_without_cache(videos, quota):
    quota.state.used = 9450
    with pytest.raises(QuotaExceeded):
        await videos.resolve_channel_id("@fifa")


@pytest.mark.asyncio
async def test_channels_list_uses_placeholder_for_failures(fake, stub, http, cache, quota):
    fake.install(stub)
    aggregator = VideoAggregator(YouTubeClient("yt-key", http, quota), cache, ["@fifa", "@ghost"])

    channels = await aggregator.get_channels()

    fifa, ghost = channels.items
    assert (fifa.handle, fifa.channel_id, fifa.title) == ("@fifa", "UCfifa", "Channel UCfifa")
    assert fifa.avatar == "https://yt3.ggpht.com/UCfifa.jpg"
    assert (ghost.channel_id, ghost.title, ghost.avatar) == (None, "ghost", None)
    assert all(r.url.host == HOST for r in stub.requests)


@pytest.mark.asyncio
async def test_odd_timestamps_sort_without_failing(stub, http, cache, quota):
    fake = YouTubeFake(
        channel_ids={"@odd": "UCodd"},
        uploads={"UCodd": [
            ("naive", "2024-05-03T10:00:00"),
            ("broken", "not a date"),
            ("aware", "2024-05-02T10:00:00Z"),
        ]},
    )
    fake.install(stub)
    videos = VideoAggregator(YouTubeClient("yt-key", http, quota), cache, ["@odd"], stale_retry=60)

    feed = await videos.get_videos("@odd")

    assert [v.id for v in feed.items] == ["naive", "aware", "broken"]
    assert feed.items[-1].published_at is None

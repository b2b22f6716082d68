"""Shared fixtures: fake clock, stubbed upstream HTTP and a temporary poll database."""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from sportrays.cache import TTLCache
from sportrays.config import Settings
from sportrays.database import Database
from sportrays.quota import QuotaGovernor


class FakeClock:
    """Callable clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


Handler = Callable[[httpx.Request], Any]


class UpstreamStub:
    """
    Routes requests by (host, path) to canned handlers and records them.

    A handler may return an httpx.Response, an int status, or a JSON-able
    object. Unknown routes answer 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(self, host: str, path: str, handler: Handler):
        self.routes[(host, path)] = handler

    def calls(self, host: Optional[str] = None) -> List[httpx.Request]:
        return [r for r in self.requests if host is None or r.url.host == host]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.url.host, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        result = handler(request)
        if isinstance(result, httpx.Response):
            return result
        if isinstance(result, int):
            return httpx.Response(result)
        return httpx.Response(200, content=json.dumps(result).encode(), headers={"content-type": "application/json"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def quota(clock) -> QuotaGovernor:
    return QuotaGovernor(
        daily_max=10000,
        safety_margin=500,
        costs={"search": 100, "videos": 1, "channels": 1},
        clock=clock,
    )


@pytest.fixture
def stub() -> UpstreamStub:
    return UpstreamStub()


@pytest_asyncio.fixture
async def http(stub):
    client = httpx.AsyncClient(transport=stub.transport())
    yield client
    await client.aclose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        youtube_api_key="yt-key",
        api_football_key="af-key",
        all_sports_api_key="as-key",
        admin_secret="s3cret-admin-token",
    )


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'polls.db'}")
    await db.init_db()
    yield db
    await db.dispose()

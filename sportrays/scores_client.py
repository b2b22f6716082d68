"""
Score provider adapters.

Each provider builds its own date-range query for a scope and returns
normalized MatchRecords. Providers are tried in order by ScoreAggregator.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from sportrays.errors import ConfigurationMissing, RequestValidationFailed, UpstreamUnavailable
from sportrays.models import MatchRecord
from sportrays.scores_parser import normalize_all_sports, normalize_api_football
from sportrays.upstream import fetch_json

UPCOMING_DAYS = 3

_API_FOOTBALL_BASE = "https://v3.football.api-sports.io"
_ALL_SPORTS_BASE = "https://apiv2.allsportsapi.com/football/"


def _date_range(scope: str, today: date) -> Tuple[str, str]:
    if scope == "today":
        return today.isoformat(), today.isoformat()
    if scope == "upcoming":
        return today.isoformat(), (today + timedelta(days=UPCOMING_DAYS)).isoformat()
    raise RequestValidationFailed(f"bad scope: {scope}")


def _all_sports_failed(data: Dict[str, Any]) -> bool:
    if str(data.get("error") or "0") != "0":
        return True
    return "success" in data and str(data["success"]) != "1"


class ScoreProvider:
    """Base class for score providers."""
    name = "provider"

    def __init__(self, api_key: Optional[str], http: httpx.AsyncClient):
        self.api_key = api_key
        self.http = http

    def build_query(self, scope: str, today: date) -> Tuple[str, Dict[str, Any]]:
        """
        Build the request for a scope.

        Args:
            scope: live, today or upcoming
            today: Current UTC calendar day

        Returns:
            (url, query parameters)
        """
        raise NotImplementedError

    async def fetch(self, scope: str, today: date) -> List[MatchRecord]:
        """
        Fetch and normalize matches for a scope.

        Raises:
            ConfigurationMissing: If the provider has no API key
            UpstreamUnavailable: On network errors or a non-success status
        """
        raise NotImplementedError


class ApiFootballProvider(ScoreProvider):
    """API-Football v3 fixtures endpoint."""
    name = "api-football"

    def build_query(self, scope: str, today: date) -> Tuple[str, Dict[str, Any]]:
        url = f"{_API_FOOTBALL_BASE}/fixtures"
        if scope == "live":
            return url, {"live": "all"}
        if scope == "today":
            return url, {"date": today.isoformat()}
        start, end = _date_range(scope, today)
        return url, {"from": start, "to": end}

    async def fetch(self, scope: str, today: date) -> List[MatchRecord]:
        if not self.api_key:
            raise ConfigurationMissing("API_FOOTBALL_KEY missing")

        url, params = self.build_query(scope, today)
        data = await fetch_json(
            self.http,
            url,
            params=params,
            headers={"x-apisports-key": self.api_key},
            label=self.name,
        )
        # API-Football reports auth and plan errors in a 200 body next to an empty response
        errors = data.get("errors")
        if errors:
            raise UpstreamUnavailable(f"{self.name}: {errors}")
        if "response" not in data:
            raise UpstreamUnavailable(f"{self.name}: missing response key")

        return [normalize_api_football(m) for m in data.get("response") or []]


class AllSportsProvider(ScoreProvider):
    """AllSportsApi football endpoint."""
    name = "allsports"

    def build_query(self, scope: str, today: date) -> Tuple[str, Dict[str, Any]]:
        if scope == "live":
            return _ALL_SPORTS_BASE, {"met": "Livescore", "APIkey": self.api_key}
        start, end = _date_range(scope, today)
        return _ALL_SPORTS_BASE, {"met": "Fixtures", "from": start, "to": end, "APIkey": self.api_key}

    async def fetch(self, scope: str, today: date) -> List[MatchRecord]:
        if not self.api_key:
            raise ConfigurationMissing("ALL_SPORTS_API_KEY missing")

        url, params = self.build_query(scope, today)
        data = await fetch_json(self.http, url, params=params, label=self.name)
        # AllSportsApi flags errors with "error" and puts the messages in "result"
        if _all_sports_failed(data):
            raise UpstreamUnavailable(f"{self.name}: {data.get('result') or data.get('error')}")

        events = data.get("result") or data.get("events") or []
        return [normalize_all_sports(m) for m in events]

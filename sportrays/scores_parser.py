"""
Score provider payload normalization.
Both providers are mapped onto MatchRecord.
"""

import re
from typing import Any, Dict, Optional, Tuple

from sportrays.models import MatchRecord, TeamScore


def _first(data: Dict[str, Any], *keys: str) -> Any:
    """First value among ``keys`` that is present and not empty."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _minute(value: Any) -> Optional[int]:
    """Elapsed minute, tolerating stoppage-time forms like "45+2"."""
    if value is None or isinstance(value, bool):
        return None
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else None


def parse_final_result(result: Any) -> Tuple[Optional[int], Optional[int]]:
    """
    Split an inline "X-Y" score.

    Examples:
        >>> parse_final_result("2 - 1")
        (2, 1)
        >>> parse_final_result("-")
        (None, None)
    """
    parts = str(result).split("-")
    if len(parts) != 2:
        return None, None
    return _to_int(parts[0]), _to_int(parts[1])


def _id(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_api_football(match: Dict[str, Any]) -> MatchRecord:
    """
    Convert one item of the API-Football fixtures response.

    Args:
        match: Item of ``response``

    Returns:
        MatchRecord
    """
    fixture = match.get("fixture") or {}
    status = fixture.get("status") or {}
    league = match.get("league") or {}
    teams = match.get("teams") or {}
    goals = match.get("goals") or {}
    home = teams.get("home") or {}
    away = teams.get("away") or {}

    return MatchRecord(
        id=_id(fixture.get("id")),
        league=league.get("name") or "League",
        country=league.get("country") or "",
        kickoff=fixture.get("date"),
        status=status.get("short") or status.get("long") or "",
        minute=_minute(status.get("elapsed")),
        home=TeamScore(
            id=_id(home.get("id")),
            name=home.get("name") or "Home",
            logo=home.get("logo"),
            goals=_to_int(goals.get("home")),
        ),
        away=TeamScore(
            id=_id(away.get("id")),
            name=away.get("name") or "Away",
            logo=away.get("logo"),
            goals=_to_int(goals.get("away")),
        ),
    )


def normalize_all_sports(match: Dict[str, Any]) -> MatchRecord:
    """
    Convert one event of the AllSportsApi Livescore/Fixtures response.

    The provider is loose about field names, so several spellings are
    tried for each field. Goals come from ``event_final_result`` ("2 - 1")
    when present.

    Args:
        match: Item of ``result``

    Returns:
        MatchRecord
    """
    league = match.get("league")
    league_name = match.get("league_name") or (league.get("name") if isinstance(league, dict) else None)

    final_result = match.get("event_final_result")
    if final_result:
        home_goals, away_goals = parse_final_result(final_result)
    else:
        home_goals = _to_int(match.get("home_team_goals"))
        away_goals = _to_int(match.get("away_team_goals"))

    return MatchRecord(
        id=_id(_first(match, "event_key", "match_id", "event_id", "fixture_id", "id")),
        league=league_name or "League",
        country=_first(match, "country_name", "country") or "",
        kickoff=_first(match, "event_date_start", "event_date", "match_time", "date"),
        status=_first(match, "event_status", "status") or "",
        minute=_minute(_first(match, "event_live_minute", "live_minute")),
        home=TeamScore(
            id=_id(match.get("home_team_key")),
            name=_first(match, "event_home_team", "home_team") or "Home",
            logo=match.get("home_team_logo"),
            goals=home_goals,
        ),
        away=TeamScore(
            id=_id(match.get("away_team_key")),
            name=_first(match, "event_away_team", "away_team") or "Away",
            logo=match.get("away_team_logo"),
            goals=away_goals,
        ),
    )

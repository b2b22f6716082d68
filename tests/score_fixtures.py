"""Canned score provider payloads."""

API_FOOTBALL_FIXTURE = {
    "fixture": {"id": 1035, "date": "2026-10-18T19:00:00+00:00", "status": {"short": "2H", "long": "Second Half", "elapsed": 67}},
    "league": {"name": "Premier League", "country": "England"},
    "teams": {
        "home": {"id": 42, "name": "Arsenal", "logo": "https://media.api-sports.io/42.png"},
        "away": {"id": 49, "name": "Chelsea", "logo": "https://media.api-sports.io/49.png"},
    },
    "goals": {"home": 2, "away": 0},
}

ALL_SPORTS_EVENT = {
    "event_key": 98765,
    "event_date": "2026-10-18",
    "event_status": "Finished",
    "event_home_team": "Inter",
    "home_team_key": 79,
    "event_away_team": "Milan",
    "away_team_key": 81,
    "event_final_result": "3 - 1",
    "league_name": "Serie A",
    "country_name": "Italy",
    "home_team_logo": "https://apiv2.allsportsapi.com/logo/79.png",
    "away_team_logo": "https://apiv2.allsportsapi.com/logo/81.png",
}

"""
Runtime configuration loaded from environment variables.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional


# Cache TTL policy (seconds)
TTL_TEN_MIN = 10 * 60
TTL_CHANNEL_ID = 7 * 24 * 60 * 60
TTL_SCORES: Dict[str, int] = {
    "live": 45,
    "today": 60,
    "upcoming": 5 * 60,
}

SCORE_SCOPES = tuple(TTL_SCORES.keys())

# Channels aggregated by the global video feed and the channel list
CHANNEL_HANDLES: List[str] = [
    "@ACMilan",
    "@fifa",
    "@premierleague",
    "@supersport",
    "@realmadrid",
    "@FCBarcelona",
    "@mancity",
    "@Juventus",
    "@chelseafc",
    "@LiverpoolFC",
    "@arsenal",
    "@seriea",
    "@bundesliga",
    "@LaLiga",
    "@Ligue1",
]

NEWS_FEEDS: List[Dict[str, str]] = [
    {"url": "https://www.fifa.com/rss-feeds/news", "source": "FIFA"},
    {"url": "https://www.goal.com/feeds/en/news", "source": "Goal"},
    {"url": "https://www.skysports.com/rss/12040", "source": "Sky Sports Football"},
    {"url": "https://www.espn.com/espn/rss/soccer/news", "source": "ESPN FC"},
    {"url": "https://www.si.com/rss/section/soccer", "source": "Sports Illustrated"},
    {"url": "https://www.bbc.com/sport/football/rss.xml", "source": "BBC Football"},
    {"url": "https://www.theguardian.com/football/rss", "source": "The Guardian Football"},
    {"url": "https://feeds.reuters.com/reuters/soccerNews", "source": "Reuters Soccer"},
    {"url": "https://www.independent.co.uk/sport/football/rss", "source": "The Independent Football"},
    {"url": "https://rss.nytimes.com/services/xml/rss/nyt/Soccer.xml", "source": "NYTimes Soccer"},
    {"url": "https://www.premierleague.com/news.rss", "source": "Premier League"},
    {"url": "https://feeds.bbci.co.uk/sport/football/rss.xml", "source": "BBC Football"},
    {"url": "https://www.liverpoolfc.com/news/rss.xml", "source": "Liverpool FC"},
    {"url": "https://www.manutd.com/rss/news", "source": "Man Utd"},
    {"url": "https://www.arsenal.com/rss-news-feed", "source": "Arsenal"},
    {"url": "https://www.chelseafc.com/en/rss/news", "source": "Chelsea"},
    {"url": "https://www.tottenhamhotspur.com/feeds/rss/news.xml", "source": "Tottenham"},
    {"url": "https://www.evertonfc.com/rss.xml", "source": "Everton"},
    {"url": "https://www.westhamunited.com/rss.xml", "source": "West Ham"},
    {"url": "https://www.mancity.com/news.rss", "source": "Man City"},
    {"url": "https://www.realmadrid.com/en/rss/rss.xml", "source": "Real Madrid"},
    {"url": "https://www.fcbarcelona.com/feeds/rss/news", "source": "FC Barcelona"},
    {"url": "https://www.acmilan.com/en/news/rss.xml", "source": "AC Milan"},
    {"url": "https://www.inter.it/en/rss.xml", "source": "Inter"},
    {"url": "https://www.juventus.com/en/news/rss.xml", "source": "Juventus"},
    {"url": "https://fcbayern.com/en/news/rss.xml", "source": "Bayern"},
    {"url": "https://www.bundesliga.com/en/news/rssfeed", "source": "Bundesliga"},
    {"url": "https://www.laliga.com/en-GB/rss/news", "source": "LaLiga"},
    {"url": "https://www.psg.fr/news/feed", "source": "PSG"},
    {"url": "https://www.ligue1.com/rss.xml", "source": "Ligue 1"},
]


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Sport Rays API"
    env: str = "dev"
    log_level: str = "INFO"

    youtube_api_key: Optional[str] = None
    api_football_key: Optional[str] = None
    all_sports_api_key: Optional[str] = None
    database_url: Optional[str] = None
    admin_secret: Optional[str] = None

    upstream_timeout: float = 10.0
    cache_ttl_jitter: int = 0
    stale_retry_seconds: int = 60

    # YouTube Data API quota policy (units per rolling day)
    youtube_daily_quota: int = 10000
    youtube_quota_safety_margin: int = 500
    youtube_search_cost: int = 100
    youtube_list_cost: int = 1

    @property
    def hardened(self) -> bool:
        """True when internal error detail must not reach clients."""
        return self.env.lower() == "production"

    @property
    def youtube_quota_costs(self) -> Dict[str, int]:
        return {
            "search": self.youtube_search_cost,
            "videos": self.youtube_list_cost,
            "channels": self.youtube_list_cost,
        }

    def missing_keys(self) -> List[str]:
        """Names of optional collaborators that are not configured."""
        named = {
            "YOUTUBE_API_KEY": self.youtube_api_key,
            "API_FOOTBALL_KEY": self.api_football_key,
            "ALL_SPORTS_API_KEY": self.all_sports_api_key,
            "DATABASE_URL": self.database_url,
            "ADMIN_SECRET": self.admin_secret,
        }
        return [name for name, value in named.items() if not value]

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
            api_football_key=os.getenv("API_FOOTBALL_KEY") or None,
            all_sports_api_key=os.getenv("ALL_SPORTS_API_KEY") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            admin_secret=os.getenv("ADMIN_SECRET") or None,
            upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", cls.upstream_timeout)),
            cache_ttl_jitter=_env_int("CACHE_TTL_JITTER_SECONDS", cls.cache_ttl_jitter),
            stale_retry_seconds=_env_int("STALE_RETRY_SECONDS", cls.stale_retry_seconds),
            youtube_daily_quota=_env_int("YOUTUBE_DAILY_QUOTA", cls.youtube_daily_quota),
            youtube_quota_safety_margin=_env_int("YOUTUBE_QUOTA_SAFETY_MARGIN", cls.youtube_quota_safety_margin),
            youtube_search_cost=_env_int("YOUTUBE_SEARCH_COST", cls.youtube_search_cost),
            youtube_list_cost=_env_int("YOUTUBE_LIST_COST", cls.youtube_list_cost),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()

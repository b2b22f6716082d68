"""
Score lookup with provider failover.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List, Sequence

from sportrays.cache import TTLCache
from sportrays.config import SCORE_SCOPES, TTL_SCORES
from sportrays.errors import RequestValidationFailed, UpstreamUnavailable
from sportrays.models import ScoreBoard
from sportrays.scores_client import ScoreProvider

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass
class ProviderFailure:
    """Why a provider was skipped during one refresh."""
    provider: str
    reason: str


class ProvidersExhausted(UpstreamUnavailable):
    """Every provider failed for a scope."""

    def __init__(self, scope: str, failures: List[ProviderFailure]):
        detail = "; ".join(f"{f.provider}: {f.reason}" for f in failures)
        super().__init__(f"All score providers failed for {scope} ({detail})")
        self.failures = failures


class ScoreAggregator:
    """
    Live, today and upcoming scoreboards, each an independent cache slot.

    Providers are tried in order until one succeeds. When all fail the
    stale board is served if present, otherwise an empty board.
    """

    def __init__(
        self,
        providers: Sequence[ScoreProvider],
        cache: TTLCache,
        today: Callable[[], date] = utc_today,
    ):
        self.providers = list(providers)
        self.cache = cache
        self.today = today
        self.last_failures: List[ProviderFailure] = []

    async def _refresh(self, scope: str) -> ScoreBoard:
        failures = []
        today = self.today()
        for provider in self.providers:
            try:
                items = await provider.fetch(scope, today)
            except Exception as e:
                logger.warning("%s failed for %s: %s", provider.name, scope, e)
                failures.append(ProviderFailure(provider.name, str(e) or e.__class__.__name__))
                continue
            self.last_failures = failures
            return ScoreBoard(items=items)

        self.last_failures = failures
        raise ProvidersExhausted(scope, failures)

    async def get_scores(self, scope: str = "live") -> ScoreBoard:
        """
        Get the scoreboard for a scope.

        Args:
            scope: live, today or upcoming

        Returns:
            ScoreBoard, empty when no provider could answer

        Raises:
            RequestValidationFailed: On an unknown scope
        """
        if scope not in SCORE_SCOPES:
            raise RequestValidationFailed("bad scope")

        key = f"scores:{scope}"
        ttl = TTL_SCORES[scope]

        async def refresh() -> ScoreBoard:
            return await self._refresh(scope)

        try:
            return await self.cache.get_or_refresh(
                key, ttl, refresh, fallback_on=(ProvidersExhausted,), stale_retry=ttl,
            )
        except ProvidersExhausted:
            # Unavailable scores read as "no matches"; keep the empty board
            # for one TTL so the providers are not retried on every request.
            board = ScoreBoard()
            self.cache.set(key, board, ttl)
            return board

"""
Daily call budget for the video catalog API.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

from sportrays.errors import QuotaExceeded

logger = logging.getLogger(__name__)

QUOTA_WINDOW_SECONDS = 24 * 60 * 60


@dataclass
class QuotaState:
    used: int
    reset_at: float


class QuotaGovernor:
    """
    Tracks spent quota units and denies calls that would cross the
    safety-margined daily budget.

    The window is rolling: it restarts 24 hours after the previous reset,
    not at a calendar boundary. State is per process.
    """

    def __init__(
        self,
        daily_max: int,
        safety_margin: int,
        costs: Dict[str, int],
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            daily_max: Units available per window
            safety_margin: Units kept in reserve below ``daily_max``
            costs: Units charged per operation name
            clock: Returns the current time in seconds
        """
        self.daily_max = daily_max
        self.safety_margin = safety_margin
        self.costs = dict(costs)
        self._clock = clock
        self.state = QuotaState(used=0, reset_at=clock() + QUOTA_WINDOW_SECONDS)

    def cost(self, op: str) -> int:
        try:
            return self.costs[op]
        except KeyError:
            raise ValueError(f"Unknown quota operation: {op}")

    def _maybe_reset(self):
        now = self._clock()
        if now > self.state.reset_at:
            logger.info("Quota window elapsed, resetting usage (was %d)", self.state.used)
            self.state = QuotaState(used=0, reset_at=now + QUOTA_WINDOW_SECONDS)

    @property
    def used(self) -> int:
        self._maybe_reset()
        return self.state.used

    def can_make_call(self, op: str) -> bool:
        """True when ``op`` fits in the budget left after the safety margin."""
        self._maybe_reset()
        return self.state.used + self.cost(op) < self.daily_max - self.safety_margin

    def ensure(self, op: str):
        """
        Raises:
            QuotaExceeded: If ``op`` does not fit in the remaining budget
        """
        if not self.can_make_call(op):
            logger.warning(
                "Quota denied for %s (used=%d, max=%d, margin=%d)",
                op, self.state.used, self.daily_max, self.safety_margin,
            )
            raise QuotaExceeded(f"Daily quota exhausted for {op}")

    def record_usage(self, op: str):
        """Charge ``op`` against the budget. Call only after a successful call."""
        self._maybe_reset()
        self.state.used += self.cost(op)

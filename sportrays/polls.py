"""
Poll engine: active poll view, idempotent voting and admin operations.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sportrays.db_models import Poll
from sportrays.errors import NotFound, RequestValidationFailed, VoteConflict
from sportrays.models import ActivePollView, PollOptionView, PollRecord, VoteResult
from sportrays.poll_store import PollStore

logger = logging.getLogger(__name__)

DEVICE_HASH_MIN = 32
DEVICE_HASH_MAX = 128


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _require_id(value: str, name: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise RequestValidationFailed(f"Malformed {name}")


def tally_votes(
    option_ids: Iterable[str],
    votes: Iterable[Tuple[str, str]],
    device: Optional[str] = None,
) -> Tuple[Dict[str, int], bool, Optional[str]]:
    """
    Count votes per option and find the vote of one device.

    Args:
        option_ids: Every option of the poll; each gets a count, zero included
        votes: (option_id, device_hash) pairs
        device: Device hash of the requesting client, if any

    Returns:
        (counts by option ID, whether ``device`` voted, the option it chose)
    """
    counts = {option_id: 0 for option_id in option_ids}
    has_voted = False
    selected = None
    for option_id, device_hash in votes:
        counts[option_id] = counts.get(option_id, 0) + 1
        if device and device_hash == device:
            has_voted = True
            selected = option_id
    return counts, has_voted, selected


def _poll_record(poll: Poll) -> PollRecord:
    return PollRecord(
        id=poll.id,
        question=poll.question,
        starts_at=as_utc(poll.starts_at),
        ends_at=as_utc(poll.ends_at),
        is_active=poll.is_active,
        created_at=as_utc(poll.created_at) if poll.created_at else None,
    )


class PollEngine:
    """Read, vote and tally logic over the poll store."""

    def __init__(self, store: PollStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self._clock = clock

    async def get_active_poll(self, device: Optional[str] = None) -> Optional[ActivePollView]:
        """
        Get the active poll as seen by one device.

        Args:
            device: Device hash of the requesting client

        Returns:
            ActivePollView, or None when no poll is running
        """
        poll = await self.store.find_active_poll(self._clock())
        if poll is None:
            return None

        options = await self.store.list_options(poll.id)
        votes = await self.store.list_votes(poll.id)
        counts, has_voted, selected = tally_votes((o.id for o in options), votes, device)

        return ActivePollView(
            id=poll.id,
            question=poll.question,
            ends_at=as_utc(poll.ends_at),
            has_voted=has_voted,
            selected_option_id=selected,
            options=[PollOptionView(id=o.id, text=o.text, votes=counts.get(o.id, 0)) for o in options],
        )

    async def totals(self, poll_id: str) -> Dict[str, int]:
        """
        Vote count for every option of a poll.

        Raises:
            NotFound: If the poll does not exist
        """
        poll_id = _require_id(poll_id, "poll id")
        if await self.store.get_poll(poll_id) is None:
            raise NotFound("Poll not found")
        options = await self.store.list_options(poll_id)
        votes = await self.store.list_votes(poll_id)
        counts, _, _ = tally_votes((o.id for o in options), votes)
        return counts

    async def cast_vote(self, poll_id: str, option_id: str, device_hash: str) -> VoteResult:
        """
        Record a vote and return the updated totals.

        Voting again from the same device is a no-op: the first vote stands
        and the call still succeeds.

        Args:
            poll_id: Poll ID
            option_id: Chosen option ID
            device_hash: Client-derived device token (32-128 characters)

        Returns:
            VoteResult with totals for every option

        Raises:
            RequestValidationFailed: On malformed IDs or device hash
            NotFound: If the poll does not exist or the option is not part of it
        """
        poll_id = _require_id(poll_id, "poll id")
        option_id = _require_id(option_id, "option id")
        if not device_hash or not DEVICE_HASH_MIN <= len(device_hash) <= DEVICE_HASH_MAX:
            raise RequestValidationFailed("Missing or malformed deviceIdHash")

        if await self.store.get_poll(poll_id) is None:
            raise NotFound("Poll not found")
        options = await self.store.list_options(poll_id)
        if option_id not in {o.id for o in options}:
            raise NotFound("Option not found for poll")

        try:
            await self.store.insert_vote(poll_id, option_id, device_hash)
        except VoteConflict:
            logger.info("Duplicate vote ignored for poll %s", poll_id)

        votes = await self.store.list_votes(poll_id)
        counts, _, _ = tally_votes((o.id for o in options), votes)
        return VoteResult(ok=True, totals=counts)

    async def list_polls(self) -> List[PollRecord]:
        return [_poll_record(poll) for poll in await self.store.list_polls()]

    async def create_poll(
        self,
        question: str,
        options: Sequence[str],
        starts_at: datetime,
        ends_at: datetime,
        is_active: bool = False,
    ) -> str:
        """
        Create a poll with its options.

        Raises:
            RequestValidationFailed: If the window is empty or an option is blank
        """
        starts_at, ends_at = as_utc(starts_at), as_utc(ends_at)
        if ends_at <= starts_at:
            raise RequestValidationFailed("endsAt must be after startsAt")
        if any(not text.strip() for text in options):
            raise RequestValidationFailed("Poll options must not be blank")
        return await self.store.create_poll(question, options, starts_at, ends_at, is_active)

    async def set_active(self, poll_id: str, active: bool):
        """
        Raises:
            NotFound: If the poll does not exist
        """
        poll_id = _require_id(poll_id, "poll id")
        if not await self.store.set_active(poll_id, active):
            raise NotFound("Poll not found")
        logger.info("Poll %s %s", poll_id, "activated" if active else "deactivated")

"""
Data access for polls, options and votes.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from sportrays.database import Database
from sportrays.db_models import Poll, PollOption, PollVote, _new_id
from sportrays.errors import VoteConflict

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class PollStore:
    """
    Request/response access to the poll tables.

    Each method runs in its own session; nothing is held between calls.
    """

    def __init__(self, database: Database):
        self.database = database

    async def find_active_poll(self, now: datetime) -> Optional[Poll]:
        """
        Most recently started active poll whose window contains ``now``.

        Args:
            now: Current time (UTC)
        """
        async with self.database.session() as db:
            result = await db.execute(
                select(Poll)
                .where(Poll.is_active.is_(True), Poll.starts_at <= now, Poll.ends_at >= now)
                .order_by(Poll.starts_at.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        async with self.database.session() as db:
            return await db.get(Poll, poll_id)

    async def list_polls(self) -> List[Poll]:
        """All polls, newest first."""
        async with self.database.session() as db:
            result = await db.execute(select(Poll).order_by(Poll.created_at.desc()))
            return list(result.scalars().all())

    async def list_options(self, poll_id: str) -> List[PollOption]:
        """Options of a poll in display order."""
        async with self.database.session() as db:
            result = await db.execute(
                select(PollOption).where(PollOption.poll_id == poll_id).order_by(PollOption.order.asc())
            )
            return list(result.scalars().all())

    async def list_votes(self, poll_id: str) -> List[Tuple[str, str]]:
        """(option_id, device_hash) pairs of every vote on a poll."""
        async with self.database.session() as db:
            result = await db.execute(
                select(PollVote.option_id, PollVote.device_hash).where(PollVote.poll_id == poll_id)
            )
            return [(row.option_id, row.device_hash) for row in result]

    async def insert_vote(self, poll_id: str, option_id: str, device_hash: str):
        """
        Record a vote.

        Args:
            poll_id: Poll ID
            option_id: Chosen option ID
            device_hash: Client-derived device token

        Raises:
            VoteConflict: If this device already voted on this poll
        """
        values = {
            "id": _new_id(),
            "poll_id": poll_id,
            "option_id": option_id,
            "device_hash": device_hash,
        }
        dialect = self.database.engine.dialect.name
        dialect_insert = _UPSERT_INSERTS.get(dialect)

        if dialect_insert is not None:
            stmt = dialect_insert(PollVote).values(**values).on_conflict_do_nothing(
                index_elements=["poll_id", "device_hash"]
            )
            async with self.database.session() as db:
                result = await db.execute(stmt)
            if result.rowcount == 0:
                raise VoteConflict(f"Device already voted on poll {poll_id}")
            return

        try:
            async with self.database.session() as db:
                await db.execute(insert(PollVote).values(**values))
        except IntegrityError:
            # Without ON CONFLICT support, confirm the duplicate by lookup
            if await self._has_vote(poll_id, device_hash):
                raise VoteConflict(f"Device already voted on poll {poll_id}")
            raise

    async def _has_vote(self, poll_id: str, device_hash: str) -> bool:
        async with self.database.session() as db:
            result = await db.execute(
                select(PollVote.id).where(PollVote.poll_id == poll_id, PollVote.device_hash == device_hash)
            )
            return result.first() is not None

    async def create_poll(
        self,
        question: str,
        options: Sequence[str],
        starts_at: datetime,
        ends_at: datetime,
        is_active: bool,
    ) -> str:
        """
        Create a poll and its options in one transaction.

        Options are numbered from 1 in the given order.

        Returns:
            New poll ID
        """
        poll = Poll(
            id=_new_id(),
            question=question,
            starts_at=starts_at,
            ends_at=ends_at,
            is_active=is_active,
        )
        async with self.database.session() as db:
            db.add(poll)
            await db.flush()
            db.add_all([
                PollOption(id=_new_id(), poll_id=poll.id, text=text, order=i)
                for i, text in enumerate(options, start=1)
            ])
        logger.info("Created poll %s with %d options", poll.id, len(options))
        return poll.id

    async def set_active(self, poll_id: str, active: bool) -> bool:
        """
        Flip the active flag of a poll.

        Returns:
            False if no poll has this ID
        """
        async with self.database.session() as db:
            result = await db.execute(update(Poll).where(Poll.id == poll_id).values(is_active=active))
            return result.rowcount > 0

"""Persistence for votes and vote counts."""

import copy
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

from .models import Vote, VoteDirection


if TYPE_CHECKING:
    from cassandra.cluster import Session


class VoteRepository(ABC):
    """Storage contract for the vote ledger.

    ``previous`` arguments carry the direction being replaced so counter-based
    stores can adjust totals without re-reading.
    """

    @abstractmethod
    async def get_vote(self, content_id: UUID, actor_id: UUID) -> Vote | None:
        """The actor's current vote on the content, if any."""

    @abstractmethod
    async def save_vote(self, vote: Vote, previous: VoteDirection | None) -> None:
        """Insert or overwrite the actor's vote."""

    @abstractmethod
    async def delete_vote(self, vote: Vote) -> None:
        """Remove the actor's vote."""

    @abstractmethod
    async def count_votes(self, content_id: UUID) -> tuple[int, int]:
        """(upvotes, downvotes) for the content."""


class InMemoryVoteRepository(VoteRepository):
    """Dict-backed repository keyed by (content_id, actor_id)."""

    def __init__(self) -> None:
        self._votes: dict[tuple[UUID, UUID], Vote] = {}

    async def get_vote(self, content_id: UUID, actor_id: UUID) -> Vote | None:
        vote = self._votes.get((content_id, actor_id))
        return copy.deepcopy(vote) if vote else None

    async def save_vote(self, vote: Vote, previous: VoteDirection | None) -> None:
        self._votes[(vote.content_id, vote.actor_id)] = copy.deepcopy(vote)

    async def delete_vote(self, vote: Vote) -> None:
        self._votes.pop((vote.content_id, vote.actor_id), None)

    async def count_votes(self, content_id: UUID) -> tuple[int, int]:
        up = down = 0
        for (voted_content_id, _), vote in self._votes.items():
            if voted_content_id != content_id:
                continue
            if vote.direction == VoteDirection.UP:
                up += 1
            else:
                down += 1
        return up, down


class CassandraVoteRepository(VoteRepository):
    """Vote storage on Cassandra via cassandra-asyncio-driver."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_vote = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.votes
            WHERE content_id = ? AND actor_id = ?
        """)

        self._insert_vote = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.votes
            (content_id, actor_id, content_kind, direction, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._delete_vote = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.votes
            WHERE content_id = ? AND actor_id = ?
        """)

        self._update_counts = self.session.prepare(f"""
            UPDATE {self.keyspace}.vote_counts
            SET upvotes = upvotes + ?, downvotes = downvotes + ?
            WHERE content_id = ?
        """)

        self._get_counts = self.session.prepare(f"""
            SELECT upvotes, downvotes FROM {self.keyspace}.vote_counts
            WHERE content_id = ?
        """)

    async def get_vote(self, content_id: UUID, actor_id: UUID) -> Vote | None:
        rows = await self.session.aexecute(self._get_vote, [content_id, actor_id])
        row = rows[0] if rows else None
        return Vote.from_row(row) if row else None

    async def save_vote(self, vote: Vote, previous: VoteDirection | None) -> None:
        await self.session.aexecute(
            self._insert_vote,
            [
                vote.content_id,
                vote.actor_id,
                vote.content_kind.value,
                vote.direction.value,
                vote.created_at,
                vote.updated_at,
            ],
        )
        if previous == vote.direction:
            return
        up_delta, down_delta = _delta(vote.direction, 1)
        if previous is not None:
            prev_up, prev_down = _delta(previous, -1)
            up_delta += prev_up
            down_delta += prev_down
        await self.session.aexecute(
            self._update_counts, [up_delta, down_delta, vote.content_id]
        )

    async def delete_vote(self, vote: Vote) -> None:
        await self.session.aexecute(
            self._delete_vote, [vote.content_id, vote.actor_id]
        )
        up_delta, down_delta = _delta(vote.direction, -1)
        await self.session.aexecute(
            self._update_counts, [up_delta, down_delta, vote.content_id]
        )

    async def count_votes(self, content_id: UUID) -> tuple[int, int]:
        rows = await self.session.aexecute(self._get_counts, [content_id])
        row = rows[0] if rows else None
        if not row:
            return 0, 0
        return max(0, row.upvotes or 0), max(0, row.downvotes or 0)


def _delta(direction: VoteDirection, amount: int) -> tuple[int, int]:
    if direction == VoteDirection.UP:
        return amount, 0
    return 0, amount

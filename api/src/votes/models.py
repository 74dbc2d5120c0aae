"""Database models for the vote ledger.

Cassandra table definitions for:
- Votes: one row per (content, actor), the actor's current direction
- Vote counts: denormalized up/down counters per content for fast tallies
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.content.models import ContentKind
from src.utils.clock import ensure_aware


class VoteDirection(str, Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


class VoteOutcome(str, Enum):
    """What a vote call did to the actor's vote."""

    ADDED = "added"
    REMOVED = "removed"
    SWITCHED = "switched"
    UNCHANGED = "unchanged"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by content so all votes of one post/comment live together
VOTES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.votes (
    content_id UUID,
    actor_id UUID,
    content_kind TEXT,
    direction TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((content_id), actor_id)
)
"""

# Vote counts - denormalized for fast reads
VOTE_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.vote_counts (
    content_id UUID PRIMARY KEY,
    upvotes COUNTER,
    downvotes COUNTER
)
"""

VOTES_TABLES_CQL = [
    VOTES_TABLE_CQL,
    VOTE_COUNTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Vote:
    """An actor's current vote on a post or comment."""

    content_id: UUID
    actor_id: UUID
    content_kind: ContentKind
    direction: VoteDirection
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Vote":
        """Create Vote from Cassandra row."""
        return cls(
            content_id=row.content_id,
            actor_id=row.actor_id,
            content_kind=ContentKind(row.content_kind),
            direction=VoteDirection(row.direction),
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at or row.created_at),
        )


@dataclass
class VoteTally:
    """Vote totals for a piece of content, from one actor's point of view."""

    content_id: UUID
    content_kind: ContentKind
    upvotes: int
    downvotes: int
    user_vote: VoteDirection | None = None
    outcome: VoteOutcome | None = None

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


"""Pydantic schemas for votes."""

from uuid import UUID

from pydantic import BaseModel, Field

from src.content.models import ContentKind

from .models import VoteDirection, VoteOutcome, VoteTally


class ToggleVoteRequest(BaseModel):
    """Request to toggle a vote."""

    content_id: UUID
    content_kind: ContentKind
    direction: VoteDirection


class SetVoteRequest(BaseModel):
    """Request to set (or clear, with direction null) a vote."""

    content_id: UUID
    content_kind: ContentKind
    direction: VoteDirection | None = Field(
        ..., description="Desired vote; null removes the caller's vote"
    )


class VoteTallyResponse(BaseModel):
    """Vote totals for a post or comment."""

    content_id: UUID
    content_kind: ContentKind
    upvotes: int
    downvotes: int
    score: int
    user_vote: VoteDirection | None = None
    outcome: VoteOutcome | None = None

    @classmethod
    def from_tally(cls, tally: VoteTally) -> "VoteTallyResponse":
        return cls(
            content_id=tally.content_id,
            content_kind=tally.content_kind,
            upvotes=tally.upvotes,
            downvotes=tally.downvotes,
            score=tally.score,
            user_vote=tally.user_vote,
            outcome=tally.outcome,
        )

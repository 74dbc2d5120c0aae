"""Pydantic schemas for polls."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .service import PollResults


class PollVoteRequest(BaseModel):
    """Request to vote on a poll."""

    option_index: int = Field(..., description="Zero-based option index")


class PollOptionResponse(BaseModel):
    """Results for one poll option."""

    index: int
    text: str
    votes: int
    percentage: int = Field(
        ...,
        description=(
            "Share of all votes, rounded half up; "
            "percentages across options may not sum to 100"
        ),
    )
    selected: bool = False


class PollResultsResponse(BaseModel):
    """Poll results."""

    post_id: UUID
    question: str
    options: list[PollOptionResponse]
    total_votes: int
    allow_multiple_votes: bool
    end_date: datetime
    is_closed: bool

    @classmethod
    def from_results(cls, results: PollResults) -> "PollResultsResponse":
        return cls(
            post_id=results.post_id,
            question=results.question,
            options=[
                PollOptionResponse(
                    index=option.index,
                    text=option.text,
                    votes=option.votes,
                    percentage=option.percentage,
                    selected=option.selected,
                )
                for option in results.options
            ],
            total_votes=results.total_votes,
            allow_multiple_votes=results.allow_multiple_votes,
            end_date=results.end_date,
            is_closed=results.is_closed,
        )

"""Poll service layer.

Polls live inside posts. Votes are accepted while ``now < end_date``;
single-choice polls move the actor's vote, multiple-choice polls add to it.
There is no un-voting.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.content.models import ContentKind, Poll
from src.content.service import ContentStore
from src.core.exceptions import (
    InvalidOptionError,
    NotFoundError,
    PollClosedError,
    require_actor,
)
from src.core.locks import ContentLockManager, content_key
from src.notifications.models import EventType
from src.utils.clock import Clock, utc_now


if TYPE_CHECKING:
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)


@dataclass
class PollOptionResult:
    """Results for one option."""

    index: int
    text: str
    votes: int
    percentage: int
    selected: bool = False


@dataclass
class PollResults:
    """Results of a poll as seen by one actor."""

    post_id: UUID
    question: str
    options: list[PollOptionResult]
    total_votes: int
    allow_multiple_votes: bool
    end_date: datetime
    is_closed: bool


def percentage_of(votes: int, total: int) -> int:
    """Whole percentage, rounded half up; 0 when nobody voted.

    Examples:
        >>> percentage_of(1, 8)
        13
        >>> percentage_of(0, 0)
        0
    """
    if total <= 0:
        return 0
    value = Decimal(100 * votes) / Decimal(total)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def tally_poll(
    post_id: UUID,
    poll: Poll,
    now: datetime,
    actor_id: UUID | None = None,
) -> PollResults:
    """Votes and percentages per option.

    Percentages are rounded independently and may not sum to exactly 100.
    """
    total = poll.total_votes
    options = [
        PollOptionResult(
            index=index,
            text=option.text,
            votes=option.votes,
            percentage=percentage_of(option.votes, total),
            selected=actor_id is not None and actor_id in option.voters,
        )
        for index, option in enumerate(poll.options)
    ]
    return PollResults(
        post_id=post_id,
        question=poll.question,
        options=options,
        total_votes=total,
        allow_multiple_votes=poll.allow_multiple_votes,
        end_date=poll.end_date,
        is_closed=poll.is_closed(now),
    )


class PollEngine:
    """Accepts poll votes and reports results."""

    def __init__(
        self,
        content: ContentStore,
        locks: ContentLockManager,
        notifications: "NotificationService | None" = None,
        clock: Clock = utc_now,
    ):
        self.content = content
        self.locks = locks
        self.notifications = notifications
        self.clock = clock

    async def vote_on_poll(
        self,
        actor_id: UUID | None,
        post_id: UUID,
        option_index: int,
    ) -> PollResults:
        """Record the actor's choice.

        Raises, in this order of precedence:
            AuthenticationRequiredError: If actor_id is None
            NotFoundError: If the post does not exist or has no poll
            PollClosedError: If the poll's end date has passed
            InvalidOptionError: If option_index is out of range
        """
        require_actor(actor_id)

        async with self.locks.hold(content_key(ContentKind.POST.value, post_id)):
            post = await self.content.get_post(post_id)
            poll = post.poll
            if poll is None:
                raise NotFoundError("This post has no poll")

            now = self.clock()
            if poll.is_closed(now):
                raise PollClosedError
            if not 0 <= option_index < len(poll.options):
                raise InvalidOptionError(option_index, len(poll.options))

            chosen = poll.choices_of(actor_id)
            changed = option_index not in chosen
            if changed:
                repository = self.content.repository
                if not poll.allow_multiple_votes:
                    for previous in chosen:
                        await repository.remove_poll_vote(post_id, previous, actor_id)
                        poll.options[previous].voters.discard(actor_id)
                await repository.add_poll_vote(post_id, option_index, actor_id, now)
                poll.options[option_index].voters.add(actor_id)

            results = tally_poll(post_id, poll, now, actor_id)

        if changed:
            logger.info(
                "poll_voted",
                post_id=str(post_id),
                option_index=option_index,
                switched=bool(chosen) and not poll.allow_multiple_votes,
                total_votes=results.total_votes,
            )
            if self.notifications:
                self.notifications.emit(
                    EventType.POLL_VOTED,
                    post_id,
                    actor_id,
                    option_index=option_index,
                    total_votes=results.total_votes,
                )
        return results

    async def get_results(
        self,
        post_id: UUID,
        actor_id: UUID | None = None,
    ) -> PollResults:
        """Current results, marking the caller's own choices."""
        post = await self.content.get_post(post_id)
        if post.poll is None:
            raise NotFoundError("This post has no poll")
        return tally_poll(post_id, post.poll, self.clock(), actor_id)

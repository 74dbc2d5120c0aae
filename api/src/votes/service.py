"""Vote ledger service layer.

Each actor holds at most one vote per post or comment. Two entry points:

- ``toggle_vote``: same direction removes, opposite direction switches.
  Not idempotent: retrying an applied toggle reverses it.
- ``set_vote``: sets the actor's vote to a direction or clears it.
  Idempotent; prefer it for clients that retry.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.content.models import ContentKind
from src.content.service import ContentStore
from src.core.exceptions import require_actor
from src.core.locks import ContentLockManager, content_key
from src.notifications.models import EventType
from src.utils.clock import Clock, utc_now

from .models import Vote, VoteDirection, VoteOutcome, VoteTally
from .repository import VoteRepository


if TYPE_CHECKING:
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)


class VoteLedger:
    """Records up/down votes on posts and comments."""

    def __init__(
        self,
        content: ContentStore,
        repository: VoteRepository,
        locks: ContentLockManager,
        notifications: "NotificationService | None" = None,
        clock: Clock = utc_now,
    ):
        self.content = content
        self.repository = repository
        self.locks = locks
        self.notifications = notifications
        self.clock = clock

    async def toggle_vote(
        self,
        actor_id: UUID | None,
        content_id: UUID,
        content_kind: ContentKind,
        direction: VoteDirection,
    ) -> VoteTally:
        """Add, remove or switch the actor's vote.

        Raises:
            AuthenticationRequiredError: If actor_id is None
            NotFoundError: If the content is missing or tombstoned
        """
        direction = VoteDirection(direction)
        return await self._change(
            actor_id,
            content_id,
            content_kind,
            lambda current: None if current == direction else direction,
        )

    async def set_vote(
        self,
        actor_id: UUID | None,
        content_id: UUID,
        content_kind: ContentKind,
        direction: VoteDirection | None,
    ) -> VoteTally:
        """Set the actor's vote to ``direction``; None clears it."""
        direction = VoteDirection(direction) if direction is not None else None
        return await self._change(
            actor_id, content_id, content_kind, lambda _current: direction
        )

    async def get_tally(
        self,
        content_id: UUID,
        content_kind: ContentKind,
        actor_id: UUID | None = None,
    ) -> VoteTally:
        """Current totals, plus the caller's own vote when actor_id is given."""
        content_kind = ContentKind(content_kind)
        await self.content.resolve_content(content_id, content_kind)
        user_vote = None
        if actor_id is not None:
            vote = await self.repository.get_vote(content_id, actor_id)
            user_vote = vote.direction if vote else None
        return await self._tally(content_id, content_kind, user_vote, None)

    async def _change(
        self,
        actor_id: UUID | None,
        content_id: UUID,
        content_kind: ContentKind,
        decide: Callable[[VoteDirection | None], VoteDirection | None],
    ) -> VoteTally:
        require_actor(actor_id)
        content_kind = ContentKind(content_kind)

        async with self.locks.hold(content_key(content_kind.value, content_id)):
            await self.content.resolve_content(content_id, content_kind)

            existing = await self.repository.get_vote(content_id, actor_id)
            current = existing.direction if existing else None
            target = decide(current)
            now = self.clock()

            if target == current:
                outcome = VoteOutcome.UNCHANGED
            elif target is None:
                await self.repository.delete_vote(existing)
                outcome = VoteOutcome.REMOVED
            elif existing is None:
                vote = Vote(
                    content_id=content_id,
                    actor_id=actor_id,
                    content_kind=content_kind,
                    direction=target,
                    created_at=now,
                    updated_at=now,
                )
                await self.repository.save_vote(vote, previous=None)
                outcome = VoteOutcome.ADDED
            else:
                existing.direction = target
                existing.updated_at = now
                await self.repository.save_vote(existing, previous=current)
                outcome = VoteOutcome.SWITCHED

            tally = await self._tally(content_id, content_kind, target, outcome)

        if outcome != VoteOutcome.UNCHANGED:
            logger.info(
                "vote_changed",
                content_id=str(content_id),
                content_kind=content_kind.value,
                outcome=outcome.value,
                direction=target.value if target else None,
                score=tally.score,
            )
            if self.notifications:
                self.notifications.emit(
                    EventType.VOTE_CHANGED,
                    content_id,
                    actor_id,
                    content_kind=content_kind.value,
                    outcome=outcome.value,
                    direction=target.value if target else None,
                    upvotes=tally.upvotes,
                    downvotes=tally.downvotes,
                )
        return tally

    async def _tally(
        self,
        content_id: UUID,
        content_kind: ContentKind,
        user_vote: VoteDirection | None,
        outcome: VoteOutcome | None,
    ) -> VoteTally:
        upvotes, downvotes = await self.repository.count_votes(content_id)
        return VoteTally(
            content_id=content_id,
            content_kind=content_kind,
            upvotes=upvotes,
            downvotes=downvotes,
            user_vote=user_vote,
            outcome=outcome,
        )

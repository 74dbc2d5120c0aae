"""Moderation service layer.

Moderators close a target's pending cycle with one of three actions:

- approve: the content stays (or becomes) visible
- reject: the content is removed from normal reads
- ban: the user is suspended; for a post or comment, its author is
  suspended and the content removed

Every action resolves the cycle's open reports. Closed cycles never change;
the next report on the target opens a new one. A decision that fails part
way puts back what it had already written.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.accounts.gateway import AccountGateway
from src.content.models import ContentKind, ContentStatus
from src.content.service import ContentStore
from src.core.exceptions import (
    AuthorizationError,
    ForumError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    require_actor,
)
from src.core.locks import ContentLockManager, content_key
from src.notifications.models import EventType
from src.utils.clock import Clock, utc_now

from .aggregator import MODERATION_LOCK_KIND
from .models import (
    ACTION_RESULTS,
    SEVERITY_RANK,
    BulkModerationResult,
    ModerationAction,
    ModerationOutcome,
    ModerationRecord,
    ModerationStatus,
    Report,
    ReportStatus,
    ReportTargetKind,
)
from .repository import ModerationRepository


if TYPE_CHECKING:
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)


MODERATION_NOTES_MAX_LENGTH = 1000

CONTENT_STATUS_AFTER: dict[ModerationAction, ContentStatus] = {
    ModerationAction.APPROVE: ContentStatus.VISIBLE,
    ModerationAction.REJECT: ContentStatus.REMOVED,
    ModerationAction.BAN: ContentStatus.REMOVED,
}


class ModerationEngine:
    """Applies moderator decisions to moderation cycles."""

    def __init__(
        self,
        content: ContentStore,
        repository: ModerationRepository,
        locks: ContentLockManager,
        accounts: AccountGateway,
        notifications: "NotificationService | None" = None,
        queue_limit: int = 100,
        clock: Clock = utc_now,
    ):
        self.content = content
        self.repository = repository
        self.locks = locks
        self.accounts = accounts
        self.notifications = notifications
        self.queue_limit = queue_limit
        self.clock = clock

    async def moderate(
        self,
        moderator_id: UUID | None,
        target_id: UUID,
        action: ModerationAction,
        is_moderator: bool,
        notes: str | None = None,
    ) -> ModerationRecord:
        """Close the target's pending cycle.

        Raises:
            AuthenticationRequiredError: If moderator_id is None
            AuthorizationError: If the caller is not a moderator
            NotFoundError: If the target has never been reported
            InvalidTransitionError: If the latest cycle is already closed
        """
        require_actor(moderator_id)
        if not is_moderator:
            raise AuthorizationError("Moderator role required")
        action = ModerationAction(action)
        notes = (notes or "").strip() or None
        if notes and len(notes) > MODERATION_NOTES_MAX_LENGTH:
            raise ValidationError(
                f"Notes must be at most {MODERATION_NOTES_MAX_LENGTH} characters",
                "invalid_notes",
            )

        suspended_user = None
        async with self.locks.hold(content_key(MODERATION_LOCK_KIND, target_id)):
            record = await self.repository.get_current_record(target_id)
            if record is None:
                raise NotFoundError("No moderation record for this target")
            if record.is_terminal:
                raise InvalidTransitionError(
                    f"Cycle {record.cycle} is already {record.status.value}"
                )

            kind = None
            previous_content_status = None
            if record.target_kind.is_content:
                kind = ContentKind(record.target_kind.value)
                content = await self.content.find_content(target_id, kind)
                if content is None:
                    raise NotFoundError(f"{kind.value.capitalize()} not found")
                previous_content_status = content.moderation_status
                if record.target_author_id is None:
                    record.target_author_id = content.author_id
            if action == ModerationAction.BAN:
                suspended_user = (
                    target_id
                    if record.target_kind == ReportTargetKind.USER
                    else record.target_author_id
                )

            if kind is not None:
                await self.content.set_moderation_status(
                    target_id, kind, CONTENT_STATUS_AFTER[action]
                )
            resolved: list[Report] = []
            try:
                now = self.clock()
                reports = await self.repository.list_reports(target_id, record.cycle)
                for report in reports:
                    if report.status == ReportStatus.OPEN:
                        report.status = ReportStatus.RESOLVED
                        report.updated_at = now
                        await self.repository.save_report(report)
                        resolved.append(report)

                previous_status = record.status
                record.status = ACTION_RESULTS[action]
                record.moderator_id = moderator_id
                record.notes = notes
                record.decided_at = now
                record.updated_at = now
                await self.repository.save_record(
                    record, previous_status=previous_status
                )
            except Exception:
                await self._undo_decision(
                    target_id, kind, previous_content_status, resolved
                )
                raise

        logger.info(
            "content_moderated",
            target_id=str(target_id),
            target_kind=record.target_kind.value,
            action=action.value,
            cycle=record.cycle,
            status=record.status.value,
            report_count=record.report_count,
        )
        self._emit(
            EventType.CONTENT_MODERATED,
            target_id,
            moderator_id,
            target_kind=record.target_kind.value,
            action=action.value,
            status=record.status.value,
            cycle=record.cycle,
        )

        if suspended_user is not None:
            await self._suspend(suspended_user, moderator_id, target_id, notes)
        return record

    async def _suspend(
        self,
        user_id: UUID,
        moderator_id: UUID,
        target_id: UUID,
        reason: str | None,
    ) -> None:
        try:
            await self.accounts.suspend(user_id, reason=reason)
        except Exception as e:
            # The ban is committed; the account service is retried out of band
            logger.error(
                "account_suspend_failed",
                user_id=str(user_id),
                target_id=str(target_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        logger.info("user_suspended", user_id=str(user_id), target_id=str(target_id))
        self._emit(
            EventType.USER_SUSPENDED,
            user_id,
            moderator_id,
            target_id=str(target_id),
        )

    async def _undo_decision(
        self,
        target_id: UUID,
        kind: ContentKind | None,
        content_status: ContentStatus | None,
        resolved: list[Report],
    ) -> None:
        """Put back what a failed decision already wrote."""
        for report in resolved:
            report.status = ReportStatus.OPEN
            await self.repository.save_report(report)
        if kind is not None and content_status is not None:
            await self.content.set_moderation_status(target_id, kind, content_status)
        logger.warning(
            "moderation_rolled_back",
            target_id=str(target_id),
            reports_reopened=len(resolved),
        )

    async def moderate_many(
        self,
        moderator_id: UUID | None,
        target_ids: list[UUID],
        action: ModerationAction,
        is_moderator: bool,
        notes: str | None = None,
    ) -> BulkModerationResult:
        """Apply one action to many targets independently.

        Returns one outcome per requested id, in request order. A failing
        item never stops the others.
        """
        action = ModerationAction(action)
        result = BulkModerationResult(action=action)

        for target_id in target_ids:
            try:
                record = await self.moderate(
                    moderator_id, target_id, action, is_moderator, notes
                )
            except ForumError as e:
                result.outcomes.append(_failure(target_id, e))
            except Exception:
                logger.exception(
                    "bulk_moderation_item_failed",
                    target_id=str(target_id),
                    action=action.value,
                )
                result.outcomes.append(_failure(target_id, InternalError()))
            else:
                result.outcomes.append(
                    ModerationOutcome(
                        target_id=target_id, success=True, status=record.status
                    )
                )

        logger.info(
            "bulk_moderation_completed",
            action=action.value,
            requested=len(target_ids),
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    async def lift_ban(
        self,
        moderator_id: UUID | None,
        user_id: UUID,
        is_moderator: bool,
    ) -> None:
        """Ask the account service to reinstate a suspended user.

        Raises:
            AuthorizationError: If the caller is not a moderator
            AccountServiceError: If the account service refuses or is unreachable
        """
        require_actor(moderator_id)
        if not is_moderator:
            raise AuthorizationError("Moderator role required")

        await self.accounts.activate(user_id)

        logger.info("user_reinstated", user_id=str(user_id))
        self._emit(EventType.USER_REINSTATED, user_id, moderator_id)

    async def get_queue(
        self,
        status: ModerationStatus = ModerationStatus.PENDING,
        limit: int | None = None,
    ) -> list[ModerationRecord]:
        """Records in a status, most severe, most reported and oldest first."""
        records = await self.repository.list_records_by_status(
            ModerationStatus(status)
        )
        records.sort(
            key=lambda r: (-SEVERITY_RANK[r.severity], -r.report_count, r.opened_at)
        )
        return records[: limit or self.queue_limit]

    async def get_history(self, target_id: UUID) -> list[ModerationRecord]:
        """All cycles of a target, newest first."""
        return await self.repository.list_records(target_id)

    def _emit(self, event_type: EventType, content_id: UUID, actor_id, **metadata):
        if self.notifications:
            self.notifications.emit(event_type, content_id, actor_id, **metadata)


def _failure(target_id: UUID, error: ForumError) -> ModerationOutcome:
    return ModerationOutcome(
        target_id=target_id,
        success=False,
        error_kind=error.kind,
        error_code=error.code,
        message=error.message,
    )

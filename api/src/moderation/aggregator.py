"""Report aggregation.

Reports on a target are grouped into moderation cycles. The first report
after a closed cycle (or ever) opens the next one; later reports from the
same reporter in the same cycle update their earlier report instead of
counting twice. Every report recomputes the cycle's severity.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.content.models import ContentKind, ContentStatus
from src.content.service import ContentStore
from src.core.exceptions import ValidationError, require_actor
from src.core.locks import ContentLockManager, content_key
from src.notifications.models import EventType
from src.utils.clock import Clock, utc_now

from .models import (
    SEVERE_REASONS,
    ModerationRecord,
    Report,
    ReportReason,
    ReportTargetKind,
    Severity,
    create_record,
    create_report,
)
from .repository import ModerationRepository


if TYPE_CHECKING:
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)


REPORT_DETAILS_MAX_LENGTH = 500

# Lock namespace for moderation records; always taken before any content lock
MODERATION_LOCK_KIND = "moderation"


def compute_severity(
    reports: Iterable[Report],
    high_threshold: int = 5,
    medium_threshold: int = 2,
) -> Severity:
    """Severity of a cycle from its reports.

    High when there are at least ``high_threshold`` reports or any report
    cites harassment, hate speech or violence; medium from
    ``medium_threshold`` reports; low otherwise.
    """
    reports = list(reports)
    if len(reports) >= high_threshold or any(
        report.reason in SEVERE_REASONS for report in reports
    ):
        return Severity.HIGH
    if len(reports) >= medium_threshold:
        return Severity.MEDIUM
    return Severity.LOW


def normalize_details(reason: ReportReason, details: str | None) -> str | None:
    """Trim report details; required for reason ``other``, at most 500 chars."""
    text = (details or "").strip() or None
    if reason == ReportReason.OTHER and text is None:
        raise ValidationError(
            "Details are required when the reason is 'other'", "details_required"
        )
    if text and len(text) > REPORT_DETAILS_MAX_LENGTH:
        raise ValidationError(
            f"Details must be at most {REPORT_DETAILS_MAX_LENGTH} characters",
            "invalid_details",
        )
    return text


class ReportAggregator:
    """Files reports and keeps the current moderation cycle up to date."""

    def __init__(
        self,
        content: ContentStore,
        repository: ModerationRepository,
        locks: ContentLockManager,
        notifications: "NotificationService | None" = None,
        high_threshold: int = 5,
        medium_threshold: int = 2,
        clock: Clock = utc_now,
    ):
        self.content = content
        self.repository = repository
        self.locks = locks
        self.notifications = notifications
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.clock = clock

    def severity_of(self, reports: Iterable[Report]) -> Severity:
        """Severity using the configured thresholds."""
        return compute_severity(reports, self.high_threshold, self.medium_threshold)

    async def file_report(
        self,
        reporter_id: UUID | None,
        target_id: UUID,
        target_kind: ReportTargetKind,
        reason: ReportReason,
        details: str | None = None,
    ) -> ModerationRecord:
        """File or update a report and return the (pending) cycle record.

        Raises:
            AuthenticationRequiredError: If reporter_id is None
            ValidationError: If details are missing for 'other' or too long
            NotFoundError: If a post/comment target does not exist
        """
        require_actor(reporter_id)
        target_kind = ReportTargetKind(target_kind)
        reason = ReportReason(reason)
        details = normalize_details(reason, details)

        # User targets live in the account service and are not checked here
        author_id = target_id
        if target_kind.is_content:
            content = await self.content.resolve_content(
                target_id, ContentKind(target_kind.value)
            )
            author_id = content.author_id

        async with self.locks.hold(content_key(MODERATION_LOCK_KIND, target_id)):
            now = self.clock()
            record = await self.repository.get_current_record(target_id)
            if record is not None and record.target_kind != target_kind:
                raise ValidationError(
                    f"Target was reported as a {record.target_kind.value}",
                    "target_kind_mismatch",
                )

            opened = record is None or record.is_terminal
            if opened:
                record = create_record(
                    target_id=target_id,
                    target_kind=target_kind,
                    cycle=record.cycle + 1 if record else 1,
                    target_author_id=author_id,
                    now=now,
                )

            report = await self.repository.get_report(
                target_id, record.cycle, reporter_id
            )
            if report is None:
                report = create_report(
                    reporter_id=reporter_id,
                    target_id=target_id,
                    target_kind=target_kind,
                    cycle=record.cycle,
                    reason=reason,
                    details=details,
                    now=now,
                )
            else:
                report.reason = reason
                report.details = details
                report.updated_at = now
            await self.repository.save_report(report)

            reports = await self.repository.list_reports(target_id, record.cycle)
            record.report_count = len(reports)
            record.reasons = sorted({r.reason for r in reports}, key=lambda r: r.value)
            record.severity = self.severity_of(reports)
            record.updated_at = now
            await self.repository.save_record(
                record, previous_status=None if opened else record.status
            )

            # Removed content stays removed until a moderator approves it
            if opened and target_kind.is_content:
                await self.content.set_moderation_status(
                    target_id,
                    ContentKind(target_kind.value),
                    ContentStatus.UNDER_REVIEW,
                    only_from=ContentStatus.VISIBLE,
                )

        logger.info(
            "report_filed",
            target_id=str(target_id),
            target_kind=target_kind.value,
            reason=reason.value,
            cycle=record.cycle,
            cycle_opened=opened,
            report_count=record.report_count,
            severity=record.severity.value,
        )
        if self.notifications:
            self.notifications.emit(
                EventType.REPORT_FILED,
                target_id,
                reporter_id,
                target_kind=target_kind.value,
                reason=reason.value,
                cycle=record.cycle,
                severity=record.severity.value,
            )
        return record

    async def list_reports(
        self,
        target_id: UUID,
        cycle: int | None = None,
    ) -> list[Report]:
        """Reports on a target; all cycles unless one is given."""
        return await self.repository.list_reports(target_id, cycle)

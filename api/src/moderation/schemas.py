"""Pydantic schemas for reports and moderation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import (
    BulkModerationResult,
    ModerationAction,
    ModerationOutcome,
    ModerationRecord,
    ModerationStatus,
    Report,
    ReportReason,
    ReportStatus,
    ReportTargetKind,
    Severity,
)


# ==============================================================================
# Request Schemas
# ==============================================================================


class FileReportRequest(BaseModel):
    """Request to report a post, comment or user."""

    target_id: UUID
    target_kind: ReportTargetKind
    reason: ReportReason
    details: str | None = Field(
        None, max_length=500, description="Required when reason is 'other'"
    )


class ModerateRequest(BaseModel):
    """Moderator decision on a single target."""

    action: ModerationAction
    notes: str | None = Field(None, max_length=1000)


class BulkModerateRequest(BaseModel):
    """One moderator decision applied to many targets."""

    target_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    action: ModerationAction
    notes: str | None = Field(None, max_length=1000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class ModerationRecordResponse(BaseModel):
    """One moderation cycle of a target."""

    record_id: UUID
    target_id: UUID
    target_kind: ReportTargetKind
    cycle: int
    status: ModerationStatus
    report_count: int
    reasons: list[ReportReason]
    severity: Severity
    moderator_id: UUID | None = None
    notes: str | None = None
    opened_at: datetime
    updated_at: datetime
    decided_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ModerationRecord) -> "ModerationRecordResponse":
        return cls(
            record_id=record.record_id,
            target_id=record.target_id,
            target_kind=record.target_kind,
            cycle=record.cycle,
            status=record.status,
            report_count=record.report_count,
            reasons=record.reasons,
            severity=record.severity,
            moderator_id=record.moderator_id,
            notes=record.notes,
            opened_at=record.opened_at,
            updated_at=record.updated_at,
            decided_at=record.decided_at,
        )


class ModerationQueueResponse(BaseModel):
    """Records awaiting (or past) moderation."""

    items: list[ModerationRecordResponse]
    total: int


class ModerationHistoryResponse(BaseModel):
    """All cycles of a target, newest first."""

    target_id: UUID
    items: list[ModerationRecordResponse]


class ReportResponse(BaseModel):
    """A single report, as seen by moderators."""

    report_id: UUID
    reporter_id: UUID
    target_id: UUID
    target_kind: ReportTargetKind
    cycle: int
    reason: ReportReason
    details: str | None = None
    status: ReportStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        return cls(
            report_id=report.report_id,
            reporter_id=report.reporter_id,
            target_id=report.target_id,
            target_kind=report.target_kind,
            cycle=report.cycle,
            reason=report.reason,
            details=report.details,
            status=report.status,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )


class ReportListResponse(BaseModel):
    """Reports on a target."""

    target_id: UUID
    items: list[ReportResponse]


class ModerationOutcomeResponse(BaseModel):
    """Result of one bulk item."""

    target_id: UUID
    success: bool
    status: ModerationStatus | None = None
    error_kind: str | None = None
    error_code: str | None = None
    message: str | None = None

    @classmethod
    def from_outcome(cls, outcome: ModerationOutcome) -> "ModerationOutcomeResponse":
        return cls(
            target_id=outcome.target_id,
            success=outcome.success,
            status=outcome.status,
            error_kind=outcome.error_kind,
            error_code=outcome.error_code,
            message=outcome.message,
        )


class BulkModerationResponse(BaseModel):
    """Per-item results in request order."""

    action: ModerationAction
    succeeded: int
    failed: int
    results: list[ModerationOutcomeResponse]

    @classmethod
    def from_result(cls, result: BulkModerationResult) -> "BulkModerationResponse":
        return cls(
            action=result.action,
            succeeded=result.succeeded,
            failed=result.failed,
            results=[
                ModerationOutcomeResponse.from_outcome(outcome)
                for outcome in result.outcomes
            ],
        )

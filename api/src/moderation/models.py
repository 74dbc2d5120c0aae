"""Database models for reports and moderation.

Cassandra table definitions for:
- Reports: one row per (target, cycle, reporter); a repeat report updates it
- Moderation records: one row per (target, cycle), newest cycle first
- Moderation records by status: denormalized copy for the moderation queue

A target goes through numbered cycles. A cycle opens with the first report
after the previous cycle closed and stays ``pending`` until a moderator
approves, rejects or bans. Closed cycles are never modified again; a new
report opens the next cycle.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.utils.clock import ensure_aware, utc_now


class ReportTargetKind(str, Enum):
    """What a report points at."""

    POST = "post"
    COMMENT = "comment"
    USER = "user"

    @property
    def is_content(self) -> bool:
        return self in (ReportTargetKind.POST, ReportTargetKind.COMMENT)


class ReportReason(str, Enum):
    """Reasons for reporting."""

    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    MISINFORMATION = "misinformation"
    VIOLENCE = "violence"
    OTHER = "other"


# Reasons that make a cycle high severity on their own
SEVERE_REASONS = frozenset(
    {ReportReason.HARASSMENT, ReportReason.HATE_SPEECH, ReportReason.VIOLENCE}
)


class ReportStatus(str, Enum):
    """Report status."""

    OPEN = "open"
    RESOLVED = "resolved"


class ModerationStatus(str, Enum):
    """Status of a moderation cycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    BANNED_USER = "banned_user"


TERMINAL_STATUSES = frozenset(
    {
        ModerationStatus.APPROVED,
        ModerationStatus.REJECTED,
        ModerationStatus.BANNED_USER,
    }
)


class ModerationAction(str, Enum):
    """Moderator decisions."""

    APPROVE = "approve"
    REJECT = "reject"
    BAN = "ban"


ACTION_RESULTS: dict[ModerationAction, ModerationStatus] = {
    ModerationAction.APPROVE: ModerationStatus.APPROVED,
    ModerationAction.REJECT: ModerationStatus.REJECTED,
    ModerationAction.BAN: ModerationStatus.BANNED_USER,
}


class Severity(str, Enum):
    """How urgently a cycle needs attention."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
}


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

REPORTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reports (
    target_id UUID,
    cycle INT,
    reporter_id UUID,
    report_id UUID,
    target_kind TEXT,
    reason TEXT,
    details TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((target_id), cycle, reporter_id)
) WITH CLUSTERING ORDER BY (cycle DESC, reporter_id ASC)
"""

# Newest cycle first so the current record is LIMIT 1
MODERATION_RECORDS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.moderation_records (
    target_id UUID,
    cycle INT,
    record_id UUID,
    target_kind TEXT,
    status TEXT,
    report_count INT,
    reasons LIST<TEXT>,
    severity TEXT,
    moderator_id UUID,
    notes TEXT,
    target_author_id UUID,
    opened_at TIMESTAMP,
    updated_at TIMESTAMP,
    decided_at TIMESTAMP,
    PRIMARY KEY ((target_id), cycle)
) WITH CLUSTERING ORDER BY (cycle DESC)
"""

# Moderation queue - one partition per status
MODERATION_RECORDS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.moderation_records_by_status (
    status TEXT,
    target_id UUID,
    cycle INT,
    record_id UUID,
    target_kind TEXT,
    report_count INT,
    reasons LIST<TEXT>,
    severity TEXT,
    moderator_id UUID,
    notes TEXT,
    target_author_id UUID,
    opened_at TIMESTAMP,
    updated_at TIMESTAMP,
    decided_at TIMESTAMP,
    PRIMARY KEY ((status), target_id, cycle)
)
"""

MODERATION_TABLES_CQL = [
    REPORTS_TABLE_CQL,
    MODERATION_RECORDS_TABLE_CQL,
    MODERATION_RECORDS_BY_STATUS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Report:
    """One reporter's report on a target within a cycle."""

    report_id: UUID
    reporter_id: UUID
    target_id: UUID
    target_kind: ReportTargetKind
    cycle: int
    reason: ReportReason
    details: str | None
    status: ReportStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Report":
        """Create Report from Cassandra row."""
        return cls(
            report_id=row.report_id,
            reporter_id=row.reporter_id,
            target_id=row.target_id,
            target_kind=ReportTargetKind(row.target_kind),
            cycle=row.cycle,
            reason=ReportReason(row.reason),
            details=row.details,
            status=ReportStatus(row.status),
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at or row.created_at),
        )


@dataclass
class ModerationRecord:
    """State of one moderation cycle of a target."""

    record_id: UUID
    target_id: UUID
    target_kind: ReportTargetKind
    cycle: int
    status: ModerationStatus
    report_count: int
    reasons: list[ReportReason]
    severity: Severity
    moderator_id: UUID | None
    notes: str | None
    target_author_id: UUID | None
    opened_at: datetime
    updated_at: datetime
    decided_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_row(cls, row: Any, status: str | None = None) -> "ModerationRecord":
        """Create ModerationRecord from a moderation_records(_by_status) row."""
        return cls(
            record_id=row.record_id,
            target_id=row.target_id,
            target_kind=ReportTargetKind(row.target_kind),
            cycle=row.cycle,
            status=ModerationStatus(status or row.status),
            report_count=row.report_count or 0,
            reasons=[ReportReason(reason) for reason in row.reasons or []],
            severity=Severity(row.severity or "low"),
            moderator_id=row.moderator_id,
            notes=row.notes,
            target_author_id=row.target_author_id,
            opened_at=ensure_aware(row.opened_at),
            updated_at=ensure_aware(row.updated_at or row.opened_at),
            decided_at=ensure_aware(row.decided_at) if row.decided_at else None,
        )


@dataclass
class ModerationOutcome:
    """Result of one item of a bulk moderation request."""

    target_id: UUID
    success: bool
    status: ModerationStatus | None = None
    error_kind: str | None = None
    error_code: str | None = None
    message: str | None = None


@dataclass
class BulkModerationResult:
    """Per-item results of a bulk moderation request, in request order."""

    action: ModerationAction
    outcomes: list[ModerationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_report(
    reporter_id: UUID,
    target_id: UUID,
    target_kind: ReportTargetKind,
    cycle: int,
    reason: ReportReason,
    details: str | None = None,
    now: datetime | None = None,
) -> Report:
    """Create a new open report."""
    now = now or utc_now()
    return Report(
        report_id=uuid4(),
        reporter_id=reporter_id,
        target_id=target_id,
        target_kind=target_kind,
        cycle=cycle,
        reason=reason,
        details=details,
        status=ReportStatus.OPEN,
        created_at=now,
        updated_at=now,
    )


def create_record(
    target_id: UUID,
    target_kind: ReportTargetKind,
    cycle: int,
    target_author_id: UUID | None = None,
    now: datetime | None = None,
) -> ModerationRecord:
    """Open a new pending moderation cycle."""
    now = now or utc_now()
    return ModerationRecord(
        record_id=uuid4(),
        target_id=target_id,
        target_kind=target_kind,
        cycle=cycle,
        status=ModerationStatus.PENDING,
        report_count=0,
        reasons=[],
        severity=Severity.LOW,
        moderator_id=None,
        notes=None,
        target_author_id=target_author_id,
        opened_at=now,
        updated_at=now,
    )

"""Report aggregation and moderation cycles."""

from src.moderation.aggregator import ReportAggregator, compute_severity
from src.moderation.models import (
    MODERATION_TABLES_CQL,
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
from src.moderation.repository import (
    CassandraModerationRepository,
    InMemoryModerationRepository,
    ModerationRepository,
)
from src.moderation.service import ModerationEngine


__all__ = [
    "MODERATION_TABLES_CQL",
    "BulkModerationResult",
    "CassandraModerationRepository",
    "InMemoryModerationRepository",
    "ModerationAction",
    "ModerationEngine",
    "ModerationOutcome",
    "ModerationRecord",
    "ModerationRepository",
    "ModerationStatus",
    "Report",
    "ReportAggregator",
    "ReportReason",
    "ReportStatus",
    "ReportTargetKind",
    "Severity",
    "compute_severity",
]

"""Report and moderation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth.dependencies import ModeratorActor, OptionalActor, actor_id_of
from src.content.schemas import MessageResponse

from .dependencies import ModerationEngineDep, ReportAggregatorDep
from .models import ModerationStatus
from .schemas import (
    BulkModerateRequest,
    BulkModerationResponse,
    FileReportRequest,
    ModerateRequest,
    ModerationHistoryResponse,
    ModerationQueueResponse,
    ModerationRecordResponse,
    ReportListResponse,
    ReportResponse,
)


reports_router = APIRouter(prefix="/v1/reports", tags=["reports"])
router = APIRouter(prefix="/v1/moderation", tags=["moderation"])


# ==============================================================================
# Reports
# ==============================================================================


@reports_router.post(
    "",
    response_model=ModerationRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report content or a user",
)
async def file_report(
    data: FileReportRequest,
    aggregator: ReportAggregatorDep,
    actor: OptionalActor,
) -> ModerationRecordResponse:
    """File a report.

    Reporting the same target again in the same cycle updates the earlier
    report instead of counting twice.
    """
    record = await aggregator.file_report(
        actor_id_of(actor),
        data.target_id,
        data.target_kind,
        data.reason,
        data.details,
    )
    return ModerationRecordResponse.from_record(record)


# ==============================================================================
# Moderation
# ==============================================================================


@router.get(
    "/queue",
    response_model=ModerationQueueResponse,
    summary="Moderation queue",
)
async def get_queue(
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
    status_filter: ModerationStatus = Query(ModerationStatus.PENDING, alias="status"),
    limit: int = Query(50, ge=1, le=100),
) -> ModerationQueueResponse:
    """Records in a status, most severe first."""
    records = await engine.get_queue(status_filter, limit)
    return ModerationQueueResponse(
        items=[ModerationRecordResponse.from_record(r) for r in records],
        total=len(records),
    )


@router.post(
    "/bulk",
    response_model=BulkModerationResponse,
    summary="Moderate many targets",
)
async def moderate_many(
    data: BulkModerateRequest,
    engine: ModerationEngineDep,
    actor: OptionalActor,
) -> BulkModerationResponse:
    """Apply one action to each target independently.

    Always 200: check each result, one failure does not undo the others.
    """
    result = await engine.moderate_many(
        actor_id_of(actor),
        data.target_ids,
        data.action,
        bool(actor and actor.is_moderator),
        data.notes,
    )
    return BulkModerationResponse.from_result(result)


@router.post(
    "/users/{user_id}/reinstate",
    response_model=MessageResponse,
    summary="Lift a user ban",
)
async def lift_ban(
    user_id: UUID,
    engine: ModerationEngineDep,
    actor: OptionalActor,
) -> MessageResponse:
    """Reinstate a suspended user through the account service."""
    await engine.lift_ban(
        actor_id_of(actor), user_id, bool(actor and actor.is_moderator)
    )
    return MessageResponse(message="User reinstated")


@router.get(
    "/{target_id}/history",
    response_model=ModerationHistoryResponse,
    summary="Moderation history",
)
async def get_history(
    target_id: UUID,
    engine: ModerationEngineDep,
    _moderator: ModeratorActor,
) -> ModerationHistoryResponse:
    """All moderation cycles of a target, newest first."""
    records = await engine.get_history(target_id)
    return ModerationHistoryResponse(
        target_id=target_id,
        items=[ModerationRecordResponse.from_record(r) for r in records],
    )


@router.get(
    "/{target_id}/reports",
    response_model=ReportListResponse,
    summary="Reports on a target",
)
async def list_reports(
    target_id: UUID,
    aggregator: ReportAggregatorDep,
    _moderator: ModeratorActor,
    cycle: int | None = Query(None, ge=1),
) -> ReportListResponse:
    """Reports on a target, all cycles unless one is given."""
    reports = await aggregator.list_reports(target_id, cycle)
    return ReportListResponse(
        target_id=target_id,
        items=[ReportResponse.from_report(r) for r in reports],
    )


@router.post(
    "/{target_id}",
    response_model=ModerationRecordResponse,
    summary="Moderate a target",
)
async def moderate(
    target_id: UUID,
    data: ModerateRequest,
    engine: ModerationEngineDep,
    actor: OptionalActor,
) -> ModerationRecordResponse:
    """Approve, reject or ban the target's pending cycle."""
    record = await engine.moderate(
        actor_id_of(actor),
        target_id,
        data.action,
        bool(actor and actor.is_moderator),
        data.notes,
    )
    return ModerationRecordResponse.from_record(record)

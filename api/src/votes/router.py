"""Vote API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import OptionalActor, actor_id_of
from src.content.models import ContentKind

from .dependencies import VoteLedgerDep
from .schemas import SetVoteRequest, ToggleVoteRequest, VoteTallyResponse


router = APIRouter(prefix="/v1/votes", tags=["votes"])


@router.post(
    "/toggle",
    response_model=VoteTallyResponse,
    summary="Toggle vote",
)
async def toggle_vote(
    data: ToggleVoteRequest,
    ledger: VoteLedgerDep,
    actor: OptionalActor,
) -> VoteTallyResponse:
    """Add, remove or switch the caller's vote.

    Retrying a successful toggle undoes it; use PUT /v1/votes for retries.
    """
    tally = await ledger.toggle_vote(
        actor_id_of(actor), data.content_id, data.content_kind, data.direction
    )
    return VoteTallyResponse.from_tally(tally)


@router.put(
    "",
    response_model=VoteTallyResponse,
    summary="Set vote",
)
async def set_vote(
    data: SetVoteRequest,
    ledger: VoteLedgerDep,
    actor: OptionalActor,
) -> VoteTallyResponse:
    """Set the caller's vote to a direction, or clear it with null."""
    tally = await ledger.set_vote(
        actor_id_of(actor), data.content_id, data.content_kind, data.direction
    )
    return VoteTallyResponse.from_tally(tally)


@router.get(
    "/{content_kind}/{content_id}",
    response_model=VoteTallyResponse,
    summary="Get vote tally",
)
async def get_tally(
    content_kind: ContentKind,
    content_id: UUID,
    ledger: VoteLedgerDep,
    actor: OptionalActor,
) -> VoteTallyResponse:
    """Vote totals, with the caller's own vote when authenticated."""
    tally = await ledger.get_tally(content_id, content_kind, actor_id_of(actor))
    return VoteTallyResponse.from_tally(tally)

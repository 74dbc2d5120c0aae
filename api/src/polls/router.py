"""Poll API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import OptionalActor, actor_id_of

from .dependencies import PollEngineDep
from .schemas import PollResultsResponse, PollVoteRequest


router = APIRouter(prefix="/v1/polls", tags=["polls"])


@router.post(
    "/{post_id}/votes",
    response_model=PollResultsResponse,
    summary="Vote on poll",
)
async def vote_on_poll(
    post_id: UUID,
    data: PollVoteRequest,
    engine: PollEngineDep,
    actor: OptionalActor,
) -> PollResultsResponse:
    """Vote for an option. Repeating a choice is a no-op."""
    results = await engine.vote_on_poll(actor_id_of(actor), post_id, data.option_index)
    return PollResultsResponse.from_results(results)


@router.get(
    "/{post_id}",
    response_model=PollResultsResponse,
    summary="Get poll results",
)
async def get_results(
    post_id: UUID,
    engine: PollEngineDep,
    actor: OptionalActor,
) -> PollResultsResponse:
    """Current results; the caller's choices are marked as selected."""
    results = await engine.get_results(post_id, actor_id_of(actor))
    return PollResultsResponse.from_results(results)

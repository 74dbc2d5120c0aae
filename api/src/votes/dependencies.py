"""FastAPI dependencies for the vote ledger."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import VoteLedger


async def get_vote_ledger(request: Request) -> VoteLedger:
    """Get vote ledger from app state."""
    app_state = request.app.state
    if not getattr(app_state, "vote_ledger", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vote service not available",
        )
    return app_state.vote_ledger


VoteLedgerDep = Annotated[VoteLedger, Depends(get_vote_ledger)]

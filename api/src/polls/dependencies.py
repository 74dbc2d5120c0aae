"""FastAPI dependencies for polls."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PollEngine


async def get_poll_engine(request: Request) -> PollEngine:
    """Get poll engine from app state."""
    app_state = request.app.state
    if not getattr(app_state, "poll_engine", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Poll service not available",
        )
    return app_state.poll_engine


PollEngineDep = Annotated[PollEngine, Depends(get_poll_engine)]

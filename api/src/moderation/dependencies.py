"""FastAPI dependencies for reports and moderation."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .aggregator import ReportAggregator
from .service import ModerationEngine


async def get_report_aggregator(request: Request) -> ReportAggregator:
    """Get report aggregator from app state."""
    app_state = request.app.state
    if not getattr(app_state, "report_aggregator", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Report service not available",
        )
    return app_state.report_aggregator


async def get_moderation_engine(request: Request) -> ModerationEngine:
    """Get moderation engine from app state."""
    app_state = request.app.state
    if not getattr(app_state, "moderation_engine", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service not available",
        )
    return app_state.moderation_engine


ReportAggregatorDep = Annotated[ReportAggregator, Depends(get_report_aggregator)]
ModerationEngineDep = Annotated[ModerationEngine, Depends(get_moderation_engine)]

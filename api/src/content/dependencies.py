"""FastAPI dependencies for the content tree."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ContentStore


async def get_content_store(request: Request) -> ContentStore:
    """Get content store from app state."""
    app_state = request.app.state
    if not getattr(app_state, "content_store", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content service not available",
        )
    return app_state.content_store


ContentStoreDep = Annotated[ContentStore, Depends(get_content_store)]

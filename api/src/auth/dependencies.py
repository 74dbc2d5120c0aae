"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current actor extraction from JWT
- Optional actor for endpoints where the service decides on anonymity
- Moderator-only access
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError

from src.auth.permissions import UserRole, has_permission
from src.auth.schemas import Actor
from src.auth.security import decode_access_token
from src.core.exceptions import AuthenticationRequiredError, AuthorizationError
from src.core.middleware import set_actor_context


logger = structlog.get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _actor_from_token(token: str) -> Actor:
    try:
        payload = decode_access_token(token)
        actor = Actor(id=payload["sub"], role=payload.get("role", UserRole.CITIZEN))
    except (JWTError, PydanticValidationError) as e:
        logger.info("access_token_rejected", error_type=type(e).__name__)
        raise AuthenticationRequiredError("Invalid or expired access token") from e

    set_actor_context(actor.id)
    return actor


async def get_current_actor(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Actor:
    """Get the authenticated actor from the JWT access token.

    Raises:
        AuthenticationRequiredError: If the token is missing, invalid, or expired
    """
    if not token:
        raise AuthenticationRequiredError
    return _actor_from_token(token)


async def get_optional_actor(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Actor | None:
    """Get the actor if a token was sent, None for anonymous calls.

    A token that is present but invalid is still rejected, so a client with
    a stale token is told to re-authenticate instead of silently acting
    anonymously.
    """
    if not token:
        return None
    return _actor_from_token(token)


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level.

    Example:
        @router.get("/queue")
        async def queue(
            actor: Annotated[Actor, Depends(require_permission(UserRole.MODERATOR))]
        ):
            ...
    """

    async def permission_checker(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if not has_permission(actor.role, required_role):
            raise AuthorizationError(
                f"{required_role.value.capitalize()} role required"
            )
        return actor

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentActor = Annotated[Actor, Depends(get_current_actor)]

OptionalActor = Annotated[Actor | None, Depends(get_optional_actor)]

ModeratorActor = Annotated[Actor, Depends(require_permission(UserRole.MODERATOR))]


def actor_id_of(actor: Actor | None):
    """Actor id or None for anonymous callers."""
    return actor.id if actor else None

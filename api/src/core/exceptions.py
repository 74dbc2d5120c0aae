"""Error taxonomy shared by the engagement and moderation services.

Every error carries a stable ``kind`` (the category a client switches on),
a ``code`` (the specific condition) and a human-readable message. The HTTP
layer maps ``kind`` to a status code; services never raise HTTPException.
"""

from typing import Any

from fastapi import status


class ForumError(Exception):
    """Base error for the forum core."""

    kind = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code or self.kind
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serializable error payload."""
        return {"kind": self.kind, "code": self.code, "message": self.message}


class ValidationError(ForumError):
    """Malformed or out-of-range input; nothing was written."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class DepthExceededError(ValidationError):
    """A reply would nest deeper than the configured maximum."""

    default_message = "Comment nesting is too deep"

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(
            f"Replies cannot be nested more than {max_depth} levels deep",
            "depth_exceeded",
        )


class InvalidOptionError(ValidationError):
    """Poll option index out of range."""

    def __init__(self, option_index: int, option_count: int):
        super().__init__(
            f"Option {option_index} does not exist; poll has {option_count} options",
            "invalid_option",
        )


class NotFoundError(ForumError):
    """Id does not resolve, or resolves to tombstoned content."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AuthenticationRequiredError(ForumError):
    """The action needs an identified actor."""

    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class AuthorizationError(ForumError):
    """The actor lacks the role or ownership for the action."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class ConflictError(ForumError):
    """The action conflicts with the current state of the target."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict with current state"


class PollClosedError(ConflictError):
    """The poll's end date has passed."""

    def __init__(self, message: str = "This poll is closed"):
        super().__init__(message, "poll_closed")


class InvalidTransitionError(ConflictError):
    """The moderation record does not accept this transition."""

    def __init__(self, message: str = "This moderation cycle is already closed"):
        super().__init__(message, "invalid_transition")


class ContentBusyError(ConflictError):
    """The per-content lock could not be acquired in time."""

    def __init__(self, key: str):
        super().__init__(
            "Content is being modified by another request, retry shortly",
            "content_busy",
        )
        self.key = key


class InternalError(ForumError):
    """Anything unexpected; details are logged, not shown."""


def require_actor(actor_id: Any) -> None:
    """Raise AuthenticationRequiredError for anonymous calls."""
    if actor_id is None:
        raise AuthenticationRequiredError

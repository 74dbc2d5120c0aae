"""Forum events published to the notification and analytics collaborators.

Event types:
- POST_*, COMMENT_*: content tree changes
- VOTE_CHANGED, POLL_VOTED: engagement
- REPORT_FILED, CONTENT_MODERATED: moderation workflow
- USER_SUSPENDED, USER_REINSTATED: account state changes requested by moderators
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.utils.clock import utc_now


class EventType(str, Enum):
    """Types of forum events."""

    POST_CREATED = "post_created"
    POST_EDITED = "post_edited"
    POST_DELETED = "post_deleted"
    COMMENT_CREATED = "comment_created"
    COMMENT_EDITED = "comment_edited"
    COMMENT_DELETED = "comment_deleted"
    VOTE_CHANGED = "vote_changed"
    POLL_VOTED = "poll_voted"
    REPORT_FILED = "report_filed"
    CONTENT_MODERATED = "content_moderated"
    USER_SUSPENDED = "user_suspended"
    USER_REINSTATED = "user_reinstated"


@dataclass
class ForumEvent:
    """Something that happened in the forum, after it was committed."""

    event_type: EventType
    content_id: UUID
    actor_id: UUID | None
    metadata: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event_type": self.event_type.value,
            "content_id": str(self.content_id),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "metadata": self.metadata,
            "occurred_at": self.occurred_at.isoformat(),
        }

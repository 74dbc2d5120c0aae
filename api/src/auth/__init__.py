"""Actor identity and roles, asserted by the external auth service."""

from src.auth.permissions import UserRole, is_moderator
from src.auth.schemas import Actor


__all__ = ["Actor", "UserRole", "is_moderator"]

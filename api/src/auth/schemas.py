"""Pydantic schemas for authenticated actors."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import UserRole, is_moderator


class Actor(BaseModel):
    """The authenticated caller, as asserted by the access token."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(..., description="Actor (user) ID")
    role: UserRole = Field(default=UserRole.CITIZEN, description="Forum role")

    @property
    def is_moderator(self) -> bool:
        return is_moderator(self.role)

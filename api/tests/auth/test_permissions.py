"""Tests for auth permissions."""

import pytest

from src.auth.dependencies import require_permission
from src.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_admin,
    is_moderator,
)
from src.auth.schemas import Actor
from src.core.exceptions import AuthorizationError


class TestUserRole:
    """Tests for UserRole enum."""

    def test_all_roles_have_levels(self) -> None:
        """All UserRole members should have defined levels."""
        for role in UserRole:
            assert role in ROLE_HIERARCHY

    def test_participant_roles_share_level(self) -> None:
        assert {
            ROLE_HIERARCHY[UserRole.CITIZEN],
            ROLE_HIERARCHY[UserRole.ORGANIZATION],
            ROLE_HIERARCHY[UserRole.REPRESENTATIVE],
        } == {0}


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        ("role", "expected"),
        [
            (UserRole.CITIZEN, 0),
            ("representative", 0),
            (UserRole.MODERATOR, 1),
            ("admin", 2),
            ("unknown", 0),
        ],
    )
    def test_levels(self, role: UserRole | str, expected: int) -> None:
        assert get_role_level(role) == expected


class TestHasPermission:
    """Tests for has_permission and shortcuts."""

    @pytest.mark.parametrize(
        ("user_role", "required", "expected"),
        [
            (UserRole.ADMIN, UserRole.MODERATOR, True),
            (UserRole.MODERATOR, UserRole.MODERATOR, True),
            (UserRole.REPRESENTATIVE, UserRole.MODERATOR, False),
            ("citizen", "citizen", True),
        ],
    )
    def test_has_permission(
        self, user_role: UserRole | str, required: UserRole | str, expected: bool
    ) -> None:
        assert has_permission(user_role, required) is expected

    def test_is_moderator(self) -> None:
        assert is_moderator("moderator")
        assert is_moderator(UserRole.ADMIN)
        assert not is_moderator(UserRole.ORGANIZATION)

    def test_is_admin(self) -> None:
        assert is_admin("admin")
        assert not is_admin(UserRole.MODERATOR)

    def test_actor_flag(self) -> None:
        actor = Actor(id="00000000-0000-0000-0000-000000000001", role="moderator")
        assert actor.is_moderator
        assert not Actor(id=actor.id).is_moderator


class TestRequirePermission:
    """Tests for the require_permission dependency."""

    @pytest.mark.asyncio
    async def test_message_names_required_role(self) -> None:
        checker = require_permission(UserRole.ADMIN)
        actor = Actor(id="00000000-0000-0000-0000-000000000002", role="moderator")

        with pytest.raises(AuthorizationError) as exc:
            await checker(actor)

        assert exc.value.message == "Admin role required"

    @pytest.mark.asyncio
    async def test_sufficient_role_passes(self) -> None:
        checker = require_permission(UserRole.MODERATOR)
        actor = Actor(id="00000000-0000-0000-0000-000000000003", role="admin")

        assert await checker(actor) is actor

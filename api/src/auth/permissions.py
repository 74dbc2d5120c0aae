"""Role-based access control for forum actors.

Roles are asserted by the external auth service in the access token:
- CITIZEN, ORGANIZATION, REPRESENTATIVE (level 0): post, comment, vote, report
- MODERATOR (level 1): review reports and apply moderation actions
- ADMIN (level 2): everything a moderator can do
"""

from enum import Enum


class UserRole(str, Enum):
    """Forum roles with hierarchical levels."""

    CITIZEN = "citizen"
    ORGANIZATION = "organization"
    REPRESENTATIVE = "representative"
    MODERATOR = "moderator"
    ADMIN = "admin"


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.CITIZEN: 0,
    UserRole.ORGANIZATION: 0,
    UserRole.REPRESENTATIVE: 0,
    UserRole.MODERATOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-2), defaults to 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.MODERATOR)
        True
        >>> has_permission("representative", "moderator")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_moderator(role: UserRole | str) -> bool:
    """Check if role may moderate (MODERATOR or ADMIN)."""
    return has_permission(role, UserRole.MODERATOR)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN

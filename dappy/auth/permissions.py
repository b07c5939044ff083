"""Role-based access checks.

Role hierarchy: owner > manager > public
"""

from __future__ import annotations

from dappy.auth.models import Role
from dappy.errors import NotManagerError, NotOwnerError


def has_permission(role: Role, required_role: Role) -> bool:
    """Check if a caller's role meets or exceeds the required role level.

    Parameters
    ----------
    role:
        The caller's resolved role.
    required_role:
        The minimum role required.

    Returns
    -------
    bool
        True if role level >= required role level.
    """
    role = role if isinstance(role, Role) else Role(role)
    return role.level >= required_role.level


def require_role(role: Role, required_role: Role) -> None:
    """Validate that a caller has at least the given role.

    Raises ``NotOwnerError`` when the owner is required and
    ``NotManagerError`` when owner-or-manager is required.
    """
    if has_permission(role, required_role):
        return
    if required_role is Role.owner:
        raise NotOwnerError()
    raise NotManagerError()

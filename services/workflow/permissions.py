"""
Role checks, done once at the service boundary.

``check`` returns a tagged ``Permission``; ``require`` turns a denial into
``PermissionDeniedError``. Handlers never branch on ``user.role`` themselves.
"""

from __future__ import annotations

from enum import Enum

from core.errors import PermissionDeniedError
from domain.models import UserRole
from domain.value_objects import Permission
from services.persistence.tables import Application, User


class Capability(str, Enum):
    REVIEW_APPLICATIONS = "review_applications"
    MANAGE_TRIAGE = "manage_triage"
    VIEW_ALL_APPLICATIONS = "view_all_applications"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.EMPLOYER: frozenset(),
    UserRole.ADMINISTRATOR: frozenset(Capability),
}


def is_administrator(user: User | None) -> bool:
    return user is not None and user.role == UserRole.ADMINISTRATOR.value


def check(user: User | None, capability: Capability) -> Permission:
    if user is None:
        return Permission.deny("no authenticated user")
    try:
        role = UserRole(user.role)
    except ValueError:
        return Permission.deny(f"unknown role {user.role!r}")
    if capability in ROLE_CAPABILITIES[role]:
        return Permission.allow()
    return Permission.deny(f"{capability.value} requires administrator role")


def check_application_access(user: User | None, application: Application) -> Permission:
    """Owner or administrator."""
    if is_administrator(user):
        return Permission.allow()
    if user is not None and application.user_id == user.id:
        return Permission.allow()
    return Permission.deny("access denied")


def check_application_owner(user: User | None, application: Application) -> Permission:
    if user is not None and application.user_id == user.id:
        return Permission.allow()
    return Permission.deny("only the application owner may do this")


def require(permission: Permission) -> None:
    if not permission:
        raise PermissionDeniedError(permission.reason or "access denied")

"""Role-based visibility of chat partners."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import User, UserRole

# Roles a viewer with the given role may start conversations with.
# Roles missing from this table (admin, or anything added later) see everyone.
VISIBLE_ROLES: dict[UserRole, frozenset[UserRole]] = {
    UserRole.CONTRIBUTOR: frozenset({UserRole.CONTRIBUTOR, UserRole.MANAGER, UserRole.ADMIN}),
    UserRole.MANAGER: frozenset(UserRole),
    UserRole.CLIENT: frozenset({UserRole.MANAGER, UserRole.ADMIN}),
}


def visible_roles(viewer_role: UserRole) -> frozenset[UserRole]:
    return VISIBLE_ROLES.get(UserRole(viewer_role), frozenset(UserRole))


def can_see(viewer_role: UserRole, candidate_role: UserRole) -> bool:
    """Return whether a user with ``viewer_role`` may see ``candidate_role`` users."""

    return UserRole(candidate_role) in visible_roles(viewer_role)


def visible_candidates(db: Session, viewer: User) -> list[User]:
    """Users the viewer may chat with, sorted by name. Never includes the viewer."""

    stmt = (
        select(User)
        .where(User.id != viewer.id, User.role.in_(list(visible_roles(viewer.role))))
        .order_by(func.lower(User.name), User.id)
    )
    return list(db.execute(stmt).scalars().all())


def is_visible_candidate(viewer: User, candidate: User) -> bool:
    return candidate.id != viewer.id and can_see(viewer.role, candidate.role)

"""
commonroom.services.access — Community Membership Checks
==========================================================

The HTTP layer authenticates; this module decides whether an
authenticated principal may touch a given community.

- *members* (the owner or any resident) may read and generate;
- only the *owner* may broadcast, review, implement or reset seeding.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from commonroom.database.models import Community, User, UserRole
from commonroom.errors import ForbiddenError, NotFoundError


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller, as supplied by the HTTP layer."""

    user_id: str
    role: UserRole

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER


def load_community(session: Session, community_id: str) -> Community:
    community = session.get(Community, community_id)
    if community is None:
        raise NotFoundError("Community not found")
    return community


def is_resident(session: Session, community_id: str, user_id: str) -> bool:
    return bool(
        session.scalar(
            select(
                exists().where(User.id == user_id, User.community_id == community_id)
            )
        )
    )


def require_member(session: Session, community_id: str, principal: Principal) -> Community:
    """Return the community if *principal* owns it or lives there."""
    community = load_community(session, community_id)
    if community.owner_id == principal.user_id:
        return community
    if is_resident(session, community_id, principal.user_id):
        return community
    raise ForbiddenError("Access denied to this community")


def require_owner(
    session: Session,
    community_id: str,
    principal: Principal,
    *,
    action: str = "manage this community",
) -> Community:
    """Return the community if *principal* is its owner."""
    community = load_community(session, community_id)
    if not principal.is_owner or community.owner_id != principal.user_id:
        raise ForbiddenError(f"Only the community owner can {action}")
    return community

"""
Project membership lookups.

Every ownership and role question about a project goes through
resolve_membership, so handlers never compute isOwner/isAdmin themselves.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import MemberRole, Project, ProjectMember

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Membership:
    """
    What a user is to a project.

    project is None when the project does not exist; in that case is_owner is
    False and role is None, and callers must answer "not found".
    """

    project: Optional[Project]
    is_owner: bool = False
    role: Optional[MemberRole] = None

    @property
    def exists(self) -> bool:
        return self.project is not None

    @property
    def is_member(self) -> bool:
        # The owner is a member even without a membership row
        return self.is_owner or self.role is not None

    @property
    def is_admin(self) -> bool:
        """Owner or admin role: may manage the project and its members."""
        return self.is_owner or self.role == MemberRole.admin


def get_membership_row(db: Session, project_id: int, user_id: int) -> Optional[ProjectMember]:
    """Return the ProjectMember row for (project, user), if any."""
    return (
        db.query(ProjectMember)
        .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        .first()
    )


def resolve_membership(db: Session, project_id: int, user_id: int) -> Membership:
    """
    Load a project and the given user's standing in it.

    Args:
        db: Database session
        project_id: ID of the project
        user_id: ID of the user

    Returns:
        Membership facts; Membership(project=None) when the project is absent

    Example:
        >>> facts = resolve_membership(db, 42, user.id)
        >>> if facts.exists and facts.is_member:
        ...     ...
    """
    logger.debug(f"Resolving membership of user {user_id} in project {project_id}")

    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        logger.debug(f"Project {project_id} not found")
        return Membership(project=None)

    row = get_membership_row(db, project_id, user_id)
    membership = Membership(
        project=project,
        is_owner=project.owner_id == user_id,
        role=MemberRole(row.role) if row is not None else None,
    )

    logger.debug(
        f"User {user_id} in project {project_id}: owner={membership.is_owner}, "
        f"role={membership.role.value if membership.role else None}"
    )
    return membership


def members_of(db: Session, project_id: int) -> List[ProjectMember]:
    """List the membership rows of a project with their users, oldest first."""
    return (
        db.query(ProjectMember)
        .options(joinedload(ProjectMember.user))
        .filter(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.joined_at, ProjectMember.id)
        .all()
    )


def accessible_project_ids(db: Session, user_id: int) -> List[int]:
    """
    IDs of every project a user may view: the ones they own plus the ones
    they hold a membership row in.
    """
    project_ids = set()

    owned = db.query(Project.id).filter(Project.owner_id == user_id).all()
    project_ids.update(p.id for p in owned)

    memberships = db.query(ProjectMember.project_id).filter(ProjectMember.user_id == user_id).all()
    project_ids.update(m.project_id for m in memberships)

    logger.debug(f"User {user_id} has access to {len(project_ids)} projects")
    return list(project_ids)

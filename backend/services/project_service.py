"""
Project and membership operations.

Each public function resolves the actor's membership, asks the authorization
engine, and only then touches the database. Every mutation commits once and
rolls back on failure.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from auth.membership import accessible_project_ids, get_membership_row, members_of, resolve_membership
from auth.permissions import Action, require
from errors import AlreadyMember, UserNotFound, ValidationError
from models import MemberRole, Project, ProjectMember, Task, User

logger = logging.getLogger(__name__)


def list_projects(db: Session, actor: User) -> List[Project]:
    """Projects the actor owns or belongs to, newest first."""
    logger.debug(f"User {actor.id} listing projects")

    project_ids = accessible_project_ids(db, actor.id)
    if not project_ids:
        return []

    projects = (
        db.query(Project)
        .options(joinedload(Project.owner))
        .filter(Project.id.in_(project_ids))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )
    logger.info(f"User {actor.id} retrieved {len(projects)} projects")
    return projects


def create_project(db: Session, actor: User, fields: Dict[str, Any]) -> Project:
    """
    Create a project owned by the actor.

    The actor also gets an admin membership row in the same transaction. That
    row only makes the owner show up in member listings; ownership itself is
    carried by owner_id.
    """
    logger.debug(f"User {actor.id} creating project: {fields.get('name')}")

    project = Project(
        name=fields["name"],
        description=fields.get("description"),
        owner_id=actor.id,  # Always the authenticated user
    )
    try:
        db.add(project)
        db.flush()  # Get project ID without committing

        db.add(ProjectMember(project_id=project.id, user_id=actor.id, role=MemberRole.admin))
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Project creation failed for user {actor.id}, transaction rolled back")
        raise
    db.refresh(project)

    logger.info(f"Project created: {project.name} (ID: {project.id}) by user {actor.id}")
    return project


def get_project(db: Session, project_id: int, actor: User) -> Project:
    """Load a project with owner, members and tasks (requires membership)."""
    logger.debug(f"User {actor.id} requesting project {project_id}")

    require(Action.view_project, resolve_membership(db, project_id, actor.id), actor_id=actor.id)

    return (
        db.query(Project)
        .options(
            joinedload(Project.owner),
            joinedload(Project.members).joinedload(ProjectMember.user),
            joinedload(Project.tasks).joinedload(Task.assignee),
            joinedload(Project.tasks).joinedload(Task.creator),
        )
        .filter(Project.id == project_id)
        .first()
    )


def update_project(db: Session, project_id: int, actor: User, update_data: Dict[str, Any]) -> Project:
    """
    Rename or re-describe a project (owner or admin).

    Only keys present in update_data are applied. A null description clears
    it; a null name is rejected.
    """
    logger.debug(f"User {actor.id} updating project {project_id}")

    membership = resolve_membership(db, project_id, actor.id)
    require(Action.update_project, membership, actor_id=actor.id)

    if "name" in update_data and update_data["name"] is None:
        raise ValidationError("Le nom du projet ne peut pas être vide")

    project = membership.project
    for key in ("name", "description"):
        if key in update_data:
            setattr(project, key, update_data[key])

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)

    logger.info(f"Project updated: {project.name} (ID: {project_id})")
    return project


def delete_project(db: Session, project_id: int, actor: User) -> None:
    """Delete a project with its tasks and memberships (owner only)."""
    logger.debug(f"User {actor.id} deleting project {project_id}")

    membership = resolve_membership(db, project_id, actor.id)
    require(Action.delete_project, membership, actor_id=actor.id)

    try:
        db.delete(membership.project)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Project deleted: {project_id} by user {actor.id}")


def list_members(db: Session, project_id: int, actor: User) -> List[ProjectMember]:
    """Membership rows of a project (requires membership)."""
    logger.debug(f"User {actor.id} listing members of project {project_id}")

    require(Action.list_members, resolve_membership(db, project_id, actor.id), actor_id=actor.id)
    return members_of(db, project_id)


def add_member(
    db: Session,
    project_id: int,
    actor: User,
    target_user_id: int,
    role: MemberRole = MemberRole.member,
) -> ProjectMember:
    """
    Add a user to a project (owner or admin).

    Raises:
        UserNotFound: target user does not exist
        AlreadyMember: target already has a membership row
    """
    logger.debug(f"User {actor.id} adding member {target_user_id} to project {project_id}")

    require(Action.add_member, resolve_membership(db, project_id, actor.id), actor_id=actor.id)

    user_to_add = db.query(User).filter(User.id == target_user_id).first()
    if user_to_add is None:
        raise UserNotFound()

    if get_membership_row(db, project_id, target_user_id) is not None:
        raise AlreadyMember()

    membership = ProjectMember(project_id=project_id, user_id=target_user_id, role=role or MemberRole.member)
    db.add(membership)
    try:
        db.commit()
    except IntegrityError:
        # Unique (project_id, user_id) hit by a concurrent add
        db.rollback()
        raise AlreadyMember()
    db.refresh(membership)

    logger.info(f"User {target_user_id} added to project {project_id} with role {membership.role.value}")
    return membership


def remove_member(db: Session, project_id: int, actor: User, target_user_id: int) -> None:
    """
    Remove a user from a project (owner or admin).

    The owner can never be removed. Removing someone without a membership row
    succeeds without doing anything. Tasks assigned to the removed user keep
    their assignee.
    """
    logger.debug(f"User {actor.id} removing member {target_user_id} from project {project_id}")

    require(
        Action.remove_member,
        resolve_membership(db, project_id, actor.id),
        actor_id=actor.id,
        target_user_id=target_user_id,
    )

    try:
        deleted = (
            db.query(ProjectMember)
            .filter(ProjectMember.project_id == project_id, ProjectMember.user_id == target_user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if deleted:
        logger.info(f"User {target_user_id} removed from project {project_id}")
    else:
        logger.info(f"User {target_user_id} had no membership in project {project_id}, nothing removed")

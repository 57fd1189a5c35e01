"""
Task operations within a project.

Any project member may create, view and edit any task. Deleting is limited
to the task's creator, the project owner and project admins. An assignee must
be a member of the task's project at the time it is set.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from auth.membership import Membership, resolve_membership
from auth.permissions import Action, require
from errors import InvalidAssignee, ValidationError
from models import Task, TaskPriority, TaskStatus, User

logger = logging.getLogger(__name__)

# Fields that may be set to null through an update; the others are required
NULLABLE_FIELDS = {"description", "assigned_to", "due_date"}
UPDATABLE_FIELDS = {"title", "status", "priority"} | NULLABLE_FIELDS


def _load_task(db: Session, task_id: int) -> Optional[Task]:
    return (
        db.query(Task)
        .options(joinedload(Task.assignee), joinedload(Task.creator))
        .filter(Task.id == task_id)
        .first()
    )


def _task_membership(db: Session, task: Optional[Task], actor: User) -> Membership:
    if task is None:
        return Membership(project=None)
    return resolve_membership(db, task.project_id, actor.id)


def validate_assignee(db: Session, project_id: int, assignee_id: int) -> None:
    """
    Ensure a would-be assignee is a member (owner or membership row) of the project.

    Raises:
        InvalidAssignee: the user is not a member, or does not exist
    """
    logger.debug(f"Validating assignee {assignee_id} for project {project_id}")
    if not resolve_membership(db, project_id, assignee_id).is_member:
        logger.info(f"Assignee {assignee_id} is not a member of project {project_id}")
        raise InvalidAssignee()


def list_tasks(
    db: Session,
    project_id: int,
    actor: User,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    assigned_to: Optional[int] = None,
) -> List[Task]:
    """Tasks of a project, optionally filtered, newest first (requires membership)."""
    logger.debug(f"User {actor.id} listing tasks of project {project_id}")

    require(Action.list_tasks, resolve_membership(db, project_id, actor.id), actor_id=actor.id)

    query = (
        db.query(Task)
        .options(joinedload(Task.assignee), joinedload(Task.creator))
        .filter(Task.project_id == project_id)
    )
    if status is not None:
        query = query.filter(Task.status == status)
    if priority is not None:
        query = query.filter(Task.priority == priority)
    if assigned_to is not None:
        query = query.filter(Task.assigned_to == assigned_to)

    tasks = query.order_by(Task.created_at.desc(), Task.id.desc()).all()
    logger.debug(f"Found {len(tasks)} tasks in project {project_id}")
    return tasks


def get_task(db: Session, task_id: int, actor: User) -> Task:
    """Load one task (requires membership in its project)."""
    logger.debug(f"User {actor.id} requesting task {task_id}")

    task = _load_task(db, task_id)
    require(Action.view_task, _task_membership(db, task, actor), task=task, actor_id=actor.id)
    return task


def create_task(db: Session, project_id: int, actor: User, fields: Dict[str, Any]) -> Task:
    """
    Create a task in a project (any member).

    status defaults to todo and priority to medium. The actor is recorded as
    creator regardless of the request body.

    Raises:
        InvalidAssignee: assigned_to is set to a non-member
    """
    logger.info(f"User {actor.id} creating task: {fields.get('title')} in project {project_id}")

    require(Action.create_task, resolve_membership(db, project_id, actor.id), actor_id=actor.id)

    assigned_to = fields.get("assigned_to")
    if assigned_to is not None:
        validate_assignee(db, project_id, assigned_to)

    task = Task(
        title=fields["title"],
        description=fields.get("description"),
        status=fields.get("status") or TaskStatus.todo,
        priority=fields.get("priority") or TaskPriority.medium,
        project_id=project_id,
        created_by=actor.id,
        assigned_to=assigned_to,
        due_date=fields.get("due_date"),
    )
    db.add(task)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Task created successfully: id={task.id}")
    return _load_task(db, task.id)


def update_task(db: Session, task_id: int, actor: User, update_data: Dict[str, Any]) -> Task:
    """
    Apply a partial update to a task (any member).

    Only keys present in update_data are applied. Null clears description,
    assigned_to and due_date; null for title, status or priority is rejected.
    Status may move between any two values.

    Raises:
        ValidationError: null given for a required field
        InvalidAssignee: new assignee is not a project member
    """
    logger.info(f"User {actor.id} updating task {task_id}")

    task = _load_task(db, task_id)
    require(Action.update_task, _task_membership(db, task, actor), task=task, actor_id=actor.id)

    changes = {key: value for key, value in update_data.items() if key in UPDATABLE_FIELDS}
    for key, value in changes.items():
        if value is None and key not in NULLABLE_FIELDS:
            raise ValidationError(f"Le champ '{key}' ne peut pas être vide")

    if changes.get("assigned_to") is not None:
        validate_assignee(db, task.project_id, changes["assigned_to"])

    for key, value in changes.items():
        setattr(task, key, value)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Task {task_id} updated successfully")
    return _load_task(db, task_id)


def delete_task(db: Session, task_id: int, actor: User) -> None:
    """Delete a task (its creator, the project owner, or a project admin)."""
    logger.debug(f"User {actor.id} deleting task {task_id}")

    task = _load_task(db, task_id)
    require(Action.delete_task, _task_membership(db, task, actor), task=task, actor_id=actor.id)

    try:
        db.delete(task)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Task {task_id} deleted by user {actor.id}")

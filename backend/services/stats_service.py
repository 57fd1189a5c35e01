"""Read-only project statistics."""

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from auth.membership import resolve_membership
from auth.permissions import Action, require
from models import Task, TaskPriority, TaskStatus, User
import schemas

logger = logging.getLogger(__name__)


def completion_rate(done: int, total: int) -> str:
    """
    Share of done tasks as a percentage string with two decimals.

    >>> completion_rate(2, 4)
    '50.00%'
    >>> completion_rate(0, 0)
    '0%'
    """
    if total == 0:
        return "0%"
    return f"{done / total * 100:.2f}%"


def summarize(tasks: Iterable[Task]) -> schemas.ProjectStats:
    """Count tasks by status and priority."""
    tasks = list(tasks)
    done = sum(1 for t in tasks if t.status == TaskStatus.done)

    return schemas.ProjectStats(
        total=len(tasks),
        by_status=schemas.StatusCounts(
            todo=sum(1 for t in tasks if t.status == TaskStatus.todo),
            in_progress=sum(1 for t in tasks if t.status == TaskStatus.in_progress),
            done=done,
        ),
        by_priority=schemas.PriorityCounts(
            low=sum(1 for t in tasks if t.priority == TaskPriority.low),
            medium=sum(1 for t in tasks if t.priority == TaskPriority.medium),
            high=sum(1 for t in tasks if t.priority == TaskPriority.high),
        ),
        completion_rate=completion_rate(done, len(tasks)),
    )


def compute_stats(db: Session, project_id: int, actor: User) -> schemas.ProjectStats:
    """Statistics for one project (requires membership)."""
    logger.debug(f"User {actor.id} requesting stats for project {project_id}")

    require(Action.view_stats, resolve_membership(db, project_id, actor.id), actor_id=actor.id)

    tasks = db.query(Task).filter(Task.project_id == project_id).all()
    return summarize(tasks)

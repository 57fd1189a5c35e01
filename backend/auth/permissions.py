"""
Project-level authorization decisions.

authorize() is a pure function: it looks only at the membership facts it is
given (and the task, for task-scoped actions) and returns a Decision. It never
queries the database and never raises. enforce() turns a non-allow decision
into the matching application error.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from auth.membership import Membership
from errors import CannotRemoveOwner, Forbidden, ProjectNotFound, TaskNotFound
from models import Task

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    view_project = "view_project"
    list_members = "list_members"
    list_tasks = "list_tasks"
    view_task = "view_task"
    view_stats = "view_stats"
    create_task = "create_task"
    update_task = "update_task"
    delete_task = "delete_task"
    update_project = "update_project"
    delete_project = "delete_project"
    add_member = "add_member"
    remove_member = "remove_member"


class DecisionKind(str, enum.Enum):
    allow = "allow"
    deny = "deny"
    not_found = "not_found"


# Actions addressed to a task rather than to the project itself
TASK_ACTIONS = {Action.view_task, Action.update_task, Action.delete_task}

# Reason given to the caller when an action is denied
DENIAL_REASONS = {
    Action.view_project: "Accès non autorisé à ce projet",
    Action.list_members: "Accès non autorisé à ce projet",
    Action.list_tasks: "Accès non autorisé à ce projet",
    Action.view_stats: "Accès non autorisé à ce projet",
    Action.view_task: "Accès non autorisé à cette tâche",
    Action.create_task: "Vous devez être membre du projet pour créer une tâche",
    Action.update_task: "Vous devez être membre du projet pour modifier cette tâche",
    Action.delete_task: "Seul le créateur, le propriétaire ou un admin peut supprimer cette tâche",
    Action.update_project: "Seul le propriétaire ou un admin peut modifier ce projet",
    Action.delete_project: "Seul le propriétaire peut supprimer ce projet",
    Action.add_member: "Seul le propriétaire ou un admin peut ajouter des membres",
    Action.remove_member: "Seul le propriétaire ou un admin peut retirer des membres",
}

OWNER_REMOVAL_REASON = "owner_removal"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    reason: Optional[str] = None
    resource: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.kind == DecisionKind.allow


ALLOW = Decision(DecisionKind.allow)


def _deny(reason: str) -> Decision:
    return Decision(DecisionKind.deny, reason=reason)


def _not_found(resource: str) -> Decision:
    return Decision(DecisionKind.not_found, resource=resource)


def authorize(
    action: Action,
    membership: Membership,
    task: Optional[Task] = None,
    actor_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
) -> Decision:
    """
    Decide whether an action on a project (or one of its tasks) is allowed.

    Rules:
        - view/list/stats, create task, update task: any member (owner included)
        - delete task: task creator, project owner, or admin
        - update project, add/remove member: owner or admin
        - delete project: owner only
        - remove member targeting the owner: always denied

    Absent resources are reported before any denial, so callers can tell
    "not found" from "forbidden".

    Args:
        action: The action being attempted
        membership: Facts from resolve_membership for the acting user
        task: The task for task-scoped actions (None means it does not exist)
        actor_id: Acting user ID, needed for the delete-task creator rule
        target_user_id: User being removed, for remove_member

    Returns:
        Decision with kind allow, deny (with reason) or not_found (with resource)
    """
    if action in TASK_ACTIONS and task is None:
        return _not_found("task")
    if not membership.exists:
        return _not_found("project")

    if action == Action.remove_member and target_user_id == membership.project.owner_id:
        return _deny(OWNER_REMOVAL_REASON)

    if action in (
        Action.view_project,
        Action.list_members,
        Action.list_tasks,
        Action.view_task,
        Action.view_stats,
        Action.create_task,
        Action.update_task,
    ):
        allowed = membership.is_member
    elif action == Action.delete_task:
        is_creator = actor_id is not None and task.created_by == actor_id
        allowed = is_creator or membership.is_admin
    elif action in (Action.update_project, Action.add_member, Action.remove_member):
        allowed = membership.is_admin
    elif action == Action.delete_project:
        allowed = membership.is_owner
    else:
        allowed = False

    return ALLOW if allowed else _deny(DENIAL_REASONS.get(action, "Accès non autorisé"))


def enforce(decision: Decision) -> None:
    """
    Raise the application error matching a non-allow decision.

    Raises:
        ProjectNotFound / TaskNotFound: decision is not_found
        CannotRemoveOwner: attempt to remove the project owner
        Forbidden: any other denial
    """
    if decision.allowed:
        return

    if decision.kind == DecisionKind.not_found:
        logger.info(f"Authorization: {decision.resource} not found")
        if decision.resource == "task":
            raise TaskNotFound()
        raise ProjectNotFound()

    if decision.reason == OWNER_REMOVAL_REASON:
        logger.info("Authorization: refusing to remove the project owner")
        raise CannotRemoveOwner()

    logger.info(f"Authorization denied: {decision.reason}")
    raise Forbidden(decision.reason)


def require(
    action: Action,
    membership: Membership,
    task: Optional[Task] = None,
    actor_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
) -> None:
    """Authorize and enforce in one step."""
    if actor_id is not None:
        logger.debug(f"Requiring {action.value} for user {actor_id}")
    else:
        logger.debug(f"Requiring {action.value}")
    enforce(authorize(action, membership, task=task, actor_id=actor_id, target_user_id=target_user_id))

"""
Unit tests for the authorization decision table (no database, no HTTP).

Tests cover:
- Member-level actions (view, list, stats, create/update task)
- Task deletion (creator, owner, admin)
- Project management (update, delete)
- Membership management, including owner removal
- Not-found precedence over denial
"""

import logging

import pytest

import models
from auth.membership import Membership
from auth.permissions import Action, DecisionKind, authorize, enforce, require
from errors import CannotRemoveOwner, Forbidden, ProjectNotFound, TaskNotFound

OWNER_ID = 1
ADMIN_ID = 2
MEMBER_ID = 3
OUTSIDER_ID = 4


@pytest.fixture
def project() -> models.Project:
    return models.Project(id=10, name="P", owner_id=OWNER_ID)


@pytest.fixture
def facts(project):
    """Membership facts for each kind of user, keyed by label."""
    return {
        "owner_without_row": Membership(project=project, is_owner=True, role=None),
        "admin": Membership(project=project, is_owner=False, role=models.MemberRole.admin),
        "member": Membership(project=project, is_owner=False, role=models.MemberRole.member),
        "outsider": Membership(project=project, is_owner=False, role=None),
    }


@pytest.fixture
def task(project) -> models.Task:
    return models.Task(id=100, title="T", project_id=project.id, created_by=MEMBER_ID)


MEMBER_ACTIONS = [
    Action.view_project,
    Action.list_members,
    Action.list_tasks,
    Action.view_stats,
    Action.create_task,
]


@pytest.mark.parametrize("action", MEMBER_ACTIONS)
@pytest.mark.parametrize("who", ["owner_without_row", "admin", "member"])
def test_members_may_read_and_create(facts, action, who):
    assert authorize(action, facts[who]).allowed


@pytest.mark.parametrize("action", MEMBER_ACTIONS)
def test_outsider_is_denied_member_actions(facts, action):
    decision = authorize(action, facts["outsider"])
    assert decision.kind == DecisionKind.deny
    assert decision.reason


def test_view_project_denial_reason(facts):
    decision = authorize(Action.view_project, facts["outsider"])
    assert decision.reason.startswith("Accès non autorisé")


@pytest.mark.parametrize("who", ["owner_without_row", "admin", "member"])
def test_any_member_may_view_and_update_any_task(facts, task, who):
    assert authorize(Action.view_task, facts[who], task=task).allowed
    assert authorize(Action.update_task, facts[who], task=task).allowed


def test_outsider_cannot_touch_tasks(facts, task):
    for action in (Action.view_task, Action.update_task, Action.delete_task):
        assert authorize(action, facts["outsider"], task=task, actor_id=OUTSIDER_ID).kind == DecisionKind.deny


def test_delete_task_rules(facts, task):
    # Creator with plain member role
    assert authorize(Action.delete_task, facts["member"], task=task, actor_id=MEMBER_ID).allowed
    # Owner and admin, not creators
    assert authorize(Action.delete_task, facts["owner_without_row"], task=task, actor_id=OWNER_ID).allowed
    assert authorize(Action.delete_task, facts["admin"], task=task, actor_id=ADMIN_ID).allowed


def test_member_cannot_delete_someone_elses_task(facts, project):
    other_task = models.Task(id=101, title="T2", project_id=project.id, created_by=ADMIN_ID)
    decision = authorize(Action.delete_task, facts["member"], task=other_task, actor_id=MEMBER_ID)
    assert decision.kind == DecisionKind.deny


@pytest.mark.parametrize("action", [Action.update_project, Action.add_member])
def test_owner_or_admin_manage_project(facts, action):
    assert authorize(action, facts["owner_without_row"]).allowed
    assert authorize(action, facts["admin"]).allowed
    assert not authorize(action, facts["member"]).allowed
    assert not authorize(action, facts["outsider"]).allowed


def test_only_owner_deletes_project(facts):
    assert authorize(Action.delete_project, facts["owner_without_row"]).allowed
    for who in ("admin", "member", "outsider"):
        assert authorize(Action.delete_project, facts[who]).kind == DecisionKind.deny


def test_remove_member_rules(facts):
    assert authorize(Action.remove_member, facts["admin"], target_user_id=MEMBER_ID).allowed
    assert authorize(Action.remove_member, facts["owner_without_row"], target_user_id=MEMBER_ID).allowed
    assert not authorize(Action.remove_member, facts["member"], target_user_id=ADMIN_ID).allowed


@pytest.mark.parametrize("who", ["owner_without_row", "admin", "member", "outsider"])
def test_owner_can_never_be_removed(facts, who):
    decision = authorize(Action.remove_member, facts[who], target_user_id=OWNER_ID)
    assert decision.kind == DecisionKind.deny
    with pytest.raises(CannotRemoveOwner):
        enforce(decision)


def test_missing_project_is_not_found_before_denial():
    decision = authorize(Action.delete_project, Membership(project=None))
    assert decision.kind == DecisionKind.not_found
    assert decision.resource == "project"
    with pytest.raises(ProjectNotFound):
        enforce(decision)


def test_missing_task_is_not_found(facts):
    decision = authorize(Action.update_task, Membership(project=None), task=None)
    assert decision.kind == DecisionKind.not_found
    assert decision.resource == "task"
    with pytest.raises(TaskNotFound):
        enforce(decision)


def test_enforce_denial_raises_forbidden_with_reason(facts):
    with pytest.raises(Forbidden) as exc_info:
        enforce(authorize(Action.delete_project, facts["admin"]))
    assert exc_info.value.message == "Seul le propriétaire peut supprimer ce projet"
    assert exc_info.value.status_code == 403


def test_enforce_allow_is_silent(facts):
    enforce(authorize(Action.view_project, facts["member"]))


def test_membership_properties(project):
    owner = Membership(project=project, is_owner=True)
    assert owner.exists and owner.is_member and owner.is_admin

    member = Membership(project=project, role=models.MemberRole.member)
    assert member.is_member and not member.is_admin

    absent = Membership(project=None)
    assert not absent.exists and not absent.is_member and not absent.is_admin


def test_require_logs_without_actor(facts, caplog):
    with caplog.at_level(logging.DEBUG, logger="auth.permissions"):
        require(Action.view_project, facts["member"])

    messages = [r.getMessage() for r in caplog.records if r.name == "auth.permissions"]
    assert "Requiring view_project" in messages
    assert not any("None" in m for m in messages)


def test_require_logs_actor(facts, caplog):
    with caplog.at_level(logging.DEBUG, logger="auth.permissions"):
        require(Action.view_project, facts["member"], actor_id=MEMBER_ID)

    assert f"Requiring view_project for user {MEMBER_ID}" in [r.getMessage() for r in caplog.records]

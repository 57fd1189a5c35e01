"""
Tests for project statistics.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models
from services.stats_service import completion_rate, summarize
from tests.conftest import make_task


@pytest.mark.parametrize(
    "done,total,expected",
    [
        (0, 0, "0%"),
        (0, 3, "0.00%"),
        (1, 2, "50.00%"),
        (1, 3, "33.33%"),
        (2, 3, "66.67%"),
        (4, 4, "100.00%"),
    ],
)
def test_completion_rate(done, total, expected):
    assert completion_rate(done, total) == expected


def test_summarize_counts():
    tasks = [
        models.Task(status=models.TaskStatus.done, priority=models.TaskPriority.high),
        models.Task(status=models.TaskStatus.in_progress, priority=models.TaskPriority.medium),
        models.Task(status=models.TaskStatus.todo, priority=models.TaskPriority.medium),
    ]

    stats = summarize(tasks)

    assert stats.total == 3
    assert (stats.by_status.todo, stats.by_status.in_progress, stats.by_status.done) == (1, 1, 1)
    assert (stats.by_priority.low, stats.by_priority.medium, stats.by_priority.high) == (0, 2, 1)
    assert stats.completion_rate == "33.33%"


def test_empty_project_stats(client: TestClient, project: models.Project, member_headers: dict):
    response = client.get(f"/api/projects/{project.id}/stats", headers=member_headers)

    assert response.status_code == 200, response.json()
    assert response.json()["data"] == {
        "total": 0,
        "byStatus": {"todo": 0, "inProgress": 0, "done": 0},
        "byPriority": {"low": 0, "medium": 0, "high": 0},
        "completionRate": "0%",
    }


def test_project_stats_half_done(
    client: TestClient, test_db: Session, project: models.Project, owner_user: models.User, member_headers: dict
):
    make_task(test_db, project, owner_user, title="Done", status=models.TaskStatus.done)
    make_task(test_db, project, owner_user, title="Open", priority=models.TaskPriority.low)

    data = client.get(f"/api/projects/{project.id}/stats", headers=member_headers).json()["data"]

    assert data["total"] == 2
    assert data["byStatus"]["done"] == 1
    assert data["byPriority"]["low"] == 1
    assert data["completionRate"] == "50.00%"


def test_stats_ignore_other_projects(
    client: TestClient, test_db: Session, project: models.Project, owner_user: models.User, owner_headers: dict
):
    other = models.Project(name="Other", owner_id=owner_user.id)
    test_db.add(other)
    test_db.commit()
    make_task(test_db, other, owner_user, status=models.TaskStatus.done)

    data = client.get(f"/api/projects/{project.id}/stats", headers=owner_headers).json()["data"]
    assert data["total"] == 0


def test_stats_missing_project(client: TestClient, owner_headers: dict):
    assert client.get("/api/projects/9999/stats", headers=owner_headers).status_code == 404

"""
Test configuration and fixtures for task manager tests.

Provides:
- Test database with SQLite in-memory for speed
- FastAPI test client with database dependency override
- Authentication helpers (JWT token generation)
- Common fixtures for users, projects, memberships and tasks
"""

import os
import sys
import logging
from datetime import timedelta
from typing import Generator, Dict

# Settings read at import time by database.py and auth/security.py
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
import models
from auth.security import hash_password, create_access_token

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    This ensures test isolation and fast execution.
    """
    logger.debug("Creating test database")

    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def client(test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db: Session, name: str, email: str, password: str = "secret123") -> models.User:
    user = models.User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {email} with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def owner_user(test_db: Session) -> models.User:
    """User who owns the test project."""
    return make_user(test_db, "Alice Owner", "alice@example.com")


@pytest.fixture(scope="function")
def member_user(test_db: Session) -> models.User:
    """User with role=member in the test project."""
    return make_user(test_db, "Bob Member", "bob@example.com")


@pytest.fixture(scope="function")
def admin_member(test_db: Session) -> models.User:
    """Non-owner user with role=admin in the test project."""
    return make_user(test_db, "Dana Admin", "dana@example.com")


@pytest.fixture(scope="function")
def outsider(test_db: Session) -> models.User:
    """User with no relation to the test project."""
    return make_user(test_db, "Carol Outsider", "carol@example.com")


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.
    """
    logger.debug(f"Creating auth token for user {user.id}")
    return create_access_token(user.id, expires_delta)


def auth_headers_for(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


@pytest.fixture(scope="function")
def owner_headers(owner_user: models.User) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture(scope="function")
def member_headers(member_user: models.User) -> Dict[str, str]:
    return auth_headers_for(member_user)


@pytest.fixture(scope="function")
def admin_headers(admin_member: models.User) -> Dict[str, str]:
    return auth_headers_for(admin_member)


@pytest.fixture(scope="function")
def outsider_headers(outsider: models.User) -> Dict[str, str]:
    return auth_headers_for(outsider)


@pytest.fixture(scope="function")
def project(
    test_db: Session,
    owner_user: models.User,
    member_user: models.User,
    admin_member: models.User,
) -> models.Project:
    """
    Project owned by owner_user (with its admin row), plus member_user as
    member and admin_member as admin.
    """
    logger.debug("Creating test project")
    project = models.Project(name="Test Project", description="A project for testing", owner_id=owner_user.id)
    test_db.add(project)
    test_db.commit()
    test_db.refresh(project)

    test_db.add_all([
        models.ProjectMember(project_id=project.id, user_id=owner_user.id, role=models.MemberRole.admin),
        models.ProjectMember(project_id=project.id, user_id=member_user.id, role=models.MemberRole.member),
        models.ProjectMember(project_id=project.id, user_id=admin_member.id, role=models.MemberRole.admin),
    ])
    test_db.commit()

    logger.info(f"Created test project with ID: {project.id}")
    return project


def make_task(db: Session, project: models.Project, creator: models.User, title: str = "Task", **kwargs) -> models.Task:
    task = models.Task(project_id=project.id, created_by=creator.id, title=title, **kwargs)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, computed_field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Annotated, Any, Optional, List

from models import MemberRole, TaskPriority, TaskStatus
from time_utils import is_overdue


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case (or camelCase) accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Response envelope
def envelope(data: Any = None, message: Optional[str] = None, count: Optional[int] = None,
             success: bool = True) -> dict:
    """
    Build the {success, data?, message?, count?} body shared by every endpoint.
    Keys left as None are omitted.
    """
    body = {"success": success}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    return body


# User schemas
# Surrounding whitespace is dropped before the length check
UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class User(UserSummary):
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None


class RegisterRequest(CamelModel):
    name: UserName
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=255)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    name: Optional[UserName] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=500)
    password: Optional[str] = Field(None, min_length=6, max_length=255)


class AuthPayload(CamelModel):
    user: User
    token: str


# Member schemas
class MemberCreate(CamelModel):
    user_id: int
    role: MemberRole = MemberRole.member


class ProjectMember(CamelModel):
    id: int
    project_id: int
    user_id: int
    role: MemberRole
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


# Task schemas
class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None


class TaskUpdate(CamelModel):
    # Only fields present in the request body are applied
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None


class Task(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    project_id: int
    created_by: int
    assigned_to: Optional[int] = None
    due_date: Optional[datetime] = None
    creator: Optional[UserSummary] = None
    assignee: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="isOverdue")
    @property
    def is_overdue(self) -> bool:
        return is_overdue(self.due_date, self.status.value)


# Project schemas
class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class Project(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    owner_id: int
    owner: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectDetail(Project):
    members: List[ProjectMember] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)


# Stats schemas
class StatusCounts(CamelModel):
    todo: int = 0
    in_progress: int = 0
    done: int = 0


class PriorityCounts(CamelModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class ProjectStats(CamelModel):
    total: int
    by_status: StatusCounts
    by_priority: PriorityCounts
    completion_rate: str

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import List, Optional
import logging
import os

from database import get_db, init_db
import models
import schemas
from errors import AppError
from auth.routes import router as auth_router
from auth.dependencies import get_current_user
from auth.security import is_production_like
from services import project_service, stats_service, task_service

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def should_create_tables() -> bool:
    """DB_CREATE_TABLES wins when set; otherwise tables are created outside production."""
    default = "false" if is_production_like() else "true"
    return os.environ.get("DB_CREATE_TABLES", default).strip().lower() in ("1", "true", "yes")


# Create missing tables (production deployments manage the schema themselves)
if should_create_tables():
    init_db()

app = FastAPI(
    title="Collaborative Task Manager API",
    description="Projects, members with roles, and tasks shared within a project",
    version="1.0.0"
)

# CORS middleware for frontend
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register authentication router
app.include_router(auth_router)


# ============== Error Handling ==============

def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=schemas.envelope(success=False, message=message),
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _error_response(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors
    )
    logger.info(f"Request validation failed on {request.method} {request.url.path}: {details}")
    return _error_response(status.HTTP_400_BAD_REQUEST, f"Données invalides: {details}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Route non trouvée" if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


@app.exception_handler(PoolTimeoutError)
async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
    logger.error(f"Database connection pool exhausted on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service temporairement indisponible, veuillez réessayer",
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}")
    message = "Erreur serveur" if is_production_like() else f"Erreur serveur: {exc}"
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


# ============== Health ==============

@app.get("/")
def root():
    return schemas.envelope(
        message="API de gestion de tâches collaborative",
        data={"version": app.version, "environment": os.environ.get("ENVIRONMENT", "development")},
    )


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Projects ==============

@app.get("/api/projects")
def list_projects(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all projects the current user owns or belongs to."""
    projects = project_service.list_projects(db, current_user)
    data = [schemas.Project.model_validate(p) for p in projects]
    return schemas.envelope(data=data, count=len(data))


@app.post("/api/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    project: schemas.ProjectCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new project owned by the current user."""
    db_project = project_service.create_project(db, current_user, project.model_dump())
    return schemas.envelope(data=schemas.Project.model_validate(db_project))


@app.get("/api/projects/{project_id}")
def get_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get project with owner, members and tasks (requires membership)."""
    project = project_service.get_project(db, project_id, current_user)
    return schemas.envelope(data=schemas.ProjectDetail.model_validate(project))


@app.put("/api/projects/{project_id}")
def update_project(
    project_id: int,
    project_update: schemas.ProjectUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update project name/description (requires owner or admin)."""
    update_data = project_update.model_dump(exclude_unset=True)
    project = project_service.update_project(db, project_id, current_user, update_data)
    return schemas.envelope(data=schemas.Project.model_validate(project))


@app.delete("/api/projects/{project_id}")
def delete_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete project with its tasks and memberships (requires owner)."""
    project_service.delete_project(db, project_id, current_user)
    return schemas.envelope(message="Projet supprimé avec succès")


@app.get("/api/projects/{project_id}/stats")
def get_project_stats(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get project statistics (requires membership)."""
    stats = stats_service.compute_stats(db, project_id, current_user)
    return schemas.envelope(data=stats)


# ============== Project Members ==============

@app.get("/api/projects/{project_id}/members")
def list_project_members(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all members of a project (requires membership)."""
    members = project_service.list_members(db, project_id, current_user)
    data = [schemas.ProjectMember.model_validate(m) for m in members]
    return schemas.envelope(data=data, count=len(data))


@app.post("/api/projects/{project_id}/members")
def add_project_member(
    project_id: int,
    member_data: schemas.MemberCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a member to a project (requires owner or admin)."""
    project_service.add_member(db, project_id, current_user, member_data.user_id, member_data.role)
    members = project_service.list_members(db, project_id, current_user)
    return schemas.envelope(
        message="Membre ajouté avec succès",
        data=[schemas.ProjectMember.model_validate(m) for m in members],
    )


@app.delete("/api/projects/{project_id}/members/{user_id}")
def remove_project_member(
    project_id: int,
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a member from a project (requires owner or admin; never the owner)."""
    project_service.remove_member(db, project_id, current_user, user_id)
    return schemas.envelope(message="Membre retiré avec succès")


# ============== Tasks ==============

@app.get("/api/projects/{project_id}/tasks")
def list_tasks(
    project_id: int,
    task_status: Optional[models.TaskStatus] = Query(None, alias="status"),
    priority: Optional[models.TaskPriority] = None,
    assigned_to: Optional[int] = Query(None, alias="assignedTo"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List tasks of a project, optionally filtered (requires membership)."""
    tasks = task_service.list_tasks(
        db, project_id, current_user, status=task_status, priority=priority, assigned_to=assigned_to
    )
    data: List[schemas.Task] = [schemas.Task.model_validate(t) for t in tasks]
    return schemas.envelope(data=data, count=len(data))


@app.post("/api/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    project_id: int,
    task: schemas.TaskCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new task in a project (requires membership)."""
    db_task = task_service.create_task(db, project_id, current_user, task.model_dump())
    return schemas.envelope(data=schemas.Task.model_validate(db_task))


@app.get("/api/tasks/{task_id}")
def get_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get task by ID (requires membership in its project)."""
    task = task_service.get_task(db, task_id, current_user)
    return schemas.envelope(data=schemas.Task.model_validate(task))


@app.put("/api/tasks/{task_id}")
def update_task(
    task_id: int,
    task_update: schemas.TaskUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Partially update a task (requires membership in its project)."""
    update_data = task_update.model_dump(exclude_unset=True)
    task = task_service.update_task(db, task_id, current_user, update_data)
    return schemas.envelope(data=schemas.Task.model_validate(task))


@app.delete("/api/tasks/{task_id}")
def delete_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete task (requires creator, project owner or admin)."""
    task_service.delete_task(db, task_id, current_user)
    return schemas.envelope(message="Tâche supprimée avec succès")

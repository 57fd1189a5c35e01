"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration
- Login
- Reading and editing the current user's profile (/me and its /profile alias)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models import User
import schemas
from auth.security import create_access_token
from auth.dependencies import get_current_user
from services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_payload(user: User) -> schemas.AuthPayload:
    return schemas.AuthPayload(
        user=schemas.User.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account.

    Returns:
        The created user and an access token

    Raises:
        EmailAlreadyRegistered: 400 if email already registered
    """
    user = user_service.register_user(db, request.name, request.email, request.password)
    return schemas.envelope(data=_auth_payload(user))


@router.post("/login")
def login(request: schemas.LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.

    Raises:
        Unauthenticated: 401 if credentials are invalid
    """
    user = user_service.authenticate(db, request.email, request.password)
    return schemas.envelope(data=_auth_payload(user))


@router.get("/me")
@router.get("/profile")
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    logger.debug(f"Fetching user info for: {current_user.id}")
    return schemas.envelope(data=schemas.User.model_validate(current_user))


@router.put("/me")
@router.put("/profile")
def update_current_user(
    request: schemas.ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the current user's name, email, avatar or password."""
    update_data = request.model_dump(exclude_unset=True)
    user = user_service.update_profile(db, current_user, update_data)
    return schemas.envelope(data=schemas.User.model_validate(user))

"""
FastAPI dependencies for authentication.

get_current_user extracts the bearer token, resolves it to a user ID and
loads that user. Any failure surfaces as Unauthenticated (401).
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from errors import Unauthenticated
from models import User
from auth.security import resolve_user_id

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme; missing headers are reported by get_current_user itself
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the Authorization header.

    Raises:
        Unauthenticated: no token, invalid/expired token, or unknown user

    Example:
        @app.get("/api/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    logger.debug("Attempting to authenticate user")

    token = credentials.credentials if credentials else None
    user_id = resolve_user_id(token)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise Unauthenticated("Utilisateur non trouvé")

    logger.debug(f"User authenticated via JWT: {user.id}")
    return user

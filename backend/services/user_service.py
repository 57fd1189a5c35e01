"""
User account operations: registration, login, profile edits.

Password hashing happens explicitly in these functions; the User model
itself never hashes anything.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.security import hash_password, verify_password
from errors import EmailAlreadyRegistered, Unauthenticated, UserNotFound, ValidationError
from models import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are stored trimmed and lower-cased so lookups ignore case."""
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UserNotFound()
    return user


def register_user(db: Session, name: str, email: str, password: str) -> User:
    """
    Create a user account.

    Raises:
        EmailAlreadyRegistered: another account uses this email
    """
    email = normalize_email(email)
    logger.info(f"Registration attempt for email: {email}")

    if get_user_by_email(db, email) is not None:
        logger.info(f"Registration failed: email already exists: {email}")
        raise EmailAlreadyRegistered()

    user = User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        db.rollback()
        raise EmailAlreadyRegistered()
    db.refresh(user)

    logger.info(f"User registered successfully: {user.email} (ID: {user.id})")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials and return the matching user.

    Unknown email and wrong password fail the same way so the response does
    not reveal which accounts exist.

    Raises:
        Unauthenticated: credentials do not match
    """
    logger.info(f"Login attempt for email: {normalize_email(email)}")

    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Login failed: user not found")
        raise Unauthenticated("Email ou mot de passe incorrect")

    if not verify_password(password, user.password_hash):
        logger.info(f"Login failed: invalid password for user {user.id}")
        raise Unauthenticated("Email ou mot de passe incorrect")

    logger.info(f"User logged in successfully: {user.email} (ID: {user.id})")
    return user


def update_profile(db: Session, user: User, update_data: Dict[str, Any]) -> User:
    """
    Apply a partial profile update (name, email, avatar, password).

    Raises:
        ValidationError: name or email explicitly set to null
        EmailAlreadyRegistered: the new email belongs to someone else
    """
    logger.debug(f"User {user.id} updating profile fields: {sorted(update_data.keys())}")

    for field in ("name", "email"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"Le champ '{field}' ne peut pas être vide")

    if "email" in update_data:
        new_email = normalize_email(update_data["email"])
        if new_email != user.email:
            existing = db.query(User).filter(User.email == new_email, User.id != user.id).first()
            if existing is not None:
                raise EmailAlreadyRegistered("Cet email est déjà utilisé")
        user.email = new_email

    if "name" in update_data:
        user.name = update_data["name"]

    if "avatar" in update_data:
        user.avatar = update_data["avatar"]

    if update_data.get("password") is not None:
        user.password_hash = hash_password(update_data["password"])
        logger.info(f"Password changed for user {user.id}")

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailAlreadyRegistered("Cet email est déjà utilisé")
    db.refresh(user)

    logger.info(f"Profile updated: {user.email} (ID: {user.id})")
    return user


def delete_user(db: Session, user_id: int) -> None:
    """
    Delete a user and everything that depends on them.

    Owned projects go with their tasks and memberships, as do the user's own
    memberships and the tasks they created. Tasks assigned to them in other
    projects are unassigned. Not exposed over HTTP.
    """
    user = get_user(db, user_id)
    try:
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"User deleted: {user_id}")

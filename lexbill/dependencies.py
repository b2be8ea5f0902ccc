"""Dependency helpers.

Provides identity resolution and position-gating dependencies for FastAPI routes.
"""

from fastapi import Cookie, Depends
from sqlalchemy.orm import Session

from lexbill.config import settings
from lexbill.database import get_db
from lexbill.errors import NotAuthenticated, NotFound, PermissionDenied
from lexbill.models import User
from lexbill.security import read_session_token


def get_current_user(session_token: str | None = Cookie(default=None), db: Session = Depends(get_db)) -> User:
    if not session_token:
        raise NotAuthenticated()
    user_id = read_session_token(session_token)
    if not user_id:
        raise NotAuthenticated("Session expired")
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    if not user.active:
        raise NotAuthenticated("Invalid user")
    return user


def has_admin_access(user: User) -> bool:
    """Return True when the user's position may see revenue and manage billing."""
    position = getattr(user.position, "value", user.position)
    return position in settings.admin_positions


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not has_admin_access(current_user):
        raise PermissionDenied()
    return current_user

from typing import Optional
from fastapi import Request, Depends
from sqlmodel import Session

from .clock import Clock, SystemClock
from .config import SESSION_COOKIE_NAME
from .database import get_session
from .exceptions import AuthenticationRequiredError, UserProfileNotFoundError
from .models.user import User
from .services.auth import get_active_session


def get_clock() -> Clock:
    """Clock shared by invite and membership timestamps."""
    return SystemClock()


def get_session_token(request: Request) -> Optional[str]:
    """Session token from the cookie, or from an `Authorization: Bearer` header."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_user(
    request: Request,
    db: Session = Depends(get_session)
) -> Optional[User]:
    """Get the current logged-in user, or None when there is no valid session."""
    session_token = get_session_token(request)
    if not session_token:
        return None

    user_session = get_active_session(db, session_token)
    if not user_session:
        return None

    user = db.get(User, user_session.user_id)
    if user is None:
        raise UserProfileNotFoundError(user_session.user_id)

    return user


async def require_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Require a logged-in user."""
    if not current_user:
        raise AuthenticationRequiredError()
    return current_user

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from sqlmodel import Session, select

from ..clock import Clock, SystemClock, utc_now
from ..exceptions import UserProfileNotFoundError
from ..models.user import User
from ..models.session import Session as UserSession
from ..config import SESSION_EXPIRE_DAYS
from ..schemas import UpdateProfileRequest

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_session(db: Session, user_id: int) -> str:
    """Create a new session for a user and return the session token."""
    session_token = secrets.token_urlsafe(32)
    expires_at = utc_now() + timedelta(days=SESSION_EXPIRE_DAYS)

    user_session = UserSession(
        user_id=user_id,
        session_token=session_token,
        expires_at=expires_at
    )
    db.add(user_session)
    db.commit()

    return session_token


def delete_session(db: Session, session_token: str) -> None:
    """Delete a session (logout)."""
    statement = select(UserSession).where(UserSession.session_token == session_token)
    user_session = db.exec(statement).first()
    if user_session:
        db.delete(user_session)
        db.commit()


def get_active_session(db: Session, session_token: str) -> Optional[UserSession]:
    """Get a session by token if it has not expired. Expired sessions are removed."""
    user_session = db.exec(
        select(UserSession).where(UserSession.session_token == session_token)
    ).first()
    if not user_session:
        return None

    if _as_utc(user_session.expires_at) <= utc_now():
        db.delete(user_session)
        db.commit()
        return None

    return user_session


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email."""
    statement = select(User).where(User.email == email)
    return db.exec(statement).first()


def create_user(
    db: Session,
    email: str,
    password: str,
    display_name: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None
) -> User:
    """Create a new user."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
        first_name=first_name,
        last_name=last_name
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = get_user_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def update_user_profile(
    db: Session,
    user_id: int,
    request: UpdateProfileRequest,
    clock: Optional[Clock] = None
) -> User:
    """Update the names shown as league and invite owner. Unset fields are kept."""
    clock = clock or SystemClock()

    user = db.get(User, user_id)
    if user is None:
        logger.error("User %s not found when updating profile", user_id)
        raise UserProfileNotFoundError(user_id)

    for field, value in request.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(user, field, value)
    user.updated_at = clock.now()

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Updated profile for user %s", user_id)
    return user

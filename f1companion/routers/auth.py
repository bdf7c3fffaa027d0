import re
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from ..config import SESSION_COOKIE_NAME, SESSION_EXPIRE_DAYS
from ..database import get_session
from ..clock import Clock
from ..dependencies import get_clock, get_session_token, require_user
from ..models.user import User
from ..schemas import LoginRequest, RegisterRequest, UpdateProfileRequest, UserResponse
from ..services.auth import (
    authenticate_user,
    create_session,
    create_user,
    delete_session,
    get_user_by_email,
    update_user_profile,
)

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name(),
        display_name=user.display_name,
        first_name=user.first_name,
        last_name=user.last_name,
        updated_at=user.updated_at
    )


def _session_response(user: User, session_token: str, status_code: int) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={"user": to_user_response(user).model_dump(mode="json"), "session_token": session_token}
    )
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        max_age=SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        samesite="lax"
    )
    return response


@router.post("/register")
async def register(
    payload: RegisterRequest,
    db: Session = Depends(get_session)
):
    """Handle user registration."""
    if not re.match(EMAIL_PATTERN, payload.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email format"
        )

    if get_user_by_email(db, payload.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists"
        )

    user = create_user(
        db,
        email=payload.email,
        password=payload.password,
        display_name=payload.display_name,
        first_name=payload.first_name,
        last_name=payload.last_name
    )
    session_token = create_session(db, user.id)
    return _session_response(user, session_token, status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    payload: LoginRequest,
    db: Session = Depends(get_session)
):
    """Handle user login."""
    user = authenticate_user(db, payload.email, payload.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    session_token = create_session(db, user.id)
    return _session_response(user, session_token, status.HTTP_200_OK)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    db: Session = Depends(get_session)
):
    """Handle user logout."""
    session_token: Optional[str] = get_session_token(request)
    if session_token:
        delete_session(db, session_token)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(key=SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(require_user)):
    return to_user_response(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    payload: UpdateProfileRequest,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    """Update the current user's display, first and last name."""
    user = update_user_profile(db, current_user.id, payload, clock)
    return to_user_response(user)

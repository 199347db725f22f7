"""Authentication routes."""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gradeflow.auth import AuthContext, get_current_user, jwt
from gradeflow.auth import local as local_auth
from gradeflow.core import di
from gradeflow.storage import examiner as examiner_storage

from ..view.auth import LoginRequest, LoginResponse, TokenResponse, UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", operation_id="login")
@di.inject
def login(
    request: LoginRequest,
    session: Session = Depends(di.Manage["storage.persistent.session"]),
    expire_minutes: int = Depends(di.Provide["config.web.gradeflow.auth.access_token_expire_minutes"]),
) -> LoginResponse:
    """Authenticate a user and return access token."""
    with session.begin():
        result = local_auth.authenticate(request.email, request.password, session=session)

        if not result.success or result.user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=result.error or "Invalid credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        examiner = examiner_storage.get(user_id=result.user.user_id, session=session)

    expires_delta = datetime.timedelta(minutes=expire_minutes)
    expires_at = datetime.datetime.now(datetime.UTC) + expires_delta

    access_token = jwt.create_access_token(
        user_id=result.user.user_id,
        role=result.user.role,
        expires_delta=expires_delta,
    )

    return LoginResponse(
        user=UserResponse(
            user_id=result.user.user_id,
            email=result.user.email,
            name=result.user.name,
            role=result.user.role,
            examiner_id=examiner.examiner_id if examiner else None,
        ),
        token=TokenResponse(
            access_token=access_token,
            expires_at=expires_at,
        ),
    )


@router.get("/me", operation_id="get_current_user")
def get_me(
    auth: AuthContext = Depends(get_current_user),
) -> UserResponse:
    """Get the current authenticated user."""
    return UserResponse(
        user_id=auth.user.user_id,
        email=auth.user.email,
        name=auth.user.name,
        role=auth.role,
        examiner_id=auth.examiner.examiner_id if auth.examiner else None,
    )

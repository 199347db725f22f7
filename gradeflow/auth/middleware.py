"""Authentication middleware and dependencies for FastAPI routes."""

from __future__ import annotations

import typing as t

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gradeflow.core import di
from gradeflow.model import Examiner, User, UserRole
from gradeflow.storage import examiner as examiner_storage

from . import jwt as jwt_auth
from . import local as local_auth
from .jwt import TokenData

# Security scheme for JWT bearer tokens
bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext(t.NamedTuple):
    """Current authentication context."""

    user: User
    role: UserRole
    token_data: TokenData
    examiner: Examiner | None = None


def _raw_token(credentials: HTTPAuthorizationCredentials | None, token: str | None) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return token


def _load_context(token_data: TokenData, session: Session) -> AuthContext | None:
    with session.begin():
        user = local_auth.get_user(token_data.user_id, session=session)
        if user is None:
            return None
        # the role is read from the user row, so a demotion takes effect before token expiry
        examiner = examiner_storage.get(user_id=user.user_id, session=session)
    return AuthContext(user=user, role=user.role, token_data=token_data, examiner=examiner)


@di.inject
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token: str | None = Query(None, description="JWT token, for clients that can't set headers"),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AuthContext:
    """Dependency to get the current authenticated user.

    Accepts token from either:
    - Authorization: Bearer header (preferred)
    - ?token= query parameter

    Raises:
        HTTPException 401: If no token provided or token is invalid
        HTTPException 401: If user not found
    """
    raw_token = _raw_token(credentials, token)
    if raw_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = jwt_auth.decode_token(raw_token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth = _load_context(token_data, session)
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


def require_role(
    *allowed_roles: UserRole,
) -> t.Callable[..., AuthContext]:
    """Dependency factory to require specific roles.

    Usage:
        @router.get("/stats")
        def stats(auth: AuthContext = Depends(require_role(UserRole.Admin))):
            ...
    """

    def check_role(auth: AuthContext = Depends(get_current_user)) -> AuthContext:
        if auth.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{auth.role.value}' not authorized for this resource",
            )
        return auth

    return check_role


# Convenience dependencies
require_admin = require_role(UserRole.Admin)
require_examiner = require_role(UserRole.Examiner)

"""View models for authentication endpoints."""

from __future__ import annotations

import datetime

from pydantic import EmailStr

from gradeflow.model import BaseModel, ExaminerID, UserID, UserRole


class LoginRequest(BaseModel):
    """Request body for login."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Response containing access token."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime.datetime


class UserResponse(BaseModel):
    """Response containing user information."""

    user_id: UserID
    email: EmailStr
    name: str
    role: UserRole
    examiner_id: ExaminerID | None = None


class LoginResponse(BaseModel):
    """Response for successful login."""

    user: UserResponse
    token: TokenResponse

"""Auth provider protocol for pluggable authentication backends."""

from __future__ import annotations

import typing as t
from abc import abstractmethod

import pydantic as p

from gradeflow.model import User, UserID, UserRole


class AuthResult(t.NamedTuple):
    """Result of an authentication attempt."""

    success: bool
    user: User | None = None
    error: str | None = None


class AuthProvider(t.Protocol):
    """Protocol for authentication providers."""

    @abstractmethod
    def authenticate(self, email: str, password: str) -> AuthResult:
        """Authenticate a user with email and password.

        Returns:
            AuthResult with success=True and user if valid,
            or success=False and error message if invalid.
        """
        ...

    @abstractmethod
    def register(self, email: str, password: p.Secret[str], name: str, role: UserRole) -> AuthResult:
        """Register a new user.

        Returns:
            AuthResult with the created user or error.
        """
        ...

    @abstractmethod
    def get_user(self, user_id: UserID) -> User | None: ...

    @abstractmethod
    def set_password(self, user_id: UserID, password: p.Secret[str]) -> bool:
        """Set/update a user's password.

        Returns:
            True if successful, False if user not found.
        """
        ...

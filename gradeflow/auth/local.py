"""Local authentication provider using bcrypt for password hashing."""

from __future__ import annotations

import pydantic as p
from sqlalchemy.orm import Session

from gradeflow.core import di
from gradeflow.model import User, UserID, UserRole
from gradeflow.storage import user as user_storage

from .provider import AuthProvider, AuthResult


class LocalAuthProvider(AuthProvider):
    """Local authentication using bcrypt password hashing.

    Stores password hashes in the users table. Callers own the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def authenticate(self, email: str, password: str) -> AuthResult:
        user = user_storage.get(email=email, session=self._session)
        if user is None or not user_storage.verify_password(user, password):
            return AuthResult(success=False, error="Invalid email or password")
        return AuthResult(success=True, user=user)

    def register(self, email: str, password: p.Secret[str], name: str, role: UserRole) -> AuthResult:
        existing = user_storage.get(email=email, session=self._session)
        if existing is not None:
            return AuthResult(success=False, error="Email already registered")

        user = user_storage.create(email=email, name=name, password=password, role=role, session=self._session)
        return AuthResult(success=True, user=user)

    def get_user(self, user_id: UserID) -> User | None:
        return user_storage.get(user_id=user_id, session=self._session)

    def set_password(self, user_id: UserID, password: p.Secret[str]) -> bool:
        try:
            user_storage.update(user_id, password=password, session=self._session)
        except KeyError:
            return False
        return True


def authenticate(email: str, password: str, session: Session) -> AuthResult:
    return LocalAuthProvider(session).authenticate(email, password)


def get_user(user_id: UserID, session: Session) -> User | None:
    return LocalAuthProvider(session).get_user(user_id)


@di.inject
def get_auth_provider(
    session: Session = di.Provide["storage.persistent.session"],
) -> LocalAuthProvider:
    """Factory function to get auth provider with injected session."""
    return LocalAuthProvider(session)

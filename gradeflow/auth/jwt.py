"""JWT token management for session authentication."""

from __future__ import annotations

import datetime
import typing as t

import annotated_types as ant
import jwt
import pydantic as p

from gradeflow.core import di
from gradeflow.model import UserID, UserRole


class TokenPayload(t.TypedDict):
    """JWT token payload structure."""

    sub: str  # user_id
    role: str  # user's role
    exp: int  # expiration timestamp
    iat: int  # issued at timestamp


class TokenData(t.NamedTuple):
    """Decoded token data."""

    user_id: UserID
    role: UserRole
    expires_at: datetime.datetime
    issued_at: datetime.datetime


class JWTManager(object):
    """Manages JWT token creation and validation."""

    _secret_key: p.Secret[str]
    _algorithm: t.Literal["HS256", "HS384", "HS512"]
    _access_token_expire_minutes: t.Annotated[int, ant.Gt(1)]

    def __init__(
        self,
        secret_key: p.Secret[str],
        algorithm: t.Literal["HS256", "HS384", "HS512"] = "HS256",
        access_token_expire_minutes: t.Annotated[int, ant.Gt(1)] = 30,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes

    @property
    def secret_key(self) -> str:
        """Get the JWT secret key."""
        return self._secret_key.get_secret_value()

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def access_token_expire_minutes(self) -> int:
        return self._access_token_expire_minutes

    def create_access_token(
        self,
        user_id: UserID,
        role: UserRole,
        expires_delta: datetime.timedelta | None = None,
    ) -> str:
        """Create a new access token.

        Args:
            user_id: The user's ID
            role: The user's role
            expires_delta: Custom expiration time (default: access_token_expire_minutes)

        Returns:
            Encoded JWT token string
        """
        now = datetime.datetime.now(datetime.UTC)
        if expires_delta is None:
            expires_delta = datetime.timedelta(minutes=self._access_token_expire_minutes)

        expire = now + expires_delta

        payload: TokenPayload = {
            "sub": str(user_id),
            "role": role.value,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
        }

        return jwt.encode(dict(payload), self.secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenData | None:
        """Decode and validate a token.

        Returns:
            TokenData if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self._algorithm],
            )

            return TokenData(
                user_id=UserID(payload["sub"]),
                role=UserRole(payload["role"]),
                expires_at=datetime.datetime.fromtimestamp(payload["exp"], tz=datetime.UTC),
                issued_at=datetime.datetime.fromtimestamp(payload["iat"], tz=datetime.UTC),
            )
        except jwt.ExpiredSignatureError:
            return None
        except (jwt.InvalidTokenError, KeyError, ValueError):
            return None

    def is_token_valid(self, token: str) -> bool:
        """Check if a token is valid without decoding full payload."""
        return self.decode_token(token) is not None


@di.inject
def create_access_token(
    user_id: UserID,
    role: UserRole,
    expires_delta: datetime.timedelta | None = None,
    jwt_manager: JWTManager = di.Provide["auth.jwt_manager"],
) -> str:
    return jwt_manager.create_access_token(user_id, role, expires_delta)


@di.inject
def decode_token(token: str, jwt_manager: JWTManager = di.Provide["auth.jwt_manager"]) -> TokenData | None:
    return jwt_manager.decode_token(token)

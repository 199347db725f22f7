from __future__ import annotations

import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseSettings


class WebSettings(BaseSettings):
    gradeflow: GradeflowWebSettings


class ServeSettings(BaseSettings):
    host: p.IPvAnyAddress
    port: t.Annotated[int, ant.Gt(0), ant.Le(65535)]


class AuthSettings(BaseSettings):
    """Authentication settings for JWT tokens."""

    jwt_algorithm: t.Literal["HS256", "HS384", "HS512"] = "HS256"
    access_token_expire_minutes: t.Annotated[int, ant.Gt(1)] = 30


class GradeflowWebSettings(BaseSettings):
    """Settings for the grading API application."""

    backend: ServeSettings
    cors_origins: list[str] = []
    auth: AuthSettings = AuthSettings()

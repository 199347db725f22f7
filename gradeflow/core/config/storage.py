from __future__ import annotations

import typing as t

import pydantic as p

from .base import BaseSettings


class StorageSettings(BaseSettings):
    persistent: PersistentSettings


class PersistentSettings(BaseSettings):
    database: DatabaseSettings


class DatabaseSettings(BaseSettings):
    """
    Connection settings for the workflow database. PostgreSQL in deployed
    environments; SQLite for tests, where `database` is a file path or
    `:memory:`
    """

    driver: t.Literal["postgresql+psycopg", "sqlite+pysqlite"] = "postgresql+psycopg"
    host: p.IPvAnyAddress | str | None = None
    port: int | None = None
    database: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")

from __future__ import annotations

import typing as t
from pathlib import Path

import alembic.config
import sqlalchemy
import sqlalchemy.event
import sqlalchemy.orm
import sqlalchemy.pool
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Factory, Object, Provider, Resource, Singleton
from sqlalchemy.engine.url import URL as DSN

import gradeflow.lib.json as json

from ..config.secrets import DatabaseSecrets
from ..config.storage import DatabaseSettings, StorageSettings
from ..di import NotReady
from ..provider import LoggingProvider


def create_dsn(config: DatabaseSettings, secrets: DatabaseSecrets) -> DSN:
    return DSN.create(
        config.driver,
        port=config.port,
        host=str(config.host) if config.host else None,
        username=secrets.username.get_secret_value() if secrets.username else None,
        password=secrets.password.get_secret_value() if secrets.password else None,
        database=config.database,
    )


def provide_alembic_conf(
    migration_path: Path, config: DatabaseSettings, secrets: DatabaseSecrets, root: Path | NotReady
) -> alembic.config.Config:
    if isinstance(root, NotReady):
        raise RuntimeError("root path is unavailable")

    escaped_str = create_dsn(config, secrets).render_as_string(hide_password=False).replace("%", "%%")

    ac = alembic.config.Config()
    ac.set_main_option("script_location", str(root / migration_path))
    ac.set_section_option("alembic", "sqlalchemy.url", escaped_str)
    ac.set_section_option("alembic", "file_template", "%%(year)d-%%(month).2d-%%(day).2d-%%(slug)s-%%(rev)s")
    return ac


def provide_engine(config: DatabaseSettings, secrets: DatabaseSecrets, logging: LoggingProvider) -> sqlalchemy.Engine:
    logger = logging.get_logger()

    kwargs: dict[str, t.Any] = {}
    if config.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if config.database == ":memory:":
            # every session must see the same in-memory database
            kwargs["poolclass"] = sqlalchemy.pool.StaticPool

    engine = sqlalchemy.create_engine(
        create_dsn(config, secrets),
        echo=config.echo,
        json_serializer=json.dumps,
        json_deserializer=json.loads,
        **kwargs,
    )
    if config.is_sqlite:
        sqlalchemy.event.listen(engine, "connect", register_foreign_keys)
    else:
        sqlalchemy.event.listen(engine, "connect", register_timezone)
    logger.info(
        "initialized SQLAlchemy engine",
        extra={
            "driver": config.driver,
            "database": config.database,
            "host": config.host,
            "port": config.port,
        },
    )
    return engine


def provide_session(engine: sqlalchemy.Engine) -> sqlalchemy.orm.Session:
    """Create a new session. Caller is responsible for closing it (via di.Manage)."""
    maker = sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False)
    return maker(autobegin=False)


class PersistentContainer(DeclarativeContainer):
    config = Configuration()
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    alembic_config: Provider[alembic.config.Config] = Singleton(
        provide_alembic_conf,
        migration_path=Path("migrations/"),
        config=config.database.as_(DatabaseSettings),
        secrets=secrets.database.as_(DatabaseSecrets),
        root=root,
    )
    engine: Provider[sqlalchemy.Engine] = Singleton(
        provide_engine,
        config=config.database.as_(DatabaseSettings),
        secrets=secrets.database.as_(DatabaseSecrets),
        logging=logging,
    )
    session: Provider[sqlalchemy.orm.Session] = Factory(provide_session, engine=engine)


class StorageContainer(DeclarativeContainer):
    config: Provider[StorageSettings] = Configuration(strict=True)
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    persistent: Provider[PersistentContainer] = Container(
        PersistentContainer, config=config.persistent, secrets=secrets, logging=logging, root=root
    )


def register_timezone(dbapi_conn: t.Any, _: t.Any) -> None:
    """Set connection timezone to UTC for consistent datetime handling.

    PostgreSQL TIMESTAMP WITH TIME ZONE stores timestamps in UTC but returns
    them converted to the connection's timezone.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("SET TIMEZONE TO 'UTC'")
    cursor.close()


def register_foreign_keys(dbapi_conn: t.Any, _: t.Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

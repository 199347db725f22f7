"""Pytest fixtures for gradeflow tests.

The Test environment runs against an in-memory SQLite database. The schema is
created before and dropped after every test, so each test starts from empty
tables.

Usage:
    def test_get_block(client: TestClient, admin_headers: dict[str, str], block_factory):
        block = block_factory()
        response = client.get(f"/api/grading/blocks/{block.block_code}", headers=admin_headers)
        assert response.status_code == 200
"""

from __future__ import annotations

import decimal
import itertools
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest
import sqlalchemy
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import gradeflow
from gradeflow.core import GradeflowContainer
from gradeflow.model import AnswerBlock, DeploymentEnvironment, Examiner, Subject, User, UserRole
from gradeflow.storage import block as block_storage
from gradeflow.storage import examiner as examiner_storage
from gradeflow.storage import subject as subject_storage
from gradeflow.storage import user as user_storage
from gradeflow.storage.table import metadata

TEST_JWT_SECRET = "test-jwt-secret-for-integration-tests"

_sequence = itertools.count(1)


@pytest.fixture(scope="session")
def container() -> t.Generator[GradeflowContainer]:
    """Boot the DI container for the test session.

    The Test environment has no secrets file, so the JWT signing key is
    supplied here before anything asks for the JWT manager.
    """
    ct = GradeflowContainer()
    root = Path(os.path.dirname(gradeflow.__file__)).parent

    GradeflowContainer.boot(
        ct,
        debug=True,
        env=DeploymentEnvironment.Test,
        config_root=p.FileUrl(f"file://{root}/config"),
        override=(),
    )
    ct.secrets.from_dict({"auth": {"jwt": p.Secret(TEST_JWT_SECRET)}})

    yield ct

    ct.shutdown_resources()


@pytest.fixture
def engine(container: GradeflowContainer) -> t.Generator[sqlalchemy.Engine]:
    """Provide the engine with a freshly created schema."""
    engine = container.storage().persistent().engine()
    metadata.create_all(engine)

    yield engine

    metadata.drop_all(engine)


@pytest.fixture
def db_session(container: GradeflowContainer, engine: sqlalchemy.Engine) -> t.Generator[Session]:
    """Provide a session configured like the application's: no autobegin.

    Tests open their own transactions with `session.begin()`.
    """
    session = container.storage().persistent().session()

    yield session

    session.close()


@pytest.fixture(scope="session")
def app(container: GradeflowContainer) -> FastAPI:
    """Create the FastAPI application against the booted container."""
    from gradeflow.core.config.web import GradeflowWebSettings
    from gradeflow.web.gradeflow.main import _create_app  # pyright: ignore[reportPrivateUsage]

    container.wire(
        modules=[
            "gradeflow.web.gradeflow.main",
            "gradeflow.web.gradeflow.route.auth",
            "gradeflow.web.gradeflow.route.grading",
            "gradeflow.auth.middleware",
            "gradeflow.auth.jwt",
        ]
    )

    return _create_app(
        config=GradeflowWebSettings(**container.config.web.gradeflow()),
        logging=container.logging(),
    )


@pytest.fixture
def client(app: FastAPI, engine: sqlalchemy.Engine) -> t.Generator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def subject_factory(db_session: Session) -> t.Callable[..., Subject]:
    """Factory fixture for creating subjects with unique codes."""

    def create_subject(code: str | None = None, name: str = "Mathematics") -> Subject:
        with db_session.begin():
            return subject_storage.create(code=code or f"SUBJ{next(_sequence)}", name=name, session=db_session)

    return create_subject


@pytest.fixture
def subject(subject_factory: t.Callable[..., Subject]) -> Subject:
    return subject_factory(code="MATH", name="Mathematics")


@pytest.fixture
def user_factory(db_session: Session) -> t.Callable[..., User]:
    """Factory fixture for creating users.

    Usage:
        def test_something(user_factory):
            user = user_factory(email="marker@school.edu", role=UserRole.Examiner)
    """

    def create_user(
        email: str | None = None,
        name: str = "Test User",
        password: str = "password123",
        role: UserRole = UserRole.Examiner,
    ) -> User:
        with db_session.begin():
            return user_storage.create(
                email=email or f"user{next(_sequence)}@school.edu",
                name=name,
                password=p.Secret(password),
                role=role,
                session=db_session,
            )

    return create_user


@pytest.fixture
def examiner_factory(db_session: Session) -> t.Callable[..., Examiner]:
    """Factory fixture for creating examiners qualified for the given subjects."""

    def create_examiner(
        subjects: t.Sequence[Subject] = (),
        name: str | None = None,
        examiner_code: str | None = None,
        user: User | None = None,
        is_active: bool = True,
    ) -> Examiner:
        n = next(_sequence)
        with db_session.begin():
            return examiner_storage.create(
                examiner_code=examiner_code or f"EX{n:03d}",
                name=name or f"Examiner {n}",
                user_id=user.user_id if user else None,
                is_active=is_active,
                subject_ids=[s.subject_id for s in subjects],
                session=db_session,
            )

    return create_examiner


@pytest.fixture
def block_factory(db_session: Session, subject: Subject) -> t.Callable[..., AnswerBlock]:
    """Factory fixture for creating answer blocks, in the default subject unless one is given."""

    def create_block(
        block_code: str | None = None,
        subject_: Subject | None = None,
        exam_id: str = "EXAM-2024",
        question_number: int = 1,
        max_score: decimal.Decimal | str = "10",
    ) -> AnswerBlock:
        with db_session.begin():
            return block_storage.create(
                block_code=block_code or f"B{next(_sequence)}",
                subject_id=(subject_ or subject).subject_id,
                exam_id=exam_id,
                question_number=question_number,
                max_score=decimal.Decimal(max_score),
                session=db_session,
            )

    return create_block


@pytest.fixture
def auth_headers(container: GradeflowContainer) -> t.Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying a token for the given user."""

    def headers(user: User) -> dict[str, str]:
        token = container.auth().jwt_manager().create_access_token(user.user_id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture
def admin(user_factory: t.Callable[..., User]) -> User:
    return user_factory(email="admin@school.edu", name="Head Examiner", role=UserRole.Admin)


@pytest.fixture
def admin_headers(admin: User, auth_headers: t.Callable[[User], dict[str, str]]) -> dict[str, str]:
    return auth_headers(admin)

from __future__ import annotations

import sqlalchemy as sqla

from gradeflow.core import di
from gradeflow.model import Subject, SubjectID

from . import Session
from .table import subjects


def get(
    *,
    subject_id: SubjectID | None = None,
    code: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> Subject | None:
    if (subject_id is None) == (code is None):
        raise ValueError("exactly one of subject_id or code must be provided")

    stmt = sqla.select(subjects.__table__)
    if subject_id is not None:
        stmt = stmt.where(subjects.subject_id == subject_id)
    else:
        stmt = stmt.where(subjects.code == code)
    row = session.execute(stmt).mappings().one_or_none()
    return Subject(**row) if row else None


def find(*, session: Session = di.Provide["storage.persistent.session"]) -> tuple[Subject, ...]:
    rows = session.execute(sqla.select(subjects.__table__).order_by(subjects.code)).mappings().all()
    return tuple(Subject(**row) for row in rows)


def create(
    *,
    code: str,
    name: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> Subject:
    subject = subjects(subject_id=SubjectID(), code=code, name=name)
    session.add(subject)
    session.flush()
    result = get(subject_id=subject.subject_id, session=session)
    assert result is not None
    return result

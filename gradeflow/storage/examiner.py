from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from gradeflow.core import di
from gradeflow.lib import NotSet
from gradeflow.model import Examiner, ExaminerID, ExaminerLoad, OpenStatuses, SubjectID, UserID

from . import Session
from .table import examiner_subjects, examiners, grading_assignments


def _subject_ids(examiner_ids: t.Collection[ExaminerID], session: Session) -> dict[ExaminerID, list[SubjectID]]:
    if not examiner_ids:
        return {}
    stmt = (
        sqla
        .select(examiner_subjects.examiner_id, examiner_subjects.subject_id)
        .where(examiner_subjects.examiner_id.in_(examiner_ids))
        .order_by(examiner_subjects.subject_id)
    )
    qualified: dict[ExaminerID, list[SubjectID]] = {eid: [] for eid in examiner_ids}
    for examiner_id, subject_id in session.execute(stmt).all():
        qualified[examiner_id].append(subject_id)
    return qualified


def get(
    *,
    examiner_id: ExaminerID | None = None,
    examiner_code: str | None = None,
    user_id: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> Examiner | None:
    """Get an examiner by ID, examiner code, or linked user.

    Exactly one identifier must be provided.
    """
    given = [v for v in (examiner_id, examiner_code, user_id) if v is not None]
    if len(given) != 1:
        raise ValueError("exactly one of examiner_id, examiner_code or user_id must be provided")

    stmt = sqla.select(examiners.__table__)
    if examiner_id is not None:
        stmt = stmt.where(examiners.examiner_id == examiner_id)
    elif examiner_code is not None:
        stmt = stmt.where(examiners.examiner_code == examiner_code)
    else:
        stmt = stmt.where(examiners.user_id == user_id)

    row = session.execute(stmt).mappings().one_or_none()
    if row is None:
        return None
    subject_ids = _subject_ids([row["examiner_id"]], session)
    return Examiner(**row, subject_ids=subject_ids[row["examiner_id"]])


def find_eligible(
    *,
    subject_id: SubjectID,
    exclude_block_code: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[ExaminerLoad, ...]:
    """Active examiners qualified for `subject_id`, least loaded first.

    Load is the number of open (assigned, in progress or overdue)
    assignments; ties are broken by examiner_id. When `exclude_block_code`
    is given, examiners who already hold any round of that block are left out.
    """
    load = (
        sqla
        .select(grading_assignments.examiner_id, sqla.func.count().label("open_assignments"))
        .where(grading_assignments.status.in_(sorted(OpenStatuses, key=lambda s: s.value)))
        .group_by(grading_assignments.examiner_id)
        .subquery()
    )
    open_assignments = sqla.func.coalesce(load.c.open_assignments, 0).label("open_assignments")

    stmt = (
        sqla
        .select(examiners.__table__, open_assignments)
        .join(examiner_subjects, examiner_subjects.examiner_id == examiners.examiner_id)
        .outerjoin(load, load.c.examiner_id == examiners.examiner_id)
        .where(examiner_subjects.subject_id == subject_id)
        .where(examiners.is_active.is_(True))
        .order_by(open_assignments.asc(), examiners.examiner_id.asc())
    )
    if exclude_block_code is not None:
        already = sqla.select(grading_assignments.examiner_id).where(
            grading_assignments.block_code == exclude_block_code
        )
        stmt = stmt.where(examiners.examiner_id.not_in(already))

    rows = session.execute(stmt).mappings().all()
    qualified = _subject_ids([row["examiner_id"] for row in rows], session)
    loads: list[ExaminerLoad] = []
    for row in rows:
        fields = {k: v for k, v in row.items() if k != "open_assignments"}
        examiner = Examiner(**fields, subject_ids=qualified[row["examiner_id"]])
        loads.append(ExaminerLoad(examiner=examiner, open_assignments=row["open_assignments"]))
    return tuple(loads)


def create(
    *,
    examiner_code: str,
    name: str,
    user_id: UserID | None = None,
    is_active: bool = True,
    subject_ids: t.Iterable[SubjectID] = (),
    session: Session = di.Provide["storage.persistent.session"],
) -> Examiner:
    examiner = examiners(
        examiner_id=ExaminerID(),
        examiner_code=examiner_code,
        name=name,
        user_id=user_id,
        is_active=is_active,
    )
    session.add(examiner)
    session.flush()
    for subject_id in set(subject_ids):
        session.add(examiner_subjects(examiner_id=examiner.examiner_id, subject_id=subject_id))
    session.flush()
    result = get(examiner_id=examiner.examiner_id, session=session)
    assert result is not None
    return result


def update(
    examiner_id: ExaminerID,
    *,
    name: str | NotSet = NotSet(),
    is_active: bool | NotSet = NotSet(),
    user_id: UserID | None | NotSet = NotSet(),
    add_subjects: t.Iterable[SubjectID] = (),
    remove_subjects: t.Iterable[SubjectID] = (),
    session: Session = di.Provide["storage.persistent.session"],
) -> Examiner:
    """Update an examiner and their subject qualifications.

    Raises:
        KeyError: If examiner_id does not correspond to an examiner
    """
    values: dict[str, t.Any] = {}
    if not isinstance(name, NotSet):
        values["name"] = name
    if not isinstance(is_active, NotSet):
        values["is_active"] = is_active
    if not isinstance(user_id, NotSet):
        values["user_id"] = user_id

    stmt = (
        sqla
        .update(examiners)
        .where(examiners.examiner_id == examiner_id)
        .values(**(values or {"examiner_id": examiner_id}))
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Examiner {examiner_id} not found")

    current = set(_subject_ids([examiner_id], session)[examiner_id])
    for subject_id in set(add_subjects) - current:
        session.add(examiner_subjects(examiner_id=examiner_id, subject_id=subject_id))
    if removed := set(remove_subjects) & current:
        session.execute(
            sqla.delete(examiner_subjects).where(
                examiner_subjects.examiner_id == examiner_id,
                examiner_subjects.subject_id.in_(removed),
            )
        )
    session.flush()

    updated = get(examiner_id=examiner_id, session=session)
    assert updated is not None
    return updated

from __future__ import annotations

import datetime
import typing as t

import sqlalchemy as sqla

from gradeflow.core import di
from gradeflow.lib import NotSet
from gradeflow.model import AssignmentID, AssignmentStats, AssignmentStatus, ExaminerID, GradingAssignment, Priority, \
    UserID

from . import Session
from .table import grading_assignments


def get(
    assignment_id: AssignmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingAssignment | None:
    """Get a grading assignment by ID."""
    stmt = sqla.select(grading_assignments.__table__).where(grading_assignments.assignment_id == assignment_id)
    row = session.execute(stmt).mappings().one_or_none()
    return GradingAssignment(**row) if row else None


def _filtered(
    stmt: sqla.Select[t.Any],
    *,
    examiner_id: ExaminerID | None,
    block_code: str | None,
    status: AssignmentStatus | t.Collection[AssignmentStatus] | None,
    round_number: int | None,
    priority: Priority | None,
) -> sqla.Select[t.Any]:
    if examiner_id is not None:
        stmt = stmt.where(grading_assignments.examiner_id == examiner_id)
    if block_code is not None:
        stmt = stmt.where(grading_assignments.block_code == block_code)
    if isinstance(status, AssignmentStatus):
        stmt = stmt.where(grading_assignments.status == status)
    elif status is not None:
        stmt = stmt.where(grading_assignments.status.in_(list(status)))
    if round_number is not None:
        stmt = stmt.where(grading_assignments.round_number == round_number)
    if priority is not None:
        stmt = stmt.where(grading_assignments.priority == priority)
    return stmt


def find(
    *,
    examiner_id: ExaminerID | None = None,
    block_code: str | None = None,
    status: AssignmentStatus | t.Collection[AssignmentStatus] | None = None,
    round_number: int | None = None,
    priority: Priority | None = None,
    limit: int | None = None,
    offset: int = 0,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingAssignment, ...]:
    """Find assignments matching criteria.

    Ordered by urgency: high priority first, then earliest deadline (those
    without a deadline last), then most recently assigned.
    """
    urgency = sqla.case(
        (grading_assignments.priority == Priority.High, 0),
        (grading_assignments.priority == Priority.Medium, 1),
        else_=2,
    )
    stmt = _filtered(
        sqla.select(grading_assignments.__table__),
        examiner_id=examiner_id,
        block_code=block_code,
        status=status,
        round_number=round_number,
        priority=priority,
    ).order_by(
        urgency,
        grading_assignments.deadline.is_(None),
        grading_assignments.deadline.asc(),
        grading_assignments.assigned_at.desc(),
        grading_assignments.assignment_id,
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)
    rows = session.execute(stmt).mappings().all()
    return tuple(GradingAssignment(**row) for row in rows)


def count(
    *,
    examiner_id: ExaminerID | None = None,
    block_code: str | None = None,
    status: AssignmentStatus | t.Collection[AssignmentStatus] | None = None,
    round_number: int | None = None,
    priority: Priority | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    stmt = _filtered(
        sqla.select(sqla.func.count()).select_from(grading_assignments),
        examiner_id=examiner_id,
        block_code=block_code,
        status=status,
        round_number=round_number,
        priority=priority,
    )
    return session.execute(stmt).scalar_one()


def for_block(
    block_code: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingAssignment, ...]:
    """All assignments of a block, ordered by round."""
    stmt = (
        sqla
        .select(grading_assignments.__table__)
        .where(grading_assignments.block_code == block_code)
        .order_by(grading_assignments.round_number, grading_assignments.assigned_at)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(GradingAssignment(**row) for row in rows)


def create(
    *,
    block_code: str,
    examiner_id: ExaminerID,
    round_number: int,
    priority: Priority = Priority.Medium,
    deadline: datetime.datetime | None = None,
    assigned_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingAssignment:
    """Create a new assignment.

    Raises:
        sqlalchemy.exc.IntegrityError: on a duplicate (block, round, examiner)
    """
    assignment = grading_assignments(
        assignment_id=AssignmentID(),
        block_code=block_code,
        examiner_id=examiner_id,
        round_number=round_number,
        priority=priority,
        deadline=deadline,
        assigned_by=assigned_by,
    )
    session.add(assignment)
    session.flush()
    result = get(assignment.assignment_id, session=session)
    assert result is not None
    return result


def update(
    assignment_id: AssignmentID,
    *,
    status: AssignmentStatus | NotSet = NotSet(),
    priority: Priority | NotSet = NotSet(),
    deadline: datetime.datetime | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingAssignment:
    """Update an assignment.

    Uses NotSet sentinel for parameters where None may be a valid value.

    Raises:
        KeyError: If assignment_id does not correspond to an assignment
    """
    values: dict[str, t.Any] = {}
    if not isinstance(status, NotSet):
        values["status"] = status
    if not isinstance(priority, NotSet):
        values["priority"] = priority
    if not isinstance(deadline, NotSet):
        values["deadline"] = deadline

    stmt = (
        sqla
        .update(grading_assignments)
        .where(grading_assignments.assignment_id == assignment_id)
        .values(**(values or {"assignment_id": assignment_id}))
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Assignment {assignment_id} not found")

    session.flush()
    updated = get(assignment_id, session=session)
    assert updated is not None
    return updated


def delete(
    assignment_id: AssignmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> bool:
    """Delete an assignment.

    Returns:
        True if an assignment was deleted, False if not found
    """
    stmt = sqla.delete(grading_assignments).where(grading_assignments.assignment_id == assignment_id)
    result = session.execute(stmt)
    return bool(result.rowcount)  # pyright: ignore[reportUnknownArgumentType, reportAttributeAccessIssue]


def mark_overdue(
    now: datetime.datetime,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Flag assigned or in-progress work whose deadline has passed.

    Returns:
        the number of assignments marked overdue
    """
    stmt = (
        sqla
        .update(grading_assignments)
        .where(grading_assignments.status.in_([AssignmentStatus.Assigned, AssignmentStatus.InProgress]))
        .where(grading_assignments.deadline.is_not(None), grading_assignments.deadline < now)
        .values(status=AssignmentStatus.Overdue)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    session.flush()
    return result.rowcount  # pyright: ignore[reportAttributeAccessIssue]


def stats(
    *,
    examiner_id: ExaminerID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> AssignmentStats:
    stmt = sqla.select(grading_assignments.status, sqla.func.count()).group_by(grading_assignments.status)
    if examiner_id is not None:
        stmt = stmt.where(grading_assignments.examiner_id == examiner_id)
    counts = {status: n for status, n in session.execute(stmt).all()}
    return AssignmentStats(
        total=sum(counts.values()),
        assigned=counts.get(AssignmentStatus.Assigned, 0),
        in_progress=counts.get(AssignmentStatus.InProgress, 0),
        completed=counts.get(AssignmentStatus.Completed, 0),
        overdue=counts.get(AssignmentStatus.Overdue, 0),
    )

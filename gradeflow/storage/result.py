from __future__ import annotations

import decimal
import typing as t

import sqlalchemy as sqla

from gradeflow.core import di
from gradeflow.lib import NotSet
from gradeflow.lib.util import round_score, to_decimal
from gradeflow.model import AssignmentID, ExaminerID, GradingResult, ResultID, ResultStats, RoundScore

from . import Session
from .table import examiners, grading_results


def get(
    *,
    result_id: ResultID | None = None,
    assignment_id: AssignmentID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingResult | None:
    """Get a result by its ID or by the assignment it was submitted for."""
    if (result_id is None) == (assignment_id is None):
        raise ValueError("exactly one of result_id or assignment_id must be provided")

    stmt = sqla.select(grading_results.__table__)
    if result_id is not None:
        stmt = stmt.where(grading_results.result_id == result_id)
    else:
        stmt = stmt.where(grading_results.assignment_id == assignment_id)
    row = session.execute(stmt).mappings().one_or_none()
    return GradingResult(**row) if row else None


def _filtered(
    stmt: sqla.Select[t.Any],
    *,
    examiner_id: ExaminerID | None,
    block_code: str | None,
    is_final: bool | None,
) -> sqla.Select[t.Any]:
    if examiner_id is not None:
        stmt = stmt.where(grading_results.examiner_id == examiner_id)
    if block_code is not None:
        stmt = stmt.where(grading_results.block_code == block_code)
    if is_final is not None:
        stmt = stmt.where(grading_results.is_final.is_(is_final))
    return stmt


def find(
    *,
    examiner_id: ExaminerID | None = None,
    block_code: str | None = None,
    is_final: bool | None = None,
    limit: int | None = None,
    offset: int = 0,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingResult, ...]:
    """Find results, most recently graded first."""
    stmt = _filtered(
        sqla.select(grading_results.__table__),
        examiner_id=examiner_id,
        block_code=block_code,
        is_final=is_final,
    ).order_by(grading_results.graded_at.desc(), grading_results.result_id)
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)
    rows = session.execute(stmt).mappings().all()
    return tuple(GradingResult(**row) for row in rows)


def count(
    *,
    examiner_id: ExaminerID | None = None,
    block_code: str | None = None,
    is_final: bool | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    stmt = _filtered(
        sqla.select(sqla.func.count()).select_from(grading_results),
        examiner_id=examiner_id,
        block_code=block_code,
        is_final=is_final,
    )
    return session.execute(stmt).scalar_one()


def for_block(
    block_code: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[RoundScore, ...]:
    """The scores recorded for a block, ordered by round, with examiner names."""
    stmt = (
        sqla
        .select(
            grading_results.round_number,
            grading_results.examiner_id,
            grading_results.score,
            grading_results.result_id,
            examiners.name.label("examiner_name"),
        )
        .join(examiners, examiners.examiner_id == grading_results.examiner_id)
        .where(grading_results.block_code == block_code)
        .order_by(grading_results.round_number)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(RoundScore(**row) for row in rows)


def create(
    *,
    assignment_id: AssignmentID,
    block_code: str,
    round_number: int,
    examiner_id: ExaminerID,
    score: decimal.Decimal,
    comments: str | None = None,
    criteria_scores: dict[str, decimal.Decimal] | None = None,
    grading_time_seconds: int | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingResult:
    """Record a submitted score.

    Raises:
        sqlalchemy.exc.IntegrityError: if the assignment already has a result
    """
    result = grading_results(
        result_id=ResultID(),
        assignment_id=assignment_id,
        block_code=block_code,
        round_number=round_number,
        examiner_id=examiner_id,
        score=score,
        comments=comments,
        criteria_scores=dict(criteria_scores) if criteria_scores is not None else None,
        grading_time_seconds=grading_time_seconds,
    )
    session.add(result)
    session.flush()
    created = get(result_id=result.result_id, session=session)
    assert created is not None
    return created


def update(
    result_id: ResultID,
    *,
    comments: str | None | NotSet = NotSet(),
    criteria_scores: dict[str, decimal.Decimal] | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingResult:
    """Update the free-form parts of a result. The score itself never changes.

    Raises:
        KeyError: If result_id does not correspond to a result
    """
    values: dict[str, t.Any] = {}
    if not isinstance(comments, NotSet):
        values["comments"] = comments
    if not isinstance(criteria_scores, NotSet):
        values["criteria_scores"] = dict(criteria_scores) if criteria_scores is not None else None

    stmt = (
        sqla
        .update(grading_results)
        .where(grading_results.result_id == result_id)
        .values(**(values or {"result_id": result_id}))
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Result {result_id} not found")

    session.flush()
    updated = get(result_id=result_id, session=session)
    assert updated is not None
    return updated


def mark_final(
    block_code: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Flag every result of a block as final. Returns the number of results."""
    stmt = sqla.update(grading_results).where(grading_results.block_code == block_code).values(is_final=True)
    result = session.execute(stmt)
    session.flush()
    return result.rowcount  # pyright: ignore[reportAttributeAccessIssue]


def stats(
    *,
    examiner_id: ExaminerID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> ResultStats:
    stmt = sqla.select(
        sqla.func.count().label("total_graded"),
        sqla.func.coalesce(sqla.func.sum(sqla.case((grading_results.is_final.is_(True), 1), else_=0)), 0).label(
            "final_count"
        ),
        sqla.func.avg(grading_results.score).label("avg_score"),
        sqla.func.min(grading_results.score).label("min_score"),
        sqla.func.max(grading_results.score).label("max_score"),
        sqla.func.avg(grading_results.grading_time_seconds).label("avg_grading_time"),
    ).select_from(grading_results)
    if examiner_id is not None:
        stmt = stmt.where(grading_results.examiner_id == examiner_id)
    row = session.execute(stmt).mappings().one()

    def rounded(v: t.Any) -> decimal.Decimal | None:
        return round_score(v) if v is not None else None

    return ResultStats(
        total_graded=row["total_graded"],
        final_count=row["final_count"],
        avg_score=rounded(row["avg_score"]),
        min_score=to_decimal(row["min_score"]) if row["min_score"] is not None else None,
        max_score=to_decimal(row["max_score"]) if row["max_score"] is not None else None,
        avg_grading_time=rounded(row["avg_grading_time"]),
    )

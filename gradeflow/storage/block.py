from __future__ import annotations

import datetime
import decimal

import sqlalchemy as sqla

from gradeflow.core import di
from gradeflow.model import AnswerBlock, PendingBlock, SubjectID, UserID

from . import Session
from .table import answer_blocks, grading_assignments


def get(
    block_code: str,
    *,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> AnswerBlock | None:
    """Get an answer block by its code.

    With `for_update`, the row is locked until the surrounding transaction
    ends (a no-op on backends without row locks).
    """
    stmt = sqla.select(answer_blocks.__table__).where(answer_blocks.block_code == block_code)
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).mappings().one_or_none()
    return AnswerBlock(**row) if row else None


def count(
    *,
    approved: bool | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    stmt = sqla.select(sqla.func.count()).select_from(answer_blocks)
    if approved is not None:
        stmt = stmt.where(answer_blocks.approved_at.is_not(None) if approved else answer_blocks.approved_at.is_(None))
    return session.execute(stmt).scalar_one()


def create(
    *,
    block_code: str,
    subject_id: SubjectID,
    exam_id: str,
    question_number: int,
    max_score: decimal.Decimal,
    session: Session = di.Provide["storage.persistent.session"],
) -> AnswerBlock:
    block = answer_blocks(
        block_code=block_code,
        subject_id=subject_id,
        exam_id=exam_id,
        question_number=question_number,
        max_score=max_score,
    )
    session.add(block)
    session.flush()
    result = get(block_code, session=session)
    assert result is not None
    return result


def touch(
    block_code: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    """Bump the block's version, returning the new one.

    Raises:
        KeyError: If block_code does not correspond to a block
    """
    stmt = (
        sqla
        .update(answer_blocks)
        .where(answer_blocks.block_code == block_code)
        .values(version=answer_blocks.version + 1)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Block {block_code} not found")
    version = sqla.select(answer_blocks.version).where(answer_blocks.block_code == block_code)
    return session.execute(version).scalar_one()


def approve(
    block_code: str,
    *,
    final_score: decimal.Decimal,
    approved_at: datetime.datetime,
    approved_by: UserID | None = None,
    decision_reason: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> AnswerBlock:
    """Record the final score of a block.

    Only an unapproved block is updated.

    Raises:
        KeyError: If no unapproved block with that code exists
    """
    stmt = (
        sqla
        .update(answer_blocks)
        .where(answer_blocks.block_code == block_code, answer_blocks.approved_at.is_(None))
        .values(
            final_score=final_score,
            approved_at=approved_at,
            approved_by=approved_by,
            decision_reason=decision_reason,
            version=answer_blocks.version + 1,
        )
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Unapproved block {block_code} not found")
    session.flush()
    block = get(block_code, session=session)
    assert block is not None
    return block


def find_pending(
    *,
    subject_id: SubjectID | None = None,
    exam_id: str | None = None,
    limit: int | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[PendingBlock, ...]:
    """Unapproved blocks with fewer than two first/second-round assignments."""
    initial = grading_assignments.round_number.in_([1, 2])
    assigned = (
        sqla
        .select(grading_assignments.block_code, sqla.func.count().label("n"))
        .where(initial)
        .group_by(grading_assignments.block_code)
        .subquery()
    )
    stmt = (
        sqla
        .select(answer_blocks.__table__)
        .outerjoin(assigned, assigned.c.block_code == answer_blocks.block_code)
        .where(answer_blocks.approved_at.is_(None))
        .where(sqla.func.coalesce(assigned.c.n, 0) < 2)
        .order_by(answer_blocks.exam_id, answer_blocks.question_number, answer_blocks.block_code)
    )
    if subject_id is not None:
        stmt = stmt.where(answer_blocks.subject_id == subject_id)
    if exam_id is not None:
        stmt = stmt.where(answer_blocks.exam_id == exam_id)
    if limit is not None:
        stmt = stmt.limit(limit)

    rows = session.execute(stmt).mappings().all()
    codes = [row["block_code"] for row in rows]
    rounds: dict[str, list[int]] = {code: [] for code in codes}
    if codes:
        rstmt = (
            sqla
            .select(grading_assignments.block_code, grading_assignments.round_number)
            .where(grading_assignments.block_code.in_(codes), initial)
            .order_by(grading_assignments.round_number)
        )
        for code, round_number in session.execute(rstmt).all():
            rounds[code].append(round_number)

    return tuple(
        PendingBlock(
            block_code=row["block_code"],
            subject_id=row["subject_id"],
            exam_id=row["exam_id"],
            question_number=row["question_number"],
            max_score=row["max_score"],
            assigned_rounds=rounds[row["block_code"]],
        )
        for row in rows
    )

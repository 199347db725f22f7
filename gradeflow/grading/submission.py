"""Recording examiners' scores."""

from __future__ import annotations

import decimal

from sqlalchemy.exc import IntegrityError

from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.core.provider import LoggingProvider
from gradeflow.lib import NotSet
from gradeflow.model import AssignmentID, AssignmentStatus, ComparisonOutcome, ExaminerID, GradingResult, ResultID
from gradeflow.storage import Session
from gradeflow.storage import assignment as assignment_storage
from gradeflow.storage import result as result_storage

from .block import check_score, lock_block
from .comparator import compare
from .errors import AlreadySubmitted, AssignmentNotFound, BlockAlreadyApproved, ResultImmutable, ResultNotFound


@di.inject
def submit_result(
    assignment_id: AssignmentID,
    score: decimal.Decimal,
    *,
    comments: str | None = None,
    criteria_scores: dict[str, decimal.Decimal] | None = None,
    grading_time_seconds: int | None = None,
    examiner_id: ExaminerID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
    logging: LoggingProvider = di.Provide["logging"],
) -> tuple[GradingResult, ComparisonOutcome]:
    """Record the score for an assignment and complete it.

    When `examiner_id` is given, the assignment must belong to that examiner.
    Must be called inside a transaction.

    Returns:
        the stored result, and the block's comparison including it

    Raises:
        AssignmentNotFound: if there is no such assignment (for this examiner)
        BlockAlreadyApproved: if the block's score is already final
        AlreadySubmitted: if the assignment already has a result
        OutOfRange: if the score is negative, above the block's maximum or
            more precise than two decimal places
    """
    logger = logging.get_logger()
    assignment = assignment_storage.get(assignment_id, session=session)
    if assignment is None or (examiner_id is not None and assignment.examiner_id != examiner_id):
        raise AssignmentNotFound(f"Assignment {assignment_id} not found", assignment_id=assignment_id)

    block = lock_block(assignment.block_code, session=session)
    if block.is_approved:
        raise BlockAlreadyApproved(f"Block {block.block_code} is already approved", block_code=block.block_code)
    if result_storage.get(assignment_id=assignment_id, session=session) is not None:
        raise AlreadySubmitted(f"A result was already submitted for {assignment_id}", assignment_id=assignment_id)
    check_score(score, block)

    try:
        result = result_storage.create(
            assignment_id=assignment_id,
            block_code=block.block_code,
            round_number=assignment.round_number,
            examiner_id=assignment.examiner_id,
            score=score,
            comments=comments,
            criteria_scores=criteria_scores,
            grading_time_seconds=grading_time_seconds,
            session=session,
        )
    except IntegrityError as e:
        raise AlreadySubmitted(
            f"A result was already submitted for {assignment_id}", assignment_id=assignment_id
        ) from e
    assignment_storage.update(assignment_id, status=AssignmentStatus.Completed, session=session)

    outcome = compare(
        block.block_code,
        result_storage.for_block(block.block_code, session=session),
        tolerance=grading.tolerance,
        block=block,
    )
    logger.info(
        "submitted result",
        extra={
            "result_id": result.result_id,
            "assignment_id": assignment_id,
            "block_code": block.block_code,
            "round_number": result.round_number,
            "score": score,
            "comparison": outcome.status,
        },
    )
    return result, outcome


@di.inject
def update_result(
    result_id: ResultID,
    *,
    score: decimal.Decimal | NotSet = NotSet(),
    comments: str | None | NotSet = NotSet(),
    criteria_scores: dict[str, decimal.Decimal] | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
    logging: LoggingProvider = di.Provide["logging"],
) -> GradingResult:
    """Edit the comments or criteria breakdown of a result.

    The score itself is immutable; passing it is allowed only if unchanged.

    Raises:
        ResultNotFound: if there is no such result
        BlockAlreadyApproved: once the block's score is final
        ResultImmutable: if a different score is supplied
    """
    logger = logging.get_logger()
    result = result_storage.get(result_id=result_id, session=session)
    if result is None:
        raise ResultNotFound(f"Result {result_id} not found", result_id=result_id)

    block = lock_block(result.block_code, session=session)
    if block.is_approved:
        raise BlockAlreadyApproved(f"Block {block.block_code} is already approved", block_code=block.block_code)
    if not isinstance(score, NotSet) and score != result.score:
        raise ResultImmutable(
            f"The score of {result_id} cannot be changed from {result.score}", result_id=result_id
        )

    updated = result_storage.update(result_id, comments=comments, criteria_scores=criteria_scores, session=session)
    logger.info("updated result", extra={"result_id": result_id, "block_code": result.block_code})
    return updated

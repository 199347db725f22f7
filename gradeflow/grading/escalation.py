"""Escalating disputed blocks to a third examiner."""

from __future__ import annotations

import datetime

from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.core.provider import LoggingProvider
from gradeflow.model import ComparisonStatus, ExaminerID, GradingAssignment, Priority, UserID
from gradeflow.storage import Session
from gradeflow.storage import assignment as assignment_storage
from gradeflow.storage import examiner as examiner_storage
from gradeflow.storage import result as result_storage

from .assignment import check_eligible, check_unassigned, insert_assignment
from .block import lock_block
from .comparator import compare
from .errors import ExaminerNotFound, NoEligibleExaminer, NotEligible, ThirdRoundAlreadyAssigned


@di.inject
def assign_third_round(
    block_code: str,
    *,
    priority: Priority | None = None,
    examiner_id: ExaminerID | None = None,
    deadline: datetime.datetime | None = None,
    assigned_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
    logging: LoggingProvider = di.Provide["logging"],
) -> GradingAssignment:
    """Create the round 3 assignment of a block whose first two scores disagree.

    Without an explicit `examiner_id`, the least loaded eligible examiner who
    has not yet graded the block is chosen. Must be called inside a
    transaction.

    Raises:
        NotEligible: unless the block needs a third round
        ThirdRoundAlreadyAssigned: if round 3 already has an examiner
        ExaminerNotFound, ExaminerNotEligible, ExaminerAlreadyAssigned: for an
            explicitly chosen examiner who cannot take the round
        NoEligibleExaminer: if no examiner can be chosen
    """
    logger = logging.get_logger()
    block = lock_block(block_code, session=session)
    outcome = compare(
        block_code,
        result_storage.for_block(block_code, session=session),
        tolerance=grading.tolerance,
        block=block,
    )
    if outcome.status is not ComparisonStatus.NeedsThirdRound or block.is_approved:
        raise NotEligible(
            f"Block {block_code} is {outcome.status.value} and does not need a third round",
            block_code=block_code,
            status=outcome.status,
        )

    existing = assignment_storage.for_block(block_code, session=session)
    if any(a.round_number == 3 for a in existing):
        raise ThirdRoundAlreadyAssigned(f"Round 3 of {block_code} is already assigned", block_code=block_code)

    if examiner_id is not None:
        examiner = examiner_storage.get(examiner_id=examiner_id, session=session)
        if examiner is None:
            raise ExaminerNotFound(f"Examiner {examiner_id} not found", examiner_id=examiner_id)
        check_unassigned(block, examiner_id, 3, existing)
        check_eligible(block, examiner)
    else:
        eligible = examiner_storage.find_eligible(
            subject_id=block.subject_id, exclude_block_code=block_code, session=session
        )
        if not eligible:
            raise NoEligibleExaminer(f"No eligible examiner left for {block_code}", block_code=block_code)
        examiner_id = eligible[0].examiner.examiner_id

    assignment = insert_assignment(
        block,
        examiner_id,
        3,
        priority=priority or grading.third_round_priority,
        deadline=deadline,
        assigned_by=assigned_by,
        session=session,
    )
    logger.info(
        "assigned third round",
        extra={
            "assignment_id": assignment.assignment_id,
            "block_code": block_code,
            "examiner_id": examiner_id,
            "score_difference": outcome.score_difference,
        },
    )
    return assignment

"""Creating, updating and retiring grading assignments."""

from __future__ import annotations

import datetime
import typing as t

from sqlalchemy.exc import IntegrityError

from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.core.provider import LoggingProvider, TimestampProvider
from gradeflow.lib import NotSet
from gradeflow.model import AnswerBlock, AssignmentID, AssignmentStatus, AutoAssignReport, BlockAssignmentOutcome, \
    ComparisonStatus, Examiner, ExaminerID, GradingAssignment, Priority, UserID
from gradeflow.storage import Session
from gradeflow.storage import assignment as assignment_storage
from gradeflow.storage import examiner as examiner_storage
from gradeflow.storage import result as result_storage

from .block import lock_block
from .comparator import compare
from .errors import AssignmentCompleted, AssignmentNotFound, BlockAlreadyApproved, CannotDeleteCompleted, \
    DuplicateAssignment, ExaminerAlreadyAssigned, ExaminerNotEligible, ExaminerNotFound, GradingError, InvalidRound, \
    InvalidStatusTransition, NoEligibleExaminer, RoundAlreadyAssigned

Rounds: t.Final[range] = range(1, 4)


def check_round(round_number: int) -> int:
    if round_number not in Rounds:
        raise InvalidRound(f"Round must be 1, 2 or 3, got {round_number}", round_number=round_number)
    return round_number


def check_unassigned(
    block: AnswerBlock,
    examiner_id: ExaminerID,
    round_number: int,
    existing: t.Iterable[GradingAssignment],
) -> None:
    """Raise the conflict that a new (block, round, examiner) assignment would cause, if any"""
    for assignment in existing:
        if assignment.round_number == round_number and assignment.examiner_id == examiner_id:
            raise DuplicateAssignment(
                f"Examiner {examiner_id} already holds round {round_number} of {block.block_code}",
                block_code=block.block_code,
            )
    for assignment in existing:
        if assignment.round_number == round_number:
            raise RoundAlreadyAssigned(
                f"Round {round_number} of {block.block_code} is already assigned",
                block_code=block.block_code,
            )
        if assignment.examiner_id == examiner_id:
            raise ExaminerAlreadyAssigned(
                f"Examiner {examiner_id} already grades {block.block_code} in round {assignment.round_number}",
                block_code=block.block_code,
            )


def check_eligible(block: AnswerBlock, examiner: Examiner) -> Examiner:
    if not examiner.is_active:
        raise ExaminerNotEligible(f"Examiner {examiner.examiner_id} is inactive", examiner_id=examiner.examiner_id)
    if not examiner.is_qualified(block.subject_id):
        raise ExaminerNotEligible(
            f"Examiner {examiner.examiner_id} is not qualified for subject {block.subject_id}",
            examiner_id=examiner.examiner_id,
        )
    return examiner


def insert_assignment(
    block: AnswerBlock,
    examiner_id: ExaminerID,
    round_number: int,
    *,
    priority: Priority,
    deadline: datetime.datetime | None,
    assigned_by: UserID | None,
    session: Session,
) -> GradingAssignment:
    """Store an assignment whose preconditions have been checked under the block lock"""
    try:
        return assignment_storage.create(
            block_code=block.block_code,
            examiner_id=examiner_id,
            round_number=round_number,
            priority=priority,
            deadline=deadline,
            assigned_by=assigned_by,
            session=session,
        )
    except IntegrityError as e:
        raise DuplicateAssignment(
            f"Examiner {examiner_id} already holds round {round_number} of {block.block_code}",
            block_code=block.block_code,
        ) from e


@di.inject
def create_assignment(
    block_code: str,
    examiner_id: ExaminerID,
    round_number: int,
    *,
    priority: Priority | None = None,
    deadline: datetime.datetime | None = None,
    assigned_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
    logging: LoggingProvider = di.Provide["logging"],
) -> GradingAssignment:
    """Assign one round of a block to an examiner.

    Must be called inside a transaction.

    Raises:
        InvalidRound: for a round outside 1..3, or a third round on a block
            whose first two rounds have not disagreed
        BlockNotFound, ExaminerNotFound: for unknown references
        BlockAlreadyApproved: if the block's score is already final
        DuplicateAssignment, RoundAlreadyAssigned, ExaminerAlreadyAssigned:
            if the assignment clashes with an existing one
        ExaminerNotEligible: if the examiner is inactive or unqualified
    """
    logger = logging.get_logger()
    check_round(round_number)
    block = lock_block(block_code, session=session)

    examiner = examiner_storage.get(examiner_id=examiner_id, session=session)
    if examiner is None:
        raise ExaminerNotFound(f"Examiner {examiner_id} not found", examiner_id=examiner_id)
    if block.is_approved:
        raise BlockAlreadyApproved(f"Block {block_code} is already approved", block_code=block_code)

    if round_number == 3:
        outcome = compare(
            block_code,
            result_storage.for_block(block_code, session=session),
            tolerance=grading.tolerance,
            block=block,
        )
        if outcome.status is not ComparisonStatus.NeedsThirdRound:
            raise InvalidRound(
                f"Round 3 can only be assigned to a block that needs a third round, {block_code} is "
                f"{outcome.status.value}",
                block_code=block_code,
            )

    check_unassigned(block, examiner_id, round_number, assignment_storage.for_block(block_code, session=session))
    check_eligible(block, examiner)

    assignment = insert_assignment(
        block,
        examiner_id,
        round_number,
        priority=priority or grading.default_priority,
        deadline=deadline,
        assigned_by=assigned_by,
        session=session,
    )
    logger.info(
        "created assignment",
        extra={
            "assignment_id": assignment.assignment_id,
            "block_code": block_code,
            "examiner_id": examiner_id,
            "round_number": round_number,
        },
    )
    return assignment


def _auto_assign_block(
    block_code: str,
    examiners_per_block: int,
    *,
    priority: Priority,
    deadline: datetime.datetime | None,
    assigned_by: UserID | None,
    session: Session,
) -> list[GradingAssignment]:
    block = lock_block(block_code, session=session)
    if block.is_approved:
        raise BlockAlreadyApproved(f"Block {block_code} is already approved", block_code=block_code)

    assigned = {a.round_number for a in assignment_storage.for_block(block_code, session=session)}
    missing = [r for r in range(1, examiners_per_block + 1) if r not in assigned]
    if not missing:
        raise RoundAlreadyAssigned(f"Block {block_code} is already fully assigned", block_code=block_code)

    eligible = examiner_storage.find_eligible(
        subject_id=block.subject_id, exclude_block_code=block_code, session=session
    )
    if len(eligible) < len(missing):
        raise NoEligibleExaminer(
            f"Block {block_code} needs {len(missing)} more examiner(s), {len(eligible)} eligible",
            block_code=block_code,
        )

    return [
        insert_assignment(
            block,
            load.examiner.examiner_id,
            round_number,
            priority=priority,
            deadline=deadline,
            assigned_by=assigned_by,
            session=session,
        )
        for round_number, load in zip(missing, eligible)
    ]


@di.inject
def auto_assign(
    block_codes: t.Iterable[str],
    *,
    examiners_per_block: int | None = None,
    priority: Priority | None = None,
    deadline: datetime.datetime | None = None,
    assigned_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
    logging: LoggingProvider = di.Provide["logging"],
) -> AutoAssignReport:
    """Fill the first rounds of each block with the least loaded eligible examiners.

    Each block is handled in its own transaction, so the session must not be in
    one already. A block that cannot be fully assigned gets no assignments at
    all, and its failure is reported rather than raised.
    """
    logger = logging.get_logger()
    per_block = examiners_per_block or grading.examiners_per_block
    if per_block not in (1, 2):
        raise InvalidRound(f"Examiners per block must be 1 or 2, got {per_block}")

    report = AutoAssignReport()
    for block_code in block_codes:
        try:
            with session.begin():
                created = _auto_assign_block(
                    block_code,
                    per_block,
                    priority=priority or grading.default_priority,
                    deadline=deadline,
                    assigned_by=assigned_by,
                    session=session,
                )
        except GradingError as e:
            logger.info(
                "could not auto-assign block",
                extra={"block_code": block_code, "kind": e.kind, "reason": e.message},
            )
            report.outcomes.append(BlockAssignmentOutcome(block_code=block_code, success=False, reason=e.message))
            continue

        logger.info(
            "auto-assigned block",
            extra={
                "block_code": block_code,
                "examiners": [a.examiner_id for a in created],
                "rounds": [a.round_number for a in created],
            },
        )
        report.outcomes.append(BlockAssignmentOutcome(block_code=block_code, success=True, assignments=created))

    return report


def _get_assignment(assignment_id: AssignmentID, session: Session) -> GradingAssignment:
    assignment = assignment_storage.get(assignment_id, session=session)
    if assignment is None:
        raise AssignmentNotFound(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
    return assignment


@di.inject
def delete_assignment(
    assignment_id: AssignmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
    logging: LoggingProvider = di.Provide["logging"],
) -> GradingAssignment:
    """Withdraw an assignment that has not been completed.

    Raises:
        AssignmentNotFound: if there is no such assignment
        CannotDeleteCompleted: if a result has already been submitted for it
    """
    logger = logging.get_logger()
    assignment = _get_assignment(assignment_id, session)
    lock_block(assignment.block_code, session=session)
    # re-read under the lock, a submission may have completed it meanwhile
    assignment = _get_assignment(assignment_id, session)
    if assignment.status is AssignmentStatus.Completed:
        raise CannotDeleteCompleted(
            f"Assignment {assignment_id} is completed and cannot be deleted", assignment_id=assignment_id
        )
    assignment_storage.delete(assignment_id, session=session)
    logger.info(
        "deleted assignment",
        extra={
            "assignment_id": assignment_id,
            "block_code": assignment.block_code,
            "round_number": assignment.round_number,
        },
    )
    return assignment


@di.inject
def update_assignment(
    assignment_id: AssignmentID,
    *,
    status: AssignmentStatus | NotSet = NotSet(),
    priority: Priority | NotSet = NotSet(),
    deadline: datetime.datetime | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
    logging: LoggingProvider = di.Provide["logging"],
) -> GradingAssignment:
    """Change the status, priority or deadline of an open assignment.

    Raises:
        AssignmentNotFound: if there is no such assignment
        AssignmentCompleted: if the assignment is already completed
        InvalidStatusTransition: when asked to complete it, which only a
            submission may do
    """
    logger = logging.get_logger()
    assignment = _get_assignment(assignment_id, session)
    lock_block(assignment.block_code, session=session)
    assignment = _get_assignment(assignment_id, session)
    if assignment.status is AssignmentStatus.Completed:
        raise AssignmentCompleted(f"Assignment {assignment_id} is completed", assignment_id=assignment_id)
    if status is AssignmentStatus.Completed:
        raise InvalidStatusTransition(
            "Assignments are completed by submitting a result", assignment_id=assignment_id
        )

    updated = assignment_storage.update(
        assignment_id, status=status, priority=priority, deadline=deadline, session=session
    )
    logger.info(
        "updated assignment",
        extra={
            "assignment_id": assignment_id,
            "status": updated.status,
            "priority": updated.priority,
            "deadline": updated.deadline,
        },
    )
    return updated


@di.inject
def mark_overdue(
    now: datetime.datetime | None = None,
    *,
    session: Session = di.Provide["storage.persistent.session"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
    logging: LoggingProvider = di.Provide["logging"],
) -> int:
    """Flag open assignments whose deadline has passed. Returns how many were flagged."""
    logger = logging.get_logger()
    now = now or utcnow()
    count = assignment_storage.mark_overdue(now, session=session)
    logger.info("marked assignments overdue", extra={"count": count, "now": now})
    return count

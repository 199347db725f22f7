"""Committing a block's final score."""

from __future__ import annotations

import decimal

from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.core.provider import LoggingProvider, TimestampProvider
from gradeflow.model import AnswerBlock, ComparisonOutcome, UserID
from gradeflow.storage import Session
from gradeflow.storage import block as block_storage
from gradeflow.storage import result as result_storage

from .block import check_score, lock_block
from .comparator import compare
from .errors import AlreadyApproved, ManualReviewRequired, NotResolvable


@di.inject
def approve_score(
    block_code: str,
    *,
    final_score: decimal.Decimal | None = None,
    decision_reason: str | None = None,
    approved_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
    utcnow: TimestampProvider = di.Provide["utcnow"],
    logging: LoggingProvider = di.Provide["logging"],
) -> tuple[AnswerBlock, ComparisonOutcome]:
    """Make a block's score final.

    The computed score is used unless `final_score` overrides it. A block whose
    three scores all disagree needs an explicit score. Must be called inside a
    transaction.

    Returns:
        the approved block, and its comparison at the time of approval

    Raises:
        AlreadyApproved: if the block was approved before
        NotResolvable: unless the block is matched or resolved by a third round
        ManualReviewRequired: if the outcome is flagged and no score is given
        OutOfRange: for an explicit score outside the block's range
    """
    logger = logging.get_logger()
    block = lock_block(block_code, session=session)
    if block.is_approved:
        raise AlreadyApproved(f"Block {block_code} was already approved", block_code=block_code)

    outcome = compare(
        block_code,
        result_storage.for_block(block_code, session=session),
        tolerance=grading.tolerance,
        block=block,
    )
    if not outcome.is_resolvable:
        raise NotResolvable(
            f"Block {block_code} is {outcome.status.value} and cannot be approved",
            block_code=block_code,
            status=outcome.status,
        )
    if final_score is None and outcome.needs_manual_review:
        raise ManualReviewRequired(
            f"Block {block_code} needs a manually chosen final score", block_code=block_code
        )

    if final_score is not None:
        score = check_score(final_score, block)
    else:
        assert outcome.final_score is not None
        score = outcome.final_score

    finalized = result_storage.mark_final(block_code, session=session)
    approved = block_storage.approve(
        block_code,
        final_score=score,
        approved_at=utcnow(),
        approved_by=approved_by,
        decision_reason=decision_reason,
        session=session,
    )
    logger.info(
        "approved score",
        extra={
            "block_code": block_code,
            "final_score": score,
            "computed_score": outcome.final_score,
            "status": outcome.status,
            "results": finalized,
        },
    )
    return approved, outcome.model_copy(update={"approved": True, "approved_score": score})

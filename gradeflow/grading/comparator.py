"""Score comparison between grading rounds.

`compare` is a pure function of a block's recorded scores; `compare_block`
loads those scores and applies the configured tolerance. Neither mutates
anything.
"""

from __future__ import annotations

import decimal
import itertools
import logging
import statistics
import typing as t

from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.lib.util import round_score
from gradeflow.model import AnswerBlock, ComparisonOutcome, ComparisonStatus, RoundScore
from gradeflow.storage import Session
from gradeflow.storage import result as result_storage

from .block import load_block

logger = logging.getLogger(__name__)


def _resolve_three(scores: t.Sequence[decimal.Decimal], tolerance: decimal.Decimal) -> tuple[decimal.Decimal, bool]:
    """Final score from three rounds, and whether it should be reviewed by hand.

    The two mutually closest scores are averaged. When two pairs are equally
    close, the median is taken instead. When even the closest pair disagrees
    beyond tolerance, all three are averaged and the result is flagged.
    """
    pairs = sorted(
        ((abs(a - b), a, b) for a, b in itertools.combinations(scores, 2)),
        key=lambda pair: pair[0],
    )
    closest, runner_up = pairs[0], pairs[1]
    if closest[0] > tolerance:
        return round_score(sum(scores) / len(scores)), True
    if closest[0] == runner_up[0]:
        return round_score(statistics.median(scores)), False
    return round_score((closest[1] + closest[2]) / 2), False


def compare(
    block_code: str,
    results: t.Sequence[RoundScore],
    *,
    tolerance: decimal.Decimal,
    max_score: decimal.Decimal | None = None,
    block: AnswerBlock | None = None,
) -> ComparisonOutcome:
    """Classify a block from its recorded scores, which must be ordered by round"""
    if block is not None:
        max_score = block.max_score
    approval = {
        "approved": block is not None and block.is_approved,
        "approved_score": block.final_score if block is not None else None,
    }
    outcome = {
        "block_code": block_code,
        "results": list(results),
        "max_score": max_score,
        "tolerance": tolerance,
        **approval,
    }

    if len(results) < 2:
        return ComparisonOutcome(
            status=ComparisonStatus.Pending,
            message=f"Waiting for two results, {len(results)} recorded",
            **outcome,
        )

    first, second = results[0], results[1]
    difference = abs(first.score - second.score)
    outcome["score_difference"] = difference

    if difference <= tolerance:
        return ComparisonOutcome(
            status=ComparisonStatus.Matched,
            final_score=round_score((first.score + second.score) / 2),
            message=f"Scores agree within tolerance ({difference} <= {tolerance})",
            **outcome,
        )

    third = next((r for r in results if r.round_number == 3), None)
    if third is None:
        return ComparisonOutcome(
            status=ComparisonStatus.NeedsThirdRound,
            message=f"Score difference {difference} exceeds tolerance {tolerance}, a third round is required",
            **outcome,
        )

    final_score, needs_review = _resolve_three([first.score, second.score, third.score], tolerance)
    message = "Resolved by third round"
    if needs_review:
        message = "Resolved by third round, but no two scores agree within tolerance: manual review required"
    return ComparisonOutcome(
        status=ComparisonStatus.ResolvedByThird,
        final_score=final_score,
        needs_manual_review=needs_review,
        message=message,
        **outcome,
    )


@di.inject
def compare_block(
    block_code: str,
    *,
    tolerance: decimal.Decimal | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    grading: GradingSettings = di.Provide["config.grading", di.as_(GradingSettings)],
) -> ComparisonOutcome:
    """Compare the recorded rounds of a block.

    Raises:
        MalformedBlockCode: if block_code is not a valid code
        BlockNotFound: if there is no such block
    """
    block = load_block(block_code, session=session)
    results = result_storage.for_block(block_code, session=session)
    outcome = compare(
        block_code,
        results,
        tolerance=grading.tolerance if tolerance is None else tolerance,
        block=block,
    )
    logger.debug(
        "compared block",
        extra={
            "block_code": block_code,
            "status": outcome.status,
            "score_difference": outcome.score_difference,
            "final_score": outcome.final_score,
        },
    )
    return outcome

"""Tests for gradeflow.grading.comparator module."""

from __future__ import annotations

import decimal
import typing as t

import pytest
from sqlalchemy.orm import Session

from gradeflow import grading
from gradeflow.grading.comparator import compare
from gradeflow.model import AnswerBlock, ComparisonStatus, ExaminerID, RoundScore

D = decimal.Decimal
Tolerance = D("1.0")


def scores(*values: str) -> list[RoundScore]:
    return [
        RoundScore(round_number=n, examiner_id=ExaminerID(), score=D(v)) for n, v in enumerate(values, start=1)
    ]


class TestCompare(object):
    """Tests for compare()."""

    def test_no_results_is_pending(self) -> None:
        """A block without results is pending."""
        outcome = compare("B1", [], tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.Pending
        assert outcome.score_difference is None
        assert outcome.final_score is None

    def test_single_result_is_pending(self) -> None:
        """One recorded round is not enough to compare."""
        outcome = compare("B1", scores("8.0"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.Pending
        assert len(outcome.results) == 1

    def test_agreement_averages_two_rounds(self) -> None:
        """Two scores within tolerance are matched and averaged."""
        outcome = compare("B1", scores("8.0", "8.5"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.Matched
        assert outcome.score_difference == D("0.5")
        assert outcome.final_score == D("8.25")
        assert outcome.is_resolvable

    def test_difference_equal_to_tolerance_matches(self) -> None:
        """Tolerance is inclusive."""
        outcome = compare("B1", scores("7.0", "8.0"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.Matched
        assert outcome.final_score == D("7.50")

    def test_average_is_rounded_half_up(self) -> None:
        """The mean of two scores is rounded half up to two places."""
        outcome = compare("B1", scores("7.25", "7.50"), tolerance=Tolerance)

        # 7.375 -> 7.38
        assert outcome.final_score == D("7.38")

    def test_disagreement_needs_third_round(self) -> None:
        """Scores further apart than tolerance require a third examiner."""
        outcome = compare("B1", scores("8.0", "6.0"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.NeedsThirdRound
        assert outcome.score_difference == D("2.0")
        assert outcome.final_score is None
        assert not outcome.is_resolvable

    def test_third_round_averages_closest_pair(self) -> None:
        """The third score is averaged with whichever score it is closest to."""
        outcome = compare("B1", scores("8.0", "6.0", "7.8"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.ResolvedByThird
        assert outcome.final_score == D("7.90")
        assert outcome.score_difference == D("2.0")
        assert not outcome.needs_manual_review

    def test_third_round_closer_to_second(self) -> None:
        """Closest pair may be rounds two and three."""
        outcome = compare("B1", scores("9.0", "5.0", "5.5"), tolerance=Tolerance)

        assert outcome.final_score == D("5.25")

    def test_equidistant_third_takes_median(self) -> None:
        """When the third score sits exactly between the other two, the median wins."""
        outcome = compare("B1", scores("6.0", "8.0", "7.0"), tolerance=Tolerance)

        # 6.0 and 8.0 differ by 2.0, and 7.0 is 1.0 from both
        assert outcome.status is ComparisonStatus.ResolvedByThird
        assert outcome.final_score == D("7.00")
        assert not outcome.needs_manual_review

    def test_three_way_disagreement_flags_manual_review(self) -> None:
        """No pair within tolerance: the mean of all three is proposed and flagged."""
        outcome = compare("B1", scores("2.0", "5.0", "9.0"), tolerance=Tolerance)

        assert outcome.status is ComparisonStatus.ResolvedByThird
        assert outcome.needs_manual_review
        assert outcome.final_score == D("5.33")

    def test_custom_tolerance(self) -> None:
        """A wider tolerance turns a disagreement into a match."""
        outcome = compare("B1", scores("8.0", "6.0"), tolerance=D("2.5"))

        assert outcome.status is ComparisonStatus.Matched
        assert outcome.final_score == D("7.00")
        assert outcome.tolerance == D("2.5")

    def test_zero_tolerance_requires_identical_scores(self) -> None:
        """With zero tolerance only identical scores match."""
        assert compare("B1", scores("7.5", "7.5"), tolerance=D("0")).status is ComparisonStatus.Matched
        assert compare("B1", scores("7.5", "7.51"), tolerance=D("0")).status is ComparisonStatus.NeedsThirdRound

    def test_max_score_is_reported(self) -> None:
        outcome = compare("B1", scores("8.0"), tolerance=Tolerance, max_score=D("10"))

        assert outcome.max_score == D("10")
        assert not outcome.approved


class TestCompareBlock(object):
    """Tests for compare_block()."""

    def test_unknown_block(self, db_session: Session) -> None:
        """compare_block() raises BlockNotFound for an unknown code."""
        with pytest.raises(grading.errors.BlockNotFound):
            with db_session.begin():
                grading.compare_block("NOPE", session=db_session)

    def test_malformed_block_code(self, db_session: Session) -> None:
        """compare_block() rejects codes that cannot name a block."""
        with pytest.raises(grading.errors.MalformedBlockCode):
            with db_session.begin():
                grading.compare_block("bad code!", session=db_session)

    def test_fresh_block_is_pending(
        self,
        db_session: Session,
        block_factory: t.Callable[..., AnswerBlock],
    ) -> None:
        """A block without results uses the configured tolerance and is pending."""
        block = block_factory()

        with db_session.begin():
            outcome = grading.compare_block(block.block_code, session=db_session)

        assert outcome.status is ComparisonStatus.Pending
        assert outcome.tolerance == D("1.0")
        assert outcome.max_score == D("10")

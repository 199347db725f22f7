"""Tests for gradeflow.storage.block module."""

from __future__ import annotations

import datetime
import decimal
import typing as t

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gradeflow.model import AnswerBlock, Examiner, Subject, User
from gradeflow.storage import assignment as assignment_storage
from gradeflow.storage import block as block_storage

D = decimal.Decimal


class TestCreateAndGet(object):
    """Tests for block_storage.create() and get()."""

    def test_create(self, db_session: Session, subject: Subject) -> None:
        with db_session.begin():
            block = block_storage.create(
                block_code="MATH-2024-Q1",
                subject_id=subject.subject_id,
                exam_id="EXAM-2024",
                question_number=1,
                max_score=D("12.5"),
                session=db_session,
            )

        assert block.block_code == "MATH-2024-Q1"
        assert block.max_score == D("12.5")
        assert block.version == 0
        assert not block.is_approved

    def test_max_score_must_be_positive(self, db_session: Session, subject: Subject) -> None:
        with pytest.raises(IntegrityError):
            with db_session.begin():
                block_storage.create(
                    block_code="ZERO",
                    subject_id=subject.subject_id,
                    exam_id="EXAM-2024",
                    question_number=1,
                    max_score=D("0"),
                    session=db_session,
                )

    def test_get_nonexistent_returns_none(self, db_session: Session) -> None:
        with db_session.begin():
            assert block_storage.get("NOPE", session=db_session) is None


class TestTouchAndApprove(object):
    """Tests for block_storage.touch() and approve()."""

    def test_touch_bumps_version(self, db_session: Session, block_factory: t.Callable[..., AnswerBlock]) -> None:
        block = block_factory()

        with db_session.begin():
            assert block_storage.touch(block.block_code, session=db_session) == 1
            assert block_storage.touch(block.block_code, session=db_session) == 2

    def test_touch_unknown_block(self, db_session: Session) -> None:
        with pytest.raises(KeyError):
            with db_session.begin():
                block_storage.touch("NOPE", session=db_session)

    def test_approve_once(
        self,
        db_session: Session,
        admin: User,
        block_factory: t.Callable[..., AnswerBlock],
    ) -> None:
        """Only an unapproved block can be approved."""
        block = block_factory()
        now = datetime.datetime.now(datetime.UTC)

        with db_session.begin():
            approved = block_storage.approve(
                block.block_code,
                final_score=D("8.25"),
                approved_at=now,
                approved_by=admin.user_id,
                session=db_session,
            )

        assert approved.is_approved
        assert approved.final_score == D("8.25")
        assert approved.version == block.version + 1

        with pytest.raises(KeyError):
            with db_session.begin():
                block_storage.approve(block.block_code, final_score=D("5"), approved_at=now, session=db_session)


class TestFindPending(object):
    """Tests for block_storage.find_pending()."""

    def test_lists_blocks_missing_initial_rounds(
        self,
        db_session: Session,
        subject: Subject,
        block_factory: t.Callable[..., AnswerBlock],
        examiner_factory: t.Callable[..., Examiner],
    ) -> None:
        """Blocks with both first rounds assigned, or already approved, are not pending."""
        e1 = examiner_factory(subjects=[subject])
        e2 = examiner_factory(subjects=[subject])
        fresh = block_factory(question_number=1)
        half = block_factory(question_number=2)
        full = block_factory(question_number=3)
        approved = block_factory(question_number=4)

        with db_session.begin():
            assignment_storage.create(
                block_code=half.block_code, examiner_id=e1.examiner_id, round_number=1, session=db_session
            )
            for n, e in enumerate([e1, e2], start=1):
                assignment_storage.create(
                    block_code=full.block_code, examiner_id=e.examiner_id, round_number=n, session=db_session
                )
            block_storage.approve(
                approved.block_code,
                final_score=D("5"),
                approved_at=datetime.datetime.now(datetime.UTC),
                session=db_session,
            )

        with db_session.begin():
            pending = block_storage.find_pending(session=db_session)

        assert [b.block_code for b in pending] == [fresh.block_code, half.block_code]
        assert pending[0].assigned_rounds == []
        assert pending[1].assigned_rounds == [1]

    def test_filters(
        self,
        db_session: Session,
        subject_factory: t.Callable[..., Subject],
        block_factory: t.Callable[..., AnswerBlock],
    ) -> None:
        physics = subject_factory(code="PHYS", name="Physics")
        block_factory(exam_id="EXAM-A")
        wanted = block_factory(exam_id="EXAM-B", subject_=physics)

        with db_session.begin():
            by_subject = block_storage.find_pending(subject_id=physics.subject_id, session=db_session)
            by_exam = block_storage.find_pending(exam_id="EXAM-B", session=db_session)
            limited = block_storage.find_pending(limit=1, session=db_session)

        assert [b.block_code for b in by_subject] == [wanted.block_code]
        assert [b.block_code for b in by_exam] == [wanted.block_code]
        assert len(limited) == 1

import datetime
import decimal
import typing as t

from sqlalchemy import CheckConstraint, ForeignKey, func, Index, MetaData, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass
from sqlalchemy.types import DateTime, JSON, Numeric, String, Text

from gradeflow.model import AssignmentID, AssignmentStatus, ExaminerID, Priority, ResultID, SubjectID, UserID, \
    UserRole

from .type import ShortUUIDKeyType, ValueEnumType

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

ScoreType = Numeric(5, 2)


class base(MappedAsDataclass, DeclarativeBase):
    metadata = metadata
    type_annotation_map = {
        UserID: ShortUUIDKeyType(UserID),
        SubjectID: ShortUUIDKeyType(SubjectID),
        ExaminerID: ShortUUIDKeyType(ExaminerID),
        AssignmentID: ShortUUIDKeyType(AssignmentID),
        ResultID: ShortUUIDKeyType(ResultID),
        UserRole: ValueEnumType(UserRole),
        Priority: ValueEnumType(Priority),
        AssignmentStatus: ValueEnumType(AssignmentStatus),
        datetime.datetime: DateTime(timezone=True),
    }


# Users


class users(base):
    __tablename__ = "users"

    user_id: Mapped[UserID] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    password_hash: Mapped[str]
    role: Mapped[UserRole]
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


# Reference data


class subjects(base):
    __tablename__ = "subjects"

    subject_id: Mapped[SubjectID] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


class examiners(base):
    __tablename__ = "examiners"

    examiner_id: Mapped[ExaminerID] = mapped_column(primary_key=True)
    examiner_code: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    user_id: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), unique=True, default=None)
    is_active: Mapped[bool] = mapped_column(default=True)
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class examiner_subjects(base):
    __tablename__ = "examiner_subjects"

    examiner_id: Mapped[ExaminerID] = mapped_column(ForeignKey("examiners.examiner_id"), primary_key=True)
    subject_id: Mapped[SubjectID] = mapped_column(ForeignKey("subjects.subject_id"), primary_key=True)


# Answer blocks


class answer_blocks(base):
    __tablename__ = "answer_blocks"
    __table_args__ = (CheckConstraint("max_score > 0", name="max_score_positive"),)

    block_code: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject_id: Mapped[SubjectID] = mapped_column(ForeignKey("subjects.subject_id"))
    exam_id: Mapped[str] = mapped_column(index=True)
    question_number: Mapped[int]
    max_score: Mapped[decimal.Decimal] = mapped_column(ScoreType)

    final_score: Mapped[decimal.Decimal | None] = mapped_column(ScoreType, default=None)
    approved_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    approved_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)
    decision_reason: Mapped[str | None] = mapped_column(Text, default=None)
    version: Mapped[int] = mapped_column(default=0)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


# Grading workflow


class grading_assignments(base):
    __tablename__ = "grading_assignments"
    __table_args__ = (
        UniqueConstraint("block_code", "round_number", "examiner_id", name="uq_grading_assignments_block_round_examiner"),
        CheckConstraint("round_number BETWEEN 1 AND 3", name="round_number_range"),
        Index("ix_grading_assignments_examiner_status", "examiner_id", "status"),
    )

    assignment_id: Mapped[AssignmentID] = mapped_column(primary_key=True)
    block_code: Mapped[str] = mapped_column(ForeignKey("answer_blocks.block_code"), index=True)
    examiner_id: Mapped[ExaminerID] = mapped_column(ForeignKey("examiners.examiner_id"))
    round_number: Mapped[int]
    priority: Mapped[Priority] = mapped_column(default=Priority.Medium)
    status: Mapped[AssignmentStatus] = mapped_column(default=AssignmentStatus.Assigned)
    deadline: Mapped[datetime.datetime | None] = mapped_column(default=None)
    assigned_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)

    assigned_at: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class grading_results(base):
    __tablename__ = "grading_results"
    __table_args__ = (CheckConstraint("score >= 0", name="score_non_negative"),)

    result_id: Mapped[ResultID] = mapped_column(primary_key=True)
    assignment_id: Mapped[AssignmentID] = mapped_column(ForeignKey("grading_assignments.assignment_id"), unique=True)
    block_code: Mapped[str] = mapped_column(ForeignKey("answer_blocks.block_code"), index=True)
    round_number: Mapped[int]
    examiner_id: Mapped[ExaminerID] = mapped_column(ForeignKey("examiners.examiner_id"))
    score: Mapped[decimal.Decimal] = mapped_column(ScoreType)

    comments: Mapped[str | None] = mapped_column(Text, default=None)
    criteria_scores: Mapped[dict[str, t.Any] | None] = mapped_column(JSON, default=None)
    grading_time_seconds: Mapped[int | None] = mapped_column(default=None)
    is_final: Mapped[bool] = mapped_column(default=False)

    graded_at: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())

"""Initial schema for the grading workflow

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""

import typing as t

from alembic import op
from sqlalchemy import func as f
from sqlalchemy.schema import CheckConstraint, Column, ForeignKey, UniqueConstraint
from sqlalchemy.types import Boolean, DateTime, Integer, JSON, Numeric, String, Text

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        Column("user_id", String(22), primary_key=True),
        Column("email", String, unique=True, nullable=False),
        Column("name", String, nullable=False),
        Column("password_hash", String, nullable=False),
        Column("role", String(16), nullable=False),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
        Column("update_time", DateTime(timezone=True), server_default=f.now(), onupdate=f.now(), nullable=False),
    )

    # Subjects
    op.create_table(
        "subjects",
        Column("subject_id", String(22), primary_key=True),
        Column("code", String, unique=True, nullable=False),
        Column("name", String, nullable=False),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
    )

    # Examiners
    op.create_table(
        "examiners",
        Column("examiner_id", String(22), primary_key=True),
        Column("examiner_code", String, unique=True, nullable=False),
        Column("name", String, nullable=False),
        Column("user_id", String(22), ForeignKey("users.user_id"), unique=True, nullable=True),
        Column("is_active", Boolean, server_default="true", nullable=False),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
        Column("update_time", DateTime(timezone=True), server_default=f.now(), onupdate=f.now(), nullable=False),
    )

    op.create_table(
        "examiner_subjects",
        Column("examiner_id", String(22), ForeignKey("examiners.examiner_id"), primary_key=True),
        Column("subject_id", String(22), ForeignKey("subjects.subject_id"), primary_key=True),
    )

    # Answer blocks
    op.create_table(
        "answer_blocks",
        Column("block_code", String(64), primary_key=True),
        Column("subject_id", String(22), ForeignKey("subjects.subject_id"), nullable=False),
        Column("exam_id", String, nullable=False, index=True),
        Column("question_number", Integer, nullable=False),
        Column("max_score", Numeric(5, 2), nullable=False),
        Column("final_score", Numeric(5, 2), nullable=True),
        Column("approved_at", DateTime(timezone=True), nullable=True),
        Column("approved_by", String(22), ForeignKey("users.user_id"), nullable=True),
        Column("decision_reason", Text, nullable=True),
        Column("version", Integer, server_default="0", nullable=False),
        Column("create_time", DateTime(timezone=True), server_default=f.now(), nullable=False),
        CheckConstraint("max_score > 0", name="max_score_positive"),
    )

    # Assignments
    op.create_table(
        "grading_assignments",
        Column("assignment_id", String(22), primary_key=True),
        Column("block_code", String(64), ForeignKey("answer_blocks.block_code"), nullable=False, index=True),
        Column("examiner_id", String(22), ForeignKey("examiners.examiner_id"), nullable=False),
        Column("round_number", Integer, nullable=False),
        Column("priority", String(16), server_default="MEDIUM", nullable=False),
        Column("status", String(16), server_default="ASSIGNED", nullable=False),
        Column("deadline", DateTime(timezone=True), nullable=True),
        Column("assigned_by", String(22), ForeignKey("users.user_id"), nullable=True),
        Column("assigned_at", DateTime(timezone=True), server_default=f.now(), nullable=False),
        Column("update_time", DateTime(timezone=True), server_default=f.now(), onupdate=f.now(), nullable=False),
        UniqueConstraint("block_code", "round_number", "examiner_id", name="uq_grading_assignments_block_round_examiner"),
        CheckConstraint("round_number BETWEEN 1 AND 3", name="round_number_range"),
    )
    op.create_index("ix_grading_assignments_examiner_status", "grading_assignments", ["examiner_id", "status"])

    # Results
    op.create_table(
        "grading_results",
        Column("result_id", String(22), primary_key=True),
        Column(
            "assignment_id",
            String(22),
            ForeignKey("grading_assignments.assignment_id"),
            unique=True,
            nullable=False,
        ),
        Column("block_code", String(64), ForeignKey("answer_blocks.block_code"), nullable=False, index=True),
        Column("round_number", Integer, nullable=False),
        Column("examiner_id", String(22), ForeignKey("examiners.examiner_id"), nullable=False),
        Column("score", Numeric(5, 2), nullable=False),
        Column("comments", Text, nullable=True),
        Column("criteria_scores", JSON, nullable=True),
        Column("grading_time_seconds", Integer, nullable=True),
        Column("is_final", Boolean, server_default="false", nullable=False),
        Column("graded_at", DateTime(timezone=True), server_default=f.now(), nullable=False),
        Column("update_time", DateTime(timezone=True), server_default=f.now(), onupdate=f.now(), nullable=False),
        CheckConstraint("score >= 0", name="score_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("grading_results")
    op.drop_index("ix_grading_assignments_examiner_status", table_name="grading_assignments")
    op.drop_table("grading_assignments")
    op.drop_table("answer_blocks")
    op.drop_table("examiner_subjects")
    op.drop_table("examiners")
    op.drop_table("subjects")
    op.drop_table("users")

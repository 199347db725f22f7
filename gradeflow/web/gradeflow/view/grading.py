"""View models for the grading workflow."""

from __future__ import annotations

import datetime
import decimal
import typing as t

import annotated_types as ant
import pydantic as p

from gradeflow.model import AnswerBlock, AssignmentID, AssignmentStats, AssignmentStatus, ComparisonOutcome, \
    ComparisonStatus, ExaminerID, GradingAssignment, GradingResult, PendingBlock, Priority, ResultID, ResultStats, \
    Score, SubjectID, UserID

# scores travel as JSON numbers
ScoreValue = t.Annotated[decimal.Decimal, p.PlainSerializer(float, return_type=float, when_used="json")]


class AssignmentCreateRequest(p.BaseModel):
    """Request to assign one round of a block."""

    block_code: str
    examiner_id: ExaminerID
    round_number: int
    priority: Priority | None = None
    deadline: datetime.datetime | None = None


class AutoAssignRequest(p.BaseModel):
    """Request to assign the first rounds of many blocks."""

    block_codes: t.Annotated[list[str], ant.MinLen(1)]
    examiners_per_block: t.Annotated[int, ant.Ge(1), ant.Le(2)] | None = None
    priority: Priority | None = None
    deadline: datetime.datetime | None = None


class AssignmentUpdateRequest(p.BaseModel):
    """Request to update an assignment. Omitted fields are left alone."""

    status: AssignmentStatus | None = None
    priority: Priority | None = None
    deadline: datetime.datetime | None = None


class AssignmentResponse(p.BaseModel):
    assignment_id: AssignmentID
    block_code: str
    examiner_id: ExaminerID
    round_number: int
    priority: Priority
    status: AssignmentStatus
    deadline: datetime.datetime | None = None
    assigned_by: UserID | None = None
    assigned_at: datetime.datetime
    update_time: datetime.datetime | None = None

    @classmethod
    def from_model(cls, assignment: GradingAssignment) -> AssignmentResponse:
        return cls(**assignment.model_dump(include=set(cls.model_fields)))


class AssignmentListResponse(p.BaseModel):
    assignments: list[AssignmentResponse]
    total: int
    limit: int
    offset: int


class BlockAssignmentResponse(p.BaseModel):
    block_code: str
    success: bool
    assignments: list[AssignmentResponse] = []
    reason: str | None = None


class AutoAssignResponse(p.BaseModel):
    results: list[BlockAssignmentResponse]
    success_count: int
    failure_count: int


class AssignmentStatsResponse(p.BaseModel):
    total: int
    assigned: int
    in_progress: int
    completed: int
    overdue: int

    @classmethod
    def from_model(cls, stats: AssignmentStats) -> AssignmentStatsResponse:
        return cls(**stats.model_dump())


class MyAssignmentsResponse(p.BaseModel):
    examiner_id: ExaminerID
    assignments: list[AssignmentResponse]
    total: int
    stats: AssignmentStatsResponse


class ResultSubmitRequest(p.BaseModel):
    """Request to submit the score for an assignment."""

    assignment_id: AssignmentID
    score: Score
    comments: str | None = None
    criteria_scores: dict[str, Score] | None = None
    grading_time_seconds: t.Annotated[int, ant.Ge(0)] | None = None


class ResultUpdateRequest(p.BaseModel):
    """Request to edit a result. The score may be repeated but not changed."""

    score: Score | None = None
    comments: str | None = None
    criteria_scores: dict[str, Score] | None = None


class ResultResponse(p.BaseModel):
    result_id: ResultID
    assignment_id: AssignmentID
    block_code: str
    round_number: int
    examiner_id: ExaminerID
    score: ScoreValue
    comments: str | None = None
    criteria_scores: dict[str, ScoreValue] | None = None
    grading_time_seconds: int | None = None
    is_final: bool
    graded_at: datetime.datetime
    update_time: datetime.datetime | None = None

    @classmethod
    def from_model(cls, result: GradingResult) -> ResultResponse:
        return cls(**result.model_dump(include=set(cls.model_fields)))


class ResultListResponse(p.BaseModel):
    results: list[ResultResponse]
    total: int
    limit: int
    offset: int


class RoundScoreResponse(p.BaseModel):
    round_number: int
    examiner_id: ExaminerID
    examiner_name: str | None = None
    score: ScoreValue
    result_id: ResultID | None = None


class ComparisonResponse(p.BaseModel):
    block_code: str
    status: ComparisonStatus
    results: list[RoundScoreResponse]
    score_difference: ScoreValue | None = None
    final_score: ScoreValue | None = None
    max_score: ScoreValue | None = None
    tolerance: ScoreValue
    needs_manual_review: bool
    message: str
    approved: bool
    approved_score: ScoreValue | None = None

    @classmethod
    def from_model(cls, outcome: ComparisonOutcome) -> ComparisonResponse:
        return cls(
            **outcome.model_dump(exclude={"results"}),
            results=[RoundScoreResponse(**r.model_dump()) for r in outcome.results],
        )


class SubmitResultResponse(p.BaseModel):
    result: ResultResponse
    comparison: ComparisonResponse


class ThirdRoundRequest(p.BaseModel):
    priority: Priority | None = None
    examiner_id: ExaminerID | None = None
    deadline: datetime.datetime | None = None


class ApproveRequest(p.BaseModel):
    final_score: Score | None = None
    decision_reason: str | None = None


class BlockResponse(p.BaseModel):
    block_code: str
    subject_id: SubjectID
    exam_id: str
    question_number: int
    max_score: ScoreValue
    final_score: ScoreValue | None = None
    approved_at: datetime.datetime | None = None
    approved_by: UserID | None = None
    decision_reason: str | None = None
    version: int

    @classmethod
    def from_model(cls, block: AnswerBlock) -> BlockResponse:
        return cls(**block.model_dump(include=set(cls.model_fields)))


class BlockDetailResponse(p.BaseModel):
    block: BlockResponse
    assignments: list[AssignmentResponse]
    comparison: ComparisonResponse


class ApprovalResponse(p.BaseModel):
    block: BlockResponse
    comparison: ComparisonResponse


class PendingBlockResponse(p.BaseModel):
    block_code: str
    subject_id: SubjectID
    exam_id: str
    question_number: int
    max_score: ScoreValue
    assigned_rounds: list[int]

    @classmethod
    def from_model(cls, block: PendingBlock) -> PendingBlockResponse:
        return cls(**block.model_dump())


class PendingBlockListResponse(p.BaseModel):
    blocks: list[PendingBlockResponse]
    total: int


class ResultStatsResponse(p.BaseModel):
    total_graded: int
    final_count: int
    avg_score: ScoreValue | None = None
    min_score: ScoreValue | None = None
    max_score: ScoreValue | None = None
    avg_grading_time: ScoreValue | None = None

    @classmethod
    def from_model(cls, stats: ResultStats) -> ResultStatsResponse:
        return cls(**stats.model_dump())


class BlockStatsResponse(p.BaseModel):
    total: int
    approved: int
    pending_approval: int


class StatsResponse(p.BaseModel):
    assignments: AssignmentStatsResponse
    results: ResultStatsResponse
    blocks: BlockStatsResponse

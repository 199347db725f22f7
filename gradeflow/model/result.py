import datetime
import decimal

from .base import BaseModel, WithMtime
from .id import AssignmentID, ExaminerID, ResultID


class GradingResult(WithMtime):
    result_id: ResultID
    assignment_id: AssignmentID
    block_code: str
    round_number: int
    examiner_id: ExaminerID
    score: decimal.Decimal
    comments: str | None = None
    criteria_scores: dict[str, decimal.Decimal] | None = None
    grading_time_seconds: int | None = None
    is_final: bool = False
    graded_at: datetime.datetime


class ResultStats(BaseModel):
    total_graded: int = 0
    final_count: int = 0
    avg_score: decimal.Decimal | None = None
    min_score: decimal.Decimal | None = None
    max_score: decimal.Decimal | None = None
    avg_grading_time: decimal.Decimal | None = None

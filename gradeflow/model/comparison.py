import decimal
import enum

from .base import BaseModel
from .id import ExaminerID, ResultID


class ComparisonStatus(enum.Enum):
    Pending = "PENDING"
    Matched = "MATCHED"
    NeedsThirdRound = "NEEDS_THIRD_ROUND"
    ResolvedByThird = "RESOLVED_BY_THIRD"


class RoundScore(BaseModel):
    round_number: int
    examiner_id: ExaminerID
    examiner_name: str | None = None
    score: decimal.Decimal
    result_id: ResultID | None = None


class ComparisonOutcome(BaseModel):
    block_code: str
    status: ComparisonStatus
    results: list[RoundScore] = []
    score_difference: decimal.Decimal | None = None
    final_score: decimal.Decimal | None = None
    max_score: decimal.Decimal | None = None
    tolerance: decimal.Decimal
    needs_manual_review: bool = False
    message: str
    approved: bool = False
    approved_score: decimal.Decimal | None = None

    @property
    def is_resolvable(self) -> bool:
        return self.status in (ComparisonStatus.Matched, ComparisonStatus.ResolvedByThird)

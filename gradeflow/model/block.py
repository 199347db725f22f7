import datetime
import decimal
import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseModel, WithCtime
from .id import SubjectID, UserID

BlockCodePattern: t.Final[str] = r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,63}$"

BlockCode = t.Annotated[str, p.StringConstraints(pattern=BlockCodePattern)]
# scores are stored as NUMERIC(5, 2)
ScoreLimit: t.Final[decimal.Decimal] = decimal.Decimal("999.99")
# range is checked against the block's max_score by the workflow, not here
Score = t.Annotated[decimal.Decimal, p.Field(decimal_places=2)]


class AnswerBlock(WithCtime):
    block_code: BlockCode
    subject_id: SubjectID
    exam_id: str
    question_number: int
    max_score: t.Annotated[decimal.Decimal, ant.Gt(0)]

    final_score: decimal.Decimal | None = None
    approved_at: datetime.datetime | None = None
    approved_by: UserID | None = None
    decision_reason: str | None = None
    version: int = 0

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None


class PendingBlock(BaseModel):
    """An unapproved block that still lacks a first- or second-round examiner"""

    block_code: BlockCode
    subject_id: SubjectID
    exam_id: str
    question_number: int
    max_score: decimal.Decimal
    assigned_rounds: list[int] = []

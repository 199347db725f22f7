import datetime
import enum
import typing as t

from .base import BaseModel, WithMtime
from .id import AssignmentID, ExaminerID, UserID


class Priority(enum.Enum):
    Low = "LOW"
    Medium = "MEDIUM"
    High = "HIGH"


class AssignmentStatus(enum.Enum):
    Assigned = "ASSIGNED"
    InProgress = "IN_PROGRESS"
    Completed = "COMPLETED"
    Overdue = "OVERDUE"


# statuses that count towards an examiner's workload
OpenStatuses: t.Final[frozenset[AssignmentStatus]] = frozenset({
    AssignmentStatus.Assigned,
    AssignmentStatus.InProgress,
    AssignmentStatus.Overdue,
})

Round = t.Literal[1, 2, 3]


class GradingAssignment(WithMtime):
    assignment_id: AssignmentID
    block_code: str
    examiner_id: ExaminerID
    round_number: int
    priority: Priority = Priority.Medium
    status: AssignmentStatus = AssignmentStatus.Assigned
    deadline: datetime.datetime | None = None
    assigned_by: UserID | None = None
    assigned_at: datetime.datetime

    @property
    def is_open(self) -> bool:
        return self.status in OpenStatuses


class AssignmentStats(BaseModel):
    total: int = 0
    assigned: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0


class BlockAssignmentOutcome(BaseModel):
    """What auto-assignment did for one block"""

    block_code: str
    success: bool
    assignments: list[GradingAssignment] = []
    reason: str | None = None


class AutoAssignReport(BaseModel):
    outcomes: list[BlockAssignmentOutcome] = []

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

__all__ = [
    # Base
    "BaseModel",
    "WithCtime",
    "WithMtime",
    "WithTimestamps",
    # Enums
    "DeploymentEnvironment",
    # ID Types
    "AssignmentID",
    "ExaminerID",
    "ResultID",
    "ShortUUIDKey",
    "SubjectID",
    "UserID",
    # Users
    "User",
    "UserRole",
    # Reference data
    "Subject",
    "Examiner",
    "ExaminerLoad",
    # Blocks
    "AnswerBlock",
    "BlockCode",
    "BlockCodePattern",
    "PendingBlock",
    "Score",
    "ScoreLimit",
    # Assignments
    "AssignmentStats",
    "AutoAssignReport",
    "BlockAssignmentOutcome",
    "AssignmentStatus",
    "GradingAssignment",
    "OpenStatuses",
    "Priority",
    "Round",
    # Results
    "GradingResult",
    "ResultStats",
    # Comparison
    "ComparisonOutcome",
    "ComparisonStatus",
    "RoundScore",
]

from .assignment import AssignmentStats, AssignmentStatus, AutoAssignReport, BlockAssignmentOutcome, GradingAssignment, \
    OpenStatuses, Priority, Round
from .base import BaseModel, WithCtime, WithMtime, WithTimestamps
from .block import AnswerBlock, BlockCode, BlockCodePattern, PendingBlock, Score, ScoreLimit
from .comparison import ComparisonOutcome, ComparisonStatus, RoundScore
from .enum import DeploymentEnvironment
from .examiner import Examiner, ExaminerLoad
from .id import AssignmentID, ExaminerID, ResultID, ShortUUIDKey, SubjectID, UserID
from .result import GradingResult, ResultStats
from .subject import Subject
from .user import User, UserRole

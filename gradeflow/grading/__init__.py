"""The grading workflow: assignment, submission, comparison, escalation and approval."""

__all__ = [
    "approve_score",
    "assign_third_round",
    "auto_assign",
    "compare",
    "compare_block",
    "create_assignment",
    "delete_assignment",
    "errors",
    "lock_block",
    "mark_overdue",
    "submit_result",
    "update_assignment",
    "update_result",
]

from . import errors
from .approval import approve_score
from .assignment import auto_assign, create_assignment, delete_assignment, mark_overdue, update_assignment
from .block import lock_block
from .comparator import compare, compare_block
from .escalation import assign_third_round
from .submission import submit_result, update_result

"""Workflow errors.

Every error carries a stable `kind` (the class name) and a human readable
message. The web layer maps the four families onto HTTP statuses; everything
else treats them as ordinary exceptions.
"""

from __future__ import annotations

import typing as t


class GradingError(Exception):
    status_code: t.ClassVar[int] = 500

    def __init__(self, message: str, **context: t.Any):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.kind} {self.message!r}>"


class ValidationError(GradingError):
    status_code = 400


class NotFoundError(GradingError):
    status_code = 404


class ConflictError(GradingError):
    status_code = 409


class StateError(GradingError):
    status_code = 409


# validation
class OutOfRange(ValidationError): ...


class MalformedBlockCode(ValidationError): ...


class InvalidRound(ValidationError): ...


class ExaminerNotEligible(ValidationError): ...


class InvalidStatusTransition(ValidationError): ...


# not found
class BlockNotFound(NotFoundError): ...


class ExaminerNotFound(NotFoundError): ...


class AssignmentNotFound(NotFoundError): ...


class ResultNotFound(NotFoundError): ...


class SubjectNotFound(NotFoundError): ...


# conflicts
class DuplicateAssignment(ConflictError): ...


class RoundAlreadyAssigned(ConflictError): ...


class ExaminerAlreadyAssigned(ConflictError): ...


class ThirdRoundAlreadyAssigned(ConflictError): ...


class AlreadySubmitted(ConflictError): ...


class AlreadyApproved(ConflictError): ...


class BlockAlreadyApproved(ConflictError): ...


class AssignmentCompleted(ConflictError): ...


class CannotDeleteCompleted(ConflictError): ...


# workflow state
class NotEligible(StateError): ...


class NotResolvable(StateError): ...


class ManualReviewRequired(StateError): ...


class ResultImmutable(StateError): ...


class NoEligibleExaminer(StateError): ...

from .base import BaseModel, WithTimestamps
from .id import ExaminerID, SubjectID, UserID


class Examiner(WithTimestamps):
    examiner_id: ExaminerID
    examiner_code: str
    name: str
    user_id: UserID | None = None
    is_active: bool = True
    subject_ids: list[SubjectID] = []

    def is_qualified(self, subject_id: SubjectID) -> bool:
        return self.is_active and subject_id in self.subject_ids


class ExaminerLoad(BaseModel):
    """An examiner together with the number of assignments still open on their desk"""

    examiner: Examiner
    open_assignments: int

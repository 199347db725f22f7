from .base import WithCtime
from .id import SubjectID


class Subject(WithCtime):
    subject_id: SubjectID
    code: str
    name: str

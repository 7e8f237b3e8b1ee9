# models/assignment.py
from pydantic import BaseModel, Field
from typing import Literal, Optional

from models.common import UtcDatetime


class AssignmentCreate(BaseModel):
    lessonId: Optional[str] = None
    classId: Optional[str] = None  # None means the assignment applies to every class
    title: str
    description: str = ""
    dueDate: UtcDatetime
    maxScore: float = Field(10, gt=0)
    type: Literal["ESSAY", "FILE"] = "ESSAY"
    rubric: Optional[str] = None


class Assignment(AssignmentCreate):
    id: str


class SubmissionCreate(BaseModel):
    assignmentId: str
    studentId: str
    studentName: Optional[str] = None
    content: str = ""  # essay text or a link to the uploaded file


class Submission(SubmissionCreate):
    id: str
    submittedAt: UtcDatetime
    grade: Optional[float] = None  # None means ungraded, not zero
    feedback: Optional[str] = None


class GradeRequest(BaseModel):
    id: str
    grade: float = Field(allow_inf_nan=False)
    feedback: str = ""

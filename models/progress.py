# models/progress.py
from pydantic import BaseModel

from models.common import UtcDatetime


class Progress(BaseModel):
    studentId: str
    lessonId: str
    completed: bool = False
    lastAccess: UtcDatetime

# models/classroom.py
from pydantic import BaseModel
from typing import Optional


class ClassroomCreate(BaseModel):
    name: str
    teacherId: str
    schoolYear: Optional[str] = None
    homeroomTeacher: Optional[str] = None
    joinCode: Optional[str] = None


class Classroom(ClassroomCreate):
    id: str
    # Maintained by student mutations, never recomputed on read
    studentCount: int = 0

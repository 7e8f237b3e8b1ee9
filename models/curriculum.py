# models/curriculum.py
from pydantic import BaseModel, Field
from typing import Literal, Optional

DRAFT = "DRAFT"
PUBLISHED = "PUBLISHED"


class SubjectCreate(BaseModel):
    name: str
    description: Optional[str] = None


class Subject(SubjectCreate):
    id: str


class TopicCreate(BaseModel):
    subjectId: str
    title: str
    order: int = Field(1, ge=1)


class Topic(TopicCreate):
    id: str


class LessonCreate(BaseModel):
    topicId: str
    title: str
    content: str = ""
    videoUrl: Optional[str] = None
    slideUrl: Optional[str] = None
    documentUrl: Optional[str] = None
    status: Literal["DRAFT", "PUBLISHED"] = DRAFT
    order: int = Field(1, ge=1)


class Lesson(LessonCreate):
    id: str

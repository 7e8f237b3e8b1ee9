# models/announcement.py
from pydantic import BaseModel
from typing import Literal

from models.common import UtcDatetime


class AnnouncementCreate(BaseModel):
    classId: str
    teacherId: str
    title: str
    content: str = ""
    target: Literal["ALL", "STUDENT", "PARENT"] = "ALL"


class Announcement(AnnouncementCreate):
    id: str
    createdAt: UtcDatetime

# models/user.py
from pydantic import BaseModel, Field, TypeAdapter
from typing import Annotated, Literal, Optional, Union

TEACHER = "TEACHER"
STUDENT = "STUDENT"


class UserBase(BaseModel):
    id: str
    name: str
    email: str = ""
    username: str
    avatar: Optional[str] = None


class Teacher(UserBase):
    role: Literal["TEACHER"] = TEACHER


class Student(UserBase):
    role: Literal["STUDENT"] = STUDENT
    classId: Optional[str] = None  # a student belongs to at most one class
    dob: Optional[str] = None
    parentPhone: Optional[str] = None


User = Annotated[Union[Teacher, Student], Field(discriminator="role")]
user_adapter = TypeAdapter(User)


class StudentCreate(BaseModel):
    name: str
    username: str
    email: str = ""
    password: Optional[str] = None  # plaintext on the way in, stored as a bcrypt hash
    classId: Optional[str] = None
    dob: Optional[str] = None
    parentPhone: Optional[str] = None
    avatar: Optional[str] = None


class StudentUpdate(StudentCreate):
    id: str


class LoginRequest(BaseModel):
    username: str
    password: str

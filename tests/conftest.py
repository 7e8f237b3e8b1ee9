import os

# Tokens are signed with this; the app refuses to start without a secret
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timezone

import pytest

from models.assignment import Assignment, Submission
from models.curriculum import Lesson
from models.progress import Progress
from models.user import Student
from providers.memory import MemoryProvider


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(utc(2023, 11, 1, 9, 0))


@pytest.fixture
async def store(clock):
    provider = MemoryProvider(seed=True, bcrypt_rounds=4, clock=clock)
    await provider.init()
    return provider


@pytest.fixture
async def empty_store(clock):
    provider = MemoryProvider(bcrypt_rounds=4, clock=clock)
    await provider.init()
    return provider


def make_student(student_id: str, class_id: str = "c1") -> Student:
    return Student(id=student_id, name=f"Student {student_id}", username=student_id, classId=class_id)


def make_assignment(assignment_id: str, due: str = "2023-12-31", max_score: float = 10) -> Assignment:
    return Assignment(id=assignment_id, title=f"Assignment {assignment_id}", dueDate=due, maxScore=max_score)


def make_submission(student_id: str, assignment_id: str, submitted_at: str, grade=None) -> Submission:
    return Submission(
        id=f"{student_id}-{assignment_id}",
        assignmentId=assignment_id,
        studentId=student_id,
        submittedAt=submitted_at,
        grade=grade,
    )


def make_lesson(lesson_id: str, status: str = "PUBLISHED") -> Lesson:
    return Lesson(id=lesson_id, topicId="t1", title=f"Lesson {lesson_id}", status=status)


def make_progress(student_id: str, lesson_id: str, completed: bool = True) -> Progress:
    return Progress(studentId=student_id, lessonId=lesson_id, completed=completed, lastAccess="2023-10-01")


@pytest.fixture
def client(clock):
    from fastapi.testclient import TestClient

    from main import create_app

    app = create_app(store=MemoryProvider(seed=True, bcrypt_rounds=4, clock=clock))
    with TestClient(app) as test_client:
        yield test_client


def rpc_call(client, action: str, payload: dict = None, token: str = None) -> dict:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    response = client.post("/api/rpc", json={"action": action, "payload": payload or {}}, headers=headers)
    assert response.status_code == 200
    return response.json()


def login_token(client, username: str, password: str = "123") -> str:
    body = rpc_call(client, "auth.login", {"username": username, "password": password})
    assert body["ok"], body
    return body["data"]["token"]

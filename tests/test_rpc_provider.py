import json

import httpx
import pytest

from main import create_app
from models.assignment import SubmissionCreate
from models.question import MultipleChoiceQuestion
from models.user import StudentCreate, Teacher
from providers.memory import MemoryProvider
from providers.rpc import RpcProvider
from services.errors import (
    InvalidCredentials,
    LMSError,
    NotFound,
    PermissionDenied,
    TransportFailure,
    ValidationFailed,
)

URL = "http://lms.test/api/rpc"


def mock_provider(handler) -> RpcProvider:
    return RpcProvider(url=URL, transport=httpx.MockTransport(handler))


def envelope(data=None, **error):
    if error:
        return httpx.Response(200, json={"ok": False, **error})
    return httpx.Response(200, json={"ok": True, "data": data})


async def test_failed_envelope_raises_matching_error():
    provider = mock_provider(lambda request: envelope(code="NotFound", error="Student not found: x"))
    with pytest.raises(NotFound) as exc:
        await provider.delete_student("x")
    assert exc.value.message == "Student not found: x"


async def test_validation_reason_survives_the_wire():
    provider = mock_provider(
        lambda request: envelope(code="ValidationFailed", error="bad", reason="AnswerNotInOptions")
    )
    with pytest.raises(ValidationFailed) as exc:
        await provider.create_question(MultipleChoiceQuestion(content="Q", options=["A"], correctAnswer="A"))
    assert exc.value.reason == "AnswerNotInOptions"


async def test_unknown_error_code_is_a_generic_failure():
    provider = mock_provider(lambda request: envelope(error="Exploded", code="Weird"))
    with pytest.raises(LMSError) as exc:
        await provider.list_subjects()
    assert type(exc.value) is LMSError
    assert str(exc.value) == "Exploded"


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json=["no", "envelope"]),
    httpx.Response(200, json={"ok": True, "data": {"not": "a list"}}),
])
async def test_transport_problems_become_transport_failure(response):
    provider = mock_provider(lambda request: response)
    with pytest.raises(TransportFailure):
        await provider.list_classes()


async def test_unreachable_backend():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailure):
        await mock_provider(refuse).list_classes()


async def test_token_is_sent_after_login_and_filters_are_dropped():
    seen = []

    def handler(request):
        body = json.loads(request.content)
        seen.append((body, request.headers.get("Authorization")))
        if body["action"] == "auth.login":
            user = {"id": "u1", "name": "An", "username": "gv.an", "role": "TEACHER"}
            return envelope({"user": user, "token": "tok"})
        return envelope([])

    provider = mock_provider(handler)
    user = await provider.login("gv.an", "123")
    assert isinstance(user, Teacher)
    assert await provider.list_students() == []

    assert seen[0] == ({"action": "auth.login", "payload": {"username": "gv.an", "password": "123"}}, None)
    assert seen[1] == ({"action": "students.list", "payload": {}}, "Bearer tok")


@pytest.fixture
async def remote(clock):
    store = MemoryProvider(seed=True, bcrypt_rounds=4, clock=clock)
    await store.init()
    provider = RpcProvider(url="http://testserver/api/rpc",
                           transport=httpx.ASGITransport(app=create_app(store=store)))
    yield provider
    await provider.aclose()


async def test_remote_login_and_logout(remote):
    with pytest.raises(InvalidCredentials):
        await remote.login("gv.an", "wrong")
    user = await remote.login("gv.an", "123")
    assert await remote.get_current_user() == user
    await remote.logout()
    assert await remote.get_current_user() is None
    with pytest.raises(PermissionDenied):
        await remote.list_students()


async def test_remote_teacher_workflow(remote):
    await remote.login("gv.an", "123")
    student = await remote.create_student(StudentCreate(name="Dao", username="hs.dao", classId="c2"))
    assert {c.id: c.studentCount for c in await remote.list_classes()}["c2"] == 2

    submission = await remote.submit_assignment(SubmissionCreate(assignmentId="a1", studentId=student.id))
    graded = await remote.grade_submission(submission.id, 8, "good")
    assert graded.grade == 8
    assert [s.id for s in await remote.list_submissions(student_id=student.id)] == [submission.id]


async def test_remote_student_view(remote):
    await remote.login("hs.cuong", "123")
    lessons = await remote.list_lessons()
    assert {l.status for l in lessons} == {"PUBLISHED"}
    questions = await remote.list_questions(topic_id="t1")
    assert all(q.correctAnswer is None for q in questions)
    progress = await remote.mark_lesson_complete("u3", "l1")
    assert progress.completed is True
    with pytest.raises(PermissionDenied):
        await remote.mark_lesson_complete("u2", "l1")

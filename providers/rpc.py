# providers/rpc.py
import logging
from typing import List, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

import config
from models.announcement import Announcement, AnnouncementCreate
from models.assignment import Assignment, AssignmentCreate, Submission, SubmissionCreate
from models.classroom import Classroom, ClassroomCreate
from models.curriculum import Lesson, LessonCreate, Subject, SubjectCreate, Topic, TopicCreate
from models.progress import Progress
from models.question import Question, question_adapter
from models.user import Student, StudentCreate, StudentUpdate, User, user_adapter
from providers.base import DataProvider
from services.errors import TransportFailure, error_from_code
from services.question_sheet import ImportResult

logger = logging.getLogger(__name__)


def _parse(model, data):
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(data)
        return model.model_validate(data)
    except ValidationError as e:
        raise TransportFailure(f"Malformed response from backend: {e.error_count()} invalid fields")


def _parse_list(model, data) -> list:
    if not isinstance(data, list):
        raise TransportFailure("Malformed response from backend: expected a list")
    return [_parse(model, item) for item in data]


def _drop_none(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


class RpcProvider(DataProvider):
    """Talks to a remote backend through one ``{action, payload}`` endpoint.

    Responses are ``{ok, data, error, code}`` envelopes; a non-ok envelope is
    raised as the matching error type carrying the server's message.
    """

    def __init__(self, url: str = None, timeout: float = None, transport: httpx.AsyncBaseTransport = None):
        super().__init__()
        self.url = url or config.RPC_URL
        self.client = httpx.AsyncClient(timeout=timeout or config.RPC_TIMEOUT, transport=transport)

    async def aclose(self):
        await self.client.aclose()

    async def call(self, action: str, payload: dict = None):
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        try:
            response = await self.client.post(
                self.url, json={"action": action, "payload": payload or {}}, headers=headers
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"API call failed [{action}]: HTTP {e.response.status_code}")
            raise TransportFailure(f"Backend returned HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"API call failed [{action}]: {str(e)}")
            raise TransportFailure(f"Backend unreachable: {str(e)}")
        except ValueError:
            logger.error(f"API call failed [{action}]: response is not JSON")
            raise TransportFailure("Malformed response from backend")

        if not isinstance(body, dict) or "ok" not in body:
            raise TransportFailure("Malformed response from backend")
        if not body["ok"]:
            message = body.get("error") or "Unknown error from server"
            logger.warning(f"API call rejected [{action}]: {message}")
            raise error_from_code(body.get("code"), message, body.get("reason"))
        return body.get("data")

    # Auth

    async def login(self, username: str, password: str) -> User:
        data = await self.call("auth.login", {"username": username, "password": password})
        if not isinstance(data, dict) or "token" not in data:
            raise TransportFailure("Malformed login response from backend")
        user = _parse(user_adapter, data.get("user"))
        self.session.start(user, data["token"])
        return user

    # Students

    async def list_students(self, class_id: str = None) -> List[Student]:
        return _parse_list(Student, await self.call("students.list", _drop_none({"classId": class_id})))

    async def create_student(self, student: StudentCreate) -> Student:
        return _parse(Student, await self.call("students.create", student.model_dump()))

    async def update_student(self, student: StudentUpdate) -> Student:
        return _parse(Student, await self.call("students.update", student.model_dump()))

    async def delete_student(self, student_id: str) -> None:
        await self.call("students.delete", {"id": student_id})

    # Classes

    async def list_classes(self, teacher_id: str = None) -> List[Classroom]:
        return _parse_list(Classroom, await self.call("classes.list", _drop_none({"teacherId": teacher_id})))

    async def create_class(self, classroom: ClassroomCreate) -> Classroom:
        return _parse(Classroom, await self.call("classes.create", classroom.model_dump()))

    async def update_class(self, classroom: Classroom) -> Classroom:
        return _parse(Classroom, await self.call("classes.update", classroom.model_dump()))

    async def delete_class(self, class_id: str) -> None:
        await self.call("classes.delete", {"id": class_id})

    # Curriculum

    async def list_subjects(self) -> List[Subject]:
        return _parse_list(Subject, await self.call("subjects.list"))

    async def create_subject(self, subject: SubjectCreate) -> Subject:
        return _parse(Subject, await self.call("subjects.create", subject.model_dump()))

    async def update_subject(self, subject: Subject) -> Subject:
        return _parse(Subject, await self.call("subjects.update", subject.model_dump()))

    async def delete_subject(self, subject_id: str) -> None:
        await self.call("subjects.delete", {"id": subject_id})

    async def list_topics(self, subject_id: str = None) -> List[Topic]:
        return _parse_list(Topic, await self.call("topics.list", _drop_none({"subjectId": subject_id})))

    async def create_topic(self, topic: TopicCreate) -> Topic:
        return _parse(Topic, await self.call("topics.create", topic.model_dump()))

    async def update_topic(self, topic: Topic) -> Topic:
        return _parse(Topic, await self.call("topics.update", topic.model_dump()))

    async def delete_topic(self, topic_id: str) -> None:
        await self.call("topics.delete", {"id": topic_id})

    async def list_lessons(self, topic_id: str = None, status: str = None) -> List[Lesson]:
        payload = _drop_none({"topicId": topic_id, "status": status})
        return _parse_list(Lesson, await self.call("lessons.list", payload))

    async def create_lesson(self, lesson: LessonCreate) -> Lesson:
        return _parse(Lesson, await self.call("lessons.create", lesson.model_dump()))

    async def update_lesson(self, lesson: Lesson) -> Lesson:
        return _parse(Lesson, await self.call("lessons.update", lesson.model_dump()))

    async def delete_lesson(self, lesson_id: str) -> None:
        await self.call("lessons.delete", {"id": lesson_id})

    # Assignments and submissions

    async def list_assignments(self, class_id: str = None, lesson_id: str = None) -> List[Assignment]:
        payload = _drop_none({"classId": class_id, "lessonId": lesson_id})
        return _parse_list(Assignment, await self.call("assignments.list", payload))

    async def create_assignment(self, assignment: AssignmentCreate) -> Assignment:
        return _parse(Assignment, await self.call("assignments.create", assignment.model_dump(mode="json")))

    async def update_assignment(self, assignment: Assignment) -> Assignment:
        return _parse(Assignment, await self.call("assignments.update", assignment.model_dump(mode="json")))

    async def delete_assignment(self, assignment_id: str) -> None:
        await self.call("assignments.delete", {"id": assignment_id})

    async def list_submissions(self, assignment_id: str = None, student_id: str = None) -> List[Submission]:
        payload = _drop_none({"assignmentId": assignment_id, "studentId": student_id})
        return _parse_list(Submission, await self.call("submissions.list", payload))

    async def submit_assignment(self, submission: SubmissionCreate) -> Submission:
        return _parse(Submission, await self.call("submissions.submit", submission.model_dump()))

    async def grade_submission(self, submission_id: str, grade: float, feedback: str = "") -> Submission:
        payload = {"id": submission_id, "grade": grade, "feedback": feedback}
        return _parse(Submission, await self.call("submissions.grade", payload))

    # Progress

    async def list_progress(self, student_id: str = None) -> List[Progress]:
        return _parse_list(Progress, await self.call("progress.list", _drop_none({"studentId": student_id})))

    async def mark_lesson_complete(self, student_id: str, lesson_id: str) -> Progress:
        payload = {"studentId": student_id, "lessonId": lesson_id, "completed": True}
        return _parse(Progress, await self.call("progress.update", payload))

    async def record_lesson_access(self, student_id: str, lesson_id: str) -> Progress:
        payload = {"studentId": student_id, "lessonId": lesson_id}
        return _parse(Progress, await self.call("progress.access", payload))

    # Announcements

    async def list_announcements(self, class_id: str = None) -> List[Announcement]:
        data = await self.call("announcements.list", _drop_none({"classId": class_id}))
        return _parse_list(Announcement, data)

    async def create_announcement(self, announcement: AnnouncementCreate) -> Announcement:
        return _parse(Announcement, await self.call("announcements.create", announcement.model_dump()))

    # Question bank

    async def list_questions(self, subject_id: str = None, topic_id: str = None, type: str = None) -> List[Question]:
        payload = _drop_none({"subjectId": subject_id, "topicId": topic_id, "type": type})
        return _parse_list(question_adapter, await self.call("questions.list", payload))

    async def create_question(self, question: Question) -> Question:
        return _parse(question_adapter, await self.call("questions.create", question.model_dump()))

    async def update_question(self, question: Question) -> Question:
        return _parse(question_adapter, await self.call("questions.update", question.model_dump()))

    async def delete_question(self, question_id: str) -> None:
        await self.call("questions.delete", {"id": question_id})

    async def import_questions(self, rows: Sequence[Sequence], subject_id: str = None,
                               topic_id: str = None, has_header: bool = True) -> ImportResult:
        payload = {"rows": [list(r) for r in rows], "subjectId": subject_id, "topicId": topic_id,
                   "hasHeader": has_header}
        data = await self.call("questions.import", payload)
        if not isinstance(data, dict):
            raise TransportFailure("Malformed import response from backend")
        return ImportResult(
            questions=_parse_list(question_adapter, data.get("questions", [])),
            errors=data.get("errors", []),
            skipped=data.get("skipped", 0),
        )

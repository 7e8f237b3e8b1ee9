# routes/rpc.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.encoders import jsonable_encoder

from models.announcement import AnnouncementCreate
from models.assignment import Assignment, AssignmentCreate, GradeRequest, SubmissionCreate
from models.classroom import Classroom, ClassroomCreate
from models.common import load
from models.curriculum import PUBLISHED, Lesson, LessonCreate, Subject, SubjectCreate, Topic, TopicCreate
from models.question import question_adapter
from models.user import STUDENT, TEACHER, LoginRequest, StudentCreate, StudentUpdate
from routes.auth import create_access_token, get_store, user_from_token
from services.errors import LMSError, PermissionDenied, ValidationFailed
from services.questions import present_question

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rpc"])

# action name -> (handler, teacher_only)
ACTIONS = {}
PUBLIC_ACTIONS = {"auth.login"}


def action(name: str, teacher_only: bool = False):
    def register(handler):
        ACTIONS[name] = (handler, teacher_only)
        return handler
    return register


def _require_id(payload: dict) -> str:
    entity_id = payload.get("id")
    if not entity_id:
        raise ValidationFailed("MissingId", "Field 'id' is required")
    return entity_id


def _own_student_id(payload: dict, user) -> str:
    """Students may only act for themselves; teachers name the student."""
    student_id = payload.get("studentId")
    if user.role == STUDENT:
        if student_id and student_id != user.id:
            raise PermissionDenied("Students can only act for themselves")
        return user.id
    if not student_id:
        raise ValidationFailed("MissingStudentId", "Field 'studentId' is required")
    return student_id


# Auth

@action("auth.login")
async def login(store, payload, user):
    request = load(LoginRequest, payload)
    logger.info(f"Login attempt for username: {request.username}")
    authenticated = await store.authenticate(request.username, request.password)
    return {"user": authenticated, "token": create_access_token(authenticated)}


@action("auth.me")
async def current_user(store, payload, user):
    return user


# Students

@action("students.list", teacher_only=True)
async def list_students(store, payload, user):
    return await store.list_students(class_id=payload.get("classId"))


@action("students.create", teacher_only=True)
async def create_student(store, payload, user):
    return await store.create_student(load(StudentCreate, payload))


@action("students.update", teacher_only=True)
async def update_student(store, payload, user):
    return await store.update_student(load(StudentUpdate, payload))


@action("students.delete", teacher_only=True)
async def delete_student(store, payload, user):
    await store.delete_student(_require_id(payload))


# Classes

@action("classes.list")
async def list_classes(store, payload, user):
    return await store.list_classes(teacher_id=payload.get("teacherId"))


@action("classes.create", teacher_only=True)
async def create_class(store, payload, user):
    payload = {"teacherId": user.id, **payload}
    return await store.create_class(load(ClassroomCreate, payload))


@action("classes.update", teacher_only=True)
async def update_class(store, payload, user):
    return await store.update_class(load(Classroom, payload))


@action("classes.delete", teacher_only=True)
async def delete_class(store, payload, user):
    await store.delete_class(_require_id(payload))


# Subjects, topics, lessons

@action("subjects.list")
async def list_subjects(store, payload, user):
    return await store.list_subjects()


@action("subjects.create", teacher_only=True)
async def create_subject(store, payload, user):
    return await store.create_subject(load(SubjectCreate, payload))


@action("subjects.update", teacher_only=True)
async def update_subject(store, payload, user):
    return await store.update_subject(load(Subject, payload))


@action("subjects.delete", teacher_only=True)
async def delete_subject(store, payload, user):
    await store.delete_subject(_require_id(payload))


@action("topics.list")
async def list_topics(store, payload, user):
    return await store.list_topics(subject_id=payload.get("subjectId"))


@action("topics.create", teacher_only=True)
async def create_topic(store, payload, user):
    return await store.create_topic(load(TopicCreate, payload))


@action("topics.update", teacher_only=True)
async def update_topic(store, payload, user):
    return await store.update_topic(load(Topic, payload))


@action("topics.delete", teacher_only=True)
async def delete_topic(store, payload, user):
    await store.delete_topic(_require_id(payload))


@action("lessons.list")
async def list_lessons(store, payload, user):
    status = payload.get("status")
    if user.role == STUDENT:
        # Drafts are invisible to students
        status = PUBLISHED
    return await store.list_lessons(topic_id=payload.get("topicId"), status=status)


@action("lessons.create", teacher_only=True)
async def create_lesson(store, payload, user):
    return await store.create_lesson(load(LessonCreate, payload))


@action("lessons.update", teacher_only=True)
async def update_lesson(store, payload, user):
    return await store.update_lesson(load(Lesson, payload))


@action("lessons.delete", teacher_only=True)
async def delete_lesson(store, payload, user):
    await store.delete_lesson(_require_id(payload))


# Assignments and submissions

@action("assignments.list")
async def list_assignments(store, payload, user):
    class_id = payload.get("classId")
    if user.role == STUDENT:
        if not user.classId:
            return []
        class_id = user.classId
    return await store.list_assignments(class_id=class_id, lesson_id=payload.get("lessonId"))


@action("assignments.create", teacher_only=True)
async def create_assignment(store, payload, user):
    return await store.create_assignment(load(AssignmentCreate, payload))


@action("assignments.update", teacher_only=True)
async def update_assignment(store, payload, user):
    return await store.update_assignment(load(Assignment, payload))


@action("assignments.delete", teacher_only=True)
async def delete_assignment(store, payload, user):
    await store.delete_assignment(_require_id(payload))


@action("submissions.list")
async def list_submissions(store, payload, user):
    student_id = user.id if user.role == STUDENT else payload.get("studentId")
    return await store.list_submissions(assignment_id=payload.get("assignmentId"), student_id=student_id)


@action("submissions.submit")
async def submit_assignment(store, payload, user):
    payload = {**payload, "studentId": _own_student_id(payload, user)}
    return await store.submit_assignment(load(SubmissionCreate, payload))


@action("submissions.grade", teacher_only=True)
async def grade_submission(store, payload, user):
    request = load(GradeRequest, payload)
    return await store.grade_submission(request.id, request.grade, request.feedback)


# Progress

@action("progress.list")
async def list_progress(store, payload, user):
    student_id = user.id if user.role == STUDENT else payload.get("studentId")
    return await store.list_progress(student_id=student_id)


@action("progress.update")
async def mark_lesson_complete(store, payload, user):
    student_id = _own_student_id(payload, user)
    lesson_id = payload.get("lessonId")
    if not lesson_id:
        raise ValidationFailed("MissingLessonId", "Field 'lessonId' is required")
    if payload.get("completed", True) is not True:
        raise ValidationFailed("CompletionIsFinal", "A completed lesson cannot be marked incomplete")
    return await store.mark_lesson_complete(student_id, lesson_id)


@action("progress.access")
async def record_lesson_access(store, payload, user):
    student_id = _own_student_id(payload, user)
    lesson_id = payload.get("lessonId")
    if not lesson_id:
        raise ValidationFailed("MissingLessonId", "Field 'lessonId' is required")
    return await store.record_lesson_access(student_id, lesson_id)


# Announcements

@action("announcements.list")
async def list_announcements(store, payload, user):
    if user.role == STUDENT:
        items = await store.list_announcements(class_id=user.classId) if user.classId else []
        return [a for a in items if a.target in ("ALL", STUDENT)]
    return await store.list_announcements(class_id=payload.get("classId"))


@action("announcements.create", teacher_only=True)
async def create_announcement(store, payload, user):
    payload = {"teacherId": user.id, **payload}
    return await store.create_announcement(load(AnnouncementCreate, payload))


# Question bank

@action("questions.list")
async def list_questions(store, payload, user):
    questions = await store.list_questions(
        subject_id=payload.get("subjectId"), topic_id=payload.get("topicId"), type=payload.get("type")
    )
    if user.role == STUDENT:
        return [present_question(q) for q in questions]
    return questions


@action("questions.create", teacher_only=True)
async def create_question(store, payload, user):
    return await store.create_question(load(question_adapter, payload))


@action("questions.update", teacher_only=True)
async def update_question(store, payload, user):
    return await store.update_question(load(question_adapter, payload))


@action("questions.delete", teacher_only=True)
async def delete_question(store, payload, user):
    await store.delete_question(_require_id(payload))


@action("questions.import", teacher_only=True)
async def import_questions(store, payload, user):
    rows = payload.get("rows")
    if not isinstance(rows, list):
        raise ValidationFailed("MissingRows", "Field 'rows' must be a list of rows")
    result = await store.import_questions(
        rows, payload.get("subjectId"), payload.get("topicId"), has_header=payload.get("hasHeader", True)
    )
    return {"questions": result.questions, "errors": result.errors, "skipped": result.skipped}


def _reject_constant(name: str):
    # NaN and Infinity are not JSON and cannot be sent back in a response
    raise ValueError(f"Unsupported JSON constant: {name}")


def failure(error: LMSError) -> dict:
    body = {"ok": False, "error": error.message, "code": error.code}
    if isinstance(error, ValidationFailed):
        body["reason"] = error.reason
    return body


@router.post("/rpc")
async def rpc(request: Request, store=Depends(get_store), authorization: Optional[str] = Header(None)):
    try:
        # Clients may post JSON as text/plain, so the body is parsed by hand
        try:
            body = json.loads(await request.body() or b"{}", parse_constant=_reject_constant)
        except ValueError:
            raise ValidationFailed("MalformedRequest", "Request body is not valid JSON")
        if not isinstance(body, dict) or not isinstance(body.get("action"), str):
            raise ValidationFailed("MalformedRequest", "Request must be {action, payload}")
        name = body["action"]
        payload = body.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValidationFailed("MalformedRequest", "Payload must be an object")

        entry = ACTIONS.get(name)
        if entry is None:
            raise ValidationFailed("UnknownAction", f"Unknown action: {name}")
        handler, teacher_only = entry

        user = None
        if name not in PUBLIC_ACTIONS:
            token = None
            if authorization and authorization.lower().startswith("bearer "):
                token = authorization[7:].strip()
            user = await user_from_token(store, token)
            if teacher_only and user.role != TEACHER:
                raise PermissionDenied(f"Only teachers can perform {name}")

        logger.info(f"RPC {name} by {user.id if user else 'anonymous'}")
        data = await handler(store, payload, user)
        return {"ok": True, "data": jsonable_encoder(data)}
    except LMSError as e:
        logger.warning(f"RPC call failed: {e.code}: {e.message}")
        return failure(e)

import json

import pytest
from conftest import utc

from models.announcement import AnnouncementCreate
from models.assignment import Assignment, AssignmentCreate, GradeRequest, SubmissionCreate
from models.classroom import Classroom, ClassroomCreate
from models.common import load
from models.curriculum import Lesson, LessonCreate, Subject, Topic, TopicCreate
from models.question import MultipleChoiceQuestion, OrderingQuestion, ShortAnswerQuestion
from models.user import Student, StudentCreate, StudentUpdate, Teacher
from providers.memory import MemoryProvider
from services.errors import InvalidCredentials, NotFound, ValidationFailed
from services.question_sheet import template_rows
from services.reports import on_time_rate


async def class_count(store, class_id):
    return {c.id: c.studentCount for c in await store.list_classes()}[class_id]


async def test_login_sets_session_and_logout_clears_it(store):
    user = await store.login("gv.an", "123")
    assert isinstance(user, Teacher)
    assert await store.get_current_user() == user
    await store.logout()
    assert await store.get_current_user() is None


async def test_login_with_wrong_password(store):
    with pytest.raises(InvalidCredentials):
        await store.login("hs.binh", "wrong")
    with pytest.raises(InvalidCredentials):
        await store.login("nobody", "123")
    assert await store.get_current_user() is None


async def test_passwords_are_stored_hashed(store):
    student = await store.create_student(StudentCreate(name="Dao", username="hs.dao", password="secret"))
    stored = next(u for u in store.db["users"] if u["id"] == student.id)
    assert stored["password"] != "secret"
    assert stored["password"].startswith("$2")
    assert "password" not in student.model_dump()
    assert isinstance(await store.login("hs.dao", "secret"), Student)


async def test_student_without_password_cannot_login(store):
    await store.create_student(StudentCreate(name="Dao", username="hs.dao"))
    with pytest.raises(InvalidCredentials):
        await store.login("hs.dao", "")


async def test_student_count_follows_student_mutations(store):
    assert await class_count(store, "c1") == 2
    student = await store.create_student(StudentCreate(name="Dao", username="hs.dao", classId="c1"))
    assert await class_count(store, "c1") == 3

    moved = await store.update_student(StudentUpdate(id=student.id, name="Dao", username="hs.dao", classId="c2"))
    assert moved.classId == "c2"
    assert await class_count(store, "c1") == 2
    assert await class_count(store, "c2") == 2

    await store.delete_student(student.id)
    assert await class_count(store, "c2") == 1
    for classroom in await store.list_classes():
        assert classroom.studentCount == len(await store.list_students(class_id=classroom.id))


async def test_update_class_cannot_overwrite_student_count(store):
    updated = await store.update_class(Classroom(id="c1", name="7A1 renamed", teacherId="u1", studentCount=99))
    assert updated.studentCount == 2
    assert updated.name == "7A1 renamed"


async def test_new_class_starts_empty_and_delete_detaches_students(store):
    classroom = await store.create_class(ClassroomCreate(name="7A3", teacherId="u1"))
    assert classroom.studentCount == 0
    await store.delete_class("c1")
    assert await store.list_students(class_id="c1") == []
    assert all(s.classId is None for s in await store.list_students() if s.id in ("u2", "u3"))


async def test_create_class_requires_a_teacher(store):
    with pytest.raises(NotFound):
        await store.create_class(ClassroomCreate(name="7A3", teacherId="u2"))


async def test_duplicate_username_is_rejected(store):
    with pytest.raises(ValidationFailed) as exc:
        await store.create_student(StudentCreate(name="Copy", username="hs.binh"))
    assert exc.value.reason == "DuplicateUsername"


@pytest.mark.parametrize("operation, args", [
    ("delete_student", ("missing",)),
    ("delete_class", ("missing",)),
    ("delete_subject", ("missing",)),
    ("delete_topic", ("missing",)),
    ("delete_lesson", ("missing",)),
    ("delete_assignment", ("missing",)),
    ("delete_question", ("missing",)),
    ("grade_submission", ("missing", 5, "ok")),
    ("update_student", (StudentUpdate(id="missing", name="Ghost", username="ghost"),)),
    ("update_class", (Classroom(id="missing", name="7A9", teacherId="u1"),)),
    ("update_subject", (Subject(id="missing", name="History"),)),
    ("update_topic", (Topic(id="missing", subjectId="s1", title="Ghost topic"),)),
    ("update_lesson", (Lesson(id="missing", topicId="t1", title="Ghost lesson"),)),
    ("update_assignment", (Assignment(id="missing", title="Ghost", dueDate="2024-01-10"),)),
    ("update_question", (ShortAnswerQuestion(id="missing", content="Q", correctAnswer="A"),)),
])
async def test_missing_ids_raise_not_found(store, operation, args):
    with pytest.raises(NotFound):
        await getattr(store, operation)(*args)


async def test_absent_filter_returns_everything(store):
    assert len(await store.list_students()) == 3
    assert len(await store.list_students(class_id="c1")) == 2
    assert len(await store.list_lessons()) == 4
    assert [l.id for l in await store.list_lessons(topic_id="t1")] == ["l1", "l2"]
    assert {l.id for l in await store.list_lessons(status="PUBLISHED")} == {"l1", "l2", "l4"}
    assert [t.order for t in await store.list_topics(subject_id="s1")] == [1, 2, 3]


async def test_assignment_class_filter_includes_unscoped(store):
    scoped = await store.create_assignment(AssignmentCreate(title="Only 7A2", classId="c2", dueDate="2024-01-10"))
    c1_ids = {a.id for a in await store.list_assignments(class_id="c1")}
    c2_ids = {a.id for a in await store.list_assignments(class_id="c2")}
    assert c1_ids == {"a1", "a2"}
    assert c2_ids == {"a1", "a2", scoped.id}
    assert len(await store.list_assignments()) == 3


async def test_resubmission_overwrites_in_place(store, clock):
    clock.now = utc(2023, 12, 20)
    first = await store.submit_assignment(SubmissionCreate(assignmentId="a2", studentId="u3", content="draft"))
    assignment = next(a for a in await store.list_assignments() if a.id == "a2")
    student = next(s for s in await store.list_students() if s.id == "u3")
    assert on_time_rate([student], [assignment], await store.list_submissions()) == 100

    clock.now = utc(2024, 1, 5)
    second = await store.submit_assignment(SubmissionCreate(assignmentId="a2", studentId="u3", content="final"))
    assert second.id == first.id
    assert second.submittedAt == utc(2024, 1, 5)
    assert second.content == "final"

    pair = await store.list_submissions(assignment_id="a2", student_id="u3")
    assert len(pair) == 1
    assert on_time_rate([student], [assignment], pair) == 0


async def test_resubmission_keeps_earlier_grade(store):
    regraded = await store.submit_assignment(SubmissionCreate(assignmentId="a1", studentId="u2", content="v2"))
    assert regraded.id == "sub1"
    assert regraded.grade == 9


async def test_submit_requires_existing_assignment_and_student(store):
    with pytest.raises(NotFound):
        await store.submit_assignment(SubmissionCreate(assignmentId="nope", studentId="u2"))
    with pytest.raises(NotFound):
        await store.submit_assignment(SubmissionCreate(assignmentId="a1", studentId="u1"))


async def test_grade_is_bounded_by_max_score(store):
    with pytest.raises(ValidationFailed) as exc:
        await store.grade_submission("sub1", 11, "too much")
    assert exc.value.reason == "GradeOutOfRange"
    with pytest.raises(ValidationFailed):
        await store.grade_submission("sub1", -1, "")
    graded = await store.grade_submission("sub1", 10, "perfect")
    assert (graded.grade, graded.feedback) == (10, "perfect")
    # the failed attempts left nothing behind
    assert (await store.list_submissions(assignment_id="a1"))[0].grade == 10


async def test_mark_lesson_complete_is_idempotent_and_monotonic(store, clock):
    first = await store.mark_lesson_complete("u3", "l2")
    clock.now = utc(2023, 11, 2)
    second = await store.mark_lesson_complete("u3", "l2")
    assert first.completed and second.completed
    assert second.lastAccess == utc(2023, 11, 2)
    visited = await store.record_lesson_access("u3", "l2")
    assert visited.completed is True
    records = [p for p in await store.list_progress(student_id="u3") if p.lessonId == "l2"]
    assert len(records) == 1


async def test_record_access_creates_incomplete_progress(store):
    progress = await store.record_lesson_access("u3", "l4")
    assert progress.completed is False


async def test_announcements_newest_first(store, clock):
    clock.now = utc(2023, 11, 5)
    created = await store.create_announcement(
        AnnouncementCreate(classId="c1", teacherId="u1", title="New", content="", target="ALL")
    )
    items = await store.list_announcements(class_id="c1")
    assert [a.id for a in items] == [created.id, "ann1", "ann2"]


async def test_deleting_topic_removes_its_lessons_and_progress(store):
    await store.delete_topic("t1")
    assert await store.list_lessons(topic_id="t1") == []
    assert all(p.lessonId not in ("l1", "l2") for p in await store.list_progress())
    assert next(a for a in await store.list_assignments() if a.id == "a1").lessonId is None


async def test_lessons_require_existing_topic(store):
    with pytest.raises(NotFound):
        await store.create_lesson(LessonCreate(topicId="missing", title="Orphan"))
    with pytest.raises(NotFound):
        await store.create_topic(TopicCreate(subjectId="missing", title="Orphan"))


async def test_questions_are_validated_before_saving(store):
    before = len(await store.list_questions())
    with pytest.raises(ValidationFailed):
        await store.create_question(MultipleChoiceQuestion(content="Which?", options=["A"], correctAnswer="B"))
    assert len(await store.list_questions()) == before

    created = await store.create_question(OrderingQuestion(content="Order", options=["a", "b"], subjectId="s1"))
    assert created.id
    assert created.correctAnswer == ["a", "b"]


async def test_update_question_can_change_type(store):
    changed = await store.update_question(ShortAnswerQuestion(id="q1", content="Name an input device",
                                                              correctAnswer="Keyboard", subjectId="s1"))
    stored = next(q for q in await store.list_questions() if q.id == "q1")
    assert stored.type == "SHORT_ANSWER"
    assert not hasattr(stored, "options")
    assert stored == changed


async def test_question_filters(store):
    assert len(await store.list_questions()) == 4
    assert [q.id for q in await store.list_questions(type="ORDERING")] == ["q4"]
    assert await store.list_questions(topic_id="t2") == []


async def test_import_questions_creates_valid_rows(store):
    result = await store.import_questions(template_rows(), subject_id="s1", topic_id="t2")
    assert len(result.questions) == 4
    assert all(q.id for q in result.questions)
    assert len(await store.list_questions(topic_id="t2")) == 4


async def test_file_persistence_round_trip(tmp_path, clock):
    path = tmp_path / "lms.json"
    first = MemoryProvider(data_file=str(path), seed=True, bcrypt_rounds=4, clock=clock)
    await first.init()
    await first.create_student(StudentCreate(name="Dao", username="hs.dao", classId="c2"))
    assert "hs.dao" in {u["username"] for u in json.loads(path.read_text(encoding="utf-8"))["users"]}

    second = MemoryProvider(data_file=str(path), seed=True, bcrypt_rounds=4, clock=clock)
    await second.init()
    assert len(await second.list_students()) == 4
    assert {c.id: c.studentCount for c in await second.list_classes()}["c2"] == 2


async def test_unseeded_store_starts_empty(empty_store):
    assert await empty_store.list_students() == []
    assert await empty_store.list_questions() == []
    with pytest.raises(InvalidCredentials):
        await empty_store.login("gv.an", "123")
    with pytest.raises(NotFound):
        await empty_store.create_student(StudentCreate(name="Dao", username="hs.dao", classId="c1"))


@pytest.mark.parametrize("grade", [float("nan"), float("inf"), float("-inf")])
async def test_grade_must_be_a_finite_number(store, grade):
    with pytest.raises(ValidationFailed) as exc:
        await store.grade_submission("sub1", grade, "")
    assert exc.value.reason == "GradeOutOfRange"
    assert (await store.list_submissions(assignment_id="a1"))[0].grade == 9


async def test_deleting_class_removes_its_assignments_and_submissions(store):
    scoped = await store.create_assignment(AssignmentCreate(title="Only 7A2", classId="c2", dueDate="2024-01-10"))
    await store.submit_assignment(SubmissionCreate(assignmentId=scoped.id, studentId="u4", content="done"))

    await store.delete_class("c2")
    remaining = await store.list_assignments()
    assert scoped.id not in {a.id for a in remaining}
    assert all(a.classId is None for a in remaining)
    assert await store.list_submissions(assignment_id=scoped.id) == []
    # unscoped assignments stay editable
    a1 = next(a for a in remaining if a.id == "a1")
    updated = await store.update_assignment(a1.model_copy(update={"title": "Renamed"}))
    assert updated.title == "Renamed"


async def test_student_count_never_goes_negative(store):
    await store._increment("classes", {"id": "c2"}, "studentCount", -1)
    await store._increment("classes", {"id": "c2"}, "studentCount", -1)
    assert await class_count(store, "c2") == 0
    await store._increment("classes", {"id": "c2"}, "studentCount", 1)
    assert await class_count(store, "c2") == 1


def test_grade_request_rejects_nan():
    with pytest.raises(ValidationFailed) as exc:
        load(GradeRequest, {"id": "sub1", "grade": float("nan")})
    assert exc.value.reason == "InvalidPayload"

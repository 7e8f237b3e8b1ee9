# providers/store.py
import copy
import logging
import math
from abc import abstractmethod
from typing import Callable, List, Optional
from urllib.parse import quote

import bcrypt

import config
from models.announcement import Announcement, AnnouncementCreate
from models.assignment import Assignment, AssignmentCreate, Submission, SubmissionCreate
from models.classroom import Classroom, ClassroomCreate
from models.common import load, new_id, utcnow
from models.curriculum import Lesson, LessonCreate, Subject, SubjectCreate, Topic, TopicCreate
from models.progress import Progress
from models.question import Question, question_adapter
from models.user import STUDENT, TEACHER, Student, StudentCreate, StudentUpdate, User, user_adapter
from providers.base import DataProvider
from providers.seed import DEMO_PASSWORD, SEED_DATA
from services.errors import InvalidCredentials, NotFound, ValidationFailed
from services.questions import validate_question

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class StoreProvider(DataProvider):
    """Business rules of the LMS written once over a small document store.

    Subclasses supply the storage primitives below. Queries are plain
    equality matches on top-level fields, Mongo style. Every mutation checks
    all of its preconditions before its first write.
    """

    def __init__(self, clock: Callable = None, bcrypt_rounds: int = None, seed: bool = False):
        super().__init__()
        self.clock = clock or utcnow
        self.bcrypt_rounds = bcrypt_rounds or config.BCRYPT_ROUNDS
        self.seed = seed

    # Storage primitives

    @abstractmethod
    async def _find(self, collection: str, query: dict) -> List[dict]: ...

    @abstractmethod
    async def _find_one(self, collection: str, query: dict) -> Optional[dict]: ...

    @abstractmethod
    async def _insert(self, collection: str, doc: dict) -> None: ...

    @abstractmethod
    async def _update(self, collection: str, query: dict, fields: dict) -> int:
        """Set ``fields`` on every matching document; returns the match count."""

    @abstractmethod
    async def _replace(self, collection: str, query: dict, doc: dict) -> int: ...

    @abstractmethod
    async def _delete(self, collection: str, query: dict) -> int: ...

    @abstractmethod
    async def _increment(self, collection: str, query: dict, field: str, amount: int) -> None:
        """Add ``amount`` to ``field``; a change that would go below zero is skipped."""

    @abstractmethod
    async def _upsert(self, collection: str, query: dict, fields: dict, on_insert: dict) -> dict:
        """Atomically update the document matching ``query`` or insert
        ``query + on_insert + fields``; returns the resulting document."""

    async def init(self):
        if self.seed and not await self._find_one("users", {}):
            await self.load_seed()

    async def load_seed(self):
        logger.info("Seeding store with demo data")
        for collection, docs in SEED_DATA.items():
            for doc in docs:
                doc = copy.deepcopy(doc)
                if collection == "users":
                    doc["password"] = self.hash_password(DEMO_PASSWORD)
                await self._insert(collection, doc)

    async def _require(self, collection: str, entity: str, entity_id: str, **extra) -> dict:
        doc = await self._find_one(collection, {"id": entity_id, **extra})
        if doc is None:
            raise NotFound(entity, entity_id)
        return doc

    # Passwords

    def hash_password(self, password: str) -> str:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailed("PasswordTooLong", f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: Optional[str]) -> bool:
        if not hashed or password is None:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    # Auth

    async def authenticate(self, username: str, password: str) -> User:
        """Check credentials without touching this provider's session."""
        doc = await self._find_one("users", {"username": username})
        if not doc or not self.verify_password(password, doc.get("password")):
            logger.warning(f"Failed login for username: {username}")
            raise InvalidCredentials()
        return load(user_adapter, doc)

    async def login(self, username: str, password: str) -> User:
        user = await self.authenticate(username, password)
        self.session.start(user)
        return user

    async def get_user(self, user_id: str) -> User:
        return load(user_adapter, await self._require("users", "User", user_id))

    # Students

    async def list_students(self, class_id: str = None) -> List[Student]:
        query = {"role": STUDENT}
        if class_id:
            query["classId"] = class_id
        return [Student.model_validate(d) for d in await self._find("users", query)]

    async def _check_username(self, username: str, user_id: str = None):
        existing = await self._find_one("users", {"username": username})
        if existing and existing["id"] != user_id:
            raise ValidationFailed("DuplicateUsername", f"Username already exists: {username}")

    async def create_student(self, student: StudentCreate) -> Student:
        await self._check_username(student.username)
        if student.classId:
            await self._require("classes", "Class", student.classId)
        doc = student.model_dump(exclude={"password"})
        doc.update(id=new_id(), role=STUDENT)
        # Without a password the account exists but cannot sign in yet
        doc["password"] = self.hash_password(student.password) if student.password else None
        if not doc.get("avatar"):
            doc["avatar"] = f"https://ui-avatars.com/api/?name={quote(student.name)}&background=random"

        await self._insert("users", doc)
        if student.classId:
            await self._increment("classes", {"id": student.classId}, "studentCount", 1)
        logger.info(f"Created student {doc['id']} in class {student.classId}")
        return Student.model_validate(doc)

    async def update_student(self, student: StudentUpdate) -> Student:
        existing = await self._require("users", "Student", student.id, role=STUDENT)
        await self._check_username(student.username, student.id)
        if student.classId:
            await self._require("classes", "Class", student.classId)
        fields = student.model_dump(exclude={"id", "password"})
        if fields.get("avatar") is None:
            fields.pop("avatar")
        if student.password:
            fields["password"] = self.hash_password(student.password)

        await self._update("users", {"id": student.id}, fields)
        old_class = existing.get("classId")
        if old_class != student.classId:
            if old_class:
                await self._increment("classes", {"id": old_class}, "studentCount", -1)
            if student.classId:
                await self._increment("classes", {"id": student.classId}, "studentCount", 1)
            logger.info(f"Moved student {student.id} from class {old_class} to {student.classId}")
        return Student.model_validate({**existing, **fields})

    async def delete_student(self, student_id: str) -> None:
        existing = await self._require("users", "Student", student_id, role=STUDENT)
        await self._delete("users", {"id": student_id})
        await self._delete("submissions", {"studentId": student_id})
        await self._delete("progress", {"studentId": student_id})
        if existing.get("classId"):
            await self._increment("classes", {"id": existing["classId"]}, "studentCount", -1)
        logger.info(f"Deleted student {student_id}")

    # Classes

    async def list_classes(self, teacher_id: str = None) -> List[Classroom]:
        query = {"teacherId": teacher_id} if teacher_id else {}
        return [Classroom.model_validate(d) for d in await self._find("classes", query)]

    async def create_class(self, classroom: ClassroomCreate) -> Classroom:
        await self._require("users", "Teacher", classroom.teacherId, role=TEACHER)
        doc = classroom.model_dump()
        doc.update(id=new_id(), studentCount=0)
        await self._insert("classes", doc)
        logger.info(f"Created class {doc['id']} ({classroom.name})")
        return Classroom.model_validate(doc)

    async def update_class(self, classroom: Classroom) -> Classroom:
        existing = await self._require("classes", "Class", classroom.id)
        if classroom.teacherId != existing.get("teacherId"):
            await self._require("users", "Teacher", classroom.teacherId, role=TEACHER)
        # studentCount belongs to the student mutations
        fields = classroom.model_dump(exclude={"id", "studentCount"})
        await self._update("classes", {"id": classroom.id}, fields)
        return Classroom.model_validate({**existing, **fields})

    async def delete_class(self, class_id: str) -> None:
        await self._require("classes", "Class", class_id)
        detached = await self._update("users", {"classId": class_id}, {"classId": None})
        await self._delete("announcements", {"classId": class_id})
        # Class-scoped work goes with its class; unscoped assignments stay
        scoped = await self._find("assignments", {"classId": class_id})
        for assignment in scoped:
            await self._delete("submissions", {"assignmentId": assignment["id"]})
        await self._delete("assignments", {"classId": class_id})
        await self._delete("classes", {"id": class_id})
        logger.info(f"Deleted class {class_id}, detached {detached} students, removed {len(scoped)} assignments")

    # Subjects / topics / lessons

    async def list_subjects(self) -> List[Subject]:
        return [Subject.model_validate(d) for d in await self._find("subjects", {})]

    async def create_subject(self, subject: SubjectCreate) -> Subject:
        doc = {**subject.model_dump(), "id": new_id()}
        await self._insert("subjects", doc)
        return Subject.model_validate(doc)

    async def update_subject(self, subject: Subject) -> Subject:
        await self._require("subjects", "Subject", subject.id)
        await self._update("subjects", {"id": subject.id}, subject.model_dump(exclude={"id"}))
        return subject

    async def delete_subject(self, subject_id: str) -> None:
        await self._require("subjects", "Subject", subject_id)
        for topic in await self._find("topics", {"subjectId": subject_id}):
            await self._delete_topic_tree(topic["id"])
        await self._delete("subjects", {"id": subject_id})

    async def list_topics(self, subject_id: str = None) -> List[Topic]:
        query = {"subjectId": subject_id} if subject_id else {}
        topics = [Topic.model_validate(d) for d in await self._find("topics", query)]
        return sorted(topics, key=lambda t: t.order)

    async def create_topic(self, topic: TopicCreate) -> Topic:
        await self._require("subjects", "Subject", topic.subjectId)
        doc = {**topic.model_dump(), "id": new_id()}
        await self._insert("topics", doc)
        return Topic.model_validate(doc)

    async def update_topic(self, topic: Topic) -> Topic:
        await self._require("topics", "Topic", topic.id)
        await self._require("subjects", "Subject", topic.subjectId)
        await self._update("topics", {"id": topic.id}, topic.model_dump(exclude={"id"}))
        return topic

    async def delete_topic(self, topic_id: str) -> None:
        await self._require("topics", "Topic", topic_id)
        await self._delete_topic_tree(topic_id)

    async def _delete_topic_tree(self, topic_id: str):
        for lesson in await self._find("lessons", {"topicId": topic_id}):
            await self._delete_lesson_tree(lesson["id"])
        await self._delete("topics", {"id": topic_id})

    async def list_lessons(self, topic_id: str = None, status: str = None) -> List[Lesson]:
        query = {}
        if topic_id:
            query["topicId"] = topic_id
        if status:
            query["status"] = status
        lessons = [Lesson.model_validate(d) for d in await self._find("lessons", query)]
        return sorted(lessons, key=lambda l: l.order)

    async def create_lesson(self, lesson: LessonCreate) -> Lesson:
        await self._require("topics", "Topic", lesson.topicId)
        doc = {**lesson.model_dump(), "id": new_id()}
        await self._insert("lessons", doc)
        logger.info(f"Created lesson {doc['id']} in topic {lesson.topicId} ({lesson.status})")
        return Lesson.model_validate(doc)

    async def update_lesson(self, lesson: Lesson) -> Lesson:
        await self._require("lessons", "Lesson", lesson.id)
        await self._require("topics", "Topic", lesson.topicId)
        await self._update("lessons", {"id": lesson.id}, lesson.model_dump(exclude={"id"}))
        return lesson

    async def delete_lesson(self, lesson_id: str) -> None:
        await self._require("lessons", "Lesson", lesson_id)
        await self._delete_lesson_tree(lesson_id)

    async def _delete_lesson_tree(self, lesson_id: str):
        await self._delete("progress", {"lessonId": lesson_id})
        await self._update("assignments", {"lessonId": lesson_id}, {"lessonId": None})
        await self._delete("lessons", {"id": lesson_id})

    # Assignments

    async def list_assignments(self, class_id: str = None, lesson_id: str = None) -> List[Assignment]:
        query = {"lessonId": lesson_id} if lesson_id else {}
        assignments = [Assignment.model_validate(d) for d in await self._find("assignments", query)]
        if class_id:
            # Assignments without a class apply to every class
            assignments = [a for a in assignments if a.classId in (None, class_id)]
        return assignments

    async def _check_assignment_links(self, assignment: AssignmentCreate):
        if assignment.lessonId:
            await self._require("lessons", "Lesson", assignment.lessonId)
        if assignment.classId:
            await self._require("classes", "Class", assignment.classId)

    async def create_assignment(self, assignment: AssignmentCreate) -> Assignment:
        await self._check_assignment_links(assignment)
        doc = {**assignment.model_dump(mode="json"), "id": new_id()}
        await self._insert("assignments", doc)
        logger.info(f"Created assignment {doc['id']} due {doc['dueDate']}")
        return Assignment.model_validate(doc)

    async def update_assignment(self, assignment: Assignment) -> Assignment:
        await self._require("assignments", "Assignment", assignment.id)
        await self._check_assignment_links(assignment)
        await self._update("assignments", {"id": assignment.id}, assignment.model_dump(mode="json", exclude={"id"}))
        return assignment

    async def delete_assignment(self, assignment_id: str) -> None:
        await self._require("assignments", "Assignment", assignment_id)
        removed = await self._delete("submissions", {"assignmentId": assignment_id})
        await self._delete("assignments", {"id": assignment_id})
        logger.info(f"Deleted assignment {assignment_id} and {removed} submissions")

    # Submissions

    async def list_submissions(self, assignment_id: str = None, student_id: str = None) -> List[Submission]:
        query = {}
        if assignment_id:
            query["assignmentId"] = assignment_id
        if student_id:
            query["studentId"] = student_id
        return [Submission.model_validate(d) for d in await self._find("submissions", query)]

    async def submit_assignment(self, submission: SubmissionCreate) -> Submission:
        await self._require("assignments", "Assignment", submission.assignmentId)
        student = await self._require("users", "Student", submission.studentId, role=STUDENT)
        fields = {
            "content": submission.content,
            "studentName": submission.studentName or student.get("name"),
            # A resubmission overwrites in place and restarts the clock
            "submittedAt": self.clock().isoformat(),
        }
        doc = await self._upsert(
            "submissions",
            {"assignmentId": submission.assignmentId, "studentId": submission.studentId},
            fields,
            {"id": new_id(), "grade": None, "feedback": None},
        )
        logger.info(f"Submission {doc['id']} for assignment {submission.assignmentId} by {submission.studentId}")
        return Submission.model_validate(doc)

    async def grade_submission(self, submission_id: str, grade: float, feedback: str = "") -> Submission:
        doc = await self._require("submissions", "Submission", submission_id)
        assignment = await self._require("assignments", "Assignment", doc["assignmentId"])
        max_score = assignment.get("maxScore", 10)
        if grade is None or not math.isfinite(grade) or grade < 0 or grade > max_score:
            raise ValidationFailed("GradeOutOfRange", f"Grade must be between 0 and {max_score}")
        fields = {"grade": grade, "feedback": feedback}
        await self._update("submissions", {"id": submission_id}, fields)
        logger.info(f"Graded submission {submission_id}: {grade}/{max_score}")
        return Submission.model_validate({**doc, **fields})

    # Progress

    async def list_progress(self, student_id: str = None) -> List[Progress]:
        query = {"studentId": student_id} if student_id else {}
        return [Progress.model_validate(d) for d in await self._find("progress", query)]

    async def _touch_progress(self, student_id: str, lesson_id: str, completed: bool) -> Progress:
        await self._require("users", "Student", student_id, role=STUDENT)
        await self._require("lessons", "Lesson", lesson_id)
        fields = {"lastAccess": self.clock().isoformat()}
        on_insert = {}
        # Completion is monotonic: a plain visit never clears it
        if completed:
            fields["completed"] = True
        else:
            on_insert["completed"] = False
        doc = await self._upsert("progress", {"studentId": student_id, "lessonId": lesson_id}, fields, on_insert)
        return Progress.model_validate(doc)

    async def mark_lesson_complete(self, student_id: str, lesson_id: str) -> Progress:
        return await self._touch_progress(student_id, lesson_id, completed=True)

    async def record_lesson_access(self, student_id: str, lesson_id: str) -> Progress:
        return await self._touch_progress(student_id, lesson_id, completed=False)

    # Announcements

    async def list_announcements(self, class_id: str = None) -> List[Announcement]:
        query = {"classId": class_id} if class_id else {}
        items = [Announcement.model_validate(d) for d in await self._find("announcements", query)]
        return sorted(items, key=lambda a: a.createdAt, reverse=True)

    async def create_announcement(self, announcement: AnnouncementCreate) -> Announcement:
        await self._require("classes", "Class", announcement.classId)
        doc = {**announcement.model_dump(), "id": new_id(), "createdAt": self.clock().isoformat()}
        await self._insert("announcements", doc)
        return Announcement.model_validate(doc)

    # Question bank

    async def list_questions(self, subject_id: str = None, topic_id: str = None, type: str = None) -> List[Question]:
        query = {}
        if subject_id:
            query["subjectId"] = subject_id
        if topic_id:
            query["topicId"] = topic_id
        if type:
            query["type"] = type
        return [load(question_adapter, d) for d in await self._find("questions", query)]

    async def create_question(self, question: Question) -> Question:
        question = validate_question(question).model_copy(update={"id": new_id()})
        await self._insert("questions", question.model_dump())
        return question

    async def update_question(self, question: Question) -> Question:
        if not question.id:
            raise NotFound("Question")
        await self._require("questions", "Question", question.id)
        question = validate_question(question)
        # Replace rather than merge: a type change drops the old payload
        await self._replace("questions", {"id": question.id}, question.model_dump())
        return question

    async def delete_question(self, question_id: str) -> None:
        await self._require("questions", "Question", question_id)
        await self._delete("questions", {"id": question_id})

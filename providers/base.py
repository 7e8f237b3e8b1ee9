# providers/base.py
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from models.announcement import Announcement, AnnouncementCreate
from models.assignment import Assignment, AssignmentCreate, Submission, SubmissionCreate
from models.classroom import Classroom, ClassroomCreate
from models.curriculum import Lesson, LessonCreate, Subject, SubjectCreate, Topic, TopicCreate
from models.progress import Progress
from models.question import Question
from models.user import Student, StudentCreate, StudentUpdate, User
from services.question_sheet import ImportResult, import_rows
from services.session import Session


class DataProvider(ABC):
    """Every operation the LMS needs from its backend.

    List operations take optional filters; a filter left as ``None`` returns
    the unfiltered set. Errors from ``services.errors`` are raised unchanged.
    """

    def __init__(self):
        self.session = Session()

    async def init(self):
        pass

    # Auth
    @abstractmethod
    async def login(self, username: str, password: str) -> User: ...

    async def logout(self):
        self.session.clear()

    async def get_current_user(self) -> Optional[User]:
        return self.session.user

    # Students
    @abstractmethod
    async def list_students(self, class_id: str = None) -> List[Student]: ...

    @abstractmethod
    async def create_student(self, student: StudentCreate) -> Student: ...

    @abstractmethod
    async def update_student(self, student: StudentUpdate) -> Student: ...

    @abstractmethod
    async def delete_student(self, student_id: str) -> None: ...

    # Classes
    @abstractmethod
    async def list_classes(self, teacher_id: str = None) -> List[Classroom]: ...

    @abstractmethod
    async def create_class(self, classroom: ClassroomCreate) -> Classroom: ...

    @abstractmethod
    async def update_class(self, classroom: Classroom) -> Classroom: ...

    @abstractmethod
    async def delete_class(self, class_id: str) -> None: ...

    # Curriculum
    @abstractmethod
    async def list_subjects(self) -> List[Subject]: ...

    @abstractmethod
    async def create_subject(self, subject: SubjectCreate) -> Subject: ...

    @abstractmethod
    async def update_subject(self, subject: Subject) -> Subject: ...

    @abstractmethod
    async def delete_subject(self, subject_id: str) -> None: ...

    @abstractmethod
    async def list_topics(self, subject_id: str = None) -> List[Topic]: ...

    @abstractmethod
    async def create_topic(self, topic: TopicCreate) -> Topic: ...

    @abstractmethod
    async def update_topic(self, topic: Topic) -> Topic: ...

    @abstractmethod
    async def delete_topic(self, topic_id: str) -> None: ...

    @abstractmethod
    async def list_lessons(self, topic_id: str = None, status: str = None) -> List[Lesson]: ...

    @abstractmethod
    async def create_lesson(self, lesson: LessonCreate) -> Lesson: ...

    @abstractmethod
    async def update_lesson(self, lesson: Lesson) -> Lesson: ...

    @abstractmethod
    async def delete_lesson(self, lesson_id: str) -> None: ...

    # Assignments and submissions
    @abstractmethod
    async def list_assignments(self, class_id: str = None, lesson_id: str = None) -> List[Assignment]: ...

    @abstractmethod
    async def create_assignment(self, assignment: AssignmentCreate) -> Assignment: ...

    @abstractmethod
    async def update_assignment(self, assignment: Assignment) -> Assignment: ...

    @abstractmethod
    async def delete_assignment(self, assignment_id: str) -> None: ...

    @abstractmethod
    async def list_submissions(self, assignment_id: str = None, student_id: str = None) -> List[Submission]: ...

    @abstractmethod
    async def submit_assignment(self, submission: SubmissionCreate) -> Submission: ...

    @abstractmethod
    async def grade_submission(self, submission_id: str, grade: float, feedback: str = "") -> Submission: ...

    # Progress
    @abstractmethod
    async def list_progress(self, student_id: str = None) -> List[Progress]: ...

    @abstractmethod
    async def mark_lesson_complete(self, student_id: str, lesson_id: str) -> Progress: ...

    @abstractmethod
    async def record_lesson_access(self, student_id: str, lesson_id: str) -> Progress: ...

    # Announcements
    @abstractmethod
    async def list_announcements(self, class_id: str = None) -> List[Announcement]: ...

    @abstractmethod
    async def create_announcement(self, announcement: AnnouncementCreate) -> Announcement: ...

    # Question bank
    @abstractmethod
    async def list_questions(self, subject_id: str = None, topic_id: str = None,
                             type: str = None) -> List[Question]: ...

    @abstractmethod
    async def create_question(self, question: Question) -> Question: ...

    @abstractmethod
    async def update_question(self, question: Question) -> Question: ...

    @abstractmethod
    async def delete_question(self, question_id: str) -> None: ...

    async def import_questions(self, rows: Sequence[Sequence], subject_id: str = None,
                               topic_id: str = None, has_header: bool = True) -> ImportResult:
        result = import_rows(rows, subject_id, topic_id, has_header=has_header)
        result.questions = [await self.create_question(q) for q in result.questions]
        return result

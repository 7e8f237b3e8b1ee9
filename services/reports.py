# services/reports.py
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import config
from models.assignment import Assignment, Submission
from models.common import utcnow
from models.curriculum import PUBLISHED, Lesson
from models.progress import Progress
from models.user import Student

MAX_LATE_ASSIGNMENTS = config.AT_RISK_MAX_LATE
MIN_AVERAGE_SCORE = config.AT_RISK_MIN_AVERAGE

# Shown instead of an average when a student has no graded work
NO_DATA = "-"


@dataclass(frozen=True)
class RiskPolicy:
    max_late: int = MAX_LATE_ASSIGNMENTS
    min_average: float = MIN_AVERAGE_SCORE


@dataclass
class AtRiskStudent:
    student: Student
    lateCount: int
    avgScore: float
    gradedCount: int

    def to_dict(self) -> dict:
        return {
            **self.student.model_dump(mode="json"),
            "lateCount": self.lateCount,
            "avgScore": round(self.avgScore, 1),
            "gradedCount": self.gradedCount,
        }


@dataclass
class ClassReport:
    classId: str
    studentCount: int
    completionRate: int
    onTimeRate: int
    atRisk: List[AtRiskStudent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "classId": self.classId,
            "studentCount": self.studentCount,
            "completionRate": self.completionRate,
            "onTimeRate": self.onTimeRate,
            "atRisk": [s.to_dict() for s in self.atRisk],
        }


def percent(part: int, whole: int) -> int:
    """Half-up rounded percentage, 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def _index_submissions(submissions: Iterable[Submission]) -> Dict[Tuple[str, str], Submission]:
    return {(s.studentId, s.assignmentId): s for s in submissions}


def is_late(submission: Submission, assignment: Assignment) -> bool:
    return submission.submittedAt > assignment.dueDate


def completion_rate(students: Sequence[Student], published_lessons: Sequence[Lesson],
                    progress: Iterable[Progress]) -> int:
    lesson_ids = {l.id for l in published_lessons}
    student_ids = {s.id for s in students}
    expected = len(student_ids) * len(lesson_ids)
    completed = {
        (p.studentId, p.lessonId)
        for p in progress
        if p.completed and p.studentId in student_ids and p.lessonId in lesson_ids
    }
    return percent(len(completed), expected)


def on_time_rate(students: Sequence[Student], assignments: Sequence[Assignment],
                 submissions: Iterable[Submission]) -> int:
    by_pair = _index_submissions(submissions)
    on_time = late = 0
    for student in students:
        for assignment in assignments:
            sub = by_pair.get((student.id, assignment.id))
            if sub is None:
                continue
            if is_late(sub, assignment):
                late += 1
            else:
                on_time += 1
    return percent(on_time, on_time + late)


def at_risk_students(students: Sequence[Student], assignments: Sequence[Assignment],
                     submissions: Iterable[Submission], now: Optional[datetime] = None,
                     policy: RiskPolicy = RiskPolicy()) -> List[AtRiskStudent]:
    now = now or utcnow()
    by_pair = _index_submissions(submissions)
    flagged = []
    for student in students:
        late_count = 0
        total = 0.0
        graded = 0
        for assignment in assignments:
            sub = by_pair.get((student.id, assignment.id))
            if sub is None:
                # Missing work only counts once it is overdue
                if now > assignment.dueDate:
                    late_count += 1
                continue
            if is_late(sub, assignment):
                late_count += 1
            if sub.grade is not None:
                total += sub.grade
                graded += 1
        avg = total / graded if graded else 0.0
        if late_count > policy.max_late or (graded > 0 and avg < policy.min_average):
            flagged.append(AtRiskStudent(student=student, lateCount=late_count, avgScore=avg, gradedCount=graded))
    return flagged


def class_average(student_id: str, submissions: Iterable[Submission]) -> Union[float, str]:
    grades = [s.grade for s in submissions if s.studentId == student_id and s.grade is not None]
    if not grades:
        return NO_DATA
    return sum(grades) / len(grades)


def build_class_report(class_id: str, students: Sequence[Student], assignments: Sequence[Assignment],
                       submissions: Sequence[Submission], progress: Sequence[Progress],
                       lessons: Sequence[Lesson], now: Optional[datetime] = None,
                       policy: RiskPolicy = RiskPolicy()) -> ClassReport:
    published = [l for l in lessons if l.status == PUBLISHED]
    return ClassReport(
        classId=class_id,
        studentCount=len(students),
        completionRate=completion_rate(students, published, progress),
        onTimeRate=on_time_rate(students, assignments, submissions),
        atRisk=at_risk_students(students, assignments, submissions, now=now, policy=policy),
    )


def student_summary(student: Student, assignments: Sequence[Assignment], submissions: Sequence[Submission],
                    progress: Sequence[Progress], lessons: Sequence[Lesson]) -> dict:
    """Numbers behind a student's dashboard cards."""
    published = {l.id for l in lessons if l.status == PUBLISHED}
    done = {p.lessonId for p in progress if p.studentId == student.id and p.completed and p.lessonId in published}
    submitted = {s.assignmentId for s in submissions if s.studentId == student.id}
    pending = [a for a in assignments if a.id not in submitted]
    average = class_average(student.id, submissions)
    return {
        "studentId": student.id,
        "completedLessons": len(done),
        "publishedLessons": len(published),
        "completionRate": percent(len(done), len(published)),
        "pendingAssignments": len(pending),
        "average": average if average == NO_DATA else round(average, 1),
    }

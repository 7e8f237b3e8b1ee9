# services/gradebook.py
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Union

from models.assignment import Assignment, Submission
from models.user import Student
from services.reports import NO_DATA, class_average

MISSING = "-"
PENDING = "pending"

Cell = Union[float, str]


@dataclass
class GradebookRow:
    student: Student
    cells: Dict[str, Cell] = field(default_factory=dict)  # keyed by assignment id
    average: Cell = NO_DATA

    def to_dict(self) -> dict:
        return {
            "studentId": self.student.id,
            "studentName": self.student.name,
            "cells": self.cells,
            "average": self.average if self.average == NO_DATA else round(self.average, 1),
        }


@dataclass
class Gradebook:
    assignments: List[Assignment]
    rows: List[GradebookRow]

    def to_dict(self) -> dict:
        return {
            "assignments": [{"id": a.id, "title": a.title, "maxScore": a.maxScore} for a in self.assignments],
            "rows": [r.to_dict() for r in self.rows],
        }


def cell_for(submission) -> Cell:
    if submission is None:
        return MISSING
    if submission.grade is None:
        return PENDING
    return submission.grade


def build_gradebook(students: Sequence[Student], assignments: Sequence[Assignment],
                    submissions: Sequence[Submission]) -> Gradebook:
    by_pair = {(s.studentId, s.assignmentId): s for s in submissions}
    rows = []
    for student in students:
        cells = {a.id: cell_for(by_pair.get((student.id, a.id))) for a in assignments}
        rows.append(GradebookRow(student=student, cells=cells, average=class_average(student.id, submissions)))
    return Gradebook(assignments=list(assignments), rows=rows)

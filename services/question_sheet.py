# services/question_sheet.py
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.common import load
from models.question import (
    DIFFICULTIES,
    MULTIPLE_CHOICE,
    ORDERING,
    QUESTION_TYPES,
    Question,
    question_adapter,
)
from services.errors import ValidationFailed
from services.questions import validate_question

logger = logging.getLogger(__name__)

SHEET_HEADERS = [
    "Content (required)",
    "Type (MULTIPLE_CHOICE | SHORT_ANSWER | ORDERING | FILL_IN_THE_BLANK)",
    "Difficulty (EASY | MEDIUM | HARD)",
    "Correct answer (multiple choice: same text as the option)",
    "Explanation",
    "Option 1",
    "Option 2",
    "Option 3",
    "Option 4",
]
OPTION_COLUMN = 5
OPTION_SLOTS = 4

SAMPLE_ROWS = [
    ["Which device is an output device?", "MULTIPLE_CHOICE", "EASY", "Monitor", "A monitor displays data.",
     "Monitor", "Keyboard", "Mouse", "Microphone"],
    ["What does CPU stand for?", "SHORT_ANSWER", "MEDIUM", "Central Processing Unit",
     "The processor of the computer", "", "", "", ""],
    ["Fill in the blank: the ___ is an input device.", "FILL_IN_THE_BLANK", "MEDIUM", "keyboard",
     "___ marks the blank", "", "", "", ""],
    ["Put the start-up steps in order", "ORDERING", "HARD", "Plug in,Press power,Log in",
     "Steps are separated by commas", "Plug in", "Press power", "Log in", ""],
]


@dataclass
class ImportResult:
    questions: List[Question] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)  # {"row": n, "error": message}
    skipped: int = 0


def _cell(row: Sequence, index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def parse_row(row: Sequence, subject_id: str = None, topic_id: str = None) -> Optional[Question]:
    """Build a validated question draft from one sheet row; ``None`` for a blank row."""
    content = _cell(row, 0)
    if not content:
        return None

    qtype = (_cell(row, 1) or MULTIPLE_CHOICE).upper()
    if qtype not in QUESTION_TYPES:
        raise ValidationFailed("InvalidType", f"Unknown question type: {qtype}")
    difficulty = (_cell(row, 2) or "MEDIUM").upper()
    if difficulty not in DIFFICULTIES:
        raise ValidationFailed("InvalidDifficulty", f"Unknown difficulty: {difficulty}")

    raw_answer = _cell(row, 3)
    options = [_cell(row, i) for i in range(OPTION_COLUMN, len(row))]
    options = [o for o in options if o]

    data = {
        "type": qtype,
        "difficulty": difficulty,
        "content": content,
        "explanation": _cell(row, 4) or None,
        "subjectId": subject_id,
        "topicId": topic_id,
    }
    if qtype == ORDERING:
        steps = [s.strip() for s in raw_answer.split(",") if s.strip()]
        # Without explicit option cells the comma list is the ordering itself
        data["options"] = options or steps
        data["correctAnswer"] = steps
    elif qtype == MULTIPLE_CHOICE:
        data["options"] = options
        data["correctAnswer"] = raw_answer
    else:
        data["correctAnswer"] = raw_answer

    return validate_question(load(question_adapter, data))


def serialize_question(question: Question) -> List[str]:
    if question.type == ORDERING:
        answer = ",".join(question.correctAnswer or [])
    else:
        answer = question.correctAnswer or ""
    options = list(getattr(question, "options", None) or [])
    options += [""] * (OPTION_SLOTS - len(options))
    return [question.content, question.type, question.difficulty, answer, question.explanation or ""] + options


def template_rows() -> List[List[str]]:
    return [list(SHEET_HEADERS)] + [list(r) for r in SAMPLE_ROWS]


def export_rows(questions: Sequence[Question]) -> List[List[str]]:
    return [list(SHEET_HEADERS)] + [serialize_question(q) for q in questions]


def import_rows(rows: Sequence[Sequence], subject_id: str = None, topic_id: str = None,
                has_header: bool = True) -> ImportResult:
    result = ImportResult()
    start = 1 if has_header else 0
    for number, row in enumerate(rows[start:], start=start + 1):
        try:
            question = parse_row(row, subject_id, topic_id)
        except ValidationFailed as e:
            logger.warning(f"Skipping sheet row {number}: {e.message}")
            result.errors.append({"row": number, "error": e.message})
            continue
        if question is None:
            result.skipped += 1
            continue
        result.questions.append(question)
    logger.info(
        f"Parsed {len(result.questions)} questions ({result.skipped} blank rows, {len(result.errors)} errors)"
    )
    return result


def read_csv(text: str) -> List[List[str]]:
    return [row for row in csv.reader(io.StringIO(text))]


def write_csv(rows: Sequence[Sequence]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    return output.getvalue()

# services/questions.py
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from models.question import (
    MULTIPLE_CHOICE,
    ORDERING,
    OrderingQuestion,
    Question,
)
from services.errors import ValidationFailed


@dataclass(frozen=True)
class GradingPolicy:
    """How a learner's answer is compared with the stored one.

    The defaults are the strict behaviour: exact, case-sensitive equality.
    """
    case_sensitive: bool = True
    strip_whitespace: bool = False

    def normalize(self, value: str) -> str:
        value = "" if value is None else str(value)
        if self.strip_whitespace:
            value = " ".join(value.split())
        if not self.case_sensitive:
            value = value.casefold()
        return value


STRICT = GradingPolicy()


def _clean_options(options: Sequence[str]) -> List[str]:
    return [o for o in (options or []) if o is not None and str(o).strip()]


def validate_question(question: Question) -> Question:
    """Check the shape invariants of a question and return its normalized copy.

    Raises ``ValidationFailed`` with reason ``MissingContent``,
    ``MissingCorrectAnswer`` or ``AnswerNotInOptions``.
    """
    if not question.content or not question.content.strip():
        raise ValidationFailed("MissingContent", "Question content is required")

    if question.type == ORDERING:
        options = _clean_options(question.options) or _clean_options(question.correctAnswer)
        if not options:
            raise ValidationFailed("MissingCorrectAnswer", "An ordering question needs at least one step")
        # The correct order is defined as the authored option order
        return question.model_copy(update={"options": options, "correctAnswer": list(options)})

    answer = question.correctAnswer
    if answer is None or not str(answer).strip():
        raise ValidationFailed("MissingCorrectAnswer", "Question must have a correct answer")

    if question.type == MULTIPLE_CHOICE:
        options = _clean_options(question.options)
        if answer not in options:
            raise ValidationFailed(
                "AnswerNotInOptions", f"Correct answer '{answer}' is not one of the options"
            )
        return question.model_copy(update={"options": options})

    return question


def grade_answer(question: Question, submitted: Union[str, Sequence[str]], policy: GradingPolicy = STRICT) -> bool:
    if question.type == ORDERING:
        if submitted is None or isinstance(submitted, str):
            return False
        expected = question.correctAnswer or []
        submitted = list(submitted)
        if len(submitted) != len(expected):
            return False
        return all(policy.normalize(a) == policy.normalize(b) for a, b in zip(submitted, expected))

    if submitted is None or not isinstance(submitted, str) or question.correctAnswer is None:
        return False
    return policy.normalize(submitted) == policy.normalize(question.correctAnswer)


def ordering_credit(question: OrderingQuestion, submitted: Sequence[str], policy: GradingPolicy = STRICT) -> float:
    """Fraction of steps placed in their correct position (0.0 - 1.0)."""
    expected = question.correctAnswer or []
    if not expected:
        return 0.0
    submitted = list(submitted or [])
    hits = sum(
        1
        for i, step in enumerate(expected)
        if i < len(submitted) and policy.normalize(submitted[i]) == policy.normalize(step)
    )
    return hits / len(expected)


def present_question(question: Question, rng: Optional[random.Random] = None) -> dict:
    """Learner-facing view of a question: no answer, ordering steps shuffled."""
    data = question.model_dump(exclude={"correctAnswer", "explanation"})
    if question.type == ORDERING:
        options = list(question.options)
        (rng or random).shuffle(options)
        data["options"] = options
    return data

# models/question.py
from pydantic import BaseModel, Field, TypeAdapter
from typing import Annotated, List, Literal, Optional, Union

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
SHORT_ANSWER = "SHORT_ANSWER"
FILL_IN_THE_BLANK = "FILL_IN_THE_BLANK"
ORDERING = "ORDERING"
QUESTION_TYPES = (MULTIPLE_CHOICE, SHORT_ANSWER, FILL_IN_THE_BLANK, ORDERING)

DIFFICULTIES = ("EASY", "MEDIUM", "HARD")
Difficulty = Literal["EASY", "MEDIUM", "HARD"]

# Marker a fill-in-the-blank question uses for its gap
BLANK_MARKER = "___"


class QuestionBase(BaseModel):
    id: Optional[str] = None
    subjectId: Optional[str] = None
    topicId: Optional[str] = None
    difficulty: Difficulty = "MEDIUM"
    content: str = ""
    explanation: Optional[str] = None


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["MULTIPLE_CHOICE"] = MULTIPLE_CHOICE
    options: List[str] = []
    correctAnswer: Optional[str] = None  # must equal one of the options


class ShortAnswerQuestion(QuestionBase):
    type: Literal["SHORT_ANSWER"] = SHORT_ANSWER
    correctAnswer: Optional[str] = None


class FillInTheBlankQuestion(QuestionBase):
    type: Literal["FILL_IN_THE_BLANK"] = FILL_IN_THE_BLANK
    correctAnswer: Optional[str] = None  # the word filling BLANK_MARKER


class OrderingQuestion(QuestionBase):
    type: Literal["ORDERING"] = ORDERING
    options: List[str] = []  # steps in their correct order
    correctAnswer: Optional[List[str]] = None  # kept identical to options


Question = Annotated[
    Union[MultipleChoiceQuestion, ShortAnswerQuestion, FillInTheBlankQuestion, OrderingQuestion],
    Field(discriminator="type"),
]
question_adapter = TypeAdapter(Question)

"""Quiz schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, StrictBool, StrictInt, StrictStr, field_validator

from classquiz.schemas.common import as_utc


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class QuizStatus(str, Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


class QuestionCreate(BaseModel):
    """A question as authored by the teacher.

    ``correct_answer`` is one of ``options`` for multiple-choice, a boolean
    (or ``"true"``/``"false"``) for true-false, and ignored for short-answer.
    """

    text: str
    question_type: QuestionType
    options: list[str] = []
    correct_answer: StrictStr | StrictBool | None = None
    points: StrictInt = 1


class QuizCreate(BaseModel):
    """POST /api/quizzes — create a draft quiz."""

    class_id: uuid.UUID
    title: str
    description: str = ""
    questions: list[QuestionCreate] = []
    duration_minutes: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class QuizUpdate(BaseModel):
    """PATCH /api/quizzes/{id} — only the fields sent are applied."""

    title: str | None = None
    description: str | None = None
    questions: list[QuestionCreate] | None = None
    duration_minutes: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class QuestionRead(BaseModel):
    """Single question inside a quiz response.

    ``correct_answer`` is only ever set for the quiz's creator; routes
    serialize with ``exclude_unset`` so the key is absent for everyone else.
    """

    id: uuid.UUID
    position: int
    text: str
    question_type: QuestionType
    options: list[str] = []
    points: int
    correct_answer: str | bool | None = None

    model_config = {"from_attributes": True}


class QuizRead(BaseModel):
    """Full quiz with its derived status."""

    id: uuid.UUID
    class_id: uuid.UUID
    created_by: uuid.UUID
    title: str
    description: str
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    is_published: bool
    status: QuizStatus
    question_count: int
    total_points: int
    questions: list[QuestionRead]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

"""Question validation and value normalization.

All stringly-typed booleans are turned into real booleans here, once, at
the write boundary. Everything downstream compares strictly.
"""

from __future__ import annotations

from typing import Any

from classquiz.core.errors import ValidationError
from classquiz.db.models import QuestionTypeEnum, QuizQuestion
from classquiz.schemas.quiz import QuestionCreate, QuestionType

_TRUE_STRINGS = {"true"}
_FALSE_STRINGS = {"false"}


def normalize_bool(value: Any) -> bool | None:
    """Map ``True``/``False``/``"true"``/``"false"`` to a bool, else None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def validate_question(question: QuestionCreate, index: int = 0) -> QuestionCreate:
    """Return a normalized copy of *question* or raise ValidationError.

    *index* is only used to point at the offending question in messages.
    """
    label = f"Question {index + 1}"
    text = question.text.strip()
    if not text:
        raise ValidationError(f"{label}: question text is required")
    if question.points < 1:
        raise ValidationError(f"{label}: points must be a positive integer")

    if question.question_type == QuestionType.MULTIPLE_CHOICE:
        options = list(question.options)
        if len(options) < 2:
            raise ValidationError(
                f"{label}: multiple choice questions must have at least 2 options"
            )
        if not isinstance(question.correct_answer, str) or question.correct_answer not in options:
            raise ValidationError(f"{label}: correct answer must be one of the options")
        return question.model_copy(update={"text": text, "options": options})

    if question.question_type == QuestionType.TRUE_FALSE:
        correct = normalize_bool(question.correct_answer)
        if correct is None:
            raise ValidationError(f"{label}: true/false questions must have a boolean answer")
        return question.model_copy(
            update={"text": text, "options": [], "correct_answer": correct}
        )

    # Short answer: graded by the teacher, nothing machine-checkable to keep.
    return question.model_copy(
        update={"text": text, "options": [], "correct_answer": None}
    )


def normalize_answer(question: QuizQuestion, value: Any) -> str | bool:
    """Validate a student's raw answer for *question* and normalize it."""
    if question.question_type == QuestionTypeEnum.TRUE_FALSE:
        normalized = normalize_bool(value)
        if normalized is None:
            raise ValidationError("True/false answers must be true or false")
        return normalized

    if not isinstance(value, str):
        raise ValidationError("Answer must be text for this question type")

    if question.question_type == QuestionTypeEnum.MULTIPLE_CHOICE:
        if value not in question.options:
            raise ValidationError("Answer must be one of the question's options")
    return value

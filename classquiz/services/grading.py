"""Grading engine for quiz submissions.

Pure functions, no I/O. Question types are graded as follows:
  - multiple-choice → strict equality with the stored option
  - true-false      → strict boolean equality after normalization
  - short-answer    → left pending (``is_correct = None``) until a teacher
                      grades it through :func:`apply_manual_grade`

Totals are rolled up only at completion and manual-grading time.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from classquiz.db.models import QuestionTypeEnum, QuizQuestion, SubmissionAnswer
from classquiz.services.questions import normalize_bool


OBJECTIVE_TYPES = frozenset(
    {QuestionTypeEnum.MULTIPLE_CHOICE, QuestionTypeEnum.TRUE_FALSE}
)


@dataclass(frozen=True, slots=True)
class GradeResult:
    """Outcome of grading one answer. ``is_correct=None`` means pending."""

    is_correct: bool | None
    points: int
    feedback: str = ""


@dataclass(frozen=True, slots=True)
class Totals:
    total_score: int
    total_points: int


@dataclass(frozen=True, slots=True)
class GradingSummary:
    total_questions: int
    answered_questions: int
    auto_graded_questions: int
    pending_manual_questions: int
    is_fully_graded: bool
    score_percentage: int


# ── Per-answer grading ────────────────────────────────────────────────────────


def grade_objective(question: QuizQuestion, submitted: Any) -> GradeResult:
    """Grade a multiple-choice or true-false answer.

    True-false values are normalized on both sides before comparing, so a
    stored ``True`` matches a submitted ``"true"``. Anything that cannot be
    normalized is simply wrong.
    """
    if question.question_type == QuestionTypeEnum.TRUE_FALSE:
        expected = normalize_bool(question.correct_answer)
        given = normalize_bool(submitted)
        is_correct = given is not None and expected is not None and given == expected
    elif question.question_type == QuestionTypeEnum.MULTIPLE_CHOICE:
        is_correct = (
            isinstance(submitted, str)
            and isinstance(question.correct_answer, str)
            and submitted == question.correct_answer
        )
    else:
        raise ValueError(
            f"{question.question_type.value} questions cannot be auto-graded"
        )
    return GradeResult(is_correct=is_correct, points=question.points if is_correct else 0)


def mark_pending_manual(question: QuizQuestion) -> GradeResult:
    """Short answers always start out pending, whatever the content."""
    return GradeResult(is_correct=None, points=0)


def auto_grade(question: QuizQuestion, submitted: Any) -> GradeResult:
    """Dispatch to the automatic grader for the question's type."""
    if question.question_type in OBJECTIVE_TYPES:
        return grade_objective(question, submitted)
    if question.question_type == QuestionTypeEnum.SHORT_ANSWER:
        return mark_pending_manual(question)
    raise ValueError(f"Unknown question type: {question.question_type!r}")


def apply_manual_grade(
    question: QuizQuestion,
    requested_points: int | None,
    feedback: str | None = "",
) -> GradeResult:
    """Turn a teacher's judgment into a grade.

    Points are clamped into ``[0, question.points]``. Zero points is an
    incorrect answer even when feedback is given; completeness checks look
    at ``is_correct``, not at feedback.
    """
    points = min(max(0, requested_points or 0), question.points)
    return GradeResult(is_correct=points > 0, points=points, feedback=feedback or "")


def is_manually_gradable(question: QuizQuestion, answer: SubmissionAnswer) -> bool:
    """Short answers may be (re)graded; objective answers only while pending."""
    return (
        question.question_type == QuestionTypeEnum.SHORT_ANSWER
        or answer.is_correct is None
    )


# ── Submission roll-ups ───────────────────────────────────────────────────────


def recompute_totals(
    answers: Iterable[SubmissionAnswer],
    questions: Sequence[QuizQuestion],
) -> Totals:
    """Sum awarded points and the quiz's maximum.

    Pending answers carry 0 points until graded. ``total_points`` depends
    only on the questions, never on how many were answered.
    """
    question_ids = {q.id for q in questions}
    total_score = sum(a.points for a in answers if a.question_id in question_ids)
    total_points = sum(q.points for q in questions)
    return Totals(total_score=total_score, total_points=total_points)


def is_fully_graded(answers: Iterable[SubmissionAnswer]) -> bool:
    """True iff no answer is still waiting for a teacher."""
    return all(a.is_correct is not None for a in answers)


def score_percentage(total_score: int, total_points: int) -> int:
    """Whole percent, halves rounded up (1/8 → 13)."""
    if total_points <= 0:
        return 0
    return (200 * total_score + total_points) // (2 * total_points)


def summarize(
    answers: Sequence[SubmissionAnswer],
    questions: Sequence[QuizQuestion],
    total_score: int,
    total_points: int,
) -> GradingSummary:
    pending = sum(1 for a in answers if a.is_correct is None)
    return GradingSummary(
        total_questions=len(questions),
        answered_questions=len(answers),
        auto_graded_questions=len(answers) - pending,
        pending_manual_questions=pending,
        is_fully_graded=pending == 0,
        score_percentage=score_percentage(total_score, total_points),
    )

"""Submission, grading and marks schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, StrictBool, StrictInt, StrictStr

from classquiz.schemas.quiz import QuestionType, QuizRead, QuizStatus


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    GRADED = "graded"


class AnswerSubmit(BaseModel):
    """POST /api/submissions/{id}/answer"""

    question_id: uuid.UUID
    answer: StrictStr | StrictBool


class GradeEntry(BaseModel):
    """One teacher judgment; points are clamped to the question's maximum."""

    question_id: uuid.UUID
    points: StrictInt | None = None
    feedback: str = ""


class GradeSubmit(BaseModel):
    """POST /api/submissions/{id}/grade"""

    grades: list[GradeEntry]


class AnswerRead(BaseModel):
    """A stored answer.

    ``is_correct``/``points``/``feedback`` stay unset for a student while the
    attempt is still in progress.
    """

    question_id: uuid.UUID
    answer: str | bool
    is_correct: bool | None = None
    points: int = 0
    feedback: str = ""
    answered_at: datetime | None = None


class GradingSummary(BaseModel):
    total_questions: int
    answered_questions: int
    auto_graded_questions: int
    pending_manual_questions: int
    is_fully_graded: bool
    score_percentage: int


class SubmissionRead(BaseModel):
    """A student's attempt."""

    id: uuid.UUID
    quiz_id: uuid.UUID
    student_id: uuid.UUID
    student_name: str | None = None
    student_email: str | None = None
    status: SubmissionStatus
    total_score: int
    total_points: int
    is_graded: bool
    started_at: datetime
    completed_at: datetime | None = None
    deadline: datetime
    answers: list[AnswerRead] = []
    grading_summary: GradingSummary | None = None


class ReviewedQuestionRead(BaseModel):
    """A question merged with the student's answer, for post-attempt review."""

    id: uuid.UUID
    text: str
    question_type: QuestionType
    options: list[str] = []
    max_points: int
    correct_answer: str | bool | None = None
    submitted_answer: str | bool | None = None
    is_correct: bool | None = None
    points: int = 0
    feedback: str = ""


class QuizReviewRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    total_points: int
    questions: list[ReviewedQuestionRead]


class QuizStartRead(BaseModel):
    """Response of POST /api/quizzes/{id}/start."""

    message: str
    resumed: bool
    quiz: QuizRead
    submission: SubmissionRead


class CompletionRead(BaseModel):
    """Response of POST /api/submissions/{id}/complete."""

    message: str
    needs_manual_grading: bool
    submission: SubmissionRead
    review: QuizReviewRead


class SubmissionView(BaseModel):
    """Response of GET /api/quizzes/{id}/submission."""

    quiz_status: QuizStatus
    quiz: QuizRead | None = None
    submission: SubmissionRead | None = None
    review: QuizReviewRead | None = None


class QuizMarkRead(BaseModel):
    """One published quiz in a student's marks rollup."""

    quiz_id: uuid.UUID
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    total_points: int
    status: str  # submission status, or "not-started"
    score: int | None = None
    score_percentage: int | None = None
    is_graded: bool = False
    completed_at: datetime | None = None


class ClassMarksRead(BaseModel):
    class_id: uuid.UUID
    class_name: str
    student_id: uuid.UUID
    quiz_results: list[QuizMarkRead]
    total_score: int
    total_points: int
    percentage: float

"""Pydantic schemas — re‑exported for convenience."""

from classquiz.schemas.common import ErrorResponse, SuccessResponse  # noqa: F401
from classquiz.schemas.quiz import (  # noqa: F401
    QuestionType,
    QuizStatus,
    QuestionCreate,
    QuizCreate,
    QuizUpdate,
    QuestionRead,
    QuizRead,
)
from classquiz.schemas.submission import (  # noqa: F401
    SubmissionStatus,
    AnswerSubmit,
    GradeEntry,
    GradeSubmit,
    AnswerRead,
    GradingSummary,
    SubmissionRead,
    ReviewedQuestionRead,
    QuizReviewRead,
    QuizStartRead,
    CompletionRead,
    SubmissionView,
    QuizMarkRead,
    ClassMarksRead,
)
from classquiz.schemas.notification import (  # noqa: F401
    NotificationType,
    NotificationRead,
    NotificationPage,
    UnreadCount,
)

"""Quiz routes — authoring, publication, taking and reporting.

Flow:
  1. POST /api/quizzes/                 → teacher creates a draft
  2. PATCH /api/quizzes/{id}            → teacher edits it
  3. POST /api/quizzes/{id}/publish     → roster is notified
  4. POST /api/quizzes/{id}/start       → student opens (or resumes) an attempt
  5. GET  /api/quizzes/{id}/submission  → attempt / review, per reader
  6. GET  /api/quizzes/class/{id}/marks → per-student rollup

Responses use ``response_model_exclude_unset`` so withheld fields are
absent, not null.
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classquiz.api.deps import get_current_user, get_now
from classquiz.db.models import User
from classquiz.db.session import get_db
from classquiz.schemas.quiz import QuizCreate, QuizRead, QuizUpdate
from classquiz.schemas.submission import (
    ClassMarksRead,
    QuizStartRead,
    SubmissionRead,
    SubmissionView,
)
from classquiz.services import quizzes, submissions, views

router = APIRouter()


@router.post(
    "/",
    response_model=QuizRead,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
def create_quiz(
    body: QuizCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Create a draft quiz in a class the teacher owns."""
    quiz = quizzes.create_quiz(db, current_user, body)
    return views.quiz_to_read(quiz, now, reveal_answers=True)


@router.get(
    "/class/{class_id}",
    response_model=list[QuizRead],
    response_model_exclude_unset=True,
)
def list_class_quizzes(
    class_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """All quizzes for the class teacher; published ones for students."""
    pairs = quizzes.list_class_quizzes(db, class_id, current_user)
    return [views.quiz_to_read(quiz, now, reveal_answers=reveal) for quiz, reveal in pairs]


@router.get("/class/{class_id}/marks", response_model=ClassMarksRead)
def get_class_quiz_marks(
    class_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Per-quiz scores for one student; teachers must name the student."""
    return submissions.get_class_quiz_marks(db, class_id, current_user, student_id)


@router.get("/{quiz_id}", response_model=QuizRead, response_model_exclude_unset=True)
def get_quiz_details(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    quiz, reveal = quizzes.get_quiz_details(db, quiz_id, current_user)
    return views.quiz_to_read(quiz, now, reveal_answers=reveal)


@router.patch("/{quiz_id}", response_model=QuizRead, response_model_exclude_unset=True)
def update_quiz(
    quiz_id: uuid.UUID,
    body: QuizUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Partial update; questions may only change while unpublished."""
    quiz = quizzes.update_quiz(db, quiz_id, current_user, body)
    return views.quiz_to_read(quiz, now, reveal_answers=True)


@router.post(
    "/{quiz_id}/publish",
    response_model=QuizRead,
    response_model_exclude_unset=True,
)
def publish_quiz(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    quiz = quizzes.publish_quiz(db, quiz_id, current_user)
    return views.quiz_to_read(quiz, now, reveal_answers=True)


@router.post(
    "/{quiz_id}/start",
    response_model=QuizStartRead,
    response_model_exclude_unset=True,
)
def start_quiz(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Start an attempt, or resume the one already in progress."""
    result = submissions.start_quiz(db, quiz_id, current_user, now)
    return QuizStartRead(
        message="Quiz resumed" if result.resumed else "Quiz started successfully",
        resumed=result.resumed,
        quiz=views.quiz_to_read(result.quiz, now, reveal_answers=False),
        submission=views.submission_to_read(result.submission, reveal_grading=False),
    )


@router.get(
    "/{quiz_id}/submissions",
    response_model=list[SubmissionRead],
    response_model_exclude_unset=True,
)
def list_quiz_submissions(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Every attempt at the quiz, for its creator."""
    _, rows = submissions.list_quiz_submissions(db, quiz_id, current_user)
    return [
        views.submission_to_read(s, reveal_grading=True, include_student=True) for s in rows
    ]


@router.get(
    "/{quiz_id}/submission",
    response_model=SubmissionView,
    response_model_exclude_unset=True,
)
def get_submission(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """The reader's own attempt, or a named student's for the quiz creator."""
    lookup = submissions.get_submission(db, quiz_id, current_user, now, student_id)
    return views.submission_view(lookup, now)

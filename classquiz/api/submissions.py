"""Submission routes — answering, completing and grading an attempt."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from classquiz.api.deps import get_current_user, get_now
from classquiz.db.models import SubmissionStatusEnum, User
from classquiz.db.session import get_db
from classquiz.schemas.submission import (
    AnswerSubmit,
    CompletionRead,
    GradeSubmit,
    SubmissionRead,
)
from classquiz.services import submissions, views

router = APIRouter()


@router.post(
    "/{submission_id}/answer",
    response_model=SubmissionRead,
    response_model_exclude_unset=True,
)
def submit_answer(
    submission_id: uuid.UUID,
    body: AnswerSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Record an answer. Correctness stays hidden until the quiz is completed."""
    answer = submissions.submit_answer(
        db, submission_id, current_user, body.question_id, body.answer, now
    )
    return views.submission_to_read(answer.submission, reveal_grading=False)


@router.post(
    "/{submission_id}/complete",
    response_model=CompletionRead,
    response_model_exclude_unset=True,
)
def complete_quiz(
    submission_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    submission = submissions.complete_submission(db, submission_id, current_user, now)
    needs_manual = submission.status != SubmissionStatusEnum.GRADED
    return CompletionRead(
        message=(
            "Quiz submitted. Some answers are waiting for your teacher to grade them."
            if needs_manual
            else "Quiz submitted and graded."
        ),
        needs_manual_grading=needs_manual,
        submission=views.submission_to_read(submission, reveal_grading=True, with_summary=True),
        review=views.build_review(submission.quiz, submission, reveal_answers=False),
    )


@router.post(
    "/{submission_id}/grade",
    response_model=SubmissionRead,
    response_model_exclude_unset=True,
)
def grade_submission(
    submission_id: uuid.UUID,
    body: GradeSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Teacher grading of pending and short-answer answers."""
    submission = submissions.grade_submission(db, submission_id, current_user, body.grades)
    return views.submission_to_read(
        submission, reveal_grading=True, include_student=True, with_summary=True
    )

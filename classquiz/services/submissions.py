"""Submission state machine.

    in-progress ──complete──▶ completed ──grade──▶ graded
                     └──────(nothing pending)──────▲

Every operation is one read-modify-write of a single submission row, loaded
``FOR UPDATE`` where the backend supports it. Uniqueness constraints on
(quiz, student) and (submission, question) settle concurrent starts and
concurrent answers.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classquiz.config import settings
from classquiz.core.errors import Conflict, Forbidden, NotFound, ValidationError
from classquiz.db.models import (
    NotificationTypeEnum,
    Quiz,
    QuizQuestion,
    QuizStatusEnum,
    RoleEnum,
    Submission,
    SubmissionAnswer,
    SubmissionStatusEnum,
    User,
)
from classquiz.schemas.submission import ClassMarksRead, GradeEntry, QuizMarkRead
from classquiz.services import membership
from classquiz.services.grading import (
    GradeResult,
    apply_manual_grade,
    auto_grade,
    is_fully_graded,
    is_manually_gradable,
    recompute_totals,
    score_percentage,
)
from classquiz.services.notifications import notify
from classquiz.services.questions import normalize_answer
from classquiz.services.quizzes import derive_status, get_quiz, is_quiz_creator

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    submission: Submission
    quiz: Quiz
    resumed: bool


@dataclass
class SubmissionLookup:
    """What a reader is allowed to see of one (quiz, student) attempt."""

    quiz: Quiz
    quiz_status: QuizStatusEnum
    submission: Submission | None
    viewer_is_creator: bool


# ── Helpers ───────────────────────────────────────────────────────────────────


def deadline_for(submission: Submission, quiz: Quiz) -> datetime:
    """The per-student cutoff, never later than the class-wide window."""
    personal = submission.started_at + timedelta(minutes=quiz.duration_minutes)
    return min(personal, quiz.end_time)


def _find_submission(db: Session, quiz_id: uuid.UUID, student_id: uuid.UUID) -> Submission | None:
    return (
        db.query(Submission)
        .filter(Submission.quiz_id == quiz_id, Submission.student_id == student_id)
        .first()
    )


def _lock_submission(db: Session, submission_id: uuid.UUID) -> Submission:
    submission = (
        db.query(Submission)
        .filter(Submission.id == submission_id)
        .with_for_update()
        .first()
    )
    if submission is None:
        raise NotFound("Submission not found")
    return submission


def _require_owner(submission: Submission, actor: User, action: str) -> None:
    if actor.role != RoleEnum.STUDENT:
        raise Forbidden(f"Only students can {action}")
    if submission.student_id != actor.id:
        raise Forbidden("This is not your submission")


def _require_in_progress(submission: Submission) -> None:
    if submission.status != SubmissionStatusEnum.IN_PROGRESS:
        raise Conflict("This quiz has already been completed")


def _question_in(quiz: Quiz, question_id: uuid.UUID) -> QuizQuestion | None:
    return next((q for q in quiz.questions if q.id == question_id), None)


def _apply(answer: SubmissionAnswer, value: Any, result: GradeResult, now: datetime) -> None:
    answer.answer = value
    answer.is_correct = result.is_correct
    answer.points = result.points
    answer.feedback = result.feedback
    answer.answered_at = now


# ── start ─────────────────────────────────────────────────────────────────────


def start_quiz(db: Session, quiz_id: uuid.UUID, actor: User, now: datetime) -> StartResult:
    """Open (or resume) the actor's attempt at a published, active quiz."""
    if actor.role != RoleEnum.STUDENT:
        raise Forbidden("Only students can take quizzes")

    quiz = get_quiz(db, quiz_id)
    if not quiz.is_published:
        raise Forbidden("This quiz is not available")
    if not membership.is_enrolled(db, quiz.class_id, actor.id):
        raise Forbidden("You are not enrolled in this class")
    if derive_status(quiz, now) != QuizStatusEnum.ACTIVE:
        raise Conflict("The quiz is not currently active")

    existing = _find_submission(db, quiz.id, actor.id)
    if existing is not None:
        return _resume(existing, quiz)

    submission = Submission(
        quiz_id=quiz.id,
        student_id=actor.id,
        status=SubmissionStatusEnum.IN_PROGRESS,
        started_at=now,
        total_score=0,
        total_points=recompute_totals([], quiz.questions).total_points,
        is_graded=False,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        # Lost a double-start race: the other request's row is the attempt.
        db.rollback()
        existing = _find_submission(db, quiz.id, actor.id)
        if existing is None:
            raise
        logger.info("Concurrent start for quiz %s by %s, resuming", quiz.id, actor.id)
        return _resume(existing, quiz)

    db.refresh(submission)
    logger.info("Student %s started quiz %s (submission %s)", actor.id, quiz.id, submission.id)
    return StartResult(submission=submission, quiz=quiz, resumed=False)


def _resume(existing: Submission, quiz: Quiz) -> StartResult:
    if existing.status != SubmissionStatusEnum.IN_PROGRESS:
        raise Conflict("You have already completed this quiz")
    return StartResult(submission=existing, quiz=quiz, resumed=True)


# ── answer ────────────────────────────────────────────────────────────────────


def submit_answer(
    db: Session,
    submission_id: uuid.UUID,
    actor: User,
    question_id: uuid.UUID,
    value: Any,
    now: datetime,
) -> SubmissionAnswer:
    """Record (or replace) the answer to one question with provisional grading."""
    submission = _lock_submission(db, submission_id)
    _require_owner(submission, actor, "submit answers")
    _require_in_progress(submission)

    quiz = submission.quiz
    if now > quiz.end_time:
        raise Conflict("The quiz time is over")
    if settings.ENFORCE_SUBMISSION_DURATION:
        cutoff = (
            submission.started_at
            + timedelta(minutes=quiz.duration_minutes)
            + timedelta(seconds=settings.SUBMISSION_GRACE_SECONDS)
        )
        if now > cutoff:
            raise Conflict("Your time for this quiz is up")

    question = _question_in(quiz, question_id)
    if question is None:
        raise NotFound("Question not found")

    value = normalize_answer(question, value)
    result = auto_grade(question, value)

    answer = next((a for a in submission.answers if a.question_id == question.id), None)
    if answer is None:
        answer = SubmissionAnswer(question_id=question.id, position=len(submission.answers))
        submission.answers.append(answer)
    _apply(answer, value, result, now)

    try:
        db.commit()
    except IntegrityError:
        # Another request inserted this question's answer first; last write wins.
        # The rollback dropped the row lock, so take it again before writing.
        db.rollback()
        submission = _lock_submission(db, submission_id)
        _require_in_progress(submission)
        answer = (
            db.query(SubmissionAnswer)
            .filter(
                SubmissionAnswer.submission_id == submission_id,
                SubmissionAnswer.question_id == question.id,
            )
            .one()
        )
        _apply(answer, value, result, now)
        db.commit()

    db.refresh(answer)
    logger.debug("Submission %s: answer recorded for question %s", submission_id, question.id)
    return answer


# ── complete ──────────────────────────────────────────────────────────────────


def complete_submission(
    db: Session, submission_id: uuid.UUID, actor: User, now: datetime
) -> Submission:
    """Finalize an attempt: re-grade, roll up totals, notify the teacher.

    Answers are re-graded against the quiz's stored questions rather than
    trusting what was computed at answer time.
    """
    submission = _lock_submission(db, submission_id)
    _require_owner(submission, actor, "complete quizzes")
    _require_in_progress(submission)

    quiz = submission.quiz
    questions_by_id = {q.id: q for q in quiz.questions}
    for answer in submission.answers:
        question = questions_by_id.get(answer.question_id)
        if question is None:
            continue
        result = auto_grade(question, answer.answer)
        answer.is_correct = result.is_correct
        answer.points = result.points
        answer.feedback = result.feedback

    totals = recompute_totals(submission.answers, quiz.questions)
    fully_graded = is_fully_graded(submission.answers)

    submission.total_score = totals.total_score
    submission.total_points = totals.total_points
    submission.completed_at = now
    submission.status = (
        SubmissionStatusEnum.GRADED if fully_graded else SubmissionStatusEnum.COMPLETED
    )
    submission.is_graded = fully_graded
    db.commit()
    db.refresh(submission)
    logger.info(
        "Submission %s completed: %d/%d (%s)",
        submission.id,
        submission.total_score,
        submission.total_points,
        submission.status.value,
    )

    student_name = actor.full_name or "A student"
    suffix = "." if fully_graded else " and it requires grading."
    notify(
        quiz.created_by,
        NotificationTypeEnum.QUIZ_SUBMISSION,
        f"Quiz Submission: {quiz.title}",
        f'{student_name} has submitted the quiz "{quiz.title}" '
        f'in class "{quiz.classroom.name}"{suffix}',
        related_id=submission.id,
        related_model="Submission",
    )
    return submission


# ── grade ─────────────────────────────────────────────────────────────────────


def grade_submission(
    db: Session, submission_id: uuid.UUID, actor: User, grades: list[GradeEntry]
) -> Submission:
    """Apply a batch of teacher judgments to pending / short-answer answers.

    Entries for unknown or unanswered questions and for auto-graded
    objective answers are skipped. Re-grading overwrites.
    """
    if actor.role != RoleEnum.TEACHER:
        raise Forbidden("Only teachers can grade submissions")

    submission = _lock_submission(db, submission_id)
    quiz = submission.quiz
    if not is_quiz_creator(quiz, actor):
        raise Forbidden("You don't have permission to grade this submission")
    # Re-checked on the locked row: completion may have raced this request.
    if submission.status == SubmissionStatusEnum.IN_PROGRESS:
        raise Conflict("Cannot grade an in-progress submission")

    questions_by_id = {q.id: q for q in quiz.questions}
    answers_by_question = {a.question_id: a for a in submission.answers}
    was_graded = submission.status == SubmissionStatusEnum.GRADED

    applied = 0
    for entry in grades:
        question = questions_by_id.get(entry.question_id)
        answer = answers_by_question.get(entry.question_id)
        if question is None or answer is None:
            logger.debug("Grade for %s skipped: no such answer", entry.question_id)
            continue
        if not is_manually_gradable(question, answer):
            logger.debug("Grade for %s skipped: auto-graded answer", entry.question_id)
            continue
        result = apply_manual_grade(question, entry.points, entry.feedback)
        answer.is_correct = result.is_correct
        answer.points = result.points
        answer.feedback = result.feedback
        applied += 1

    fully_graded = is_fully_graded(submission.answers)
    submission.total_score = recompute_totals(submission.answers, quiz.questions).total_score
    submission.status = (
        SubmissionStatusEnum.GRADED if fully_graded else SubmissionStatusEnum.COMPLETED
    )
    submission.is_graded = fully_graded
    db.commit()
    db.refresh(submission)
    logger.info(
        "Submission %s graded by %s: %d entries applied, now %s",
        submission.id,
        actor.id,
        applied,
        submission.status.value,
    )

    if fully_graded and not was_graded:
        notify(
            submission.student_id,
            NotificationTypeEnum.GRADE_AVAILABLE,
            f"Grade Available: {quiz.title}",
            f'Your submission for "{quiz.title}" has been graded: '
            f"{submission.total_score}/{submission.total_points}.",
            related_id=submission.id,
            related_model="Submission",
        )
    return submission


# ── Reads ─────────────────────────────────────────────────────────────────────


def list_quiz_submissions(db: Session, quiz_id: uuid.UUID, actor: User) -> tuple[Quiz, list[Submission]]:
    quiz = get_quiz(db, quiz_id)
    if not is_quiz_creator(quiz, actor):
        raise Forbidden("You don't have permission to view these submissions")
    submissions = (
        db.query(Submission)
        .filter(Submission.quiz_id == quiz.id)
        .order_by(Submission.started_at)
        .all()
    )
    return quiz, submissions


def get_submission(
    db: Session,
    quiz_id: uuid.UUID,
    actor: User,
    now: datetime,
    student_id: uuid.UUID | None = None,
) -> SubmissionLookup:
    """Resolve which attempt the reader is asking about, if any.

    The quiz's creator must name a student. Enrolled students only ever see
    their own attempt, and get the quiz itself while nothing is started.
    """
    quiz = get_quiz(db, quiz_id)

    if is_quiz_creator(quiz, actor):
        if student_id is None:
            raise ValidationError("Student ID is required")
        submission = _find_submission(db, quiz.id, student_id)
        if submission is None:
            raise NotFound("Submission not found")
        return SubmissionLookup(quiz, derive_status(quiz, now), submission, True)

    if actor.role != RoleEnum.STUDENT or not membership.is_enrolled(db, quiz.class_id, actor.id):
        raise Forbidden("You don't have permission to access this quiz")
    if not quiz.is_published:
        raise Forbidden("This quiz is not yet available")

    status = derive_status(quiz, now)
    if status == QuizStatusEnum.UPCOMING:
        return SubmissionLookup(quiz, status, None, False)

    submission = _find_submission(db, quiz.id, actor.id)
    if submission is None:
        if status == QuizStatusEnum.ACTIVE:
            return SubmissionLookup(quiz, status, None, False)
        raise NotFound("Submission not found")
    return SubmissionLookup(quiz, status, submission, False)


def get_class_quiz_marks(
    db: Session,
    class_id: uuid.UUID,
    actor: User,
    student_id: uuid.UUID | None = None,
) -> ClassMarksRead:
    """Per-quiz score rollup for one student across a class's published quizzes."""
    classroom = membership.require_class(db, class_id)

    if membership.is_class_teacher(classroom, actor.id):
        if student_id is None:
            raise ValidationError("Student ID is required for teachers")
        target_id = student_id
    elif membership.is_enrolled(db, classroom.id, actor.id):
        if student_id is not None and student_id != actor.id:
            raise Forbidden("Students can only view their own marks")
        target_id = actor.id
    else:
        raise Forbidden("You don't have permission to access this class")

    quizzes = (
        db.query(Quiz)
        .filter(Quiz.class_id == classroom.id, Quiz.is_published.is_(True))
        .order_by(Quiz.start_time)
        .all()
    )
    finished: dict[uuid.UUID, Submission] = {}
    if quizzes:
        rows = (
            db.query(Submission)
            .filter(
                Submission.quiz_id.in_([q.id for q in quizzes]),
                Submission.student_id == target_id,
                Submission.status != SubmissionStatusEnum.IN_PROGRESS,
            )
            .all()
        )
        finished = {s.quiz_id: s for s in rows}

    results = []
    for quiz in quizzes:
        submission = finished.get(quiz.id)
        if submission is None:
            results.append(
                QuizMarkRead(
                    quiz_id=quiz.id,
                    title=quiz.title,
                    description=quiz.description,
                    start_time=quiz.start_time,
                    end_time=quiz.end_time,
                    total_points=sum(q.points for q in quiz.questions),
                    status="not-started",
                    score=None,
                    score_percentage=None,
                    is_graded=False,
                    completed_at=None,
                )
            )
            continue
        results.append(
            QuizMarkRead(
                quiz_id=quiz.id,
                title=quiz.title,
                description=quiz.description,
                start_time=quiz.start_time,
                end_time=quiz.end_time,
                total_points=submission.total_points,
                status=submission.status.value,
                score=submission.total_score,
                score_percentage=score_percentage(submission.total_score, submission.total_points),
                is_graded=submission.is_graded,
                completed_at=submission.completed_at,
            )
        )

    total_score = sum(s.total_score for s in finished.values())
    total_points = sum(s.total_points for s in finished.values())
    return ClassMarksRead(
        class_id=classroom.id,
        class_name=classroom.name,
        student_id=target_id,
        quiz_results=results,
        total_score=total_score,
        total_points=total_points,
        percentage=round(total_score / total_points * 100, 2) if total_points else 0.0,
    )

"""Quiz aggregate: authoring, publication, derived status and read access.

Flow:
  1. create_quiz   → draft owned by the class teacher
  2. update_quiz   → free edits while a draft; metadata only once published
  3. publish_quiz  → one-way, fans a notification out to the roster
  4. derive_status → draft / upcoming / active / ended, computed per read
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from classquiz.core.errors import Conflict, Forbidden, NotFound, ValidationError
from classquiz.db.models import (
    NotificationTypeEnum,
    QuestionTypeEnum,
    Quiz,
    QuizQuestion,
    QuizStatusEnum,
    RoleEnum,
    User,
)
from classquiz.schemas.quiz import QuestionCreate, QuizCreate, QuizUpdate
from classquiz.services import membership
from classquiz.services.notifications import notify_many
from classquiz.services.questions import validate_question

logger = logging.getLogger(__name__)


# ── Status & access predicates ────────────────────────────────────────────────


def derive_status(quiz: Quiz, now: datetime) -> QuizStatusEnum:
    """Status from publication and the class-wide window (inclusive bounds)."""
    if not quiz.is_published:
        return QuizStatusEnum.DRAFT
    if now < quiz.start_time:
        return QuizStatusEnum.UPCOMING
    if now > quiz.end_time:
        return QuizStatusEnum.ENDED
    return QuizStatusEnum.ACTIVE


def is_quiz_creator(quiz: Quiz, actor: User) -> bool:
    return actor.role == RoleEnum.TEACHER and quiz.created_by == actor.id


def get_quiz(db: Session, quiz_id: uuid.UUID) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if quiz is None:
        raise NotFound("Quiz not found")
    return quiz


def _require_creator(quiz: Quiz, actor: User, action: str) -> None:
    if not is_quiz_creator(quiz, actor):
        raise Forbidden(f"You don't have permission to {action} this quiz")


# ── Validation helpers ────────────────────────────────────────────────────────


def _check_details(title: str, duration_minutes: int, start_time: datetime, end_time: datetime) -> str:
    title = title.strip()
    if not title:
        raise ValidationError("Quiz title is required")
    if duration_minutes < 1:
        raise ValidationError("Duration must be at least 1 minute")
    if start_time >= end_time:
        raise ValidationError("Start time must be before end time")
    return title


def _build_questions(questions: list[QuestionCreate]) -> list[QuizQuestion]:
    """Validate every question first so a bad one leaves nothing behind."""
    validated = [validate_question(q, index) for index, q in enumerate(questions)]
    return [
        QuizQuestion(
            position=index,
            text=q.text,
            question_type=QuestionTypeEnum(q.question_type.value),
            options=q.options,
            correct_answer=q.correct_answer,
            points=q.points,
        )
        for index, q in enumerate(validated)
    ]


# ── Authoring ─────────────────────────────────────────────────────────────────


def create_quiz(db: Session, actor: User, body: QuizCreate) -> Quiz:
    """Create a draft quiz in one of the teacher's classes."""
    if actor.role != RoleEnum.TEACHER:
        raise Forbidden("Only teachers can create quizzes")

    classroom = membership.require_class(db, body.class_id)
    if not membership.is_class_teacher(classroom, actor.id):
        raise Forbidden("You don't have permission to create quizzes for this class")

    title = _check_details(body.title, body.duration_minutes, body.start_time, body.end_time)
    questions = _build_questions(body.questions)

    quiz = Quiz(
        class_id=classroom.id,
        created_by=actor.id,
        title=title,
        description=body.description,
        duration_minutes=body.duration_minutes,
        start_time=body.start_time,
        end_time=body.end_time,
        is_published=False,
        questions=questions,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(
        "Quiz %s created in class %s with %d questions", quiz.id, classroom.id, len(questions)
    )
    return quiz


def update_quiz(db: Session, quiz_id: uuid.UUID, actor: User, patch: QuizUpdate) -> Quiz:
    """Apply the fields present in *patch*; questions only while unpublished."""
    if actor.role != RoleEnum.TEACHER:
        raise Forbidden("Only teachers can update quizzes")

    quiz = get_quiz(db, quiz_id)
    _require_creator(quiz, actor, "update")

    sent = patch.model_fields_set
    if "questions" in sent and quiz.is_published:
        raise Conflict("Cannot modify questions of a published quiz")

    def _pick(field: str, current):
        value = getattr(patch, field)
        return value if field in sent and value is not None else current

    title = _pick("title", quiz.title)
    description = _pick("description", quiz.description)
    duration = _pick("duration_minutes", quiz.duration_minutes)
    start_time = _pick("start_time", quiz.start_time)
    end_time = _pick("end_time", quiz.end_time)
    title = _check_details(title, duration, start_time, end_time)

    new_questions = None
    if "questions" in sent and patch.questions is not None:
        new_questions = _build_questions(patch.questions)

    # Everything validated; mutate.
    quiz.title = title
    quiz.description = description
    quiz.duration_minutes = duration
    quiz.start_time = start_time
    quiz.end_time = end_time
    if new_questions is not None:
        quiz.questions = new_questions

    db.commit()
    db.refresh(quiz)
    logger.info("Quiz %s updated (%s)", quiz.id, ", ".join(sorted(sent)) or "no fields")
    return quiz


def publish_quiz(db: Session, quiz_id: uuid.UUID, actor: User) -> Quiz:
    """Publish a draft and notify every enrolled student.

    Re-publishing is a no-op. Notification delivery is not part of the
    transaction: the quiz stays published whatever happens to the fan-out.
    """
    if actor.role != RoleEnum.TEACHER:
        raise Forbidden("Only teachers can publish quizzes")

    quiz = get_quiz(db, quiz_id)
    _require_creator(quiz, actor, "publish")

    if quiz.is_published:
        logger.info("Quiz %s already published, skipping fan-out", quiz.id)
        return quiz
    if not quiz.questions:
        raise ValidationError("Cannot publish a quiz with no questions")

    classroom = membership.require_class(db, quiz.class_id)

    quiz.is_published = True
    db.commit()
    db.refresh(quiz)
    logger.info("Quiz %s published", quiz.id)

    student_ids = membership.enrolled_student_ids(db, quiz.class_id)
    starts = quiz.start_time
    notify_many(
        student_ids,
        NotificationTypeEnum.QUIZ_PUBLISHED,
        f"New Quiz Available: {quiz.title}",
        (
            f'A new quiz "{quiz.title}" has been published in class "{classroom.name}". '
            f"Available from {starts:%Y-%m-%d} at {starts:%H:%M} UTC."
        ),
        related_id=quiz.id,
        related_model="Quiz",
    )
    return quiz


# ── Reads ─────────────────────────────────────────────────────────────────────


def get_quiz_details(db: Session, quiz_id: uuid.UUID, actor: User) -> tuple[Quiz, bool]:
    """Return the quiz and whether the reader may see answer keys."""
    quiz = get_quiz(db, quiz_id)
    if is_quiz_creator(quiz, actor):
        return quiz, True

    if not membership.is_enrolled(db, quiz.class_id, actor.id):
        raise Forbidden("You don't have permission to access this quiz")
    if not quiz.is_published:
        raise Forbidden("This quiz is not yet available")
    return quiz, False


def list_class_quizzes(db: Session, class_id: uuid.UUID, actor: User) -> list[tuple[Quiz, bool]]:
    """Quizzes of a class paired with whether the reader may see their keys.

    The class teacher sees drafts too; enrolled students only published ones.
    """
    classroom = membership.require_class(db, class_id)

    query = db.query(Quiz).filter(Quiz.class_id == classroom.id)
    if membership.is_class_teacher(classroom, actor.id):
        quizzes = query.order_by(Quiz.start_time).all()
        return [(quiz, is_quiz_creator(quiz, actor)) for quiz in quizzes]

    if not membership.is_enrolled(db, classroom.id, actor.id):
        raise Forbidden("You don't have permission to access this class")

    quizzes = query.filter(Quiz.is_published.is_(True)).order_by(Quiz.start_time).all()
    return [(quiz, False) for quiz in quizzes]

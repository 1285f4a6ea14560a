"""SQLAlchemy ORM models for the classroom quiz service.

Tables
------
- users               – teacher / student identities (owned by the identity service)
- classes             – a teacher's class
- class_enrollments   – student ↔ class membership
- quizzes             – authored quizzes with an availability window
- quiz_questions      – questions owned by a quiz, ordered by position
- submissions         – one student's attempt at one quiz
- submission_answers  – per‑question answers inside a submission
- notifications       – per‑recipient inbox entries
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classquiz.db.session import Base


# ── helpers ───────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values ("in-progress"), not member names."""
    return [member.value for member in enum_cls]


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops tzinfo on the way back; naive values read or written are
    taken to be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


# ── Enums (stored as VARCHAR via SQLAlchemy Enum) ─────────────────────────────


class RoleEnum(str, enum.Enum):
    TEACHER = "teacher"
    STUDENT = "student"


class QuestionTypeEnum(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class QuizStatusEnum(str, enum.Enum):
    """Derived from publication + window; never persisted."""

    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


class SubmissionStatusEnum(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    GRADED = "graded"


class NotificationTypeEnum(str, enum.Enum):
    QUIZ_PUBLISHED = "quiz-published"
    GRADE_AVAILABLE = "grade-available"
    CLASS_ANNOUNCEMENT = "class-announcement"
    QUIZ_SUBMISSION = "quiz-submission"


# ── Users ─────────────────────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(
        Enum(RoleEnum, name="role_enum", values_callable=_enum_values), default=RoleEnum.STUDENT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    submissions: Mapped[list["Submission"]] = relationship(back_populates="student")


# ── Classes ───────────────────────────────────────────────────────────────────


class Classroom(Base):
    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    teacher: Mapped["User"] = relationship("User")
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        back_populates="classroom", cascade="all, delete-orphan"
    )


class ClassEnrollment(Base):
    """Student ↔ class membership."""

    __tablename__ = "class_enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id")
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    classroom: Mapped["Classroom"] = relationship(back_populates="enrollments")
    student: Mapped["User"] = relationship("User")

    __table_args__ = (
        UniqueConstraint("class_id", "student_id", name="uq_class_student"),
    )


# ── Quizzes ───────────────────────────────────────────────────────────────────


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id"), index=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str] = mapped_column(Text, default="")
    duration_minutes: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, onupdate=_utcnow
    )

    classroom: Mapped["Classroom"] = relationship("Classroom")
    creator: Mapped["User"] = relationship("User")
    questions: Mapped[list["QuizQuestion"]] = relationship(
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.position",
    )


class QuizQuestion(Base):
    """A question owned by a quiz, ordered by ``position``."""

    __tablename__ = "quiz_questions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    text: Mapped[str] = mapped_column(Text)
    question_type: Mapped[QuestionTypeEnum] = mapped_column(
        Enum(QuestionTypeEnum, name="question_type_enum", values_callable=_enum_values)
    )
    options: Mapped[list[str]] = mapped_column(JSON, default=list)
    # str for multiple-choice, bool for true-false, NULL for short-answer
    correct_answer: Mapped[str | bool | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    points: Mapped[int] = mapped_column(Integer, default=1)

    quiz: Mapped["Quiz"] = relationship(back_populates="questions")


# ── Submissions ───────────────────────────────────────────────────────────────


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quizzes.id")
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    status: Mapped[SubmissionStatusEnum] = mapped_column(
        Enum(SubmissionStatusEnum, name="submission_status_enum", values_callable=_enum_values),
        default=SubmissionStatusEnum.IN_PROGRESS,
    )
    total_score: Mapped[int] = mapped_column(Integer, default=0)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    is_graded: Mapped[bool] = mapped_column(Boolean, default=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    student: Mapped["User"] = relationship(back_populates="submissions")
    quiz: Mapped["Quiz"] = relationship("Quiz")
    answers: Mapped[list["SubmissionAnswer"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionAnswer.position",
    )

    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", name="uq_submission_quiz_student"),
    )


class SubmissionAnswer(Base):
    """Individual answer within a submission, at most one per question."""

    __tablename__ = "submission_answers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("submissions.id")
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quiz_questions.id")
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    answer: Mapped[str | bool] = mapped_column(JSON)
    # None = pending teacher judgment
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=0)
    feedback: Mapped[str] = mapped_column(Text, default="")
    answered_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, onupdate=_utcnow
    )

    submission: Mapped["Submission"] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_submission_question"),
    )


# ── Notifications ─────────────────────────────────────────────────────────────


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    type: Mapped[NotificationTypeEnum] = mapped_column(
        Enum(NotificationTypeEnum, name="notification_type_enum", values_callable=_enum_values)
    )
    title: Mapped[str] = mapped_column(String(500))
    message: Mapped[str] = mapped_column(Text)
    related_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    related_model: Mapped[str | None] = mapped_column(String(50), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    recipient: Mapped["User"] = relationship("User")

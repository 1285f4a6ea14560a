"""Shared pytest fixtures for the quiz service tests."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from classquiz.api.deps import get_now
from classquiz.core.security import create_access_token
from classquiz.db.models import ClassEnrollment, Classroom, RoleEnum, User
from classquiz.db.session import Base, get_db
from classquiz.main import app


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Create all tables once at startup
Base.metadata.create_all(bind=engine)

# Monday 09:00 UTC; quizzes in tests open an hour later by default.
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class Clock:
    """Settable stand-in for the request clock."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def mock_deliver():
    """Replace the Celery delivery task so no broker or worker is needed."""
    mock_task = MagicMock()
    mock_task.delay = MagicMock(return_value=MagicMock(id="fake-task-id"))

    # Patch at the import point in the notification sink
    with patch("classquiz.services.notifications.deliver_notification", mock_task):
        yield mock_task


@pytest.fixture(scope="function")
def db():
    """Get a fresh DB session for each test; services commit, so wipe afterwards."""
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture
def clock() -> Clock:
    return Clock(T0)


@pytest.fixture(scope="function")
def client(db: Session, clock: Clock):
    """FastAPI test client with overridden DB and clock dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Identity & membership factories ───────────────────────────────────────────


@pytest.fixture
def make_user(db: Session):
    def _make(role: RoleEnum = RoleEnum.STUDENT, full_name: str | None = None) -> User:
        uid = str(uuid.uuid4())[:8]
        user = User(
            email=f"{role.value}_{uid}@ex.com",
            full_name=full_name or f"Test {role.value.title()} {uid}",
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def teacher(make_user) -> User:
    return make_user(RoleEnum.TEACHER, "Ms. Teacher")


@pytest.fixture
def student(make_user) -> User:
    return make_user(RoleEnum.STUDENT, "Sam Student")


@pytest.fixture
def enroll(db: Session):
    def _enroll(classroom: Classroom, user: User) -> ClassEnrollment:
        enrollment = ClassEnrollment(class_id=classroom.id, student_id=user.id)
        db.add(enrollment)
        db.commit()
        return enrollment

    return _enroll


@pytest.fixture
def classroom(db: Session, teacher: User, student: User, enroll) -> Classroom:
    """A class taught by ``teacher`` with ``student`` enrolled."""
    c = Classroom(name="Biology 101", description="Intro biology", teacher_id=teacher.id)
    db.add(c)
    db.commit()
    db.refresh(c)
    enroll(c, student)
    return c


@pytest.fixture
def auth():
    """Build bearer headers for a user."""

    def _auth(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth

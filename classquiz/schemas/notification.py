"""Notification inbox schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class NotificationType(str, Enum):
    QUIZ_PUBLISHED = "quiz-published"
    GRADE_AVAILABLE = "grade-available"
    CLASS_ANNOUNCEMENT = "class-announcement"
    QUIZ_SUBMISSION = "quiz-submission"


class NotificationRead(BaseModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    related_id: uuid.UUID | None = None
    related_model: str | None = None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationPage(BaseModel):
    """GET /api/notifications — newest first."""

    notifications: list[NotificationRead]
    total_pages: int
    current_page: int
    total_count: int


class UnreadCount(BaseModel):
    count: int

"""Notification inbox routes for the current user."""

import math
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from classquiz.api.deps import get_current_user
from classquiz.core.errors import Forbidden, NotFound
from classquiz.db.models import Notification, User
from classquiz.db.session import get_db
from classquiz.schemas.common import SuccessResponse
from classquiz.schemas.notification import NotificationPage, NotificationRead, UnreadCount

router = APIRouter()


@router.get("", response_model=NotificationPage)
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first."""
    q = db.query(Notification).filter(Notification.recipient_id == current_user.id)
    if unread_only:
        q = q.filter(Notification.read.is_(False))

    total = q.count()
    rows = (
        q.order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return NotificationPage(
        notifications=[NotificationRead.model_validate(n) for n in rows],
        total_pages=math.ceil(total / limit),
        current_page=page,
        total_count=total,
    )


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    count = (
        db.query(Notification)
        .filter(Notification.recipient_id == current_user.id, Notification.read.is_(False))
        .count()
    )
    return UnreadCount(count=count)


@router.patch("/read-all", response_model=SuccessResponse)
def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == current_user.id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return SuccessResponse(message="All notifications marked as read", data={"updated": updated})


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFound("Notification not found")
    if notification.recipient_id != current_user.id:
        raise Forbidden("Not authorized to update this notification")

    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification

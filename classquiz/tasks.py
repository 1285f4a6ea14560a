"""Background tasks executed by Celery workers."""

import logging
import uuid

from classquiz.celery_app import celery_app
from classquiz.db.models import Notification, NotificationTypeEnum, User
from classquiz.db.session import worker_session

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="deliver_notification", max_retries=3)
def deliver_notification(
    self,
    recipient_id: str,
    notification_type: str,
    title: str,
    message: str,
    related_id: str | None = None,
    related_model: str | None = None,
) -> dict:
    """Persist one notification into the recipient's inbox.

    Arguments are JSON-friendly strings so the task can cross a real broker.
    """
    try:
        with worker_session() as db:
            recipient = db.query(User).filter(User.id == uuid.UUID(recipient_id)).first()
            if recipient is None:
                logger.error("Recipient %s not found, dropping notification", recipient_id)
                return {"success": False, "error": "recipient_not_found"}

            notification = Notification(
                recipient_id=recipient.id,
                type=NotificationTypeEnum(notification_type),
                title=title,
                message=message,
                related_id=uuid.UUID(related_id) if related_id else None,
                related_model=related_model,
            )
            db.add(notification)
            db.commit()
            logger.info(
                "Delivered %s notification to %s", notification_type, recipient_id
            )
            return {"success": True, "notification_id": str(notification.id)}

    except Exception as exc:
        logger.exception("Notification delivery failed for %s", recipient_id)
        # Retry with exponential back-off (10s, 30s, 90s)
        raise self.retry(exc=exc, countdown=10 * (3**self.request.retries))

"""Notification sink used by the quiz lifecycle.

Delivery is asynchronous and advisory: a failure to enqueue is logged and
swallowed so it can never undo the state transition that triggered it.
Callers emit only after their own commit.
"""

import logging
import uuid

from classquiz.db.models import NotificationTypeEnum
from classquiz.tasks import deliver_notification

logger = logging.getLogger(__name__)


def notify(
    recipient_id: uuid.UUID,
    notification_type: NotificationTypeEnum,
    title: str,
    message: str,
    related_id: uuid.UUID | None = None,
    related_model: str | None = None,
) -> bool:
    """Enqueue a notification; returns False if it could not be handed off."""
    try:
        deliver_notification.delay(
            str(recipient_id),
            notification_type.value,
            title,
            message,
            str(related_id) if related_id else None,
            related_model,
        )
    except Exception:
        logger.exception(
            "Could not enqueue %s notification for %s",
            notification_type.value,
            recipient_id,
        )
        return False
    return True


def notify_many(
    recipient_ids: list[uuid.UUID],
    notification_type: NotificationTypeEnum,
    title: str,
    message: str,
    related_id: uuid.UUID | None = None,
    related_model: str | None = None,
) -> int:
    """Fan a notification out; returns how many were handed off."""
    delivered = 0
    for recipient_id in recipient_ids:
        if notify(recipient_id, notification_type, title, message, related_id, related_model):
            delivered += 1
    if delivered < len(recipient_ids):
        logger.warning(
            "%s fan-out: %d of %d notifications enqueued",
            notification_type.value,
            delivered,
            len(recipient_ids),
        )
    return delivered

"""Celery application — async worker for notification delivery."""

from celery import Celery

from classquiz.config import settings

celery_app = Celery(
    "classquiz",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Notifications are fire-and-forget; nobody reads their results.
    task_ignore_result=True,
    # Run tasks synchronously in-process when True (dev default, no Redis needed).
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
)

celery_app.autodiscover_tasks(["classquiz"])

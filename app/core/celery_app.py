"""Celery application for fire-and-forget side effects (order emails).

Eager by default: development and tests run tasks inline without a broker.
"""

from __future__ import annotations

from celery import Celery
from kombu import Queue

from app.core.config import settings


celery_app = Celery("bakery-storefront", include=["app.tasks.email"])

celery_app.conf.update(
    broker_url=settings.CELERY_BROKER_URL,
    result_backend=settings.CELERY_RESULT_BACKEND,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
    task_default_queue=settings.CELERY_TASK_DEFAULT_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    task_ignore_result=True,
    # un email no debe perderse si el worker muere a mitad de envío
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    task_queues=(
        Queue(settings.CELERY_TASK_DEFAULT_QUEUE),
        Queue(settings.EMAIL_QUEUE),
    ),
    task_routes={"email.*": {"queue": settings.EMAIL_QUEUE}},
)

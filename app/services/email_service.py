# app/services/email_service.py
"""Queueing side of notification emails; delivery happens in ``app.tasks.email``."""

from app.core.config import settings
from app.tasks.email import send_email_task


def _enqueue_email(to_email: str, subject: str, body: str, order_id: str | None = None) -> None:
    send_email_task.apply_async(
        (to_email, subject, body),
        {"order_id": order_id},
        queue=settings.EMAIL_QUEUE,
    )


def send_customer_email(to_email: str, subject: str, message: str, *, order_id: str | None = None) -> None:
    body = f"Hola,\n\n{message}\n\nGracias por elegir {settings.PROJECT_NAME}."
    _enqueue_email(to_email, subject, body, order_id)


def send_admin_alert(subject: str, message: str, *, order_id: str | None = None) -> bool:
    """Queue an email to the shop admin; returns False when no admin address is configured."""
    if not settings.ADMIN_EMAIL:
        return False
    _enqueue_email(settings.ADMIN_EMAIL, subject, message, order_id)
    return True

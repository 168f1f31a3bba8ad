from __future__ import annotations

import smtplib

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.logging import get_logger
from app.services.email_delivery import deliver_email

logger = get_logger(__name__)


@celery_app.task(
    name="email.send_plain",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=settings.EMAIL_MAX_RETRIES,
)
def send_email_task(to_email: str, subject: str, body: str, order_id: str | None = None) -> None:
    """Deliver one plain-text email; SMTP and network failures retry with backoff."""
    logger.info("Delivering email", extra={"to": to_email, "subject": subject, "order_id": order_id})
    deliver_email(to_email, subject, body)

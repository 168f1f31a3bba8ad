# app/services/email_delivery.py
import smtplib
from email.message import EmailMessage

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def build_message(to_email: str, subject: str, body: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    if settings.ADMIN_EMAIL and to_email != settings.ADMIN_EMAIL:
        # las respuestas del cliente llegan a la tienda
        msg["Reply-To"] = settings.ADMIN_EMAIL
    msg.set_content(body)
    return msg


def deliver_email(to_email: str, subject: str, body: str) -> None:
    """Send over SMTP, or only log when delivery is disabled (development)."""
    if not settings.EMAILS_ENABLED or not settings.SMTP_HOST:
        logger.info("Email delivery disabled; message logged only", extra={"to": to_email, "subject": subject})
        return

    msg = build_message(to_email, subject, body)
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
        if settings.SMTP_TLS:
            server.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)
    logger.info("Email delivered", extra={"to": to_email, "subject": subject})

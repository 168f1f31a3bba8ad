"""Celery task definitions package."""

from app.tasks import email  # noqa: F401

__all__ = ["email"]

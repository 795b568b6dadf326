"""Celery tasks for billing notifications and housekeeping."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts.models import Notification
from billing.models import WebhookEventLog

logger = logging.getLogger(__name__)


@shared_task
def deliver_billing_notification(user_id: str, type: str, title: str, message: str,
                                 metadata: Optional[Dict[str, Any]] = None) -> Optional[int]:
    """Store an in-app notification for ``user_id``."""

    user = get_user_model().objects.filter(pk=user_id).first()
    if user is None:
        logger.warning("Skipping billing notification '%s'; user %s does not exist.", title, user_id)
        return None

    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        metadata=metadata or {},
    )
    logger.info("Delivered billing notification %s to user %s.", notification.pk, user_id)
    return notification.pk


@shared_task
def cleanup_webhook_event_logs(days: Optional[int] = None) -> int:
    """Remove handled webhook events older than ``days`` days."""

    if days is None:
        days = getattr(settings, "BILLING_WEBHOOK_LOG_RETENTION_DAYS", 90)
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = WebhookEventLog.objects.filter(
        handled=True,
        processed_at__lt=cutoff,
    ).delete()

    logger.info("Cleaned up %s handled webhook events older than %s days.", deleted, days)
    return deleted

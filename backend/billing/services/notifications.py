"""Fire-and-forget user notifications for billing outcomes."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction

logger = logging.getLogger(__name__)


class CeleryNotifier:
    """Queue ``deliver_billing_notification`` once the surrounding transaction commits."""

    def notify(self, user_id, type: str, title: str, message: str,
               metadata: Optional[Dict[str, Any]] = None) -> None:
        from billing.tasks import deliver_billing_notification

        payload = {
            "user_id": str(user_id),
            "type": type,
            "title": title,
            "message": message,
            "metadata": metadata or {},
        }

        def _enqueue():
            try:
                deliver_billing_notification.delay(**payload)
            except Exception:  # broker outages are logged, never raised
                logger.exception("Failed to enqueue billing notification for user %s.", user_id)

        transaction.on_commit(_enqueue)

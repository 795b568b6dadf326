"""Gateway webhook endpoints for Stripe and Razorpay payment events."""
from __future__ import annotations

import hashlib
import logging
from typing import Optional, Tuple

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.exceptions import (
    BillingError,
    DuplicateEvent,
    InvalidSignature,
    MalformedPayload,
    UnsupportedEventType,
)
from billing.models import PaymentGateway, WebhookEventLog
from billing.observability.metrics import WEBHOOK_REJECTED_COUNT
from billing.services.gateways import build_adapter
from billing.services.orchestrator import OutcomeStatus, build_orchestrator
from billing.views.payments import request_id_for

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class GatewayWebhookView(APIView):
    """Verify, normalise and apply a gateway webhook delivery synchronously."""

    authentication_classes = []
    permission_classes = []
    http_method_names = ["post"]
    gateway: str = ""

    def post(self, request, *args, **kwargs):  # noqa: D401 - DRF signature
        body = request.body or b""
        adapter = build_adapter(self.gateway)

        try:
            event = adapter.parse_webhook(body, request.headers)
        except InvalidSignature as exc:
            logger.warning("%s webhook signature verification failed: %s", self.gateway, exc.message)
            return self._rejected(exc, reason="invalid_signature")
        except MalformedPayload as exc:
            logger.warning("%s webhook rejected due to malformed payload: %s", self.gateway, exc.message)
            return self._rejected(exc, reason="malformed_payload")
        except UnsupportedEventType as exc:
            logger.info("%s webhook ignored: %s", self.gateway, exc.message)
            return Response({"received": True, "status": OutcomeStatus.IGNORED.value}, status=200)

        payload_hash = hashlib.sha256(body).hexdigest()
        log_entry, already_processed = _record_event_receipt(
            self.gateway, event.delivery_id, event.event_type, payload_hash,
        )
        if already_processed:
            logger.info(
                "%s event %s (%s) already handled with status=%s.",
                self.gateway,
                event.delivery_id,
                event.event_type,
                log_entry.status,
            )
            return Response({"received": True, "status": OutcomeStatus.ALREADY_PROCESSED.value}, status=200)

        orchestrator = build_orchestrator(request_id=event.delivery_id or request_id_for(request), webhook=True)
        try:
            outcome = orchestrator.handle_payment_event(event)
        except DuplicateEvent:
            _mark_event(log_entry, WebhookEventLog.Status.PROCESSED)
            return Response({"received": True, "status": OutcomeStatus.ALREADY_PROCESSED.value}, status=200)
        except BillingError as exc:
            logger.error(
                "%s event %s (%s) failed: %s",
                self.gateway,
                event.delivery_id,
                event.event_type,
                exc.message,
            )
            _mark_event(log_entry, WebhookEventLog.Status.FAILED, error=exc.message)
            status = exc.http_status if exc.http_status < 500 else 500
            return Response({"code": exc.code, "message": exc.message, "details": exc.details}, status=status)

        log_status = (
            WebhookEventLog.Status.IGNORED if outcome.status is OutcomeStatus.IGNORED
            else WebhookEventLog.Status.PROCESSED
        )
        _mark_event(log_entry, log_status)
        return Response({"received": True, "status": outcome.status.value}, status=200)

    def _rejected(self, exc: BillingError, *, reason: str) -> Response:
        WEBHOOK_REJECTED_COUNT.labels(gateway=self.gateway, reason=reason).inc()
        return Response({"code": exc.code, "message": exc.message, "details": exc.details}, status=400)


class StripeWebhookView(GatewayWebhookView):
    gateway = PaymentGateway.STRIPE


class RazorpayWebhookView(GatewayWebhookView):
    gateway = PaymentGateway.RAZORPAY


def _record_event_receipt(gateway: str, event_id: Optional[str], event_type: Optional[str],
                          payload_hash: str) -> Tuple[Optional[WebhookEventLog], bool]:
    """Create or update the webhook log to reflect reception of an event."""

    if not event_id:
        logger.warning("Received %s event without identifier; proceeding without receipt log.", gateway)
        return None, False

    try:
        with transaction.atomic():
            log_entry = (
                WebhookEventLog.objects.select_for_update()
                .filter(gateway=gateway, event_id=event_id)
                .first()
            )
            if log_entry:
                if log_entry.handled:
                    return log_entry, True

                log_entry.event_type = event_type or log_entry.event_type
                log_entry.status = WebhookEventLog.Status.RECEIVED
                log_entry.last_error = ""
                log_entry.processed_at = None
                log_entry.payload_hash = payload_hash or log_entry.payload_hash
                log_entry.save(update_fields=["event_type", "status", "last_error", "processed_at", "payload_hash"])
                return log_entry, False

            log_entry = WebhookEventLog.objects.create(
                gateway=gateway,
                event_id=event_id,
                event_type=event_type or "",
                status=WebhookEventLog.Status.RECEIVED,
                payload_hash=payload_hash or "",
            )
            return log_entry, False
    except IntegrityError:
        # Another worker logged the same delivery first; the orchestrator stays idempotent either way.
        log_entry = WebhookEventLog.objects.filter(gateway=gateway, event_id=event_id).first()
        return log_entry, bool(log_entry and log_entry.handled)


def _mark_event(log_entry: Optional[WebhookEventLog], status: str, *, error: str = "") -> None:
    if log_entry is None:
        return
    log_entry.status = status
    log_entry.last_error = error
    log_entry.handled = status != WebhookEventLog.Status.FAILED
    log_entry.processed_at = timezone.now()
    log_entry.save(update_fields=["status", "last_error", "handled", "processed_at"])

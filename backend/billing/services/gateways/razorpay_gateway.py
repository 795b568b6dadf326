"""Razorpay webhook and checkout-callback adapter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from billing.exceptions import GatewayUnavailable, MalformedPayload, UnsupportedEventType
from billing.models import PaymentGateway
from billing.services.events import EventKind, PaymentEvent
from billing.services.gateways.base import (
    GatewayAdapter,
    coerce_amount,
    load_json_object,
    require,
    verify_hmac_sha256,
)
from billing.services.metadata import FailureMetadata, RefundMetadata, checkout_metadata_from_notes

logger = logging.getLogger(__name__)

EVENT_KINDS = {
    "payment.captured": EventKind.CAPTURED,
    "payment.failed": EventKind.FAILED,
    "refund.created": EventKind.REFUNDED,
    "refund.processed": EventKind.REFUNDED,
}


class RazorpayGatewayAdapter(GatewayAdapter):
    gateway = PaymentGateway.RAZORPAY
    signature_header = "X-Razorpay-Signature"
    delivery_id_header = "X-Razorpay-Event-Id"

    def __init__(self, *, key_id: Optional[str], key_secret: Optional[str], webhook_secret: Optional[str],
                 api_base_url: str = "https://api.razorpay.com/v1", timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> PaymentEvent:
        verify_hmac_sha256(self.webhook_secret, body, headers.get(self.signature_header))
        envelope = load_json_object(body)

        event_type = require(envelope, "event", context="event")
        kind = EVENT_KINDS.get(event_type)
        if kind is None:
            raise UnsupportedEventType(f"Razorpay event type {event_type!r} is not handled.")

        payload = require(envelope, "payload", context="event")
        delivery_id = self.delivery_id(body, headers)

        if kind is EventKind.REFUNDED:
            refund = require(require(payload, "refund", context="payload"), "entity", context="payload.refund")
            payment = (payload.get("payment") or {}).get("entity") or {}
            return self._refund_event(refund, payment, event_type, delivery_id)

        payment = require(require(payload, "payment", context="payload"), "entity", context="payload.payment")
        return self._payment_event(payment, event_type, kind, delivery_id)

    def _payment_event(self, payment: Dict[str, Any], event_type: str, kind: EventKind,
                       delivery_id: Optional[str]) -> PaymentEvent:
        failure = None
        if kind is EventKind.FAILED:
            failure = FailureMetadata(code=payment.get("error_code"), message=payment.get("error_description"))

        return PaymentEvent(
            kind=kind,
            gateway=self.gateway,
            external_payment_id=require(payment, "id", context="payment"),
            external_order_id=payment.get("order_id"),
            amount_minor_units=coerce_amount(require(payment, "amount", context="payment"), context="payment.amount"),
            currency=str(require(payment, "currency", context="payment")).upper(),
            metadata=checkout_metadata_from_notes(_notes(payment)),
            event_type=event_type,
            delivery_id=delivery_id,
            failure=failure,
        )

    def _refund_event(self, refund: Dict[str, Any], payment: Dict[str, Any], event_type: str,
                      delivery_id: Optional[str]) -> PaymentEvent:
        amount = coerce_amount(require(refund, "amount", context="refund"), context="refund.amount")
        return PaymentEvent(
            kind=EventKind.REFUNDED,
            gateway=self.gateway,
            external_payment_id=require(refund, "payment_id", context="refund"),
            external_order_id=payment.get("order_id"),
            amount_minor_units=amount,
            currency=str(refund.get("currency") or payment.get("currency") or "INR").upper(),
            metadata=checkout_metadata_from_notes(_notes(payment)),
            event_type=event_type,
            delivery_id=delivery_id,
            refund=RefundMetadata(
                refund_id=refund.get("id"),
                amount_minor_units=amount,
                reason=(_notes(refund) or {}).get("reason"),
            ),
        )

    def verify_checkout(self, order_id: str, payment_id: str, signature: str) -> PaymentEvent:
        """Verify a Checkout handler callback and describe it as a captured payment."""
        message = f"{order_id}|{payment_id}".encode("utf-8")
        verify_hmac_sha256(self.key_secret, message, signature)

        order = self.fetch_order(order_id)
        return PaymentEvent(
            kind=EventKind.CAPTURED,
            gateway=self.gateway,
            external_payment_id=payment_id,
            external_order_id=order_id,
            amount_minor_units=coerce_amount(require(order, "amount", context="order"), context="order.amount"),
            currency=str(require(order, "currency", context="order")).upper(),
            metadata=checkout_metadata_from_notes(_notes(order)),
            event_type="checkout.verified",
        )

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        url = f"{self.api_base_url}/orders/{order_id}"
        try:
            response = self.session.get(url, auth=(self.key_id or "", self.key_secret or ""), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Fetching Razorpay order %s failed: %s", order_id, exc)
            raise GatewayUnavailable("Could not fetch order details from Razorpay.") from exc

        try:
            order = response.json()
        except ValueError as exc:
            raise GatewayUnavailable("Razorpay returned an unreadable order response.") from exc
        if not isinstance(order, dict):
            raise MalformedPayload("Razorpay order response must be an object.")
        return order


def _notes(entity: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    # Razorpay serialises empty notes as [] rather than {}.
    notes = entity.get("notes")
    if isinstance(notes, list) and not notes:
        return None
    return notes

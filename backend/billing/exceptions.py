"""Domain exceptions raised by the billing services.

Each class carries the machine readable ``code`` and ``http_status`` used by
the API views when building the ``{code, message, details}`` error envelope.
``soft`` errors are acknowledged to gateways as no-ops; ``retryable`` errors
may succeed when the caller tries again.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class BillingError(Exception):
    code = "billing_error"
    http_status = 500
    soft = False
    retryable = False
    default_message = "Billing operation failed."

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class InvalidSignature(BillingError):
    code = "invalid_signature"
    http_status = 400
    default_message = "Signature verification failed."


class MalformedPayload(BillingError):
    code = "malformed_payload"
    http_status = 400
    default_message = "Payload is missing required fields or is not valid JSON."


class UnsupportedEventType(BillingError):
    code = "unsupported_event_type"
    http_status = 200
    soft = True
    default_message = "Event type is not handled."


class DuplicateEvent(BillingError):
    code = "duplicate_event"
    http_status = 200
    soft = True
    default_message = "Event has already been recorded."


class PlanNotFound(BillingError):
    code = "plan_not_found"
    http_status = 404
    default_message = "Subscription plan not found or inactive."


class SubscriptionNotFound(BillingError):
    code = "subscription_not_found"
    http_status = 404
    default_message = "Subscription not found."


class PaymentNotFound(BillingError):
    code = "payment_not_found"
    http_status = 404
    default_message = "Payment not found."


class BrandNotFound(BillingError):
    code = "brand_not_found"
    http_status = 404
    default_message = "Brand not found."


class NoOpTransition(BillingError):
    code = "same_plan"
    http_status = 400
    default_message = "Subscription is already on this plan."


class InvalidTransition(BillingError):
    code = "invalid_transition"
    http_status = 400
    default_message = "Plans with equal price cannot be switched between."


class Forbidden(BillingError):
    code = "forbidden"
    http_status = 403
    default_message = "You do not have permission to perform this action."


class ConcurrentModification(BillingError):
    code = "concurrent_modification"
    http_status = 409
    retryable = True
    default_message = "The subscription was modified concurrently. Please retry."


class PersistenceFailure(BillingError):
    code = "persistence_failure"
    http_status = 500
    retryable = True
    default_message = "Billing data could not be persisted."


class GatewayUnavailable(BillingError):
    code = "gateway_unavailable"
    http_status = 502
    retryable = True
    default_message = "Payment gateway could not be reached."

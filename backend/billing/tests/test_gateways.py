import json
import time
from decimal import Decimal
from unittest import mock

import pytest
import requests

from billing.exceptions import GatewayUnavailable, InvalidSignature, MalformedPayload, UnsupportedEventType
from billing.models import PaymentGateway
from billing.services.events import EventKind, TrustLevel
from billing.services.gateways import (
    RazorpayGatewayAdapter,
    StripeGatewayAdapter,
    UPIGatewayAdapter,
    build_adapter,
)
from billing.services.metadata import CheckoutMetadata
from billing.tests.helpers import (
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
    STRIPE_SECRET,
    hmac_hex,
    razorpay_payment_event,
    stripe_intent_event,
    stripe_refund_event,
    stripe_signature,
)


@pytest.fixture
def stripe_adapter():
    return StripeGatewayAdapter(webhook_secret=STRIPE_SECRET)


@pytest.fixture
def razorpay_session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def razorpay_adapter(razorpay_session):
    return RazorpayGatewayAdapter(
        key_id="rzp_test_key",
        key_secret=RAZORPAY_KEY_SECRET,
        webhook_secret=RAZORPAY_WEBHOOK_SECRET,
        session=razorpay_session,
    )


def test_stripe_succeeded_intent_becomes_captured_event(stripe_adapter):
    payload = stripe_intent_event(
        "payment_intent.succeeded",
        "pi_123",
        metadata={"planId": "plan-1", "brandId": "brand-1", "userId": "7", "campaign": "diwali"},
    )

    event = stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": stripe_signature(payload)})

    assert event.kind is EventKind.CAPTURED
    assert event.gateway == PaymentGateway.STRIPE
    assert event.external_payment_id == "pi_123"
    assert event.external_order_id == "pi_123"
    assert event.amount_minor_units == 99900
    assert event.amount == Decimal("999.00")
    assert event.currency == "INR"
    assert event.delivery_id == "evt_1"
    assert event.trust_level is TrustLevel.VERIFIED
    assert event.metadata == CheckoutMetadata(
        plan_id="plan-1", brand_id="brand-1", user_id="7", extra={"campaign": "diwali"},
    )


def test_stripe_single_byte_tamper_is_rejected(stripe_adapter):
    payload = stripe_intent_event("payment_intent.succeeded", "pi_123")
    header = stripe_signature(payload)
    tampered = payload.replace("99900", "99901", 1)

    with pytest.raises(InvalidSignature):
        stripe_adapter.parse_webhook(tampered.encode(), {"Stripe-Signature": header})


def test_stripe_stale_timestamp_is_rejected(stripe_adapter):
    payload = stripe_intent_event("payment_intent.succeeded", "pi_123")
    header = stripe_signature(payload, timestamp=time.time() - 3600)

    with pytest.raises(InvalidSignature):
        stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": header})


def test_stripe_missing_header_or_secret_is_rejected():
    payload = stripe_intent_event("payment_intent.succeeded", "pi_123")

    with pytest.raises(InvalidSignature):
        StripeGatewayAdapter(webhook_secret=STRIPE_SECRET).parse_webhook(payload.encode(), {})
    with pytest.raises(InvalidSignature):
        StripeGatewayAdapter(webhook_secret="").parse_webhook(
            payload.encode(), {"Stripe-Signature": stripe_signature(payload)},
        )


def test_stripe_unhandled_event_type_is_unsupported(stripe_adapter):
    payload = json.dumps({"id": "evt_9", "type": "customer.created", "data": {"object": {}}})

    with pytest.raises(UnsupportedEventType):
        stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": stripe_signature(payload)})


def test_stripe_signed_garbage_is_malformed(stripe_adapter):
    payload = '{"type": "payment_intent.succeeded", "data": {"object": {"currency": "inr"}}}'

    with pytest.raises(MalformedPayload):
        stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": stripe_signature(payload)})


def test_stripe_failed_intent_carries_failure_reason(stripe_adapter):
    payload = stripe_intent_event(
        "payment_intent.payment_failed",
        "pi_456",
        last_payment_error={"code": "card_declined", "message": "Your card was declined."},
    )

    event = stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": stripe_signature(payload)})

    assert event.kind is EventKind.FAILED
    assert event.amount_minor_units == 99900
    assert event.failure.code == "card_declined"
    assert event.failure.message == "Your card was declined."


def test_stripe_charge_refund_is_keyed_by_payment_intent(stripe_adapter):
    payload = stripe_refund_event("pi_123", amount=50000, refund_id="re_42")

    event = stripe_adapter.parse_webhook(payload.encode(), {"Stripe-Signature": stripe_signature(payload)})

    assert event.kind is EventKind.REFUNDED
    assert event.external_payment_id == "pi_123"
    assert event.amount_minor_units == 50000
    assert event.refund.refund_id == "re_42"
    assert event.refund.reason == "requested_by_customer"


def test_razorpay_captured_webhook_is_verified_against_raw_body(razorpay_adapter):
    body = razorpay_payment_event(
        "payment.captured",
        "pay_123",
        notes={"planId": "plan-1", "brandId": "brand-1"},
    ).encode()
    headers = {
        "X-Razorpay-Signature": hmac_hex(RAZORPAY_WEBHOOK_SECRET, body),
        "X-Razorpay-Event-Id": "evt_rzp_1",
    }

    event = razorpay_adapter.parse_webhook(body, headers)

    assert event.kind is EventKind.CAPTURED
    assert event.external_payment_id == "pay_123"
    assert event.external_order_id == "order_1"
    assert event.delivery_id == "evt_rzp_1"
    assert event.metadata.plan_id == "plan-1"
    assert event.metadata.brand_id == "brand-1"


def test_razorpay_empty_notes_list_means_no_metadata(razorpay_adapter):
    body = razorpay_payment_event("payment.captured", "pay_123").encode()

    event = razorpay_adapter.parse_webhook(body, {"X-Razorpay-Signature": hmac_hex(RAZORPAY_WEBHOOK_SECRET, body)})

    assert event.metadata == CheckoutMetadata()


def test_razorpay_signature_mismatch_is_rejected(razorpay_adapter):
    body = razorpay_payment_event("payment.captured", "pay_123").encode()
    signature = hmac_hex("some-other-secret", body)

    with pytest.raises(InvalidSignature):
        razorpay_adapter.parse_webhook(body, {"X-Razorpay-Signature": signature})


def test_razorpay_refund_webhook(razorpay_adapter):
    body = json.dumps(
        {
            "event": "refund.processed",
            "payload": {
                "refund": {"entity": {"id": "rfnd_1", "payment_id": "pay_123", "amount": 99900, "currency": "INR"}},
                "payment": {"entity": {"id": "pay_123", "order_id": "order_1", "notes": []}},
            },
        }
    ).encode()

    event = razorpay_adapter.parse_webhook(body, {"X-Razorpay-Signature": hmac_hex(RAZORPAY_WEBHOOK_SECRET, body)})

    assert event.kind is EventKind.REFUNDED
    assert event.external_payment_id == "pay_123"
    assert event.refund.refund_id == "rfnd_1"


def test_razorpay_checkout_verification_reads_order_notes(razorpay_adapter, razorpay_session):
    razorpay_session.get.return_value.json.return_value = {
        "id": "order_1",
        "amount": 199900,
        "currency": "INR",
        "notes": {"planId": "plan-2", "brandId": "brand-1", "userId": "7"},
    }
    signature = hmac_hex(RAZORPAY_KEY_SECRET, b"order_1|pay_999")

    event = razorpay_adapter.verify_checkout("order_1", "pay_999", signature)

    razorpay_session.get.assert_called_once_with(
        "https://api.razorpay.com/v1/orders/order_1",
        auth=("rzp_test_key", RAZORPAY_KEY_SECRET),
        timeout=10,
    )
    assert event.kind is EventKind.CAPTURED
    assert event.external_payment_id == "pay_999"
    assert event.amount == Decimal("1999.00")
    assert event.metadata.plan_id == "plan-2"


def test_razorpay_checkout_bad_signature_skips_order_lookup(razorpay_adapter, razorpay_session):
    with pytest.raises(InvalidSignature):
        razorpay_adapter.verify_checkout("order_1", "pay_999", "deadbeef")

    razorpay_session.get.assert_not_called()


def test_razorpay_order_lookup_failure_is_gateway_unavailable(razorpay_adapter, razorpay_session):
    razorpay_session.get.side_effect = requests.ConnectionError("connection reset")
    signature = hmac_hex(RAZORPAY_KEY_SECRET, b"order_1|pay_999")

    with pytest.raises(GatewayUnavailable):
        razorpay_adapter.verify_checkout("order_1", "pay_999", signature)


def test_upi_user_confirmation_is_user_asserted():
    event = UPIGatewayAdapter().user_confirmation(transaction_id="TXN1", utr="412345678901", user_id=7)

    assert event.trust_level is TrustLevel.USER_ASSERTED
    assert event.asserted_by == "7"
    assert event.confirmation_reference == "412345678901"


@pytest.mark.parametrize("utr", ["", "12345", "4123-4567-8901", "x" * 36])
def test_upi_rejects_malformed_utr(utr):
    with pytest.raises(MalformedPayload):
        UPIGatewayAdapter().user_confirmation(transaction_id="TXN1", utr=utr, user_id=7)


def test_upi_has_no_webhook():
    with pytest.raises(UnsupportedEventType):
        UPIGatewayAdapter().parse_webhook(b"{}", {})


def test_build_adapter_reads_settings(settings):
    settings.STRIPE_WEBHOOK_SECRET = "whsec_from_settings"

    adapter = build_adapter(PaymentGateway.STRIPE)

    assert isinstance(adapter, StripeGatewayAdapter)
    assert adapter.webhook_secret == "whsec_from_settings"
    with pytest.raises(ValueError):
        build_adapter("PAYPAL")

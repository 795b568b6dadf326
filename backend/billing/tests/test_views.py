import json
from unittest import mock

import pytest
from rest_framework.test import APIClient

from billing.models import (
    Invoice,
    Payment,
    PaymentGateway,
    Subscription,
    WebhookEventLog,
)
from billing.services.gateways.razorpay_gateway import RazorpayGatewayAdapter
from billing.tests.helpers import (
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
    hmac_hex,
    razorpay_payment_event,
    stripe_intent_event,
    stripe_refund_event,
    stripe_signature,
)

STRIPE_WEBHOOK_URL = "/api/payments/stripe/webhook/"
RAZORPAY_WEBHOOK_URL = "/api/payments/razorpay/webhook/"
UPI_CREATE_URL = "/api/payments/upi/create/"
UPI_VERIFY_URL = "/api/payments/upi/verify/"


def _post_stripe(payload, *, signature=None):
    return APIClient().post(
        STRIPE_WEBHOOK_URL,
        data=payload,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=signature or stripe_signature(payload),
    )


def _checkout_notes(plan, brand, user):
    return {"planId": str(plan.pk), "brandId": str(brand.pk), "userId": str(user.pk)}


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# Webhooks


@pytest.mark.django_db
def test_stripe_webhook_activates_subscription_once(basic_plan, brand, user):
    payload = stripe_intent_event(
        "payment_intent.succeeded", "pi_abc", metadata=_checkout_notes(basic_plan, brand, user), event_id="evt_abc",
    )

    first = _post_stripe(payload)
    second = _post_stripe(payload)

    assert first.status_code == 200
    assert first.json() == {"received": True, "status": "PROCESSED"}
    assert second.status_code == 200
    assert second.json()["status"] == "ALREADY_PROCESSED"

    assert Payment.objects.filter(payment_gateway=PaymentGateway.STRIPE, external_payment_id="pi_abc").count() == 1
    assert Invoice.objects.count() == 1
    log_entry = WebhookEventLog.objects.get(gateway=PaymentGateway.STRIPE, event_id="evt_abc")
    assert log_entry.handled
    assert log_entry.status == WebhookEventLog.Status.PROCESSED


@pytest.mark.django_db
def test_stripe_webhook_rejects_bad_signature_without_writes(basic_plan, brand, user):
    payload = stripe_intent_event("payment_intent.succeeded", "pi_abc", metadata=_checkout_notes(basic_plan, brand, user))
    header = stripe_signature(payload)

    response = _post_stripe(payload.replace("pi_abc", "pi_abd"), signature=header)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"
    assert not Payment.objects.exists()
    assert not WebhookEventLog.objects.exists()


@pytest.mark.django_db
def test_stripe_webhook_acknowledges_unhandled_event_types():
    payload = json.dumps({"id": "evt_x", "type": "customer.updated", "data": {"object": {}}})

    response = _post_stripe(payload)

    assert response.status_code == 200
    assert response.json()["status"] == "IGNORED"


@pytest.mark.django_db
def test_stripe_refund_webhook_cancels_subscription(basic_plan, brand, user):
    capture = stripe_intent_event(
        "payment_intent.succeeded", "pi_abc", metadata=_checkout_notes(basic_plan, brand, user), event_id="evt_1",
    )
    _post_stripe(capture)

    response = _post_stripe(stripe_refund_event("pi_abc", event_id="evt_2"))

    assert response.status_code == 200
    payment = Payment.objects.get(external_payment_id="pi_abc")
    assert payment.status == Payment.Status.REFUNDED
    assert payment.subscription.status == Subscription.Status.CANCELLED


@pytest.mark.django_db
def test_stripe_webhook_without_attribution_is_ignored():
    payload = stripe_intent_event("payment_intent.succeeded", "pi_orphan", event_id="evt_orphan")

    response = _post_stripe(payload)

    assert response.status_code == 200
    assert response.json()["status"] == "IGNORED"
    log_entry = WebhookEventLog.objects.get(event_id="evt_orphan")
    assert log_entry.status == WebhookEventLog.Status.IGNORED


@pytest.mark.django_db
def test_razorpay_webhook_captures_payment(basic_plan, brand, user):
    body = razorpay_payment_event("payment.captured", "pay_rzp", notes=_checkout_notes(basic_plan, brand, user))

    response = APIClient().post(
        RAZORPAY_WEBHOOK_URL,
        data=body,
        content_type="application/json",
        HTTP_X_RAZORPAY_SIGNATURE=hmac_hex(RAZORPAY_WEBHOOK_SECRET, body.encode()),
        HTTP_X_RAZORPAY_EVENT_ID="evt_rzp_1",
    )

    assert response.status_code == 200
    payment = Payment.objects.get(payment_gateway=PaymentGateway.RAZORPAY, external_payment_id="pay_rzp")
    assert payment.status == Payment.Status.COMPLETED
    assert payment.subscription.external_subscription_id == "order_1"


@pytest.mark.django_db
def test_razorpay_webhook_rejects_missing_signature():
    body = razorpay_payment_event("payment.captured", "pay_rzp")

    response = APIClient().post(RAZORPAY_WEBHOOK_URL, data=body, content_type="application/json")

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"


# Razorpay checkout callback


@pytest.mark.django_db
def test_razorpay_verify_activates_subscription(api_client, professional_plan, brand, user):
    order = {
        "id": "order_9",
        "amount": 199900,
        "currency": "INR",
        "notes": _checkout_notes(professional_plan, brand, user),
    }
    signature = hmac_hex(RAZORPAY_KEY_SECRET, b"order_9|pay_9")

    with mock.patch.object(RazorpayGatewayAdapter, "fetch_order", return_value=order) as fetch_order:
        response = api_client.post(
            "/api/payments/razorpay/verify/",
            {"orderId": "order_9", "paymentId": "pay_9", "signature": signature},
            format="json",
        )

    fetch_order.assert_called_once_with("order_9")
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["subscription"]["status"] == "ACTIVE"
    assert payload["subscription"]["plan"]["code"] == "professional"
    assert payload["invoice"]["invoiceNumber"].startswith("INV-")


@pytest.mark.django_db
def test_razorpay_verify_rejects_forged_signature(api_client):
    with mock.patch.object(RazorpayGatewayAdapter, "fetch_order") as fetch_order:
        response = api_client.post(
            "/api/payments/razorpay/verify/",
            {"orderId": "order_9", "paymentId": "pay_9", "signature": "0" * 64},
            format="json",
        )

    fetch_order.assert_not_called()
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"


@pytest.mark.django_db
def test_razorpay_verify_requires_plan_and_brand_notes(api_client):
    order = {"id": "order_9", "amount": 199900, "currency": "INR", "notes": []}
    signature = hmac_hex(RAZORPAY_KEY_SECRET, b"order_9|pay_9")

    with mock.patch.object(RazorpayGatewayAdapter, "fetch_order", return_value=order):
        response = api_client.post(
            "/api/payments/razorpay/verify/",
            {"orderId": "order_9", "paymentId": "pay_9", "signature": signature},
            format="json",
        )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_order_metadata"


# UPI


def _create_upi(client, plan, brand, **extra):
    return client.post(
        UPI_CREATE_URL,
        {"planId": str(plan.pk), "brandId": str(brand.pk), "upiId": "alice@okicici"},
        format="json",
        **extra,
    )


@pytest.mark.django_db
def test_upi_create_returns_deep_link(api_client, basic_plan, brand):
    response = _create_upi(api_client, basic_plan, brand)

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["transactionId"].startswith("TXN")
    assert payload["upiLink"].startswith("upi://pay?")
    assert payload["qrData"] == payload["upiLink"]
    assert payload["amount"] == "999.00"
    assert payload["currency"] == "INR"
    assert Payment.objects.get(pk=payload["paymentId"]).status == Payment.Status.PENDING


@pytest.mark.django_db
def test_upi_create_validates_input(api_client, basic_plan, brand):
    response = api_client.post(
        UPI_CREATE_URL,
        {"planId": str(basic_plan.pk), "brandId": str(brand.pk), "upiId": "nope"},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_request"
    assert "upiId" in response.json()["details"]


@pytest.mark.django_db
@pytest.mark.parametrize("upi_id", ["a@okaxis", "first.last-1@ybl", "9876543210@paytm"])
def test_upi_create_accepts_short_and_numeric_vpas(api_client, basic_plan, brand, upi_id):
    response = api_client.post(
        UPI_CREATE_URL,
        {"planId": str(basic_plan.pk), "brandId": str(brand.pk), "upiId": upi_id},
        format="json",
    )

    assert response.status_code == 201


@pytest.mark.django_db
@pytest.mark.parametrize("upi_id", ["@okaxis", "alice@", "alice@ok.axis", "alice okaxis"])
def test_upi_create_rejects_malformed_vpas(api_client, basic_plan, brand, upi_id):
    response = api_client.post(
        UPI_CREATE_URL,
        {"planId": str(basic_plan.pk), "brandId": str(brand.pk), "upiId": upi_id},
        format="json",
    )

    assert response.status_code == 400


@pytest.mark.django_db
def test_upi_create_for_foreign_brand_is_forbidden(api_client, basic_plan, other_brand):
    response = _create_upi(api_client, basic_plan, other_brand)

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.django_db
def test_upi_create_requires_authentication(basic_plan, brand):
    response = _create_upi(APIClient(), basic_plan, brand)

    assert response.status_code == 401


@pytest.mark.django_db
def test_upi_verify_completes_payment(api_client, basic_plan, brand):
    transaction_id = _create_upi(api_client, basic_plan, brand).json()["transactionId"]

    status_only = api_client.post(UPI_VERIFY_URL, {"transactionId": transaction_id}, format="json")
    response = api_client.post(
        UPI_VERIFY_URL,
        {"transactionId": transaction_id, "upiTransactionId": "412345678901"},
        format="json",
    )

    assert status_only.status_code == 200
    assert status_only.json()["status"] == "PENDING"
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["status"] == "COMPLETED"
    assert payload["subscription"]["status"] == "ACTIVE"
    assert payload["subscription"]["plan"] == "Basic"
    assert len(payload["subscription"]["licenseKey"]) == 19


@pytest.mark.django_db
def test_upi_verify_by_another_user_is_forbidden(api_client, basic_plan, brand, other_user):
    transaction_id = _create_upi(api_client, basic_plan, brand).json()["transactionId"]

    response = _client_for(other_user).post(
        UPI_VERIFY_URL,
        {"transactionId": transaction_id, "upiTransactionId": "412345678901"},
        format="json",
    )

    assert response.status_code == 403
    payment = Payment.objects.get(external_payment_id=transaction_id)
    assert payment.status == Payment.Status.PENDING


@pytest.mark.django_db
def test_upi_verify_unknown_transaction(api_client):
    response = api_client.post(
        UPI_VERIFY_URL,
        {"transactionId": "TXN-missing", "upiTransactionId": "412345678901"},
        format="json",
    )

    assert response.status_code == 404
    assert response.json()["code"] == "payment_not_found"


@pytest.mark.django_db
def test_upi_verify_awaits_reconciliation_when_configured(settings, api_client, basic_plan, brand):
    settings.BILLING_UPI_AUTO_COMPLETE = False
    transaction_id = _create_upi(api_client, basic_plan, brand).json()["transactionId"]

    response = api_client.post(
        UPI_VERIFY_URL,
        {"transactionId": transaction_id, "upiTransactionId": "412345678901"},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"
    assert response.json()["message"] == "Payment reference received and awaiting verification"
    assert response.json()["subscription"]["status"] == "PENDING"


# Plans, subscriptions and history


@pytest.mark.django_db
def test_plan_list_is_ordered_by_price(api_client, basic_plan, professional_plan, enterprise_plan):
    response = api_client.get("/api/subscription-plans/")

    assert response.status_code == 200
    codes = [plan["code"] for plan in response.json()]
    assert codes == ["basic", "professional", "enterprise"]
    assert response.json()[0]["periodDays"] == 30


@pytest.mark.django_db
def test_subscription_detail_is_limited_to_brand_owner(api_client, active_subscription, other_user):
    url = f"/api/subscriptions/{active_subscription.pk}/"

    own = api_client.get(url)
    foreign = _client_for(other_user).get(url)

    assert own.status_code == 200
    assert own.json()["licenseKey"] == "ABCD-EFGH-IJKL-MNOP"
    assert foreign.status_code == 403


@pytest.mark.django_db
def test_change_plan_endpoint_upgrades(api_client, active_subscription, professional_plan):
    response = api_client.post(
        f"/api/subscriptions/{active_subscription.pk}/change-plan/",
        {"newPlanId": str(professional_plan.pk)},
        format="json",
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["isUpgrade"] is True
    assert payload["creditDays"] == 4
    assert payload["subscription"]["plan"]["code"] == "professional"
    assert payload["message"].startswith("Upgraded from Basic to Professional")


@pytest.mark.django_db
def test_change_plan_endpoint_errors(api_client, active_subscription, basic_plan, professional_plan, other_user):
    url = f"/api/subscriptions/{active_subscription.pk}/change-plan/"

    same = api_client.post(url, {"newPlanId": str(basic_plan.pk)}, format="json")
    invalid = api_client.post(url, {"newPlanId": "basic"}, format="json")
    foreign = _client_for(other_user).post(url, {"newPlanId": str(professional_plan.pk)}, format="json")

    assert same.status_code == 400
    assert same.json()["code"] == "same_plan"
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "invalid_request"
    assert foreign.status_code == 403


@pytest.mark.django_db
def test_payment_history_is_scoped_to_owned_brands(api_client, basic_plan, brand, user, other_user, super_admin):
    _post_stripe(
        stripe_intent_event("payment_intent.succeeded", "pi_hist", metadata=_checkout_notes(basic_plan, brand, user))
    )

    own = api_client.get("/api/payments/history/")
    foreign = _client_for(other_user).get("/api/payments/history/")
    admin = _client_for(super_admin).get("/api/payments/history/", {"brand_id": str(brand.pk)})

    assert own.status_code == 200
    assert own.json()["count"] == 1
    entry = own.json()["results"][0]
    assert entry["externalPaymentId"] == "pi_hist"
    assert entry["brand"]["name"] == "Acme Foods"
    assert entry["invoice"]["status"] == "PAID"
    assert own.json()["summary"] == {"totalPaid": "999.00", "totalTransactions": 1}

    assert foreign.json()["count"] == 0
    assert admin.json()["count"] == 1


# Infrastructure


def test_health_check_responds_ok(client):
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.content == b"OK"


def test_metrics_endpoint_exposes_billing_counters(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert b"billing_webhook_event_total" in response.content

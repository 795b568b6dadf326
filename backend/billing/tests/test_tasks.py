from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from accounts.models import Notification
from billing.apps import ensure_default_subscription_plans
from billing.models import SubscriptionPlan, WebhookEventLog
from billing.services.notifications import CeleryNotifier
from billing.tasks import cleanup_webhook_event_logs, deliver_billing_notification


@pytest.mark.django_db
def test_deliver_billing_notification_creates_notification(user):
    notification_id = deliver_billing_notification(
        str(user.pk), "SUBSCRIPTION", "Subscription Activated", "Your plan is active.", {"planId": "p1"},
    )

    notification = Notification.objects.get(pk=notification_id)
    assert notification.user == user
    assert notification.metadata == {"planId": "p1"}
    assert notification.is_read is False


@pytest.mark.django_db
def test_deliver_billing_notification_skips_missing_user():
    assert deliver_billing_notification("999999", "PAYMENT", "Payment Refunded", "Refunded.") is None
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_notifier_queues_after_commit(user, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        CeleryNotifier().notify(user.pk, "SYSTEM_ALERT", "Subscription Upgraded", "Upgraded.", {})

    assert len(callbacks) == 1
    assert Notification.objects.filter(user=user, title="Subscription Upgraded").exists()


@pytest.mark.django_db
def test_notifier_waits_for_commit(user, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        CeleryNotifier().notify(user.pk, "PAYMENT", "Payment Refunded", "Refunded.", {})

    assert len(callbacks) == 1
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_cleanup_removes_only_old_handled_events():
    old = timezone.now() - timedelta(days=120)
    WebhookEventLog.objects.create(gateway="STRIPE", event_id="evt_old", handled=True, processed_at=old)
    WebhookEventLog.objects.create(gateway="STRIPE", event_id="evt_failed", handled=False, processed_at=old)
    WebhookEventLog.objects.create(gateway="STRIPE", event_id="evt_new", handled=True, processed_at=timezone.now())

    deleted = cleanup_webhook_event_logs(days=90)

    assert deleted == 1
    assert set(WebhookEventLog.objects.values_list("event_id", flat=True)) == {"evt_failed", "evt_new"}


@pytest.mark.django_db
def test_default_plans_are_seeded_from_settings():
    ensure_default_subscription_plans()

    plans = {plan.code: plan for plan in SubscriptionPlan.objects.all()}
    assert {"basic", "professional", "enterprise"} <= set(plans)
    assert str(plans["basic"].price) == "999.00"
    assert plans["enterprise"].feature_flags["whiteLabel"] is True


@pytest.mark.django_db
def test_seed_command_only_rewrites_plans_with_update():
    ensure_default_subscription_plans()
    SubscriptionPlan.objects.filter(code="basic").update(name="Starter")

    call_command("seed_subscription_plans")
    assert SubscriptionPlan.objects.get(code="basic").name == "Starter"

    call_command("seed_subscription_plans", "--update")
    assert SubscriptionPlan.objects.get(code="basic").name == "Basic"

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from billing.models import PaymentGateway, Subscription, SubscriptionPlan
from billing.services.ledger import BillingLedger
from billing.services.orchestrator import BillingOrchestrator
from billing.tests.helpers import RecordingNotifier
from brands.models import Brand


def _plan(code, name, price):
    plan, _ = SubscriptionPlan.objects.get_or_create(
        code=code,
        defaults={"name": name, "price": Decimal(price), "billing_period": "MONTHLY"},
    )
    return plan


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="alice",
        email="alice@example.com",
        password="pass1234",
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username="bob",
        email="bob@example.com",
        password="pass1234",
    )


@pytest.fixture
def super_admin(db):
    User = get_user_model()
    return User.objects.create_user(
        username="root",
        email="root@example.com",
        password="pass1234",
        role=User.Role.SUPER_ADMIN,
    )


@pytest.fixture
def basic_plan(db):
    return _plan("basic", "Basic", "999.00")


@pytest.fixture
def professional_plan(db):
    return _plan("professional", "Professional", "1999.00")


@pytest.fixture
def enterprise_plan(db):
    return _plan("enterprise", "Enterprise", "4999.00")


@pytest.fixture
def brand(user):
    return Brand.objects.create(name="Acme Foods", slug="acme-foods", owner=user)


@pytest.fixture
def other_brand(other_user):
    return Brand.objects.create(name="Bob's Bakery", slug="bobs-bakery", owner=other_user)


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def active_subscription(brand, basic_plan, now):
    """Basic subscription with ten days of its period left."""
    subscription = Subscription.objects.create(
        plan=basic_plan,
        status=Subscription.Status.ACTIVE,
        start_date=now - timedelta(days=20),
        end_date=now + timedelta(days=10),
        plan_effective_date=now - timedelta(days=20),
        license_key="ABCD-EFGH-IJKL-MNOP",
        payment_gateway=PaymentGateway.STRIPE,
        external_subscription_id="pi_existing",
    )
    brand.subscription = subscription
    brand.save(update_fields=["subscription", "updated_at"])
    return subscription


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ledger():
    return BillingLedger()


@pytest.fixture
def orchestrator(ledger, notifier):
    return BillingOrchestrator(
        ledger,
        notifier,
        merchant_vpa="parichay@okaxis",
        merchant_name="Parichay Digital",
        currency="INR",
        request_id="req-test",
    )


@pytest.fixture
def api_client(user):
    token = Token.objects.create(user=user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
    return client

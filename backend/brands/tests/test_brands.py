from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from billing.models import PaymentGateway, Subscription, SubscriptionPlan
from brands.models import Brand


@pytest.mark.django_db
def test_deleting_subscription_leaves_brand_without_one():
    owner = get_user_model().objects.create_user(username="alice", email="alice@example.com", password="pass1234")
    plan = SubscriptionPlan.objects.create(code="starter-test", name="Starter", price="499.00")
    now = timezone.now()
    subscription = Subscription.objects.create(
        plan=plan,
        start_date=now,
        end_date=now + timedelta(days=30),
        payment_gateway=PaymentGateway.STRIPE,
    )
    brand = Brand.objects.create(name="Acme", slug="acme", owner=owner, subscription=subscription)

    subscription.delete()
    brand.refresh_from_db()

    assert brand.subscription is None
    assert list(owner.owned_brands.all()) == [brand]

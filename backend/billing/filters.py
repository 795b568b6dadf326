"""FilterSet definitions for billing endpoints."""
from __future__ import annotations

import django_filters
from django.db.models import Q

from billing.models import Payment, PaymentGateway


class PaymentHistoryFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    gateway = django_filters.ChoiceFilter(field_name="payment_gateway", choices=PaymentGateway.choices)
    currency = django_filters.CharFilter(field_name="currency", lookup_expr="iexact")
    created_after = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="lte")
    brand_id = django_filters.UUIDFilter(method="filter_brand")

    class Meta:
        model = Payment
        fields = ["status", "gateway", "currency", "brand_id"]

    def filter_brand(self, queryset, name, value):
        return queryset.filter(brand_payments_q([value]))


def brand_payments_q(brand_ids) -> Q:
    """Payments for the brands' current subscriptions or recorded against them at checkout."""
    brand_ids = [str(brand_id) for brand_id in brand_ids]
    return Q(subscription__brand__id__in=brand_ids) | Q(metadata__details__brand_id__in=brand_ids)

"""
Billing permission checks.

Super admins may act on any brand. Everyone else is limited to the brands they
own and to the subscriptions those brands currently hold.
"""
import logging

from rest_framework.permissions import BasePermission

from billing.services.ledger import BillingLedger
from brands.models import Brand

logger = logging.getLogger(__name__)


def owned_brand_ids(user):
    return list(Brand.objects.filter(owner=user).values_list("id", flat=True))


def can_manage_subscription(user, subscription) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_super_admin:
        return True
    allowed = BillingLedger().user_owns_subscription(user, subscription)
    if not allowed:
        logger.debug("User %s denied access to subscription %s", user.pk, subscription.pk)
    return allowed


class CanViewSubscription(BasePermission):
    """Object permission for subscription reads."""

    message = "You do not have permission to view this subscription."

    def has_object_permission(self, request, view, obj):
        return can_manage_subscription(request.user, obj)

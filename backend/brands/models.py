import uuid

from django.conf import settings
from django.db import models


class Brand(models.Model):
    """
    Brand model - the tenant that owns microsites and buys subscriptions

    A brand points at exactly one "current" subscription. Billing replaces the
    reference when a new subscription is activated; previous subscriptions are
    kept for history and remain reachable through their payments.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the brand"
    )
    name = models.CharField(
        max_length=200,
        help_text="Brand display name"
    )
    slug = models.SlugField(
        max_length=200,
        unique=True,
        help_text="URL-safe identifier used in public microsite paths"
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='owned_brands',
        help_text="Brand admin who manages billing for this brand"
    )
    subscription = models.OneToOneField(
        'billing.Subscription',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='brand',
        help_text="Current subscription for this brand"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'brand'
        verbose_name = 'Brand'
        verbose_name_plural = 'Brands'
        ordering = ['name']
        indexes = [
            models.Index(fields=['owner'], name='brand_owner_idx'),
        ]

    def __str__(self):
        return self.name

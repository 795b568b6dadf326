import logging
from decimal import Decimal
from typing import Dict, List
from django.apps import AppConfig
from django.db.models.signals import post_migrate

logger = logging.getLogger(__name__)


def ensure_default_subscription_plans(*, update: bool = False) -> Dict[str, List[str]]:
    """
    Ensure the plans declared in ``settings.PLAN_CONFIG`` exist.

    Plans are matched on ``code``. Existing plans are only rewritten when
    ``update`` is set so that prices edited through the admin survive a migrate.
    """
    from django.conf import settings
    from django.db import OperationalError, ProgrammingError
    from .models import BillingPeriod, SubscriptionPlan

    created, updated = [], []
    plan_config = getattr(settings, "PLAN_CONFIG", {}) or {}

    try:
        for code, config in plan_config.items():
            defaults = {
                "name": config.get("name", code.title()),
                "price": Decimal(str(config["price"])),
                "billing_period": config.get("billing_period", BillingPeriod.MONTHLY),
                "feature_flags": dict(config.get("feature_flags", {})),
                "is_active": bool(config.get("is_active", True)),
            }

            plan, was_created = SubscriptionPlan.objects.get_or_create(code=code, defaults=defaults)
            if was_created:
                created.append(code)
                continue
            if not update:
                continue

            fields_to_update = []
            for field, expected in defaults.items():
                if getattr(plan, field) != expected:
                    setattr(plan, field, expected)
                    fields_to_update.append(field)

            if fields_to_update:
                plan.save(update_fields=fields_to_update + ["updated_at"])
                updated.append(code)

    except (OperationalError, ProgrammingError):
        logger.debug("Database not ready for subscription plan initialisation.")
        return {"created": [], "updated": []}

    if created or updated:
        logger.info("Subscription plan initialisation completed. created=%s updated=%s", created, updated)
    else:
        logger.info("Subscription plan initialisation completed. No changes required.")

    return {"created": created, "updated": updated}


def init_plans_after_migrate(sender, **kwargs):
    """Called automatically after migrations to initialize default plans."""
    logger.info("[Billing] Running ensure_default_subscription_plans() after migrate…")
    ensure_default_subscription_plans()


class BillingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'billing'

    def ready(self):
        # Connect signal so plans are ensured after every migrate run
        post_migrate.connect(init_plans_after_migrate, sender=self)

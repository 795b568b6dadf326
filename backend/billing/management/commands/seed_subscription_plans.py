"""
Create the default subscription plans

This command creates the Basic, Professional and Enterprise plans declared in PLAN_CONFIG
"""

from django.core.management.base import BaseCommand

from billing.apps import ensure_default_subscription_plans
from billing.models import SubscriptionPlan


class Command(BaseCommand):

    help = 'Create default subscription plans'

    def add_arguments(self, parser):
        parser.add_argument(
            '--update',
            action='store_true',
            help='Update existing plans'
        )

    def handle(self, *args, **options):
        update_existing = options['update']

        result = ensure_default_subscription_plans(update=update_existing)

        for code in result['created']:
            self.stdout.write(self.style.SUCCESS(f'✓ Created plan: {code}'))
        for code in result['updated']:
            self.stdout.write(self.style.SUCCESS(f'✓ Updated plan: {code}'))

        # Summary
        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('Plan setup completed:')
        self.stdout.write(f'  • Created: {len(result["created"])} plan(s)')
        if update_existing:
            self.stdout.write(f'  • Updated: {len(result["updated"])} plan(s)')
        self.stdout.write(f'  • Total: {SubscriptionPlan.objects.count()} plan(s)')

        self.stdout.write('\nCurrent plans:')
        for plan in SubscriptionPlan.objects.all().order_by('price'):
            status = '' if plan.is_active else ' [inactive]'
            self.stdout.write(
                f"  • {plan.name} ({plan.code}): {plan.price} {plan.get_billing_period_display().lower()}{status}"
            )

        if not update_existing and not result['created']:
            self.stdout.write(
                self.style.WARNING('\nNote: All plans already exist. Use the --update flag to update existing plans.')
            )

import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import billing.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SubscriptionPlan',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.SlugField(help_text='Stable key used when seeding plans', unique=True)),
                ('name', models.CharField(max_length=100)),
                ('price', models.DecimalField(decimal_places=2, help_text='Price per billing period in the billing currency', max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('billing_period', models.CharField(choices=[('MONTHLY', 'Monthly'), ('YEARLY', 'Yearly')], default='MONTHLY', max_length=10)),
                ('feature_flags', models.JSONField(blank=True, default=dict)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive plans cannot be newly subscribed to')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Subscription plan',
                'verbose_name_plural': 'Subscription plans',
                'db_table': 'billing_subscription_plan',
                'ordering': ['price', 'name'],
                'constraints': [models.CheckConstraint(condition=models.Q(('price__gt', 0)), name='billing_plan_price_positive')],
            },
        ),
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACTIVE', 'Active'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=16)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('plan_effective_date', models.DateTimeField(blank=True, help_text='When the current plan takes effect; later than now for scheduled downgrades.', null=True)),
                ('auto_renew', models.BooleanField(default=True)),
                ('license_key', models.CharField(blank=True, max_length=19, null=True, unique=True)),
                ('payment_gateway', models.CharField(choices=[('STRIPE', 'Stripe'), ('RAZORPAY', 'Razorpay'), ('UPI', 'UPI')], max_length=16)),
                ('external_subscription_id', models.CharField(blank=True, db_index=True, help_text='Gateway order / intent / transaction reference', max_length=255)),
                ('version', models.PositiveIntegerField(default=1)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='subscriptions', to='billing.subscriptionplan')),
            ],
            options={
                'verbose_name': 'Subscription',
                'verbose_name_plural': 'Subscriptions',
                'db_table': 'billing_subscription',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'end_date'], name='billing_sub_status_end_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('end_date__gt', models.F('start_date'))), name='billing_subscription_end_after_start')],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default=billing.models._default_currency, max_length=3)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed'), ('REFUNDED', 'Refunded')], default='PENDING', max_length=16)),
                ('payment_gateway', models.CharField(choices=[('STRIPE', 'Stripe'), ('RAZORPAY', 'Razorpay'), ('UPI', 'UPI')], max_length=16)),
                ('external_payment_id', models.CharField(max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'db_table': 'billing_payment',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['subscription', 'status'], name='billing_payment_sub_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('payment_gateway', 'external_payment_id'), name='billing_payment_gateway_external_uniq')],
            },
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('invoice_number', models.CharField(max_length=32, unique=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default=billing.models._default_currency, max_length=3)),
                ('status', models.CharField(choices=[('PAID', 'Paid'), ('CANCELLED', 'Cancelled')], default='PAID', max_length=16)),
                ('due_date', models.DateTimeField()),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('payment', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='invoice', to='billing.payment')),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Invoice',
                'verbose_name_plural': 'Invoices',
                'db_table': 'billing_invoice',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PlanChange',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('change_type', models.CharField(choices=[('UPGRADE', 'Upgrade'), ('DOWNGRADE', 'Downgrade')], max_length=16)),
                ('effective_date', models.DateTimeField()),
                ('previous_end_date', models.DateTimeField()),
                ('new_end_date', models.DateTimeField()),
                ('credit_days', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('from_plan', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='billing.subscriptionplan')),
                ('to_plan', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='billing.subscriptionplan')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='plan_changes', to=settings.AUTH_USER_MODEL)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='plan_changes', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Plan change',
                'verbose_name_plural': 'Plan changes',
                'db_table': 'billing_plan_change',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='WebhookEventLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('gateway', models.CharField(choices=[('STRIPE', 'Stripe'), ('RAZORPAY', 'Razorpay'), ('UPI', 'UPI')], max_length=16)),
                ('event_id', models.CharField(max_length=255)),
                ('payload_hash', models.CharField(blank=True, help_text='SHA256 of the raw payload for drift detection.', max_length=64)),
                ('event_type', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(choices=[('received', 'Received'), ('processed', 'Processed'), ('ignored', 'Ignored'), ('failed', 'Failed')], default='received', max_length=20)),
                ('last_error', models.TextField(blank=True)),
                ('handled', models.BooleanField(default=False, help_text='True once the event has been fully processed.')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Webhook event log',
                'verbose_name_plural': 'Webhook event logs',
                'db_table': 'billing_webhook_event_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='webhook_event_status_idx'),
                    models.Index(fields=['event_type'], name='webhook_event_type_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('gateway', 'event_id'), name='webhook_event_gateway_uniq')],
            },
        ),
        migrations.CreateModel(
            name='BillingAuditLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('event_type', models.CharField(help_text='Classification of the billing event.', max_length=100)),
                ('gateway_reference', models.CharField(blank=True, help_text='Gateway object identifier tied to the event.', max_length=255)),
                ('actor', models.CharField(blank=True, help_text='Auth user or system actor responsible.', max_length=255)),
                ('request_id', models.CharField(blank=True, help_text='Correlation or request identifier for tracing.', max_length=255)),
                ('details', models.JSONField(blank=True, help_text='Structured data describing the event.', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subscription', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Billing audit log',
                'verbose_name_plural': 'Billing audit logs',
                'db_table': 'billing_audit_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['event_type'], name='billing_audit_event_idx'),
                    models.Index(fields=['gateway_reference'], name='billing_audit_gateway_ref_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BillingIdempotencyKey',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('key', models.CharField(max_length=255, unique=True)),
                ('request_hash', models.CharField(help_text='Hash of method, path, and payload.', max_length=64)),
                ('last_result', models.CharField(choices=[('success', 'Success'), ('failure', 'Failure'), ('pending', 'Pending')], default='pending', max_length=20)),
                ('response_code', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('last_seen_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Billing idempotency key',
                'verbose_name_plural': 'Billing idempotency keys',
                'db_table': 'billing_idempotency_key',
                'ordering': ['-last_seen_at'],
            },
        ),
    ]

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('billing', '0001_initial'),
        ('brands', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='billingauditlog',
            name='brand',
            field=models.ForeignKey(blank=True, help_text='Brand associated with the event, when known.', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='billing_audit_logs', to='brands.brand'),
        ),
    ]

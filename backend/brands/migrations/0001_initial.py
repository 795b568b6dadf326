import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('billing', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Brand',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the brand', primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Brand display name', max_length=200)),
                ('slug', models.SlugField(help_text='URL-safe identifier used in public microsite paths', max_length=200, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(help_text='Brand admin who manages billing for this brand', on_delete=django.db.models.deletion.CASCADE, related_name='owned_brands', to=settings.AUTH_USER_MODEL)),
                ('subscription', models.OneToOneField(blank=True, help_text='Current subscription for this brand', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='brand', to='billing.subscription')),
            ],
            options={
                'verbose_name': 'Brand',
                'verbose_name_plural': 'Brands',
                'db_table': 'brand',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['owner'], name='brand_owner_idx')],
            },
        ),
    ]

from decimal import Decimal

import phonenumber_field.modelfields
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Vendor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(db_index=True, max_length=255, verbose_name='Vendor Name')),
                ('contact_number', phonenumber_field.modelfields.PhoneNumberField(max_length=128, region=None, verbose_name='Contact Number')),
                ('address', models.TextField(blank=True, default='')),
                ('bill_url', models.CharField(blank=True, max_length=500, null=True, verbose_name='Bill Document')),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('pending_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
            ],
            options={
                'verbose_name': 'Vendor',
                'verbose_name_plural': 'Vendors',
                'ordering': ['id'],
                'indexes': [models.Index(fields=['created_at'], name='vendor_created_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('total_amount__gte', 0)), name='vendor_total_non_negative'),
                    models.CheckConstraint(condition=models.Q(('pending_amount__gte', 0)), name='vendor_pending_non_negative'),
                    models.CheckConstraint(condition=models.Q(('pending_amount__lte', models.F('total_amount'))), name='vendor_pending_within_total'),
                ],
            },
        ),
    ]

from django.db import models
from django.db.models import Q, F, CheckConstraint
from decimal import Decimal
from phonenumber_field.modelfields import PhoneNumberField
from utils.base_models import TimeStampedModel
from utils.balance import derive_status
import logging
from django.core.exceptions import ValidationError


logger = logging.getLogger(__name__)


class VendorManager(models.Manager):
    """Manager for Vendor with balance-safe lookups"""

    def get_with_lock(self, vendor_id):
        """Get vendor with SELECT FOR UPDATE to serialize balance mutations"""
        return self.select_for_update().get(id=vendor_id)


class Vendor(TimeStampedModel):
    name = models.CharField(max_length=255, verbose_name="Vendor Name", db_index=True)
    contact_number = PhoneNumberField(verbose_name="Contact Number")
    address = models.TextField(blank=True, default='')
    bill_url = models.CharField(max_length=500, null=True, blank=True, verbose_name="Bill Document")
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pending_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    objects = VendorManager()

    class Meta:
        verbose_name = "Vendor"
        verbose_name_plural = "Vendors"
        ordering = ['id']
        constraints = [
            CheckConstraint(condition=Q(total_amount__gte=0), name="vendor_total_non_negative"),
            CheckConstraint(condition=Q(pending_amount__gte=0), name="vendor_pending_non_negative"),
            CheckConstraint(condition=Q(pending_amount__lte=F('total_amount')), name="vendor_pending_within_total"),
        ]
        indexes = [
            models.Index(fields=['created_at'], name='vendor_created_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def outstanding_amount(self) -> Decimal:
        """Pending balance, reading an unset balance as the full bill"""
        if self.pending_amount is None:
            return self.total_amount
        return self.pending_amount

    @property
    def paid_amount(self) -> Decimal:
        return self.total_amount - self.outstanding_amount

    @property
    def status(self) -> str:
        return derive_status(self.outstanding_amount, self.total_amount)

    def save(self, *args, **kwargs):
        if self.pending_amount is None:
            self.pending_amount = self.total_amount
        super().save(*args, **kwargs)

    def clean(self):
        """Additional validation"""
        if self.total_amount < Decimal('0'):
            raise ValidationError("Total amount cannot be negative")
        if self.pending_amount is not None:
            if self.pending_amount < Decimal('0'):
                raise ValidationError("Pending amount cannot be negative")
            if self.pending_amount > self.total_amount:
                raise ValidationError("Pending amount cannot exceed total amount")

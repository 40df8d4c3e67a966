from django.db import models
from django.db.models import CheckConstraint, Q
from django.utils import timezone
from utils.base_models import TimeStampedModel
from utils.enums import PaymentStatus
from vendors.models import Vendor


class TransactionManager(models.Manager):
    """Manager for vendor payment transactions"""

    def get_with_lock(self, transaction_id, vendor_id=None):
        """Get transaction with SELECT FOR UPDATE, optionally scoped to its vendor"""
        query = self.select_for_update()
        if vendor_id is not None:
            query = query.filter(vendor_id=vendor_id)
        return query.get(id=transaction_id)


class Transaction(TimeStampedModel):
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='transactions')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    transaction_date = models.DateTimeField(default=timezone.now)
    note = models.CharField(max_length=255, blank=True, default='')
    # Vendor status at the moment this payment was recorded, not the current one
    status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )

    objects = TransactionManager()

    class Meta:
        indexes = [
            models.Index(fields=['vendor', 'transaction_date'], name='txn_vendor_date_idx'),
            models.Index(fields=['created_at'], name='txn_created_idx'),
        ]
        constraints = [
            CheckConstraint(condition=Q(amount__gt=0), name="transaction_amount_positive"),
        ]
        ordering = ['-transaction_date', '-id']

    def __str__(self):
        return f"Payment: {self.amount} to {self.vendor.name}"

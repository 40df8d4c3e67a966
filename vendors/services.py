from django.db import transaction
from decimal import Decimal
from typing import Dict
import logging

from .models import Vendor
from .storage import BillStorageService
from utils.audit import LedgerAuditLogger
from utils.balance import ZERO, derive_status

logger = logging.getLogger(__name__)
audit_logger = LedgerAuditLogger()


class VendorService:
    """
    Vendor ledger operations: create, update (with optional payment) and delete.
    Reads go straight through the Vendor manager.
    """

    @staticmethod
    def create_vendor(name: str, contact_number, total_amount: Decimal,
                      address: str = '', bill_file=None) -> Vendor:
        """
        Create a vendor with its whole bill outstanding.
        The bill is uploaded first; a failed upload means no vendor row.
        """
        bill_storage = BillStorageService()
        bill = bill_storage.upload(bill_file) if bill_file is not None else None

        try:
            vendor = Vendor.objects.create(
                name=name,
                contact_number=contact_number,
                address=address or '',
                bill_url=bill.url if bill else None,
                total_amount=total_amount,
                pending_amount=total_amount,
            )
        except Exception:
            if bill:
                bill_storage.discard(bill.name)
            raise

        audit_logger.log_event(
            'VENDOR_CREATED',
            vendor.id,
            {'total_amount': str(total_amount), 'has_bill': bill is not None},
            'INFO'
        )
        logger.info(f"Vendor created: {vendor.id} with total {total_amount}")
        return vendor

    @staticmethod
    def update_vendor(vendor_id, changes: Dict, new_paid_amount: Decimal = ZERO,
                      bill_file=None) -> Dict:
        """
        Merge changes over the stored vendor and optionally record a new payment.

        The amount already paid is taken against the stored (pre-update) total,
        the new pending balance against the resulting total:
            already_paid = old_total - old_pending
            total_paid   = already_paid + new_paid_amount
            pending      = max(new_total - total_paid, 0)

        A synthetic "Payment update" transaction is recorded only when
        new_paid_amount > 0.

        Returns {'vendor', 'paid_amount', 'status', 'transaction'}
        Raises Vendor.DoesNotExist
        """
        new_paid_amount = new_paid_amount or ZERO

        # The lookup happens before the upload so unknown vendors never store files
        Vendor.objects.only('id').get(id=vendor_id)
        bill_storage = BillStorageService()
        bill = bill_storage.upload(bill_file) if bill_file is not None else None

        try:
            result = VendorService._apply_update(vendor_id, changes, new_paid_amount, bill)
        except Exception:
            if bill:
                bill_storage.discard(bill.name)
            raise

        vendor = result['vendor']
        audit_logger.log_event(
            'VENDOR_UPDATED',
            vendor.id,
            {
                'old_total': str(result['old_total']),
                'new_total': str(vendor.total_amount),
                'new_paid_amount': str(new_paid_amount),
                'pending_amount': str(vendor.pending_amount),
                'status': result['status']
            },
            'INFO'
        )
        logger.info(f"Vendor {vendor.id} updated: pending={vendor.pending_amount}, status={result['status']}")

        return {
            'vendor': vendor,
            'paid_amount': result['paid_amount'],
            'status': result['status'],
            'transaction': result['transaction']
        }

    @staticmethod
    def _apply_update(vendor_id, changes: Dict, new_paid_amount: Decimal, bill) -> Dict:
        """Locked part of update_vendor; must not touch storage"""
        from transactions.services import TransactionService

        with transaction.atomic():
            vendor = Vendor.objects.get_with_lock(vendor_id)

            old_total = vendor.total_amount
            already_paid = old_total - vendor.outstanding_amount
            total_paid = already_paid + new_paid_amount

            for field in ('name', 'contact_number', 'address'):
                value = changes.get(field)
                if value is None or (isinstance(value, str) and not value.strip()):
                    continue
                setattr(vendor, field, value)
            if bill:
                vendor.bill_url = bill.url

            total = changes.get('total_amount')
            if total is None:
                total = old_total

            pending = max(total - total_paid, ZERO)
            status = derive_status(pending, total)

            vendor.total_amount = total
            vendor.pending_amount = pending
            vendor.save()

            payment = None
            if new_paid_amount > ZERO:
                payment = TransactionService.create_transaction_record(
                    vendor=vendor,
                    amount=new_paid_amount,
                    status=status,
                    note="Payment update"
                )

        return {
            'vendor': vendor,
            'old_total': old_total,
            'paid_amount': total_paid,
            'status': status,
            'transaction': payment
        }

    @staticmethod
    def delete_vendor(vendor_id) -> Vendor:
        """
        Hard delete a vendor. Its transactions are removed with it (cascade).
        Returns the deleted vendor instance with its former id restored.

        Raises Vendor.DoesNotExist
        """
        with transaction.atomic():
            vendor = Vendor.objects.get_with_lock(vendor_id)
            transaction_count = vendor.transactions.count()
            deleted_id = vendor.id
            vendor.delete()
            vendor.id = deleted_id

        audit_logger.log_event(
            'VENDOR_DELETED',
            deleted_id,
            {'transactions_removed': transaction_count},
            'WARNING' if transaction_count else 'INFO'
        )
        logger.info(f"Vendor {deleted_id} deleted with {transaction_count} transactions")
        return vendor

    @staticmethod
    def get_vendor(vendor_id) -> Vendor:
        """Vendor with its transaction history prefetched"""
        return Vendor.objects.prefetch_related('transactions').get(id=vendor_id)

    @staticmethod
    def list_vendors():
        return Vendor.objects.all()

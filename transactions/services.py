from django.db import transaction
from django.db.models import Sum, Count
from rest_framework.exceptions import ValidationError
from typing import Dict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
import time
from datetime import datetime

from .models import Transaction
from vendors.models import Vendor
from utils.audit import LedgerAuditLogger
from utils.balance import ZERO, apply_payment, derive_status, ledger_pending, revise_payment

logger = logging.getLogger(__name__)
audit_logger = LedgerAuditLogger()

CENT = Decimal('0.01')
# Transaction.amount is DecimalField(max_digits=12, decimal_places=2)
MAX_AMOUNT = Decimal('10000000000')


class TransactionService:
    """
    Core transaction service - responsible only for transaction records and queries
    Balance changes belong to PaymentLedgerService
    """

    @staticmethod
    def create_transaction_record(
        vendor,
        amount: Decimal,
        status: str,
        transaction_date=None,
        note: str = None
    ) -> Transaction:
        """
        Create a transaction record with all required fields
        This is the single source of truth for transaction creation
        """
        fields = {
            'vendor': vendor,
            'amount': amount,
            'status': status,
            'note': note or '',
        }
        if transaction_date is not None:
            fields['transaction_date'] = transaction_date
        return Transaction.objects.create(**fields)

    @staticmethod
    def get_transaction_summary(vendor_id) -> Dict:
        """Sum and count of every payment recorded for a vendor"""
        summary = Transaction.objects.filter(vendor_id=vendor_id).aggregate(
            total_paid=Sum('amount'),
            payment_count=Count('id')
        )

        return {
            'total_paid': summary['total_paid'] or ZERO,
            'payment_count': summary['payment_count'] or 0
        }


class PaymentLedgerService:
    """
    Balance-mutating payment operations.

    Every operation follows the same pattern inside one database transaction:
    lock the vendor row, read the balance, compute, write, commit. Concurrent
    requests for the same vendor queue on the row lock.
    Vendor rows are always locked before transaction rows.
    """

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        message = "amount is required and must be a positive number"
        if amount is None:
            raise ValidationError({'amount': message})
        try:
            value = Decimal(str(amount))
            if not value.is_finite():
                raise ValidationError({'amount': message})
            # Stored with two places; anything that rounds to zero is not a payment
            value = value.quantize(CENT, rounding=ROUND_HALF_UP)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError({'amount': message})
        if value <= ZERO:
            raise ValidationError({'amount': message})
        if value >= MAX_AMOUNT:
            raise ValidationError({'amount': f"amount must be less than {MAX_AMOUNT}"})
        return value

    @staticmethod
    def _lock_vendor_and_transaction(transaction_id, vendor_id=None):
        """
        Lock the owning vendor, then the transaction.
        Must be called inside transaction.atomic().
        Raises Transaction.DoesNotExist / Vendor.DoesNotExist
        """
        lookup = Transaction.objects.filter(id=transaction_id)
        if vendor_id is not None:
            lookup = lookup.filter(vendor_id=vendor_id)
        owner_id = lookup.values_list('vendor_id', flat=True).get()

        vendor = Vendor.objects.get_with_lock(owner_id)
        payment = Transaction.objects.get_with_lock(transaction_id, vendor_id=vendor.id)
        return vendor, payment

    @staticmethod
    def add_payment(vendor_id, amount, note: str = None, transaction_date=None) -> Dict:
        """
        Record a payment against the vendor's outstanding balance.

        Returns {'transaction', 'vendor', 'status', 'overpayment'}
        Raises ValidationError, Vendor.DoesNotExist
        """
        amount = PaymentLedgerService._validate_amount(amount)

        try:
            with transaction.atomic():
                vendor = Vendor.objects.get_with_lock(vendor_id)

                total = vendor.total_amount
                current_pending = vendor.outstanding_amount
                new_pending, status, overpayment = apply_payment(current_pending, total, amount)

                payment = TransactionService.create_transaction_record(
                    vendor=vendor,
                    amount=amount,
                    status=status,
                    transaction_date=transaction_date,
                    note=note
                )

                vendor.pending_amount = new_pending
                vendor.save(update_fields=['pending_amount', 'updated_at'])

        except Exception as e:
            audit_logger.log_payment_attempt(vendor_id, 'add_payment', amount, False, str(e))
            raise

        audit_logger.log_payment_attempt(vendor.id, 'add_payment', amount, True)
        if overpayment > ZERO:
            audit_logger.log_event(
                'OVERPAYMENT_ABSORBED',
                vendor.id,
                {'amount': str(amount), 'pending_before': str(current_pending), 'overpayment': str(overpayment)},
                'WARNING'
            )

        logger.info(f"Payment added - Vendor: {vendor.id}, Amount: {amount}, "
                    f"Pending: {current_pending} -> {new_pending}, Status: {status}")
        return {
            'transaction': payment,
            'vendor': vendor,
            'status': status,
            'overpayment': overpayment
        }

    @staticmethod
    def update_payment(transaction_id, amount, note: str = None, transaction_date=None) -> Dict:
        """
        Change a recorded payment's amount: the old amount is reversed and the
        new one applied in one step, clamped to [0, total].

        The transaction keeps its original status snapshot; the returned
        'status' is the vendor's current derived status.

        Returns {'transaction', 'vendor', 'status'}
        Raises ValidationError, Transaction.DoesNotExist, Vendor.DoesNotExist
        """
        amount = PaymentLedgerService._validate_amount(amount)
        vendor_id = None

        try:
            with transaction.atomic():
                vendor, payment = PaymentLedgerService._lock_vendor_and_transaction(transaction_id)
                vendor_id = vendor.id

                old_amount = payment.amount
                current_pending = vendor.outstanding_amount
                new_pending = revise_payment(current_pending, vendor.total_amount, old_amount, amount)

                payment.amount = amount
                payment.note = note or ''
                update_fields = ['amount', 'note', 'updated_at']
                if transaction_date is not None:
                    payment.transaction_date = transaction_date
                    update_fields.append('transaction_date')
                payment.save(update_fields=update_fields)

                vendor.pending_amount = new_pending
                vendor.save(update_fields=['pending_amount', 'updated_at'])

        except Exception as e:
            audit_logger.log_payment_attempt(vendor_id, 'update_payment', amount, False, str(e))
            raise

        audit_logger.log_payment_attempt(vendor.id, 'update_payment', amount, True)
        logger.info(f"Payment {payment.id} updated - Vendor: {vendor.id}, Amount: {old_amount} -> {amount}, "
                    f"Pending: {current_pending} -> {new_pending}")
        return {
            'transaction': payment,
            'vendor': vendor,
            'status': derive_status(new_pending, vendor.total_amount)
        }

    @staticmethod
    def delete_payment(vendor_id, transaction_id) -> Dict:
        """
        Remove a payment and rebuild the vendor's balance from the payments
        that remain: clamp(total - SUM(remaining), 0, total). Without earlier
        clamping this equals clamp(pending + amount, 0, total); after an
        absorbed overpayment it keeps the remaining payments applied.

        Returns {'vendor', 'status', 'amount'}
        Raises Transaction.DoesNotExist (unknown id or owned by another vendor),
        Vendor.DoesNotExist
        """
        try:
            with transaction.atomic():
                vendor, payment = PaymentLedgerService._lock_vendor_and_transaction(
                    transaction_id, vendor_id=vendor_id
                )

                amount = payment.amount
                current_pending = vendor.outstanding_amount

                payment.delete()
                remaining = TransactionService.get_transaction_summary(vendor.id)
                new_pending = ledger_pending(vendor.total_amount, remaining['total_paid'])

                vendor.pending_amount = new_pending
                vendor.save(update_fields=['pending_amount', 'updated_at'])

        except Exception as e:
            audit_logger.log_payment_attempt(vendor_id, 'delete_payment', ZERO, False, str(e))
            raise

        audit_logger.log_payment_attempt(vendor.id, 'delete_payment', amount, True)
        logger.info(f"Payment {transaction_id} deleted - Vendor: {vendor.id}, Amount: {amount}, "
                    f"Pending: {current_pending} -> {new_pending}")
        return {
            'vendor': vendor,
            'status': derive_status(new_pending, vendor.total_amount),
            'amount': amount
        }


class BalanceReconciliationService:
    """Checks each vendor's cached pending balance against its payment ledger"""

    @staticmethod
    def balance_reconciliation(vendor) -> Dict:
        """
        Compare the stored pending balance with the one calculated from the ledger
        """
        transaction_summary = TransactionService.get_transaction_summary(vendor.id)
        calculated = ledger_pending(vendor.total_amount, transaction_summary['total_paid'])
        stored = vendor.outstanding_amount
        difference = stored - calculated
        is_consistent = abs(difference) < Decimal('0.01')

        reconciliation = {
            'vendor_id': vendor.id,
            'vendor_name': vendor.name,
            'total_amount': vendor.total_amount,
            'stored_pending': stored,
            'calculated_pending': calculated,
            'difference': difference,
            'is_consistent': is_consistent,
            'transaction_summary': transaction_summary,
            'checked_at': time.time()
        }

        if not is_consistent:
            audit_logger.log_event(
                'BALANCE_INCONSISTENCY_DETECTED',
                vendor.id,
                {
                    'stored_pending': str(stored),
                    'calculated_pending': str(calculated),
                    'difference': str(difference),
                    'vendor_name': vendor.name
                },
                'ERROR'
            )
            logger.error(f"Balance inconsistency for vendor {vendor.id}: "
                         f"stored={stored}, calculated={calculated}, diff={difference}")
        else:
            logger.info(f"Balance verified for vendor {vendor.id}: {stored}")

        return reconciliation

    @staticmethod
    def reconcile_all_balances() -> Dict:
        """
        Reconcile every vendor
        """
        start_time = time.time()
        results = []
        vendors = Vendor.objects.all()

        for vendor in vendors:
            reconciliation = BalanceReconciliationService.balance_reconciliation(vendor)
            results.append(reconciliation)

        total_vendors = len(results)
        consistent_vendors = sum(1 for r in results if r['is_consistent'])
        inconsistent_vendors = total_vendors - consistent_vendors
        total_difference = sum((abs(r['difference']) for r in results if not r['is_consistent']), Decimal('0'))

        ledger = Transaction.objects.aggregate(count=Count('id'), paid=Sum('amount'))
        stored_pending = sum((r['stored_pending'] for r in results), Decimal('0'))
        system_stats = {
            'total_transactions': ledger['count'] or 0,
            'total_paid': ledger['paid'] or Decimal('0'),
            'total_billed': sum((r['total_amount'] for r in results), Decimal('0')),
            'total_pending': stored_pending
        }

        end_time = time.time()

        summary = {
            'execution_time': end_time - start_time,
            'total_vendors': total_vendors,
            'consistent_vendors': consistent_vendors,
            'inconsistent_vendors': inconsistent_vendors,
            'consistency_percentage': (consistent_vendors / total_vendors * 100) if total_vendors > 0 else 0,
            'total_difference': total_difference,
            'system_stats': system_stats,
            'checked_at': datetime.now().isoformat()
        }

        audit_logger.log_event(
            'SYSTEM_BALANCE_RECONCILIATION_COMPLETED',
            None,
            {
                'total_vendors': total_vendors,
                'consistent_vendors': consistent_vendors,
                'inconsistent_vendors': inconsistent_vendors,
                'execution_time': end_time - start_time
            },
            'INFO' if inconsistent_vendors == 0 else 'WARNING'
        )

        return {
            'summary': summary,
            'vendor_results': results
        }

    @staticmethod
    def generate_reconciliation_report(vendor_id: int = None) -> str:
        """
        Build a plain-text reconciliation report
        """
        if vendor_id:
            try:
                vendor = Vendor.objects.get(id=vendor_id)
                result = BalanceReconciliationService.balance_reconciliation(vendor)
                results = {'vendor_results': [result]}
            except Vendor.DoesNotExist:
                return f"Error: vendor {vendor_id} not found"
        else:
            results = BalanceReconciliationService.reconcile_all_balances()

        report = "=" * 80 + "\n"
        report += "           Vendor Ledger Reconciliation Report\n"
        report += "=" * 80 + "\n\n"

        if 'summary' in results:
            summary = results['summary']
            report += "Summary:\n"
            report += f"  - Total vendors: {summary['total_vendors']}\n"
            report += f"  - Consistent: {summary['consistent_vendors']} ({summary['consistency_percentage']:.1f}%)\n"
            report += f"  - Inconsistent: {summary['inconsistent_vendors']}\n"
            report += f"  - Total difference: {summary['total_difference']:,}\n"
            report += f"  - Execution time: {summary['execution_time']:.2f}s\n"
            report += f"  - Checked at: {summary['checked_at']}\n\n"

            stats = summary['system_stats']
            report += "System statistics:\n"
            report += f"  - Transactions: {stats['total_transactions']:,}\n"
            report += f"  - Total billed: {stats['total_billed']:,}\n"
            report += f"  - Total paid: {stats['total_paid']:,}\n"
            report += f"  - Total pending: {stats['total_pending']:,}\n\n"

        report += "Vendors:\n"
        report += "-" * 80 + "\n"

        for vendor_result in results['vendor_results']:
            status_text = "CONSISTENT" if vendor_result['is_consistent'] else "INCONSISTENT"
            tx_summary = vendor_result['transaction_summary']

            report += f"[{status_text}] Vendor {vendor_result['vendor_id']} ({vendor_result['vendor_name']})\n"
            report += f"     Total: {vendor_result['total_amount']:,}\n"
            report += f"     Stored pending: {vendor_result['stored_pending']:,}\n"
            report += f"     Calculated pending: {vendor_result['calculated_pending']:,}\n"

            if not vendor_result['is_consistent']:
                report += f"     Difference: {vendor_result['difference']:,}\n"

            report += f"     Payments: {tx_summary['total_paid']:,} ({tx_summary['payment_count']} transactions)\n"
            report += "-" * 40 + "\n"

        report += "\n" + "=" * 80 + "\n"
        report += "End of report\n"

        return report

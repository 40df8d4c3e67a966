"""
Concurrent payments against a single vendor

The threaded cases need a backend with row locking and are skipped on
SQLite. Run them against PostgreSQL by exporting the POSTGRES_* settings:

    POSTGRES_DB=ledger POSTGRES_USER=ledger POSTGRES_PASSWORD=secret \\
        POSTGRES_HOST=localhost python manage.py test tests

The lock-order cases run on every backend.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal
from unittest import skipUnless
from unittest.mock import patch
from django.db import connection, connections
from django.test import TestCase, TransactionTestCase

from vendors.models import Vendor, VendorManager
from transactions.models import Transaction, TransactionManager
from transactions.services import PaymentLedgerService, BalanceReconciliationService
from utils.enums import PaymentStatus


def run_in_thread(func, *args):
    try:
        return func(*args)
    finally:
        connections.close_all()


@skipUnless(connection.features.has_select_for_update, "requires SELECT ... FOR UPDATE")
class ConcurrentPaymentTestCase(TransactionTestCase):

    def setUp(self):
        self.vendor = Vendor.objects.create(
            name='Busy Vendor',
            contact_number='+16502530000',
            total_amount=Decimal('1000.00'),
        )

    def test_two_simultaneous_payments(self):
        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [
                executor.submit(run_in_thread, PaymentLedgerService.add_payment, self.vendor.id, amount)
                for amount in (Decimal('300'), Decimal('400'))
            ]
            for future in as_completed(futures):
                future.result()

        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal('300.00'))
        self.assertEqual(Transaction.objects.filter(vendor=self.vendor).count(), 2)

    def test_many_payments_keep_ledger_consistent(self):
        amounts = [Decimal('25.50')] * 20

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [
                executor.submit(run_in_thread, PaymentLedgerService.add_payment, self.vendor.id, amount)
                for amount in amounts
            ]
            for future in as_completed(futures):
                future.result()

        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal('490.00'))
        self.assertEqual(self.vendor.status, PaymentStatus.PARTIAL)

        result = BalanceReconciliationService.balance_reconciliation(self.vendor)
        self.assertTrue(result['is_consistent'])

    def test_concurrent_add_and_delete(self):
        existing = PaymentLedgerService.add_payment(self.vendor.id, Decimal('200'))['transaction']

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [
                executor.submit(run_in_thread, PaymentLedgerService.add_payment, self.vendor.id, Decimal('100')),
                executor.submit(run_in_thread, PaymentLedgerService.delete_payment, self.vendor.id, existing.id),
            ]
            for future in as_completed(futures):
                future.result()

        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal('900.00'))
        self.assertEqual(Transaction.objects.filter(vendor=self.vendor).count(), 1)


class PaymentLockOrderTestCase(TestCase):
    """Every balance change goes through the vendor row lock, vendor before transaction"""

    def setUp(self):
        self.vendor = Vendor.objects.create(
            name='Locked Vendor',
            contact_number='+16502530000',
            total_amount=Decimal('1000.00'),
        )
        self.locks = []

    def record_locks(self):
        lock_vendor = VendorManager.get_with_lock
        lock_transaction = TransactionManager.get_with_lock

        def vendor_lock(manager, vendor_id):
            self.locks.append(('vendor', vendor_id))
            return lock_vendor(manager, vendor_id)

        def transaction_lock(manager, transaction_id, vendor_id=None):
            self.locks.append(('transaction', transaction_id))
            return lock_transaction(manager, transaction_id, vendor_id=vendor_id)

        vendor_patch = patch.object(VendorManager, 'get_with_lock', autospec=True, side_effect=vendor_lock)
        transaction_patch = patch.object(TransactionManager, 'get_with_lock', autospec=True,
                                         side_effect=transaction_lock)
        vendor_patch.start()
        transaction_patch.start()
        self.addCleanup(vendor_patch.stop)
        self.addCleanup(transaction_patch.stop)

    def test_add_locks_vendor(self):
        self.record_locks()

        PaymentLedgerService.add_payment(self.vendor.id, Decimal('300'))

        self.assertEqual(self.locks, [('vendor', self.vendor.id)])

    def test_update_locks_vendor_then_transaction(self):
        payment = PaymentLedgerService.add_payment(self.vendor.id, Decimal('300'))['transaction']
        self.record_locks()

        PaymentLedgerService.update_payment(payment.id, Decimal('400'))

        self.assertEqual(self.locks, [('vendor', self.vendor.id), ('transaction', payment.id)])

    def test_delete_locks_vendor_then_transaction(self):
        payment = PaymentLedgerService.add_payment(self.vendor.id, Decimal('300'))['transaction']
        self.record_locks()

        PaymentLedgerService.delete_payment(self.vendor.id, payment.id)

        self.assertEqual(self.locks, [('vendor', self.vendor.id), ('transaction', payment.id)])

"""
Test cases for the payment ledger and balance reconciliation
"""

from decimal import Decimal
from io import StringIO
from django.contrib.auth.models import User
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from vendors.models import Vendor
from transactions.models import Transaction
from transactions.services import PaymentLedgerService, BalanceReconciliationService, TransactionService
from utils.enums import PaymentStatus


def make_vendor(total='1000.00', name='Acme Supplies', pending=None):
    return Vendor.objects.create(
        name=name,
        contact_number='+16502530000',
        address='1600 Amphitheatre Pkwy',
        total_amount=Decimal(total),
        pending_amount=Decimal(pending) if pending is not None else None,
    )


class PaymentLedgerServiceTestCase(TestCase):

    def setUp(self):
        self.vendor = make_vendor()

    def assertPending(self, expected):
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal(expected))
        self.assertGreaterEqual(self.vendor.pending_amount, Decimal('0'))
        self.assertLessEqual(self.vendor.pending_amount, self.vendor.total_amount)

    def test_new_vendor_starts_pending(self):
        self.assertEqual(self.vendor.pending_amount, Decimal('1000.00'))
        self.assertEqual(self.vendor.status, PaymentStatus.PENDING)

    def test_payment_lifecycle_example(self):
        first = PaymentLedgerService.add_payment(self.vendor.id, Decimal('400'))
        self.assertEqual(first['status'], PaymentStatus.PARTIAL)
        self.assertEqual(first['overpayment'], Decimal('0'))
        self.assertPending('600.00')

        second = PaymentLedgerService.add_payment(self.vendor.id, Decimal('700'))
        self.assertEqual(second['status'], PaymentStatus.PAID)
        self.assertEqual(second['overpayment'], Decimal('100'))
        self.assertPending('0.00')

        PaymentLedgerService.delete_payment(self.vendor.id, second['transaction'].id)
        self.assertPending('600.00')
        self.assertEqual(self.vendor.status, PaymentStatus.PARTIAL)

    def test_transaction_stores_status_at_time_of_payment(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('250'), note='First instalment')
        payment = Transaction.objects.get(id=result['transaction'].id)
        self.assertEqual(payment.status, PaymentStatus.PARTIAL)
        self.assertEqual(payment.note, 'First instalment')
        self.assertEqual(payment.amount, Decimal('250.00'))

    def test_null_pending_reads_as_full_bill(self):
        Vendor.objects.filter(id=self.vendor.id).update(pending_amount=None)
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('100'))
        self.assertEqual(result['overpayment'], Decimal('0'))
        self.assertPending('900.00')

    def test_add_rejects_non_positive_amount(self):
        for amount in (Decimal('0'), Decimal('-10'), None, 'abc'):
            with self.assertRaises(ValidationError):
                PaymentLedgerService.add_payment(self.vendor.id, amount)
        self.assertPending('1000.00')
        self.assertFalse(Transaction.objects.exists())

    def test_add_to_unknown_vendor(self):
        with self.assertRaises(Vendor.DoesNotExist):
            PaymentLedgerService.add_payment(self.vendor.id + 999, Decimal('10'))
        self.assertFalse(Transaction.objects.exists())

    def test_add_rejects_amount_rounding_to_zero(self):
        with self.assertRaises(ValidationError):
            PaymentLedgerService.add_payment(self.vendor.id, Decimal('0.001'))
        self.assertPending('1000.00')
        self.assertFalse(Transaction.objects.exists())

    def test_add_rounds_to_cents(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('10.005'))
        self.assertEqual(result['transaction'].amount, Decimal('10.01'))
        self.assertPending('989.99')

    def test_add_rejects_amount_beyond_column_size(self):
        with self.assertRaises(ValidationError):
            PaymentLedgerService.add_payment(self.vendor.id, Decimal('1e12'))
        self.assertFalse(Transaction.objects.exists())

    def test_update_rejects_amount_rounding_to_zero(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('400'))
        with self.assertRaises(ValidationError):
            PaymentLedgerService.update_payment(result['transaction'].id, Decimal('0.004'))
        self.assertPending('600.00')

    def test_add_then_delete_round_trips(self):
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('250'))
        self.assertPending('750.00')

        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('300'))
        PaymentLedgerService.delete_payment(self.vendor.id, result['transaction'].id)
        self.assertPending('750.00')

    def test_update_reverses_old_amount_and_applies_new(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('400'))
        updated = PaymentLedgerService.update_payment(result['transaction'].id, Decimal('250'), note='corrected')

        self.assertPending('750.00')
        self.assertEqual(updated['status'], PaymentStatus.PARTIAL)
        payment = Transaction.objects.get(id=result['transaction'].id)
        self.assertEqual(payment.amount, Decimal('250.00'))
        self.assertEqual(payment.note, 'corrected')

    def test_update_clamps_to_zero(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('400'))
        updated = PaymentLedgerService.update_payment(result['transaction'].id, Decimal('5000'))
        self.assertPending('0.00')
        self.assertEqual(updated['status'], PaymentStatus.PAID)

    def test_update_clamps_to_total(self):
        # Overpaid then edited down: the restored balance cannot exceed the bill
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('1500'))
        self.assertPending('0.00')
        PaymentLedgerService.update_payment(result['transaction'].id, Decimal('100'))
        self.assertPending('1000.00')

    def test_update_keeps_status_snapshot(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('1000'))
        self.assertEqual(result['transaction'].status, PaymentStatus.PAID)

        updated = PaymentLedgerService.update_payment(result['transaction'].id, Decimal('300'))

        self.assertEqual(updated['status'], PaymentStatus.PARTIAL)
        payment = Transaction.objects.get(id=result['transaction'].id)
        self.assertEqual(payment.status, PaymentStatus.PAID)

    def test_update_unknown_transaction(self):
        with self.assertRaises(Transaction.DoesNotExist):
            PaymentLedgerService.update_payment(424242, Decimal('10'))

    def test_delete_requires_matching_vendor(self):
        other = make_vendor(name='Other Vendor')
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('400'))

        with self.assertRaises(Transaction.DoesNotExist):
            PaymentLedgerService.delete_payment(other.id, result['transaction'].id)

        self.assertTrue(Transaction.objects.filter(id=result['transaction'].id).exists())
        self.assertPending('600.00')

    def test_delete_after_overpayment_keeps_other_payments_applied(self):
        first = PaymentLedgerService.add_payment(self.vendor.id, Decimal('700'))
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('700'))
        self.assertPending('0.00')

        PaymentLedgerService.delete_payment(self.vendor.id, first['transaction'].id)
        self.assertPending('300.00')

    def test_status_regresses_from_paid_to_pending(self):
        result = PaymentLedgerService.add_payment(self.vendor.id, Decimal('1000'))
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.status, PaymentStatus.PAID)

        deleted = PaymentLedgerService.delete_payment(self.vendor.id, result['transaction'].id)
        self.assertEqual(deleted['status'], PaymentStatus.PENDING)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.status, PaymentStatus.PENDING)

    def test_vendor_delete_cascades_to_transactions(self):
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('100'))
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('200'))
        self.assertEqual(Transaction.objects.filter(vendor_id=self.vendor.id).count(), 2)

        self.vendor.delete()
        self.assertFalse(Transaction.objects.exists())

    def test_transaction_summary(self):
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('100'))
        PaymentLedgerService.add_payment(self.vendor.id, Decimal('250.50'))
        summary = TransactionService.get_transaction_summary(self.vendor.id)
        self.assertEqual(summary['payment_count'], 2)
        self.assertEqual(summary['total_paid'], Decimal('350.50'))


class BalanceReconciliationTestCase(TestCase):

    def setUp(self):
        self.vendor1 = make_vendor(total='1000.00', name='First Vendor')
        self.vendor2 = make_vendor(total='500.00', name='Second Vendor')

    def test_ledger_matches_after_payments(self):
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('400'))
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('100'))
        self.vendor1.refresh_from_db()

        result = BalanceReconciliationService.balance_reconciliation(self.vendor1)

        self.assertTrue(result['is_consistent'])
        self.assertEqual(result['stored_pending'], Decimal('500.00'))
        self.assertEqual(result['calculated_pending'], Decimal('500.00'))
        self.assertEqual(result['difference'], Decimal('0'))
        self.assertEqual(result['transaction_summary']['payment_count'], 2)

    def test_detects_tampered_balance(self):
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('400'))
        Vendor.objects.filter(id=self.vendor1.id).update(pending_amount=Decimal('900.00'))
        self.vendor1.refresh_from_db()

        result = BalanceReconciliationService.balance_reconciliation(self.vendor1)

        self.assertFalse(result['is_consistent'])
        self.assertEqual(result['difference'], Decimal('300.00'))

    def test_delete_after_overpayment_stays_consistent(self):
        # 400 + 700 against 1000 absorbs 100; deleting the 400 leaves 700 paid
        first = PaymentLedgerService.add_payment(self.vendor1.id, Decimal('400'))
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('700'))
        PaymentLedgerService.delete_payment(self.vendor1.id, first['transaction'].id)
        self.vendor1.refresh_from_db()

        result = BalanceReconciliationService.balance_reconciliation(self.vendor1)

        self.assertEqual(result['stored_pending'], Decimal('300.00'))
        self.assertEqual(result['calculated_pending'], Decimal('300.00'))
        self.assertTrue(result['is_consistent'])

    def test_reconcile_all_balances(self):
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('200'))
        PaymentLedgerService.add_payment(self.vendor2.id, Decimal('50'))

        results = BalanceReconciliationService.reconcile_all_balances()
        summary = results['summary']

        self.assertEqual(summary['total_vendors'], 2)
        self.assertEqual(summary['consistent_vendors'], 2)
        self.assertEqual(summary['inconsistent_vendors'], 0)
        self.assertEqual(summary['consistency_percentage'], 100.0)

        stats = summary['system_stats']
        self.assertEqual(stats['total_transactions'], 2)
        self.assertEqual(stats['total_paid'], Decimal('250.00'))
        self.assertEqual(stats['total_billed'], Decimal('1500.00'))
        self.assertEqual(stats['total_pending'], Decimal('1250.00'))

    def test_report_generation(self):
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('250'))

        report_single = BalanceReconciliationService.generate_reconciliation_report(self.vendor1.id)
        self.assertIn("Vendor Ledger Reconciliation Report", report_single)
        self.assertIn(f"Vendor {self.vendor1.id} (First Vendor)", report_single)
        self.assertIn("CONSISTENT", report_single)
        self.assertIn("750.00", report_single)

        report_all = BalanceReconciliationService.generate_reconciliation_report()
        self.assertIn("Summary:", report_all)
        self.assertIn("System statistics:", report_all)

        missing = BalanceReconciliationService.generate_reconciliation_report(987654)
        self.assertIn("not found", missing)

    def test_management_command(self):
        PaymentLedgerService.add_payment(self.vendor1.id, Decimal('250'))
        out = StringIO()
        call_command('reconcile_balances', stdout=out)
        self.assertIn("All vendors are consistent", out.getvalue())

        Vendor.objects.filter(id=self.vendor2.id).update(pending_amount=Decimal('10.00'))
        out = StringIO()
        call_command('reconcile_balances', stdout=out)
        self.assertIn(f"Vendor {self.vendor2.id} requires manual review", out.getvalue())

        out = StringIO()
        call_command('reconcile_balances', vendor_id=self.vendor1.id, stdout=out)
        self.assertIn("Calculated pending: 750.00", out.getvalue())


class PaymentAPITestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='clerk', password='clerk-pass-123')
        cls.admin = User.objects.create_superuser(username='boss', email='boss@test.com', password='boss-pass-123')

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.vendor = make_vendor()

    def add(self, amount, vendor_id=None, **extra):
        vendor_id = vendor_id if vendor_id is not None else self.vendor.id
        return self.client.post(f'/api/vendors/{vendor_id}/transactions/', {'amount': amount, **extra}, format='json')

    def test_add_payment(self):
        response = self.add('400', note='Advance')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()['data']
        self.assertEqual(data['status'], 'Partial')
        self.assertEqual(Decimal(data['overpayment']), Decimal('0'))
        self.assertEqual(Decimal(data['vendor']['pending_amount']), Decimal('600'))
        self.assertEqual(data['transaction']['note'], 'Advance')
        self.assertEqual(data['transaction']['status'], 'Partial')

    def test_add_overpayment(self):
        self.add('400')
        response = self.add('700')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.json()['data']
        self.assertEqual(data['status'], 'Paid')
        self.assertEqual(Decimal(data['overpayment']), Decimal('100'))
        self.assertEqual(Decimal(data['vendor']['pending_amount']), Decimal('0'))

    def test_add_with_explicit_date(self):
        response = self.add('10', transaction_date='2024-05-01T10:00:00Z')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payment = Transaction.objects.get()
        self.assertEqual(payment.transaction_date.year, 2024)

    def test_add_invalid_amount(self):
        for amount in ('0', '-5', 'abc', ''):
            response = self.add(amount)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, amount)
            self.assertIn('amount', response.json()['message'])

        response = self.client.post(f'/api/vendors/{self.vendor.id}/transactions/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal('1000.00'))

    def test_add_invalid_vendor_id(self):
        response = self.add('10', vendor_id='abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_unknown_vendor(self):
        response = self.add('10', vendor_id=self.vendor.id + 1000)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['message'], 'Vendor not found')

    def test_update_payment(self):
        payment_id = self.add('400').json()['data']['transaction']['id']

        response = self.client.put(f'/api/vendors/transactions/{payment_id}/',
                                   {'amount': '100', 'note': 'typo fixed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertEqual(Decimal(data['transaction']['amount']), Decimal('100'))
        self.assertEqual(Decimal(data['vendor']['pending_amount']), Decimal('900'))
        self.assertEqual(data['status'], 'Partial')

    def test_update_payment_errors(self):
        payment_id = self.add('400').json()['data']['transaction']['id']

        response = self.client.put('/api/vendors/transactions/xyz/', {'amount': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f'/api/vendors/transactions/{payment_id}/', {'amount': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f'/api/vendors/transactions/{payment_id + 100}/', {'amount': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['message'], 'Transaction not found')

    def test_delete_payment(self):
        payment_id = self.add('400').json()['data']['transaction']['id']

        response = self.client.delete(f'/api/vendors/{self.vendor.id}/transactions/{payment_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['message'], 'Transaction deleted')
        self.assertFalse(Transaction.objects.filter(id=payment_id).exists())
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.pending_amount, Decimal('1000.00'))

    def test_delete_payment_errors(self):
        payment_id = self.add('400').json()['data']['transaction']['id']
        other = make_vendor(name='Other')

        response = self.client.delete(f'/api/vendors/{self.vendor.id}/transactions/nope/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/vendors/{other.id}/transactions/{payment_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Transaction.objects.filter(id=payment_id).exists())

    def test_requires_authentication(self):
        anonymous = APIClient()
        response = anonymous.post(f'/api/vendors/{self.vendor.id}/transactions/', {'amount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_reconcile_endpoints_are_admin_only(self):
        response = self.client.get(f'/api/vendors/reconcile/{self.vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        admin_client = APIClient()
        admin_client.force_authenticate(self.admin)

        self.add('300')
        response = admin_client.get(f'/api/vendors/reconcile/{self.vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()['data']
        self.assertTrue(data['is_consistent'])
        self.assertEqual(Decimal(data['calculated_pending']), Decimal('700'))

        response = admin_client.get('/api/vendors/reconcile-all/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['summary']['total_vendors'], 1)

        response = admin_client.get('/api/vendors/reconcile/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = admin_client.get('/api/vendors/balance-report/', {'vendor_id': self.vendor.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(b'Vendor Ledger Reconciliation Report', response.content)

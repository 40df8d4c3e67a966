from decimal import Decimal
from django.test import SimpleTestCase

from utils.balance import apply_payment, clamp_pending, derive_status, ledger_pending, revise_payment
from utils.enums import PaymentStatus


D = Decimal


class DeriveStatusTestCase(SimpleTestCase):

    def test_nothing_owed_is_paid(self):
        self.assertEqual(derive_status(D('0.00'), D('1000.00')), PaymentStatus.PAID)

    def test_nothing_paid_is_pending(self):
        self.assertEqual(derive_status(D('1000.00'), D('1000.00')), PaymentStatus.PENDING)

    def test_anything_between_is_partial(self):
        self.assertEqual(derive_status(D('0.01'), D('1000.00')), PaymentStatus.PARTIAL)
        self.assertEqual(derive_status(D('999.99'), D('1000.00')), PaymentStatus.PARTIAL)

    def test_zero_bill_counts_as_paid(self):
        self.assertEqual(derive_status(D('0'), D('0')), PaymentStatus.PAID)


class ApplyPaymentTestCase(SimpleTestCase):

    def test_partial_payment(self):
        pending, status, overpayment = apply_payment(D('1000'), D('1000'), D('400'))
        self.assertEqual(pending, D('600'))
        self.assertEqual(status, PaymentStatus.PARTIAL)
        self.assertEqual(overpayment, D('0'))

    def test_exact_payment_settles_bill(self):
        pending, status, overpayment = apply_payment(D('600'), D('1000'), D('600'))
        self.assertEqual(pending, D('0'))
        self.assertEqual(status, PaymentStatus.PAID)
        self.assertEqual(overpayment, D('0'))

    def test_overpayment_is_absorbed_and_reported(self):
        pending, status, overpayment = apply_payment(D('600'), D('1000'), D('700'))
        self.assertEqual(pending, D('0'))
        self.assertEqual(status, PaymentStatus.PAID)
        self.assertEqual(overpayment, D('100'))

    def test_payment_on_settled_bill_is_all_overpayment(self):
        pending, status, overpayment = apply_payment(D('0'), D('1000'), D('50'))
        self.assertEqual(pending, D('0'))
        self.assertEqual(overpayment, D('50'))


class ClampTestCase(SimpleTestCase):

    def test_clamp_bounds(self):
        self.assertEqual(clamp_pending(D('-5'), D('100')), D('0'))
        self.assertEqual(clamp_pending(D('150'), D('100')), D('100'))
        self.assertEqual(clamp_pending(D('42.50'), D('100')), D('42.50'))

    def test_revise_payment_downward_restores_balance(self):
        self.assertEqual(revise_payment(D('0'), D('1000'), D('700'), D('200')), D('500'))

    def test_revise_payment_upward_floors_at_zero(self):
        self.assertEqual(revise_payment(D('600'), D('1000'), D('400'), D('1500')), D('0'))

    def test_ledger_pending_caps_at_total(self):
        self.assertEqual(ledger_pending(D('1000'), D('0')), D('1000'))
        self.assertEqual(ledger_pending(D('1000'), None), D('1000'))

    def test_ledger_pending_floors_at_zero(self):
        self.assertEqual(ledger_pending(D('1000'), D('1100')), D('0'))

    def test_removing_overpaid_payment_leaves_the_rest_applied(self):
        # 400 + 700 against 1000; dropping the 700 leaves 400 paid
        self.assertEqual(ledger_pending(D('1000'), D('400')), D('600'))

    def test_add_then_remove_round_trips(self):
        paid = D('250')
        start = ledger_pending(D('1000'), paid)
        pending, _, _ = apply_payment(start, D('1000'), D('300'))
        self.assertEqual(pending, D('450'))
        self.assertEqual(ledger_pending(D('1000'), paid), start)

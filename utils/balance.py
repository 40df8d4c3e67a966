"""
Pure balance arithmetic shared by the vendor and transaction services.

All amounts are Decimals. Nothing here touches the database.
"""
from decimal import Decimal

from utils.enums import PaymentStatus


ZERO = Decimal('0.00')


def clamp_pending(value: Decimal, total: Decimal) -> Decimal:
    """Clamp a pending balance into [0, total]"""
    if value < ZERO:
        return ZERO
    if value > total:
        return total
    return value


def derive_status(pending: Decimal, total: Decimal) -> str:
    """Paid when nothing is owed, Pending when nothing was paid, Partial otherwise"""
    if pending == ZERO:
        return PaymentStatus.PAID.value
    if pending == total:
        return PaymentStatus.PENDING.value
    return PaymentStatus.PARTIAL.value


def apply_payment(current_pending: Decimal, total: Decimal, amount: Decimal):
    """
    Apply a new payment against the outstanding balance.
    Returns (new_pending, status, overpayment). Overpayment is absorbed,
    the balance floors at zero.
    """
    new_pending = current_pending - amount
    if new_pending <= ZERO:
        new_pending = ZERO
        status = PaymentStatus.PAID.value
    elif new_pending == total:
        status = PaymentStatus.PENDING.value
    else:
        status = PaymentStatus.PARTIAL.value

    overpayment = max(amount - current_pending, ZERO)
    return new_pending, status, overpayment


def revise_payment(current_pending: Decimal, total: Decimal, old_amount: Decimal, new_amount: Decimal) -> Decimal:
    """Reverse old_amount and apply new_amount in one step"""
    return clamp_pending(current_pending + old_amount - new_amount, total)


def ledger_pending(total: Decimal, paid: Decimal) -> Decimal:
    """
    Outstanding balance implied by the ledger: the bill minus every recorded
    payment, clamped to [0, total]. Payments absorbed as overpayment count in
    full, so removing one restores only what the other payments leave unpaid.
    """
    return clamp_pending(total - (paid or ZERO), total)

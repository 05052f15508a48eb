"""Payment-status state machine for sales, quotations, purchases and loans.

Payable entities move ``UNPAID -> PARTIALLY_PAID -> PAID`` (and back, when a
payment is reduced or removed) as their paid amount changes. ``REFUNDED`` and
``PARTIALLY_REFUNDED`` are set only by the refund operation and, once set,
freeze the entity against any further payment mutation.
"""
from __future__ import annotations

from decimal import Decimal

from bizledger.constants import LoanStatus, PaymentStatus, QuotationStatus, REFUND_STATUSES
from bizledger.errors import LedgerValidationError


TRANSITIONS: dict[str, frozenset[str]] = {
    PaymentStatus.UNPAID.value: frozenset(
        {PaymentStatus.PARTIALLY_PAID.value, PaymentStatus.PAID.value, *REFUND_STATUSES}
    ),
    PaymentStatus.PARTIALLY_PAID.value: frozenset(
        {PaymentStatus.UNPAID.value, PaymentStatus.PAID.value, *REFUND_STATUSES}
    ),
    PaymentStatus.PAID.value: frozenset(
        {PaymentStatus.UNPAID.value, PaymentStatus.PARTIALLY_PAID.value, *REFUND_STATUSES}
    ),
    PaymentStatus.REFUNDED.value: frozenset(),
    PaymentStatus.PARTIALLY_REFUNDED.value: frozenset(),
}

# Quotations take money only once accepted (UNPAID onwards).
QUOTATION_CLOSED_STATES = frozenset(
    {
        QuotationStatus.DRAFT.value,
        QuotationStatus.SENT.value,
        QuotationStatus.EXPIRED.value,
        QuotationStatus.CANCELLED.value,
    }
)

LOAN_FROZEN_STATES = frozenset(
    {LoanStatus.PAID_OFF.value, LoanStatus.DEFAULTED.value, LoanStatus.WRITTEN_OFF.value}
)


def is_refund_status(status: str | None) -> bool:
    return status in REFUND_STATUSES


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if current == QuotationStatus.SENT.value:
        # Acceptance is the only way out of SENT.
        return target == PaymentStatus.UNPAID.value
    return target in TRANSITIONS.get(current, frozenset())


def derive_payment_status(current: str, amount_paid: Decimal, total_amount: Decimal) -> str:
    """Status implied by the paid amount; refund states are never overwritten."""
    if is_refund_status(current):
        return current
    if amount_paid >= total_amount:
        return PaymentStatus.PAID.value
    if amount_paid > 0:
        return PaymentStatus.PARTIALLY_PAID.value
    return PaymentStatus.UNPAID.value


def ensure_payments_mutable(status: str, entity_label: str, action: str = "update payment for") -> None:
    if is_refund_status(status):
        raise LedgerValidationError(f"Cannot {action} a refunded {entity_label}")
    if status in QUOTATION_CLOSED_STATES:
        raise LedgerValidationError(
            f"Cannot {action} a {entity_label} with status {status.lower()}"
        )


def derive_loan_status(current: str, current_balance: Decimal) -> str:
    if current in (LoanStatus.DEFAULTED.value, LoanStatus.WRITTEN_OFF.value):
        return current
    if current_balance <= 0:
        return LoanStatus.PAID_OFF.value
    return LoanStatus.ACTIVE.value


def ensure_loan_accepts_payments(status: str) -> None:
    if status == LoanStatus.PAID_OFF.value:
        raise LedgerValidationError("Loan is already paid off")
    if status in LOAN_FROZEN_STATES:
        raise LedgerValidationError(
            f"Cannot add payment to a {status.lower().replace('_', ' ')} loan"
        )

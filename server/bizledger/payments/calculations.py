from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from bizledger.errors import LedgerValidationError
from bizledger.payments.status import derive_payment_status
from bizledger.utils.money import as_money, money_sum, quantize_money
from bizledger.utils.formatting import format_currency


@dataclass(frozen=True)
class BalanceSnapshot:
    amount_paid: Decimal
    balance: Decimal
    status: str


@dataclass(frozen=True)
class LoanSplit:
    principal: Decimal
    interest: Decimal


def recalculate_balance(
    total_amount: Decimal,
    current_status: str,
    payment_amounts: Iterable[Decimal],
) -> BalanceSnapshot:
    """Derive paid amount, balance and status from the full post-mutation payment set.

    Refunds are tracked on the entity separately and are not folded into the
    balance here.
    """
    total = as_money(total_amount)
    amount_paid = money_sum(payment_amounts)
    balance = quantize_money(total - amount_paid)
    return BalanceSnapshot(
        amount_paid=amount_paid,
        balance=balance,
        status=derive_payment_status(current_status, amount_paid, total),
    )


def max_payment_amount(total_amount: Decimal, other_amounts: Iterable[Decimal]) -> Decimal:
    return quantize_money(as_money(total_amount) - money_sum(other_amounts))


def validate_payment_amount(amount: Decimal, total_amount: Decimal, other_amounts: Iterable[Decimal]) -> Decimal:
    """Return the normalized amount, or raise if it would overpay the entity."""
    amount = as_money(amount)
    if amount < 0:
        raise LedgerValidationError("Amount cannot be negative")
    other_amounts = list(other_amounts)
    maximum = max_payment_amount(total_amount, other_amounts)
    if money_sum([*other_amounts, amount]) > as_money(total_amount):
        raise LedgerValidationError(
            "Payment amount cannot exceed remaining balance. "
            f"Maximum for this payment: {format_currency(maximum)}"
        )
    return amount


def split_loan_payment(amount: Decimal, current_balance: Decimal) -> LoanSplit:
    """Apply a loan installment to outstanding principal first, the rest is interest."""
    amount = as_money(amount)
    current_balance = as_money(current_balance)
    if current_balance <= 0:
        return LoanSplit(principal=as_money(0), interest=amount)
    if amount <= current_balance:
        return LoanSplit(principal=amount, interest=as_money(0))
    return LoanSplit(principal=current_balance, interest=quantize_money(amount - current_balance))

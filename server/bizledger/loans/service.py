import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from bizledger.constants import LoanType, PayableType, PaymentCategory
from bizledger.db import transaction_scope
from bizledger.errors import LedgerValidationError, NotFoundError
from bizledger.models import Expense, IncomeRecord, Loan, Payment, PaymentParent
from bizledger.payments.calculations import LoanSplit, split_loan_payment
from bizledger.payments.status import derive_loan_status, ensure_loan_accepts_payments
from bizledger.utils.money import ZERO, as_money, quantize_money

logger = logging.getLogger(__name__)

INTEREST_INCOME_CATEGORY = "INVESTMENT_INCOME"
INTEREST_INCOME_SUBCATEGORY = "INTEREST_INCOME"
INTEREST_EXPENSE_CATEGORY = "INTEREST_ON_DEBT"


@dataclass
class LoanPaymentResult:
    loan: Loan
    payment: Payment
    split: LoanSplit
    interest_record: Optional[Union[IncomeRecord, Expense]] = None


def _as_dict(data: Any) -> dict:
    if hasattr(data, "model_dump"):
        return data.model_dump()
    return dict(data)


def _lock_loan(db: Session, user_id: int, loan_id: int) -> Loan:
    loan = db.query(Loan).filter(Loan.id == loan_id, Loan.user_id == user_id).with_for_update().first()
    if not loan:
        raise NotFoundError("Loan not found or unauthorized")
    return loan


def _book_receivable_interest(db: Session, user_id: int, loan: Loan, interest, payload: dict) -> IncomeRecord:
    record = (
        db.query(IncomeRecord)
        .filter(
            IncomeRecord.user_id == user_id,
            IncomeRecord.linked_loan_id == loan.id,
            IncomeRecord.sub_category == INTEREST_INCOME_SUBCATEGORY,
        )
        .first()
    )
    if record:
        record.gross_amount = quantize_money(as_money(record.gross_amount) + interest)
    else:
        record = IncomeRecord(
            user_id=user_id,
            main_category=INTEREST_INCOME_CATEGORY,
            sub_category=INTEREST_INCOME_SUBCATEGORY,
            gross_amount=interest,
            taxable_percentage=100,
            description=f"Interest earned on loan to {loan.party_name or 'borrower'} - {loan.loan_number}",
            date=payload["payment_date"],
            linked_loan_id=loan.id,
        )
        db.add(record)
        db.flush()

    db.add(
        Payment.for_parent(
            PaymentParent(kind=PayableType.OTHER_INCOME, id=record.id),
            user_id=user_id,
            amount=interest,
            payment_method=payload["payment_method"],
            payment_date=payload["payment_date"],
            category=PaymentCategory.INCOME.value,
            reference=payload.get("reference") or None,
            notes=f"Interest payment for loan {loan.loan_number}",
        )
    )
    return record


def _book_payable_interest(db: Session, user_id: int, loan: Loan, interest, payload: dict) -> Expense:
    record = (
        db.query(Expense)
        .filter(
            Expense.user_id == user_id,
            Expense.linked_loan_id == loan.id,
            Expense.category == INTEREST_EXPENSE_CATEGORY,
        )
        .first()
    )
    if record:
        record.amount = quantize_money(as_money(record.amount) + interest)
    else:
        record = Expense(
            user_id=user_id,
            category=INTEREST_EXPENSE_CATEGORY,
            amount=interest,
            description=f"Interest paid on loan from {loan.party_name or 'lender'} - {loan.loan_number}",
            date=payload["payment_date"],
            is_deductible=True,
            deduction_percentage=100,
            linked_loan_id=loan.id,
        )
        db.add(record)
        db.flush()

    db.add(
        Payment.for_parent(
            PaymentParent(kind=PayableType.OTHER_EXPENSES, id=record.id),
            user_id=user_id,
            amount=interest,
            payment_method=payload["payment_method"],
            payment_date=payload["payment_date"],
            category=PaymentCategory.EXPENSE.value,
            reference=payload.get("reference") or None,
            notes=f"Interest payment for loan {loan.loan_number}",
        )
    )
    return record


def record_loan_payment(db: Session, user_id: int, loan_id: int, data: Any) -> LoanPaymentResult:
    """Record one installment against a loan.

    The amount pays down outstanding principal first and anything beyond the
    balance is interest, booked to the loan's single interest income (for
    receivable loans) or interest expense (for payable loans) record.
    """
    payload = _as_dict(data)
    payload["payment_method"] = getattr(payload["payment_method"], "value", payload["payment_method"])
    amount = as_money(payload["amount_paid"])
    if amount <= 0:
        raise LedgerValidationError("Payment amount must be greater than zero.")

    with transaction_scope(db):
        loan = _lock_loan(db, user_id, loan_id)
        try:
            ensure_loan_accepts_payments(loan.status)
        except LedgerValidationError:
            logger.warning("Rejected payment for loan %s with status %s", loan.id, loan.status)
            raise

        receivable = loan.loan_type == LoanType.RECEIVABLE.value
        split = split_loan_payment(amount, loan.current_balance)

        payment = Payment.for_parent(
            PaymentParent(kind=PayableType.LOAN, id=loan.id),
            user_id=user_id,
            amount=amount,
            payment_method=payload["payment_method"],
            payment_date=payload["payment_date"],
            category=(PaymentCategory.INCOME if receivable else PaymentCategory.EXPENSE).value,
            reference=payload.get("reference") or None,
            notes=payload.get("notes") or None,
        )
        db.add(payment)

        new_balance = quantize_money(as_money(loan.current_balance) - split.principal)
        loan.total_paid = quantize_money(as_money(loan.total_paid) + split.principal)
        loan.total_interest_paid = quantize_money(as_money(loan.total_interest_paid) + split.interest)
        loan.current_balance = max(ZERO, new_balance)
        loan.status = derive_loan_status(loan.status, new_balance)

        interest_record = None
        if split.interest > 0:
            book = _book_receivable_interest if receivable else _book_payable_interest
            interest_record = book(db, user_id, loan, split.interest, payload)

    logger.info(
        "Loan %s payment recorded: principal=%s interest=%s balance=%s status=%s",
        loan_id, split.principal, split.interest, loan.current_balance, loan.status,
    )
    return LoanPaymentResult(loan=loan, payment=payment, split=split, interest_record=interest_record)

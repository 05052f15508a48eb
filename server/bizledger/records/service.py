import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Union

from sqlalchemy.orm import Session

from bizledger.constants import PayableType, PaymentCategory
from bizledger.db import transaction_scope
from bizledger.models import Expense, IncomeRecord, Payment, PaymentParent
from bizledger.utils.money import as_money

logger = logging.getLogger(__name__)


@dataclass
class RecordEntry:
    record: Union[IncomeRecord, Expense]
    payment: Payment


def _as_dict(data: Any) -> dict:
    if hasattr(data, "model_dump"):
        return data.model_dump()
    return dict(data)


def _payment_note(payload: dict, sub_category) -> str:
    return payload.get("description") or f"Payment for {sub_category or 'record'}"


def create_income_record(db: Session, user_id: int, data: Any) -> RecordEntry:
    payload = _as_dict(data)
    entry_date = payload.get("date") or date.today()
    amount = as_money(payload["gross_amount"])
    with transaction_scope(db):
        record = IncomeRecord(
            user_id=user_id,
            main_category=payload["main_category"],
            sub_category=payload.get("sub_category"),
            gross_amount=amount,
            taxable_percentage=payload.get("taxable_percentage", 100),
            description=payload.get("description"),
            date=entry_date,
        )
        db.add(record)
        db.flush()

        payment = Payment.for_parent(
            PaymentParent(kind=PayableType.OTHER_INCOME, id=record.id),
            user_id=user_id,
            amount=amount,
            payment_method=getattr(payload["payment_method"], "value", payload["payment_method"]),
            payment_date=entry_date,
            category=PaymentCategory.INCOME.value,
            reference=payload.get("reference") or None,
            notes=_payment_note(payload, payload.get("sub_category")),
        )
        db.add(payment)

    logger.info("Income record %s created (%s)", record.id, amount)
    return RecordEntry(record=record, payment=payment)


def create_expense(db: Session, user_id: int, data: Any) -> RecordEntry:
    payload = _as_dict(data)
    entry_date = payload.get("date") or date.today()
    amount = as_money(payload["amount"])
    with transaction_scope(db):
        record = Expense(
            user_id=user_id,
            category=payload["category"],
            sub_category=payload.get("sub_category"),
            amount=amount,
            description=payload.get("description") or "",
            vendor_name=payload.get("vendor_name") or "N/A",
            date=entry_date,
            is_deductible=payload.get("is_deductible", True),
            deduction_percentage=payload.get("deduction_percentage", 100),
            is_return=payload.get("is_return", False),
            return_date=payload.get("return_date"),
            return_reason=payload.get("return_reason"),
            receipt=payload.get("receipt"),
        )
        db.add(record)
        db.flush()

        payment = Payment.for_parent(
            PaymentParent(kind=PayableType.OTHER_EXPENSES, id=record.id),
            user_id=user_id,
            amount=amount,
            payment_method=getattr(payload["payment_method"], "value", payload["payment_method"]),
            payment_date=entry_date,
            category=PaymentCategory.EXPENSE.value,
            reference=payload.get("reference") or None,
            notes=_payment_note(payload, payload.get("sub_category")),
        )
        db.add(payment)

    logger.info("Expense %s created (%s, %s)", record.id, record.category, amount)
    return RecordEntry(record=record, payment=payment)

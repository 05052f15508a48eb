from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from bizledger.auth import AuthContext
from bizledger.config import settings
from bizledger.constants import PayableType, PaymentCategory
from bizledger.models import Payment, Purchase
from bizledger.reports.aggregation import (
    add_to_bucket,
    average_per_month,
    bucket_sum,
    ledger_amount,
    monthly_series,
    percentage_of,
    top_key,
)
from bizledger.reports.dates import DateRange
from bizledger.utils.formatting import format_category_name, is_deductible_category
from bizledger.utils.money import ZERO, as_money, money_sum, quantize_money

COST_OF_GOODS = "COST_OF_GOODS"
HUNDRED = Decimal("100")


@dataclass
class ExpenseLine:
    id: int
    date: date
    amount: Decimal
    payment_method: str
    source_type: str
    category: str
    is_deductible: bool
    deduction_percentage: Decimal
    source_id: Optional[int] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    source_number: Optional[str] = None
    source_title: Optional[str] = None
    source_description: Optional[str] = None
    source_total_amount: Optional[Decimal] = None
    source_amount_paid: Optional[Decimal] = None
    source_balance: Optional[Decimal] = None
    source_status: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    refund_date: Optional[datetime] = None
    refund_reason: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    sub_category: Optional[str] = None
    receipt: Optional[str] = None
    is_return: bool = False
    return_date: Optional[date] = None
    return_reason: Optional[str] = None
    includes_vat: bool = False
    vat_amount: Optional[Decimal] = None
    has_payment: Optional[bool] = None


def outstanding_purchase_balance(purchase: Purchase) -> Decimal:
    """What is still owed on a purchase once its refund is netted off, never negative."""
    net_total = as_money(purchase.total_amount) - as_money(purchase.refund_amount)
    return max(ZERO, quantize_money(net_total - as_money(purchase.amount_paid)))


def _purchase_line(purchase: Purchase) -> ExpenseLine:
    latest = purchase.payments[0] if purchase.payments else None
    return ExpenseLine(
        id=purchase.id,
        date=purchase.purchase_date,
        amount=as_money(purchase.amount_paid),
        payment_method=latest.payment_method if latest else "OTHER",
        reference=latest.reference if latest else None,
        notes=latest.notes if latest else None,
        source_type=PayableType.PURCHASE.value,
        source_id=purchase.id,
        source_number=purchase.purchase_number,
        source_title=purchase.title,
        source_description=purchase.description,
        source_total_amount=as_money(purchase.total_amount),
        source_amount_paid=as_money(purchase.amount_paid),
        source_balance=outstanding_purchase_balance(purchase),
        source_status=purchase.status,
        refund_amount=quantize_money(purchase.refund_amount),
        refund_date=purchase.refund_date,
        refund_reason=purchase.refund_reason,
        vendor_name=purchase.vendor_name,
        vendor_email=purchase.vendor_email,
        vendor_phone=purchase.vendor_phone,
        category=COST_OF_GOODS,
        is_deductible=True,
        deduction_percentage=HUNDRED,
        includes_vat=bool(purchase.include_vat),
        vat_amount=quantize_money(purchase.vat_amount),
        has_payment=as_money(purchase.amount_paid) > 0,
    )


def _expense_payment_line(payment: Payment) -> ExpenseLine:
    expense = payment.expense
    if expense is None:
        return ExpenseLine(
            id=payment.id,
            date=payment.payment_date,
            amount=as_money(payment.amount),
            payment_method=payment.payment_method,
            reference=payment.reference,
            notes=payment.notes,
            source_type="UNKNOWN",
            category="OTHER",
            is_deductible=False,
            deduction_percentage=ZERO,
        )
    return ExpenseLine(
        id=payment.id,
        date=payment.payment_date,
        amount=as_money(payment.amount),
        payment_method=payment.payment_method,
        reference=payment.reference,
        notes=payment.notes,
        source_type=PayableType.OTHER_EXPENSES.value,
        source_id=expense.id,
        source_description=expense.description,
        source_total_amount=as_money(expense.amount),
        receipt=expense.receipt,
        category=expense.category,
        sub_category=expense.sub_category,
        vendor_name=expense.vendor_name,
        is_deductible=bool(expense.is_deductible),
        deduction_percentage=as_money(expense.deduction_percentage),
        is_return=bool(expense.is_return),
        return_date=expense.return_date,
        return_reason=expense.return_reason,
    )


def deductible_split(payment: Payment) -> tuple[Decimal, Decimal]:
    """(deductible, non-deductible) portions of a non-return other-expense payment."""
    amount = as_money(payment.amount)
    expense = payment.expense
    if not expense.is_deductible:
        return ZERO, amount
    deductible = quantize_money(amount * as_money(expense.deduction_percentage) / HUNDRED)
    return deductible, quantize_money(amount - deductible)


def fetch_expense_sources(db: Session, user_id: int, date_range: DateRange):
    start, end = date_range.start_date, date_range.end_date
    purchases = (
        db.query(Purchase)
        .options(selectinload(Purchase.payments))
        .filter(Purchase.user_id == user_id, Purchase.purchase_date >= start, Purchase.purchase_date <= end)
        .order_by(Purchase.purchase_date.desc())
        .all()
    )
    expense_payments = (
        db.query(Payment)
        .options(selectinload(Payment.expense))
        .filter(
            Payment.user_id == user_id,
            Payment.category == PaymentCategory.EXPENSE.value,
            Payment.payable_type == PayableType.OTHER_EXPENSES.value,
            Payment.payment_date >= start,
            Payment.payment_date <= end,
        )
        .order_by(Payment.payment_date.desc())
        .all()
    )
    return purchases, expense_payments


def _spent(payment) -> Decimal:
    return ledger_amount(payment, PaymentCategory.EXPENSE.value)


def build_expense_report(
    db: Session,
    auth: AuthContext,
    date_range: DateRange,
    range_name: str,
) -> dict:
    purchases, expense_payments = fetch_expense_sources(db, auth.user_id, date_range)
    # Returned expenses stay in the listing but never count toward totals.
    counted = [p for p in expense_payments if p.expense is not None and not p.expense.is_return]

    data: List[ExpenseLine] = [_purchase_line(purchase) for purchase in purchases]
    data.extend(_expense_payment_line(payment) for payment in expense_payments)
    data.sort(key=lambda line: line.date, reverse=True)

    gross_expenses = quantize_money(
        money_sum(purchase.total_amount for purchase in purchases)
        + money_sum(payment.expense.amount for payment in counted)
    )
    total_purchase_refunds = money_sum(purchase.refund_amount for purchase in purchases)
    # Only purchase refunds are netted off; other-expense returns are left out of the gross instead.
    net_expenses = quantize_money(gross_expenses - total_purchase_refunds)
    total_paid = quantize_money(
        money_sum(purchase.amount_paid for purchase in purchases)
        + money_sum(payment.amount for payment in counted)
    )
    balance = money_sum(outstanding_purchase_balance(purchase) for purchase in purchases)

    splits = [deductible_split(payment) for payment in counted]
    total_deductible = quantize_money(
        money_sum(purchase.amount_paid for purchase in purchases) + money_sum(d for d, _ in splits)
    )
    total_non_deductible = money_sum(n for _, n in splits)

    by_category: dict = {}
    category_refunds: dict = {}
    for purchase in purchases:
        refund = as_money(purchase.refund_amount)
        add_to_bucket(by_category, COST_OF_GOODS, as_money(purchase.total_amount) - refund)
        add_to_bucket(category_refunds, COST_OF_GOODS, refund)
    for payment in counted:
        add_to_bucket(by_category, payment.expense.category or "OTHER", payment.amount)

    payments = [payment for purchase in purchases for payment in purchase.payments] + expense_payments
    by_payment_method = bucket_sum(payments, key=lambda p: p.payment_method, amount=_spent)

    by_category_chart = [
        {
            "name": format_category_name(name),
            "value": value,
            "percentage": percentage_of(value, net_expenses),
            "deductible": is_deductible_category(name),
            "refund_amount": category_refunds.get(name, ZERO),
        }
        for name, value in by_category.items()
    ]

    return {
        "success": True,
        "meta": {
            "type": "expense",
            "range": range_name,
            "start_date": date_range.start,
            "end_date": date_range.end,
            "total_records": len(data),
            "purchase_records": len(purchases),
            "expense_records": len(expense_payments),
            "currency": settings.CURRENCY,
        },
        "summary": {
            "gross_expenses": gross_expenses,
            "total_purchase_refunds": total_purchase_refunds,
            "net_expenses": net_expenses,
            "total_paid": total_paid,
            "balance": balance,
            "average_per_month": average_per_month(net_expenses, date_range),
            "top_category": top_key(by_category, default="OTHER"),
            "total_deductible": total_deductible,
            "total_non_deductible": total_non_deductible,
            "deductible_percentage": percentage_of(total_deductible, total_paid),
            "by_category": by_category,
            "by_payment_method": dict(by_payment_method),
        },
        "chart_data": {
            "monthly": monthly_series(((p.payment_date, _spent(p)) for p in payments), date_range),
            "by_category": by_category_chart,
        },
        "data": data,
    }

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from bizledger.auth import AuthContext
from bizledger.config import settings
from bizledger.constants import INCOME_REPORT_STATUSES, NON_INCOME_QUOTATION_STATUSES, PayableType, PaymentCategory
from bizledger.models import IncomeRecord, Quotation, Sale
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
from bizledger.utils.formatting import format_source_name
from bizledger.utils.money import ZERO, as_money, money_sum, quantize_money


@dataclass
class IncomeLine:
    id: int
    date: date
    amount: Decimal
    payment_method: str
    source_type: str
    source_id: int
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
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    includes_vat: bool = False
    vat_amount: Optional[Decimal] = None
    taxable_percentage: Optional[Decimal] = None
    income_main_category: Optional[str] = None
    income_sub_category: Optional[str] = None
    custom_sub_category: Optional[str] = None
    has_payment: bool = False


def _payable_line(entity, source_type: PayableType, entry_date: date) -> IncomeLine:
    latest = entity.payments[0] if entity.payments else None
    return IncomeLine(
        id=entity.id,
        date=entry_date,
        amount=as_money(entity.amount_paid),
        payment_method=latest.payment_method if latest else "UNPAID",
        reference=latest.reference if latest else None,
        notes=latest.notes if latest else None,
        source_type=source_type.value,
        source_id=entity.id,
        source_number=entity.number,
        source_title=entity.title,
        source_description=entity.description,
        source_total_amount=as_money(entity.total_amount),
        source_amount_paid=as_money(entity.amount_paid),
        source_balance=as_money(entity.balance),
        source_status=entity.status,
        refund_amount=quantize_money(entity.refund_amount),
        refund_date=entity.refund_date,
        refund_reason=entity.refund_reason,
        customer_name=entity.customer_name,
        customer_email=entity.customer_email,
        customer_phone=entity.customer_phone,
        includes_vat=bool(entity.include_vat),
        vat_amount=quantize_money(entity.vat_amount),
        has_payment=as_money(entity.amount_paid) > 0,
    )


def _other_income_line(income: IncomeRecord) -> IncomeLine:
    latest = income.payments[0] if income.payments else None
    return IncomeLine(
        id=income.id,
        date=income.date,
        amount=as_money(latest.amount if latest else income.gross_amount),
        payment_method=latest.payment_method if latest else "OTHER",
        reference=latest.reference if latest else None,
        notes=latest.notes if latest else None,
        source_type=PayableType.OTHER_INCOME.value,
        source_id=income.id,
        source_description=income.description,
        source_total_amount=as_money(income.gross_amount),
        taxable_percentage=quantize_money(income.taxable_percentage),
        income_main_category=income.main_category,
        income_sub_category=income.sub_category,
        custom_sub_category=income.custom_sub_category,
        has_payment=latest is not None,
    )


def fetch_income_sources(db: Session, user_id: int, date_range: DateRange):
    start, end = date_range.start_date, date_range.end_date
    sales = (
        db.query(Sale)
        .options(selectinload(Sale.payments))
        .filter(
            Sale.user_id == user_id,
            Sale.sale_date >= start,
            Sale.sale_date <= end,
            Sale.status.in_(INCOME_REPORT_STATUSES),
        )
        .order_by(Sale.sale_date.desc())
        .all()
    )
    quotations = (
        db.query(Quotation)
        .options(selectinload(Quotation.payments))
        .filter(
            Quotation.user_id == user_id,
            Quotation.issue_date >= start,
            Quotation.issue_date <= end,
            Quotation.status.in_(INCOME_REPORT_STATUSES),
            Quotation.status.notin_(NON_INCOME_QUOTATION_STATUSES),
        )
        .order_by(Quotation.issue_date.desc())
        .all()
    )
    other_incomes = (
        db.query(IncomeRecord)
        .options(selectinload(IncomeRecord.payments))
        .filter(IncomeRecord.user_id == user_id, IncomeRecord.date >= start, IncomeRecord.date <= end)
        .order_by(IncomeRecord.date.desc())
        .all()
    )
    return sales, quotations, other_incomes


def _received(payment) -> Decimal:
    return ledger_amount(payment, PaymentCategory.INCOME.value)


def build_income_report(
    db: Session,
    auth: AuthContext,
    date_range: DateRange,
    range_name: str,
) -> dict:
    sales, quotations, other_incomes = fetch_income_sources(db, auth.user_id, date_range)
    payables = [*sales, *quotations]

    data = (
        [_payable_line(sale, PayableType.SALE, sale.sale_date) for sale in sales]
        + [_payable_line(quotation, PayableType.QUOTATION, quotation.issue_date) for quotation in quotations]
        + [_other_income_line(income) for income in other_incomes]
    )
    data.sort(key=lambda line: line.date, reverse=True)

    sales_refunds = money_sum(sale.refund_amount for sale in sales)
    quotation_refunds = money_sum(quotation.refund_amount for quotation in quotations)
    total_refunds = quantize_money(sales_refunds + quotation_refunds)
    gross_revenue = quantize_money(
        money_sum(entity.total_amount for entity in payables)
        + money_sum(income.gross_amount for income in other_incomes)
    )
    net_income = quantize_money(gross_revenue - total_refunds)
    # Other income counts as received in full.
    total_received = quantize_money(
        money_sum(entity.amount_paid for entity in payables)
        + money_sum(income.gross_amount for income in other_incomes)
    )
    outstanding_balance = money_sum(entity.balance for entity in payables)

    by_source: dict = {}
    source_refunds: dict = {}
    for source_type, entities in ((PayableType.SALE, sales), (PayableType.QUOTATION, quotations)):
        for entity in entities:
            refund = as_money(entity.refund_amount)
            add_to_bucket(by_source, source_type.value, as_money(entity.total_amount) - refund)
            add_to_bucket(source_refunds, source_type.value, refund)
    for income in other_incomes:
        add_to_bucket(by_source, PayableType.OTHER_INCOME.value, income.gross_amount)
        source_refunds.setdefault(PayableType.OTHER_INCOME.value, ZERO)

    payments = [
        payment
        for entity in [*sales, *quotations, *other_incomes]
        for payment in entity.payments
    ]
    by_payment_method = bucket_sum(payments, key=lambda p: p.payment_method, amount=_received)

    by_source_chart = [
        {
            "name": format_source_name(name),
            "value": value,
            "percentage": percentage_of(value, net_income),
            "refund_amount": source_refunds.get(name, ZERO),
        }
        for name, value in by_source.items()
    ]

    return {
        "success": True,
        "meta": {
            "type": "income",
            "range": range_name,
            "start_date": date_range.start,
            "end_date": date_range.end,
            "total_records": len(data),
            "sale_records": len(sales),
            "quotation_records": len(quotations),
            "other_income_records": len(other_incomes),
            "currency": settings.CURRENCY,
        },
        "summary": {
            "gross_revenue": gross_revenue,
            "total_refunds": total_refunds,
            "refunds_by_source": {
                PayableType.SALE.value: sales_refunds,
                PayableType.QUOTATION.value: quotation_refunds,
            },
            "net_income": net_income,
            "total_received": total_received,
            "outstanding_balance": outstanding_balance,
            "average_per_month": average_per_month(net_income, date_range),
            "top_source": top_key(by_source, default=PayableType.OTHER_INCOME.value),
            "by_source": by_source,
            "by_payment_method": dict(by_payment_method),
        },
        "chart_data": {
            "monthly": monthly_series(((p.payment_date, _received(p)) for p in payments), date_range),
            "by_source": by_source_chart,
        },
        "data": data,
    }

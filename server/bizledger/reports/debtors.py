"""Debtors report: what customers still owe on sales and accepted quotations."""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from bizledger.auth import AuthContext
from bizledger.config import settings
from bizledger.constants import OUTSTANDING_STATUSES, PayableType
from bizledger.models import Quotation, Sale
from bizledger.reports.aging import PartyAging, aged_document, group_by_party, summarize_aging, top_parties
from bizledger.reports.dates import DateRange

UNKNOWN_CUSTOMER = "Unknown Customer"


def fetch_receivables(db: Session, user_id: int, date_range: DateRange):
    start, end = date_range.start_date, date_range.end_date
    sales = (
        db.query(Sale)
        .options(selectinload(Sale.payments))
        .filter(
            Sale.user_id == user_id,
            Sale.balance > 0,
            Sale.sale_date >= start,
            Sale.sale_date <= end,
            Sale.status.in_(OUTSTANDING_STATUSES),
        )
        .order_by(Sale.sale_date, Sale.id)
        .all()
    )
    quotations = (
        db.query(Quotation)
        .options(selectinload(Quotation.payments))
        .filter(
            Quotation.user_id == user_id,
            Quotation.balance > 0,
            Quotation.issue_date >= start,
            Quotation.issue_date <= end,
            Quotation.status.in_(OUTSTANDING_STATUSES),
        )
        .order_by(Quotation.issue_date, Quotation.id)
        .all()
    )
    return sales, quotations


def _customer_row(party: PartyAging) -> dict:
    return {
        "customer_name": party.name,
        "customer_email": party.email,
        "customer_phone": party.phone,
        "total_outstanding": party.total_outstanding,
        "number_of_invoices": len(party.documents),
        "oldest_invoice_date": party.oldest_date,
        "days_outstanding": party.days_outstanding,
        "current": party.current,
        "days_30_to_60": party.days_30_to_60,
        "days_60_to_90": party.days_60_to_90,
        "over_90_days": party.over_90_days,
        "invoices": party.documents,
    }


def build_debtors_report(
    db: Session,
    auth: AuthContext,
    date_range: DateRange,
    range_name: str,
    today: Optional[date] = None,
) -> dict:
    today = today or date.today()
    sales, quotations = fetch_receivables(db, auth.user_id, date_range)

    rows = [
        (
            aged_document(sale, PayableType.SALE.value, sale.receipt_number, sale.sale_date, today),
            sale.customer_name,
            sale.customer_email,
            sale.customer_phone,
        )
        for sale in sales
    ]
    rows.extend(
        (
            aged_document(
                quotation,
                PayableType.QUOTATION.value,
                quotation.quotation_number,
                quotation.issue_date,
                today,
                due_date=quotation.valid_until,
            ),
            quotation.customer_name,
            quotation.customer_email,
            quotation.customer_phone,
        )
        for quotation in quotations
    )

    customers = group_by_party(rows, UNKNOWN_CUSTOMER, today)
    totals = summarize_aging(customers, [document for document, *_ in rows])
    top = customers[0] if customers else None

    return {
        "success": True,
        "meta": {
            "type": "debtors",
            "range": range_name,
            "start_date": date_range.start,
            "end_date": date_range.end,
            "total_records": len(customers),
            "currency": settings.CURRENCY,
        },
        "summary": {
            "total_outstanding": totals["total_outstanding"],
            "total_customers": len(customers),
            "average_debt": totals["average_debt"],
            "current": totals["current"],
            "days_30_to_60": totals["days_30_to_60"],
            "days_60_to_90": totals["days_60_to_90"],
            "over_90_days": totals["over_90_days"],
            "by_status": totals["by_status"],
            "top_debtor": {"name": top.name, "amount": top.total_outstanding} if top else None,
        },
        "chart_data": {
            "aging": totals["aging_chart"],
            "top_debtors": top_parties(customers),
        },
        "data": [_customer_row(customer) for customer in customers],
    }

"""Creditors report: what is still owed to vendors on purchases."""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from bizledger.auth import AuthContext
from bizledger.config import settings
from bizledger.constants import OUTSTANDING_STATUSES, PayableType
from bizledger.models import Purchase
from bizledger.reports.aging import PartyAging, aged_document, group_by_party, summarize_aging, top_parties
from bizledger.reports.dates import DateRange

UNKNOWN_VENDOR = "Unknown Vendor"


def fetch_payables(db: Session, user_id: int, date_range: DateRange):
    return (
        db.query(Purchase)
        .options(selectinload(Purchase.payments))
        .filter(
            Purchase.user_id == user_id,
            Purchase.balance > 0,
            Purchase.purchase_date >= date_range.start_date,
            Purchase.purchase_date <= date_range.end_date,
            Purchase.status.in_(OUTSTANDING_STATUSES),
        )
        .order_by(Purchase.purchase_date, Purchase.id)
        .all()
    )


def _vendor_row(party: PartyAging) -> dict:
    return {
        "vendor_name": party.name,
        "vendor_email": party.email,
        "vendor_phone": party.phone,
        "total_outstanding": party.total_outstanding,
        "number_of_purchases": len(party.documents),
        "oldest_purchase_date": party.oldest_date,
        "days_outstanding": party.days_outstanding,
        "current": party.current,
        "days_30_to_60": party.days_30_to_60,
        "days_60_to_90": party.days_60_to_90,
        "over_90_days": party.over_90_days,
        "purchases": party.documents,
    }


def build_creditors_report(
    db: Session,
    auth: AuthContext,
    date_range: DateRange,
    range_name: str,
    today: Optional[date] = None,
) -> dict:
    today = today or date.today()
    purchases = fetch_payables(db, auth.user_id, date_range)

    rows = [
        (
            aged_document(
                purchase, PayableType.PURCHASE.value, purchase.purchase_number, purchase.purchase_date, today
            ),
            purchase.vendor_name,
            purchase.vendor_email,
            purchase.vendor_phone,
        )
        for purchase in purchases
    ]
    vendors = group_by_party(rows, UNKNOWN_VENDOR, today)
    totals = summarize_aging(vendors, [document for document, *_ in rows])
    top = vendors[0] if vendors else None

    return {
        "success": True,
        "meta": {
            "type": "creditors",
            "range": range_name,
            "start_date": date_range.start,
            "end_date": date_range.end,
            "total_records": len(vendors),
            "currency": settings.CURRENCY,
        },
        "summary": {
            "total_outstanding": totals["total_outstanding"],
            "total_vendors": len(vendors),
            "average_debt": totals["average_debt"],
            "current": totals["current"],
            "days_30_to_60": totals["days_30_to_60"],
            "days_60_to_90": totals["days_60_to_90"],
            "over_90_days": totals["over_90_days"],
            "by_status": totals["by_status"],
            "top_creditor": {"name": top.name, "amount": top.total_outstanding} if top else None,
        },
        "chart_data": {
            "aging": totals["aging_chart"],
            "top_creditors": top_parties(vendors),
        },
        "data": [_vendor_row(vendor) for vendor in vendors],
    }

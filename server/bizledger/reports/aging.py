"""Aging of outstanding balances, shared by the debtors and creditors reports.

Every unpaid or part-paid document is aged by the days since it was issued
and its balance lands in one of four buckets. Documents are grouped by the
party named on them; parties with no name share one "Unknown" group.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from bizledger.constants import OUTSTANDING_STATUSES
from bizledger.reports.aggregation import as_date, percentage_of
from bizledger.utils.money import ZERO, as_money, money_sum, quantize_money

AGING_BUCKETS = ("current", "days_30_to_60", "days_60_to_90", "over_90_days")
AGING_LABELS = {
    "current": "0-30 days",
    "days_30_to_60": "30-60 days",
    "days_60_to_90": "60-90 days",
    "over_90_days": "90+ days",
}
TOP_PARTIES = 10


def days_between(since, today: date) -> int:
    return abs((today - as_date(since)).days)


def aging_bucket(days: int) -> str:
    if days <= 30:
        return "current"
    if days <= 60:
        return "days_30_to_60"
    if days <= 90:
        return "days_60_to_90"
    return "over_90_days"


@dataclass
class AgedDocument:
    type: str
    id: int
    number: str
    date: date
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: str
    days_outstanding: int
    aging_category: str
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    payments: List[dict] = field(default_factory=list)


@dataclass
class PartyAging:
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    oldest_date: date
    total_outstanding: Decimal = ZERO
    current: Decimal = ZERO
    days_30_to_60: Decimal = ZERO
    days_60_to_90: Decimal = ZERO
    over_90_days: Decimal = ZERO
    days_outstanding: int = 0
    documents: List[AgedDocument] = field(default_factory=list)

    def add(self, document: AgedDocument, bucket: str) -> None:
        self.total_outstanding = quantize_money(self.total_outstanding + document.balance)
        setattr(self, bucket, quantize_money(getattr(self, bucket) + document.balance))
        if document.date < self.oldest_date:
            self.oldest_date = document.date
        self.documents.append(document)


def _brief_payments(payments) -> List[dict]:
    return [
        {
            "id": payment.id,
            "amount": as_money(payment.amount),
            "payment_date": payment.payment_date,
            "payment_method": payment.payment_method,
        }
        for payment in payments
    ]


def aged_document(entity, doc_type: str, number: str, issued, today: date, due_date=None) -> AgedDocument:
    days = days_between(issued, today)
    return AgedDocument(
        type=doc_type,
        id=entity.id,
        number=number,
        date=as_date(issued),
        due_date=due_date,
        title=entity.title,
        description=entity.description,
        total_amount=as_money(entity.total_amount),
        amount_paid=as_money(entity.amount_paid),
        balance=as_money(entity.balance),
        status=entity.status,
        days_outstanding=days,
        aging_category=AGING_LABELS[aging_bucket(days)],
        payments=_brief_payments(entity.payments),
    )


def group_by_party(rows: Iterable[tuple], unknown: str, today: date) -> List[PartyAging]:
    """Fold ``(document, name, email, phone)`` rows into parties, largest balance first."""
    parties: Dict[str, PartyAging] = {}
    for document, name, email, phone in rows:
        key = name or unknown
        party = parties.get(key)
        if party is None:
            party = parties[key] = PartyAging(name=name, email=email, phone=phone, oldest_date=document.date)
        party.add(document, aging_bucket(document.days_outstanding))

    grouped = list(parties.values())
    for party in grouped:
        party.days_outstanding = days_between(party.oldest_date, today)
    grouped.sort(key=lambda party: party.total_outstanding, reverse=True)
    return grouped


def summarize_aging(parties: List[PartyAging], documents: List[AgedDocument]) -> dict:
    total = money_sum(party.total_outstanding for party in parties)
    buckets = {bucket: money_sum(getattr(party, bucket) for party in parties) for bucket in AGING_BUCKETS}
    by_status = {
        status: money_sum(doc.balance for doc in documents if doc.status == status)
        for status in OUTSTANDING_STATUSES
    }
    average = quantize_money(total / len(parties)) if parties else ZERO
    aging_chart = [
        {"range": AGING_LABELS[bucket], "amount": amount, "percentage": percentage_of(amount, total)}
        for bucket, amount in buckets.items()
    ]
    return {
        "total_outstanding": total,
        "average_debt": average,
        "by_status": by_status,
        "aging_chart": aging_chart,
        **buckets,
    }


def top_parties(parties: List[PartyAging]) -> List[dict]:
    return [{"name": party.name, "amount": party.total_outstanding} for party in parties[:TOP_PARTIES]]

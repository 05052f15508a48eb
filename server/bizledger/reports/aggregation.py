"""Fold helpers shared by the cash-flow, income and expense reports.

Each report classifies its raw rows into line items; the functions here turn
those items into keyed totals, a month-by-month series and the summary
figures derived from them.
"""
from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from bizledger.reports.dates import DateRange, get_month_count, months_between
from bizledger.utils.money import ZERO, as_money, quantize_money

T = TypeVar("T")

Buckets = Dict[str, Decimal]


def add_to_bucket(buckets: Buckets, key: str, amount) -> None:
    buckets[key] = quantize_money(buckets.get(key, ZERO) + as_money(amount))


def bucket_sum(
    rows: Iterable[T],
    key: Callable[[T], Optional[str]],
    amount: Callable[[T], object],
) -> Buckets:
    """Sum ``amount(row)`` per ``key(row)``, keeping first-seen key order; rows keyed ``None`` are skipped."""
    buckets: Buckets = OrderedDict()
    for row in rows:
        bucket = key(row)
        if bucket is None:
            continue
        add_to_bucket(buckets, bucket, amount(row))
    return buckets


def top_key(buckets: Buckets, default: str) -> str:
    if not buckets:
        return default
    best = None
    for key, value in buckets.items():
        # On a tie the later key wins.
        if best is None or value >= buckets[best]:
            best = key
    return best


def percentage_of(value: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return ZERO
    return quantize_money(as_money(value) / total * 100)


def average_per_month(total: Decimal, date_range: DateRange) -> Decimal:
    return quantize_money(as_money(total) / get_month_count(date_range.start_date, date_range.end_date))


def as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def monthly_series(entries: Iterable[Tuple[date, object]], date_range: DateRange) -> List[dict]:
    """One row per calendar month of the range, zero-filled where nothing happened.

    Entries dated outside the range still get a row of their own month, so the
    series always adds up to the same total as the entries fed into it.
    """
    totals: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    for when, amount in entries:
        key = as_date(when).strftime("%Y-%m")
        totals[key] = totals.get(key, ZERO) + as_money(amount)
        counts[key] = counts.get(key, 0) + 1

    months = {month.strftime("%Y-%m"): month for month in months_between(date_range.start_date, date_range.end_date)}
    for key in totals:
        months.setdefault(key, datetime.strptime(key, "%Y-%m").date())

    series = []
    for key in sorted(months):
        month = months[key]
        series.append(
            {
                "month": key,
                "label": calendar.month_abbr[month.month],
                "amount": quantize_money(totals.get(key, ZERO)),
                "count": counts.get(key, 0),
            }
        )
    return series


def ledger_amount(payment, ordinary_category: str) -> Decimal:
    """A payment's amount seen from its parent; refunds booked in the opposite category count negative."""
    amount = as_money(payment.amount)
    return amount if payment.category == ordinary_category else -amount

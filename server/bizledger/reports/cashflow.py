"""Cash-flow statement built from the payment ledger, fixed assets and owner equity.

Every payment becomes exactly one line item. Sale and quotation refunds
are shown as negative inflows of the same payment row, purchase returns
and other-expense returns flip to inflows. Loan repayments are financing
activity, asset purchases and sales are investing activity.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from bizledger.auth import AuthContext
from bizledger.config import settings
from bizledger.constants import EquityType, FlowCategory, FlowType, LoanType, PaymentCategory
from bizledger.models import FixedAsset, OwnerEquity, Payment
from bizledger.reports.aggregation import average_per_month, bucket_sum, monthly_series
from bizledger.reports.dates import DateRange
from bizledger.utils.formatting import format_flow_category
from bizledger.utils.money import ZERO, as_money, quantize_money


@dataclass
class CashFlowItem:
    id: str
    date: date
    amount: Decimal
    flow_type: str
    flow_category: str
    sub_category: str
    description: str
    source_type: str
    source_id: Optional[int] = None
    payment_method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    source_number: Optional[str] = None
    customer_name: Optional[str] = None
    vendor_name: Optional[str] = None
    income_category: Optional[str] = None
    income_sub_category: Optional[str] = None
    expense_category: Optional[str] = None
    asset_category: Optional[str] = None
    capital_gain: Optional[Decimal] = None
    loan_number: Optional[str] = None
    shareholder_name: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Inflows count positive and outflows negative, regardless of the stored sign."""
        magnitude = abs(as_money(self.amount))
        return magnitude if self.flow_type == FlowType.INFLOW.value else -magnitude


def _has_refund(entity) -> bool:
    return as_money(entity.refund_amount) > 0


def _mark_quotation_refund(item: CashFlowItem, quotation) -> None:
    item.flow_type = FlowType.INFLOW.value
    item.amount = -abs(item.amount)
    item.sub_category = "REFUND"
    item.description = f"Refund - Quotation {quotation.quotation_number}"
    item.source_type = "QUOTATION_REFUND"


def _mark_purchase_return(item: CashFlowItem, purchase) -> None:
    item.flow_type = FlowType.INFLOW.value
    item.sub_category = "PURCHASE_RETURN"
    item.description = f"Return - Purchase {purchase.purchase_number}"
    item.source_type = "PURCHASE_RETURN"


def classify_payment(payment: Payment) -> CashFlowItem:
    item = CashFlowItem(
        id=str(payment.id),
        date=payment.payment_date,
        amount=as_money(payment.amount),
        flow_type=FlowType.INFLOW.value,
        flow_category=FlowCategory.OPERATING.value,
        sub_category="UNCLASSIFIED",
        description=payment.notes or "Unclassified payment",
        source_type="UNKNOWN",
        payment_method=payment.payment_method,
        reference=payment.reference,
        notes=payment.notes,
    )

    if payment.category == PaymentCategory.INCOME.value:
        if payment.sale_id and payment.sale:
            sale = payment.sale
            if _has_refund(sale):
                item.amount = -abs(item.amount)
                item.sub_category = "REFUND"
                item.description = f"Refund - Sale {sale.receipt_number}"
                item.source_type = "SALE_REFUND"
            else:
                item.sub_category = "CUSTOMER_PAYMENT"
                item.description = f"Payment from {sale.customer_name or 'Customer'} - Sale {sale.receipt_number}"
                item.source_type = "SALE"
            item.source_id = sale.id
            item.source_number = sale.receipt_number
            item.customer_name = sale.customer_name or ""
        elif payment.quotation_id and payment.quotation:
            quotation = payment.quotation
            if _has_refund(quotation):
                _mark_quotation_refund(item, quotation)
            else:
                item.sub_category = "CUSTOMER_PAYMENT"
                item.description = (
                    f"Payment from {quotation.customer_name or 'Customer'} - Quotation {quotation.quotation_number}"
                )
                item.source_type = "QUOTATION"
            item.source_id = quotation.id
            item.source_number = quotation.quotation_number
            item.customer_name = quotation.customer_name or ""
        elif payment.purchase_id and payment.purchase:
            # Money a supplier sent back for a purchase refund.
            purchase = payment.purchase
            _mark_purchase_return(item, purchase)
            item.source_id = purchase.id
            item.source_number = purchase.purchase_number
            item.vendor_name = purchase.vendor_name
        elif payment.income_id and payment.income:
            income = payment.income
            item.sub_category = "OTHER_INCOME"
            item.description = income.description or "Other Income"
            item.source_type = "OTHER_INCOME"
            item.source_id = income.id
            item.income_category = income.main_category
            item.income_sub_category = income.sub_category
        elif payment.loan_id and payment.loan and payment.loan.loan_type == LoanType.RECEIVABLE.value:
            loan = payment.loan
            item.flow_category = FlowCategory.FINANCING.value
            item.sub_category = "LOAN_REPAYMENT_RECEIVED"
            item.description = f"Loan repayment from {loan.party_name or 'Borrower'}"
            item.source_type = "LOAN_RECEIVABLE"
            item.source_id = loan.id
            item.loan_number = loan.loan_number
    elif payment.category == PaymentCategory.EXPENSE.value:
        item.flow_type = FlowType.OUTFLOW.value
        if payment.purchase_id and payment.purchase:
            purchase = payment.purchase
            if _has_refund(purchase):
                _mark_purchase_return(item, purchase)
            else:
                item.sub_category = "SUPPLIER_PAYMENT"
                item.description = f"Payment to {purchase.vendor_name or 'Vendor'} - Purchase {purchase.purchase_number}"
                item.source_type = "PURCHASE"
            item.source_id = purchase.id
            item.source_number = purchase.purchase_number
            item.vendor_name = purchase.vendor_name
        elif payment.quotation_id and payment.quotation:
            # Money paid back to a customer for a quotation refund.
            quotation = payment.quotation
            _mark_quotation_refund(item, quotation)
            item.source_id = quotation.id
            item.source_number = quotation.quotation_number
            item.customer_name = quotation.customer_name or ""
        elif payment.expenses_id and payment.expense:
            expense = payment.expense
            if expense.is_return:
                item.flow_type = FlowType.INFLOW.value
                item.sub_category = "EXPENSE_RETURN"
                item.description = f"Return - {expense.description or expense.category}"
                item.source_type = "EXPENSE_RETURN"
            else:
                item.sub_category = expense.category
                item.description = expense.description or expense.category
                item.source_type = "EXPENSE"
            item.source_id = expense.id
            item.expense_category = expense.category
            item.vendor_name = expense.vendor_name or ""
        elif payment.loan_id and payment.loan and payment.loan.loan_type == LoanType.PAYABLE.value:
            loan = payment.loan
            item.flow_category = FlowCategory.FINANCING.value
            item.sub_category = "LOAN_REPAYMENT_MADE"
            item.description = f"Loan repayment to {loan.party_name or 'Lender'}"
            item.source_type = "LOAN_PAYABLE"
            item.source_id = loan.id
            item.loan_number = loan.loan_number

    return item


def asset_purchase_item(asset: FixedAsset) -> CashFlowItem:
    return CashFlowItem(
        id=str(asset.id),
        date=asset.acquisition_date,
        amount=as_money(asset.acquisition_cost),
        flow_type=FlowType.OUTFLOW.value,
        flow_category=FlowCategory.INVESTING.value,
        sub_category="ASSET_PURCHASE",
        description=f"Purchase of {asset.name}",
        source_type="FIXED_ASSET_PURCHASE",
        source_id=asset.id,
        asset_category=asset.category,
        notes=asset.description,
    )


def asset_sale_item(asset: FixedAsset) -> CashFlowItem:
    return CashFlowItem(
        id=f"disposal-{asset.id}",
        date=asset.disposal_date,
        amount=as_money(asset.disposal_proceeds),
        flow_type=FlowType.INFLOW.value,
        flow_category=FlowCategory.INVESTING.value,
        sub_category="ASSET_SALE",
        description=f"Sale of {asset.name}",
        source_type="FIXED_ASSET_SALE",
        source_id=asset.id,
        asset_category=asset.category,
        capital_gain=quantize_money(asset.capital_gain),
        notes=asset.description,
    )


def equity_item(equity: OwnerEquity) -> CashFlowItem:
    inflow = equity.type == EquityType.CAPITAL_INJECTION.value
    return CashFlowItem(
        id=str(equity.id),
        date=equity.date,
        amount=as_money(equity.amount),
        flow_type=(FlowType.INFLOW if inflow else FlowType.OUTFLOW).value,
        flow_category=FlowCategory.FINANCING.value,
        sub_category=equity.type,
        description=equity.description or equity.type.replace("_", " "),
        source_type=equity.type,
        source_id=equity.id,
        shareholder_name=equity.shareholder_name,
        reference=equity.reference,
        notes=equity.notes,
    )


def collect_cash_flow_items(
    db: Session,
    user_id: int,
    date_range: DateRange,
    includes_owner_equity: bool,
) -> List[CashFlowItem]:
    start, end = date_range.start_date, date_range.end_date

    payments = (
        db.query(Payment)
        .options(
            selectinload(Payment.sale),
            selectinload(Payment.quotation),
            selectinload(Payment.purchase),
            selectinload(Payment.income),
            selectinload(Payment.expense),
            selectinload(Payment.loan),
        )
        .filter(Payment.user_id == user_id, Payment.payment_date >= start, Payment.payment_date <= end)
        .order_by(Payment.payment_date.desc())
        .all()
    )
    acquired = (
        db.query(FixedAsset)
        .filter(
            FixedAsset.user_id == user_id,
            FixedAsset.acquisition_date >= start,
            FixedAsset.acquisition_date <= end,
        )
        .all()
    )
    disposed = (
        db.query(FixedAsset)
        .filter(
            FixedAsset.user_id == user_id,
            FixedAsset.disposal_date.isnot(None),
            FixedAsset.disposal_date >= start,
            FixedAsset.disposal_date <= end,
        )
        .all()
    )

    items = [classify_payment(payment) for payment in payments]
    items.extend(asset_purchase_item(asset) for asset in acquired)
    items.extend(asset_sale_item(asset) for asset in disposed if asset.disposal_proceeds)

    if includes_owner_equity:
        equity_rows = (
            db.query(OwnerEquity)
            .filter(OwnerEquity.user_id == user_id, OwnerEquity.date >= start, OwnerEquity.date <= end)
            .all()
        )
        items.extend(equity_item(equity) for equity in equity_rows)

    items.sort(key=lambda item: item.date, reverse=True)
    return items


def summarize_cash_flow(items: List[CashFlowItem], date_range: DateRange) -> dict:
    grid: Dict[FlowCategory, Dict[FlowType, Decimal]] = {
        category: {FlowType.INFLOW: ZERO, FlowType.OUTFLOW: ZERO} for category in FlowCategory
    }
    for item in items:
        cell = grid[FlowCategory(item.flow_category)]
        flow = FlowType(item.flow_type)
        cell[flow] += abs(as_money(item.amount))

    sections = {}
    for category in FlowCategory:
        inflows = quantize_money(grid[category][FlowType.INFLOW])
        outflows = quantize_money(grid[category][FlowType.OUTFLOW])
        sections[category] = {"inflows": inflows, "outflows": outflows, "net": quantize_money(inflows - outflows)}

    net_cash_flow = quantize_money(sum((section["net"] for section in sections.values()), ZERO))
    by_payment_method = bucket_sum(
        (item for item in items if item.flow_type == FlowType.INFLOW.value),
        key=lambda item: item.payment_method,
        amount=lambda item: abs(as_money(item.amount)),
    )

    return {
        "operating": sections[FlowCategory.OPERATING],
        "investing": sections[FlowCategory.INVESTING],
        "financing": sections[FlowCategory.FINANCING],
        "total_inflows": quantize_money(sum((s["inflows"] for s in sections.values()), ZERO)),
        "total_outflows": quantize_money(sum((s["outflows"] for s in sections.values()), ZERO)),
        "net_cash_flow": net_cash_flow,
        "average_per_month": average_per_month(net_cash_flow, date_range),
        "by_payment_method": dict(by_payment_method),
    }


def build_cash_flow_report(
    db: Session,
    auth: AuthContext,
    date_range: DateRange,
    range_name: str,
) -> dict:
    includes_owner_equity = auth.includes_owner_equity
    items = collect_cash_flow_items(db, auth.user_id, date_range, includes_owner_equity)
    summary = summarize_cash_flow(items, date_range)

    by_category = [
        {
            "name": format_flow_category(category.value),
            "inflow": summary[category.value.lower()]["inflows"],
            "outflow": summary[category.value.lower()]["outflows"],
            "net": summary[category.value.lower()]["net"],
        }
        for category in FlowCategory
    ]

    return {
        "success": True,
        "meta": {
            "type": "cashflow",
            "range": range_name,
            "start_date": date_range.start,
            "end_date": date_range.end,
            "total_records": len(items),
            "registration_type": auth.registration_type,
            "includes_owner_equity": includes_owner_equity,
            "currency": settings.CURRENCY,
        },
        "summary": summary,
        "chart_data": {
            "monthly": monthly_series(((item.date, item.signed_amount) for item in items), date_range),
            "by_category": by_category,
        },
        "data": items,
    }

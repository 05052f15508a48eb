from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import Field

from bizledger.schemas import CamelModel, MoneyValue


class MonthlyPoint(CamelModel):
    month: str
    label: str
    amount: MoneyValue
    count: int


class ReportMeta(CamelModel):
    type: str
    range: str
    start_date: datetime
    end_date: datetime
    total_records: int
    currency: str


class CashFlowMeta(ReportMeta):
    registration_type: Optional[str] = None
    includes_owner_equity: bool


class IncomeMeta(ReportMeta):
    sale_records: int
    quotation_records: int
    other_income_records: int


class ExpenseMeta(ReportMeta):
    purchase_records: int
    expense_records: int


class FlowTotals(CamelModel):
    inflows: MoneyValue
    outflows: MoneyValue
    net: MoneyValue


class CashFlowSummary(CamelModel):
    operating: FlowTotals
    investing: FlowTotals
    financing: FlowTotals
    total_inflows: MoneyValue
    total_outflows: MoneyValue
    net_cash_flow: MoneyValue
    average_per_month: MoneyValue
    by_payment_method: Dict[str, MoneyValue]


class FlowCategoryRow(CamelModel):
    name: str
    inflow: MoneyValue
    outflow: MoneyValue
    net: MoneyValue


class CashFlowChartData(CamelModel):
    monthly: List[MonthlyPoint]
    by_category: List[FlowCategoryRow]


class CashFlowLine(CamelModel):
    id: str
    date: date
    amount: MoneyValue
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
    capital_gain: Optional[MoneyValue] = None
    loan_number: Optional[str] = None
    shareholder_name: Optional[str] = None


class CashFlowReport(CamelModel):
    success: bool = True
    meta: CashFlowMeta
    summary: CashFlowSummary
    chart_data: CashFlowChartData
    data: List[CashFlowLine]


class SourceLine(CamelModel):
    """Fields shared by income and expense report rows."""

    id: int
    date: date
    amount: MoneyValue
    payment_method: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    source_type: str
    source_id: Optional[int] = None
    source_number: Optional[str] = None
    source_title: Optional[str] = None
    source_description: Optional[str] = None
    source_total_amount: Optional[MoneyValue] = None
    source_amount_paid: Optional[MoneyValue] = None
    source_balance: Optional[MoneyValue] = None
    source_status: Optional[str] = None
    refund_amount: Optional[MoneyValue] = None
    refund_date: Optional[datetime] = None
    refund_reason: Optional[str] = None
    includes_vat: bool = False
    vat_amount: Optional[MoneyValue] = None


class IncomeLine(SourceLine):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    taxable_percentage: Optional[MoneyValue] = None
    income_main_category: Optional[str] = None
    income_sub_category: Optional[str] = None
    custom_sub_category: Optional[str] = None
    has_payment: bool


class ExpenseLine(SourceLine):
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    category: str
    sub_category: Optional[str] = None
    receipt: Optional[str] = None
    is_deductible: bool
    deduction_percentage: MoneyValue
    is_return: bool = False
    return_date: Optional[date] = None
    return_reason: Optional[str] = None
    has_payment: Optional[bool] = None


class IncomeSummary(CamelModel):
    gross_revenue: MoneyValue
    total_refunds: MoneyValue
    refunds_by_source: Dict[str, MoneyValue]
    net_income: MoneyValue
    total_received: MoneyValue
    outstanding_balance: MoneyValue
    average_per_month: MoneyValue
    top_source: str
    by_source: Dict[str, MoneyValue]
    by_payment_method: Dict[str, MoneyValue]


class SourceSlice(CamelModel):
    name: str
    value: MoneyValue
    percentage: MoneyValue
    refund_amount: MoneyValue


class IncomeChartData(CamelModel):
    monthly: List[MonthlyPoint]
    by_source: List[SourceSlice]


class IncomeReport(CamelModel):
    success: bool = True
    meta: IncomeMeta
    summary: IncomeSummary
    chart_data: IncomeChartData
    data: List[IncomeLine]


class ExpenseSummary(CamelModel):
    gross_expenses: MoneyValue
    total_purchase_refunds: MoneyValue
    net_expenses: MoneyValue
    total_paid: MoneyValue
    balance: MoneyValue
    average_per_month: MoneyValue
    top_category: str
    total_deductible: MoneyValue
    total_non_deductible: MoneyValue
    deductible_percentage: MoneyValue
    by_category: Dict[str, MoneyValue]
    by_payment_method: Dict[str, MoneyValue]


class CategorySlice(CamelModel):
    name: str
    value: MoneyValue
    percentage: MoneyValue
    deductible: bool
    refund_amount: MoneyValue


class ExpenseChartData(CamelModel):
    monthly: List[MonthlyPoint]
    by_category: List[CategorySlice]


class ExpenseReport(CamelModel):
    success: bool = True
    meta: ExpenseMeta
    summary: ExpenseSummary
    chart_data: ExpenseChartData
    data: List[ExpenseLine]


class AgingBuckets(CamelModel):
    current: MoneyValue
    days_30_to_60: MoneyValue = Field(alias="days30to60")
    days_60_to_90: MoneyValue = Field(alias="days60to90")
    over_90_days: MoneyValue = Field(alias="over90Days")


class PaymentBrief(CamelModel):
    id: int
    amount: MoneyValue
    payment_date: date
    payment_method: str


class AgedDocument(CamelModel):
    type: str
    id: int
    number: str
    date: date
    due_date: Optional[date] = None
    title: Optional[str] = None
    description: Optional[str] = None
    total_amount: MoneyValue
    amount_paid: MoneyValue
    balance: MoneyValue
    status: str
    days_outstanding: int
    aging_category: str
    payments: List[PaymentBrief] = []


class PartyAmount(CamelModel):
    name: Optional[str] = None
    amount: MoneyValue


class AgingSlice(CamelModel):
    range: str
    amount: MoneyValue
    percentage: MoneyValue


class AgingSummary(AgingBuckets):
    total_outstanding: MoneyValue
    average_debt: MoneyValue
    by_status: Dict[str, MoneyValue]


class DebtorRow(AgingBuckets):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    total_outstanding: MoneyValue
    number_of_invoices: int
    oldest_invoice_date: date
    days_outstanding: int
    invoices: List[AgedDocument]


class DebtorsSummary(AgingSummary):
    total_customers: int
    top_debtor: Optional[PartyAmount] = None


class DebtorsChartData(CamelModel):
    aging: List[AgingSlice]
    top_debtors: List[PartyAmount]


class DebtorsReport(CamelModel):
    success: bool = True
    meta: ReportMeta
    summary: DebtorsSummary
    chart_data: DebtorsChartData
    data: List[DebtorRow]


class CreditorRow(AgingBuckets):
    vendor_name: Optional[str] = None
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    total_outstanding: MoneyValue
    number_of_purchases: int
    oldest_purchase_date: date
    days_outstanding: int
    purchases: List[AgedDocument]


class CreditorsSummary(AgingSummary):
    total_vendors: int
    top_creditor: Optional[PartyAmount] = None


class CreditorsChartData(CamelModel):
    aging: List[AgingSlice]
    top_creditors: List[PartyAmount]


class CreditorsReport(CamelModel):
    success: bool = True
    meta: ReportMeta
    summary: CreditorsSummary
    chart_data: CreditorsChartData
    data: List[CreditorRow]

from enum import Enum


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class QuotationStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


class PaymentCategory(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PayableType(str, Enum):
    SALE = "SALE"
    QUOTATION = "QUOTATION"
    PURCHASE = "PURCHASE"
    LOAN = "LOAN"
    OTHER_INCOME = "OTHER_INCOME"
    OTHER_EXPENSES = "OTHER_EXPENSES"


class LoanType(str, Enum):
    RECEIVABLE = "RECEIVABLE"
    PAYABLE = "PAYABLE"


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"
    DEFAULTED = "DEFAULTED"
    WRITTEN_OFF = "WRITTEN_OFF"


class EquityType(str, Enum):
    CAPITAL_INJECTION = "CAPITAL_INJECTION"
    DRAWINGS = "DRAWINGS"
    DIVIDEND = "DIVIDEND"
    SHARE_BUYBACK = "SHARE_BUYBACK"


class FlowType(str, Enum):
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


class FlowCategory(str, Enum):
    OPERATING = "OPERATING"
    INVESTING = "INVESTING"
    FINANCING = "FINANCING"


PAYMENT_STATUSES: list[str] = [status.value for status in PaymentStatus]
QUOTATION_STATUSES: list[str] = [status.value for status in QuotationStatus]
REFUND_STATUSES: frozenset[str] = frozenset({PaymentStatus.REFUNDED.value, PaymentStatus.PARTIALLY_REFUNDED.value})
INCOME_REPORT_STATUSES: tuple[str, ...] = (
    PaymentStatus.UNPAID.value,
    PaymentStatus.PARTIALLY_PAID.value,
    PaymentStatus.PAID.value,
    PaymentStatus.PARTIALLY_REFUNDED.value,
)
NON_INCOME_QUOTATION_STATUSES: tuple[str, ...] = (
    QuotationStatus.DRAFT.value,
    QuotationStatus.SENT.value,
    QuotationStatus.EXPIRED.value,
    QuotationStatus.CANCELLED.value,
)
OUTSTANDING_STATUSES: tuple[str, ...] = (PaymentStatus.UNPAID.value, PaymentStatus.PARTIALLY_PAID.value)

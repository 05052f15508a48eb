from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .constants import (
    EquityType,
    LoanStatus,
    LoanType,
    PayableType,
    PaymentCategory,
    PaymentMethod,
    PAYMENT_STATUSES,
    QUOTATION_STATUSES,
)
from .db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    registration_type = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PayableColumns:
    total_amount = Column(Numeric(14, 2), nullable=False)
    amount_paid = Column(Numeric(14, 2), nullable=False, default=0)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    refund_amount = Column(Numeric(14, 2), nullable=True)
    refund_date = Column(DateTime, nullable=True)
    refund_reason = Column(Text, nullable=True)
    include_vat = Column(Boolean, nullable=False, default=False)
    vat_amount = Column(Numeric(14, 2), nullable=True)
    title = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Sale(PayableColumns, Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receipt_number = Column(String(30), nullable=False)
    sale_date = Column(Date, nullable=False)
    status = Column(Enum(*PAYMENT_STATUSES, name="sale_status"), nullable=False, default="UNPAID")
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    payments = relationship("Payment", back_populates="sale", order_by="Payment.payment_date.desc()")

    __table_args__ = (UniqueConstraint("user_id", "receipt_number", name="uq_sales_user_number"),)

    @property
    def number(self):
        return self.receipt_number


class Quotation(PayableColumns, Base):
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    quotation_number = Column(String(30), nullable=False)
    issue_date = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=True)
    status = Column(Enum(*QUOTATION_STATUSES, name="quotation_status"), nullable=False, default="DRAFT")
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    payments = relationship("Payment", back_populates="quotation", order_by="Payment.payment_date.desc()")

    __table_args__ = (UniqueConstraint("user_id", "quotation_number", name="uq_quotations_user_number"),)

    @property
    def number(self):
        return self.quotation_number


class Purchase(PayableColumns, Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    purchase_number = Column(String(30), nullable=False)
    purchase_date = Column(Date, nullable=False)
    status = Column(Enum(*PAYMENT_STATUSES, name="purchase_status"), nullable=False, default="UNPAID")
    vendor_name = Column(String(200), nullable=True)
    vendor_email = Column(String(255), nullable=True)
    vendor_phone = Column(String(50), nullable=True)

    payments = relationship("Payment", back_populates="purchase", order_by="Payment.payment_date.desc()")

    __table_args__ = (UniqueConstraint("user_id", "purchase_number", name="uq_purchases_user_number"),)

    @property
    def number(self):
        return self.purchase_number


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    loan_number = Column(String(30), nullable=False)
    loan_type = Column(Enum(*[t.value for t in LoanType], name="loan_type"), nullable=False)
    party_name = Column(String(200), nullable=True)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False, default=0)
    processing_fee = Column(Numeric(14, 2), nullable=False, default=0)
    management_fee = Column(Numeric(14, 2), nullable=False, default=0)
    insurance_fee = Column(Numeric(14, 2), nullable=False, default=0)
    other_fees = Column(Numeric(14, 2), nullable=False, default=0)
    payment_frequency = Column(String(20), nullable=False, default="MONTHLY")
    term = Column(Integer, nullable=False, default=1)
    term_unit = Column(String(10), nullable=False, default="MONTHS")
    start_date = Column(Date, nullable=False)
    status = Column(Enum(*[s.value for s in LoanStatus], name="loan_status"), nullable=False, default="ACTIVE")
    total_paid = Column(Numeric(14, 2), nullable=False, default=0)
    total_interest_paid = Column(Numeric(14, 2), nullable=False, default=0)
    current_balance = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    payments = relationship("Payment", back_populates="loan", order_by="Payment.payment_date.desc()")

    @property
    def total_fees(self):
        return (
            Decimal(self.processing_fee or 0)
            + Decimal(self.management_fee or 0)
            + Decimal(self.insurance_fee or 0)
            + Decimal(self.other_fees or 0)
        )


class IncomeRecord(Base):
    __tablename__ = "income_records"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    main_category = Column(String(50), nullable=False)
    sub_category = Column(String(50), nullable=True)
    custom_sub_category = Column(String(100), nullable=True)
    gross_amount = Column(Numeric(14, 2), nullable=False)
    taxable_percentage = Column(Numeric(5, 2), nullable=False, default=100)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    linked_loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    payments = relationship("Payment", back_populates="income", order_by="Payment.payment_date.desc()")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String(50), nullable=False)
    sub_category = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    vendor_name = Column(String(200), nullable=True)
    date = Column(Date, nullable=False)
    is_deductible = Column(Boolean, nullable=False, default=True)
    deduction_percentage = Column(Numeric(5, 2), nullable=False, default=100)
    is_return = Column(Boolean, nullable=False, default=False)
    return_date = Column(Date, nullable=True)
    return_reason = Column(Text, nullable=True)
    receipt = Column(String(500), nullable=True)
    linked_loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    payments = relationship("Payment", back_populates="expense", order_by="Payment.payment_date.desc()")


class FixedAsset(Base):
    __tablename__ = "fixed_assets"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    category = Column(String(50), nullable=False, default="OTHER")
    description = Column(Text, nullable=True)
    acquisition_date = Column(Date, nullable=False)
    acquisition_cost = Column(Numeric(14, 2), nullable=False)
    disposal_date = Column(Date, nullable=True)
    disposal_proceeds = Column(Numeric(14, 2), nullable=True)
    capital_gain = Column(Numeric(14, 2), nullable=True)


class OwnerEquity(Base):
    __tablename__ = "owner_equity"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(*[t.value for t in EquityType], name="equity_type"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    shareholder_name = Column(String(200), nullable=True)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)


@dataclass(frozen=True)
class PaymentParent:
    kind: PayableType
    id: int


PARENT_COLUMNS: dict[PayableType, str] = {
    PayableType.SALE: "sale_id",
    PayableType.QUOTATION: "quotation_id",
    PayableType.PURCHASE: "purchase_id",
    PayableType.LOAN: "loan_id",
    PayableType.OTHER_INCOME: "income_id",
    PayableType.OTHER_EXPENSES: "expenses_id",
}

_ONE_PARENT_SQL = " + ".join(
    f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in PARENT_COLUMNS.values()
)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(Enum(*[m.value for m in PaymentMethod], name="payment_method"), nullable=False)
    payment_date = Column(Date, nullable=False)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    category = Column(Enum(*[c.value for c in PaymentCategory], name="payment_category"), nullable=False)
    payable_type = Column(Enum(*[p.value for p in PayableType], name="payable_type"), nullable=False)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id"), nullable=True, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True, index=True)
    income_id = Column(Integer, ForeignKey("income_records.id"), nullable=True, index=True)
    expenses_id = Column(Integer, ForeignKey("expenses.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    sale = relationship("Sale", back_populates="payments")
    quotation = relationship("Quotation", back_populates="payments")
    purchase = relationship("Purchase", back_populates="payments")
    loan = relationship("Loan", back_populates="payments")
    income = relationship("IncomeRecord", back_populates="payments")
    expense = relationship("Expense", back_populates="payments")

    __table_args__ = (
        CheckConstraint(f"{_ONE_PARENT_SQL} = 1", name="ck_payment_single_parent"),
        Index("ix_payments_user_date", "user_id", "payment_date"),
    )

    @classmethod
    def for_parent(cls, parent: PaymentParent, **fields) -> "Payment":
        payment = cls(payable_type=parent.kind.value, **fields)
        setattr(payment, PARENT_COLUMNS[parent.kind], parent.id)
        return payment

    @property
    def parent(self) -> PaymentParent | None:
        for kind, column in PARENT_COLUMNS.items():
            parent_id = getattr(self, column)
            if parent_id is not None:
                return PaymentParent(kind=kind, id=parent_id)
        return None

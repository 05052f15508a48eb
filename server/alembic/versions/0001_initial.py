"""initial ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_STATUSES = ("UNPAID", "PARTIALLY_PAID", "PAID", "REFUNDED", "PARTIALLY_REFUNDED")
QUOTATION_STATUSES = (
    "DRAFT",
    "SENT",
    "UNPAID",
    "PARTIALLY_PAID",
    "PAID",
    "EXPIRED",
    "CANCELLED",
    "REFUNDED",
    "PARTIALLY_REFUNDED",
)
PAYMENT_METHODS = ("CASH", "BANK_TRANSFER", "CARD", "MOBILE_MONEY", "CHEQUE", "OTHER")
PAYABLE_TYPES = ("SALE", "QUOTATION", "PURCHASE", "LOAN", "OTHER_INCOME", "OTHER_EXPENSES")
PARENT_COLUMNS = ("sale_id", "quotation_id", "purchase_id", "loan_id", "income_id", "expenses_id")


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, **kwargs)


def _payable_columns() -> list:
    return [
        _money("total_amount"),
        _money("amount_paid", server_default="0"),
        _money("balance", server_default="0"),
        _money("refund_amount", nullable=True),
        sa.Column("refund_date", sa.DateTime(), nullable=True),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("include_vat", sa.Boolean(), nullable=False, server_default=sa.false()),
        _money("vat_amount", nullable=True),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("registration_type", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("receipt_number", sa.String(length=30), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum(*PAYMENT_STATUSES, name="sale_status"), nullable=False),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        *_payable_columns(),
        sa.UniqueConstraint("user_id", "receipt_number", name="uq_sales_user_number"),
    )
    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("quotation_number", sa.String(length=30), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("status", sa.Enum(*QUOTATION_STATUSES, name="quotation_status"), nullable=False),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        *_payable_columns(),
        sa.UniqueConstraint("user_id", "quotation_number", name="uq_quotations_user_number"),
    )
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("purchase_number", sa.String(length=30), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum(*PAYMENT_STATUSES, name="purchase_status"), nullable=False),
        sa.Column("vendor_name", sa.String(length=200), nullable=True),
        sa.Column("vendor_email", sa.String(length=255), nullable=True),
        sa.Column("vendor_phone", sa.String(length=50), nullable=True),
        *_payable_columns(),
        sa.UniqueConstraint("user_id", "purchase_number", name="uq_purchases_user_number"),
    )
    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("loan_number", sa.String(length=30), nullable=False),
        sa.Column("loan_type", sa.Enum("RECEIVABLE", "PAYABLE", name="loan_type"), nullable=False),
        sa.Column("party_name", sa.String(length=200), nullable=True),
        _money("principal_amount"),
        sa.Column("interest_rate", sa.Numeric(7, 4), nullable=False, server_default="0"),
        _money("processing_fee", server_default="0"),
        _money("management_fee", server_default="0"),
        _money("insurance_fee", server_default="0"),
        _money("other_fees", server_default="0"),
        sa.Column("payment_frequency", sa.String(length=20), nullable=False),
        sa.Column("term", sa.Integer(), nullable=False),
        sa.Column("term_unit", sa.String(length=10), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "PAID_OFF", "DEFAULTED", "WRITTEN_OFF", name="loan_status"),
            nullable=False,
        ),
        _money("total_paid", server_default="0"),
        _money("total_interest_paid", server_default="0"),
        _money("current_balance", server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "income_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("main_category", sa.String(length=50), nullable=False),
        sa.Column("sub_category", sa.String(length=50), nullable=True),
        sa.Column("custom_sub_category", sa.String(length=100), nullable=True),
        _money("gross_amount"),
        sa.Column("taxable_percentage", sa.Numeric(5, 2), nullable=False, server_default="100"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("linked_loan_id", sa.Integer(), sa.ForeignKey("loans.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("sub_category", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _money("amount"),
        sa.Column("vendor_name", sa.String(length=200), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("is_deductible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deduction_percentage", sa.Numeric(5, 2), nullable=False, server_default="100"),
        sa.Column("is_return", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("return_date", sa.Date(), nullable=True),
        sa.Column("return_reason", sa.Text(), nullable=True),
        sa.Column("receipt", sa.String(length=500), nullable=True),
        sa.Column("linked_loan_id", sa.Integer(), sa.ForeignKey("loans.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "fixed_assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("acquisition_date", sa.Date(), nullable=False),
        _money("acquisition_cost"),
        sa.Column("disposal_date", sa.Date(), nullable=True),
        _money("disposal_proceeds", nullable=True),
        _money("capital_gain", nullable=True),
    )
    op.create_table(
        "owner_equity",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column(
            "type",
            sa.Enum("CAPITAL_INJECTION", "DRAWINGS", "DIVIDEND", "SHARE_BUYBACK", name="equity_type"),
            nullable=False,
        ),
        _money("amount"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("shareholder_name", sa.String(length=200), nullable=True),
        sa.Column("reference", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    single_parent = " + ".join(f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in PARENT_COLUMNS)
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        _money("amount"),
        sa.Column("payment_method", sa.Enum(*PAYMENT_METHODS, name="payment_method"), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("category", sa.Enum("INCOME", "EXPENSE", name="payment_category"), nullable=False),
        sa.Column("payable_type", sa.Enum(*PAYABLE_TYPES, name="payable_type"), nullable=False),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=True, index=True),
        sa.Column("quotation_id", sa.Integer(), sa.ForeignKey("quotations.id"), nullable=True, index=True),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id"), nullable=True, index=True),
        sa.Column("loan_id", sa.Integer(), sa.ForeignKey("loans.id"), nullable=True, index=True),
        sa.Column("income_id", sa.Integer(), sa.ForeignKey("income_records.id"), nullable=True, index=True),
        sa.Column("expenses_id", sa.Integer(), sa.ForeignKey("expenses.id"), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(f"{single_parent} = 1", name="ck_payment_single_parent"),
    )
    op.create_index("ix_payments_user_date", "payments", ["user_id", "payment_date"])


def downgrade() -> None:
    op.drop_index("ix_payments_user_date", table_name="payments")
    for table in (
        "payments",
        "owner_equity",
        "fixed_assets",
        "expenses",
        "income_records",
        "loans",
        "purchases",
        "quotations",
        "sales",
        "users",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "payment_method",
            "payment_category",
            "payable_type",
            "equity_type",
            "loan_status",
            "loan_type",
            "purchase_status",
            "quotation_status",
            "sale_status",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)

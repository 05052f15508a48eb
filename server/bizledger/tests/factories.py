from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bizledger.constants import PayableType
from bizledger.db import Base, get_db
from bizledger.main import app
from bizledger.models import (
    Expense,
    FixedAsset,
    IncomeRecord,
    Loan,
    OwnerEquity,
    Payment,
    PaymentParent,
    Purchase,
    Quotation,
    Sale,
    User,
)


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def build_client(raise_server_exceptions=True):
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, raise_server_exceptions=raise_server_exceptions), TestingSessionLocal


def create_user(db, user_id=1, registration_type=None):
    user = User(id=user_id, email=f"user{user_id}@bizledger.local", full_name="Owner", registration_type=registration_type)
    db.add(user)
    db.commit()
    return user


def _payable_fields(total, amount_paid, refund_amount):
    total = Decimal(str(total))
    amount_paid = Decimal(str(amount_paid))
    return dict(
        total_amount=total,
        amount_paid=amount_paid,
        balance=total - amount_paid,
        refund_amount=Decimal(str(refund_amount)) if refund_amount is not None else None,
    )


def create_sale(db, total, user_id=1, status="UNPAID", amount_paid=0, refund_amount=None, sale_date=date(2025, 3, 1), customer_name="Ada Stores"):
    sale = Sale(
        user_id=user_id,
        receipt_number=f"SAL-{db.query(Sale).filter(Sale.user_id == user_id).count() + 1:06d}",
        sale_date=sale_date,
        status=status,
        customer_name=customer_name,
        **_payable_fields(total, amount_paid, refund_amount),
    )
    db.add(sale)
    db.commit()
    return sale


def create_quotation(db, total, user_id=1, status="SENT", amount_paid=0, refund_amount=None, issue_date=date(2025, 3, 1)):
    quotation = Quotation(
        user_id=user_id,
        quotation_number=f"QUO-{db.query(Quotation).filter(Quotation.user_id == user_id).count() + 1:06d}",
        issue_date=issue_date,
        status=status,
        customer_name="Bola Ventures",
        **_payable_fields(total, amount_paid, refund_amount),
    )
    db.add(quotation)
    db.commit()
    return quotation


def create_purchase(db, total, user_id=1, status="UNPAID", amount_paid=0, refund_amount=None, purchase_date=date(2025, 3, 1)):
    purchase = Purchase(
        user_id=user_id,
        purchase_number=f"PUR-{db.query(Purchase).filter(Purchase.user_id == user_id).count() + 1:06d}",
        purchase_date=purchase_date,
        status=status,
        vendor_name="Kano Supplies",
        **_payable_fields(total, amount_paid, refund_amount),
    )
    db.add(purchase)
    db.commit()
    return purchase


def create_loan(db, principal, loan_type="RECEIVABLE", user_id=1, status="ACTIVE", current_balance=None):
    principal = Decimal(str(principal))
    loan = Loan(
        user_id=user_id,
        loan_number=f"LN-{db.query(Loan).count() + 1:06d}",
        loan_type=loan_type,
        party_name="Chidi Okafor",
        principal_amount=principal,
        interest_rate=Decimal("10"),
        start_date=date(2025, 1, 1),
        status=status,
        current_balance=principal if current_balance is None else Decimal(str(current_balance)),
    )
    db.add(loan)
    db.commit()
    return loan


def create_income(db, amount, user_id=1, on=date(2025, 3, 5), method="CASH"):
    income = IncomeRecord(
        user_id=user_id,
        main_category="BUSINESS_INCOME",
        sub_category="CONSULTING",
        gross_amount=Decimal(str(amount)),
        description="Consulting fee",
        date=on,
    )
    db.add(income)
    db.commit()
    add_payment(db, PayableType.OTHER_INCOME, income.id, amount, on=on, method=method, category="INCOME", user_id=user_id)
    return income


def create_expense(db, amount, category="RENT_RATES", user_id=1, on=date(2025, 3, 6), is_return=False, is_deductible=True, deduction_percentage=100, method="BANK_TRANSFER"):
    expense = Expense(
        user_id=user_id,
        category=category,
        amount=Decimal(str(amount)),
        description=f"{category} expense",
        vendor_name="Landlord",
        date=on,
        is_deductible=is_deductible,
        deduction_percentage=Decimal(str(deduction_percentage)),
        is_return=is_return,
    )
    db.add(expense)
    db.commit()
    add_payment(db, PayableType.OTHER_EXPENSES, expense.id, amount, on=on, method=method, category="EXPENSE", user_id=user_id)
    return expense


def create_asset(db, name, cost, acquired, user_id=1, disposal_date=None, proceeds=None, capital_gain=None):
    asset = FixedAsset(
        user_id=user_id,
        name=name,
        category="EQUIPMENT",
        acquisition_date=acquired,
        acquisition_cost=Decimal(str(cost)),
        disposal_date=disposal_date,
        disposal_proceeds=Decimal(str(proceeds)) if proceeds is not None else None,
        capital_gain=Decimal(str(capital_gain)) if capital_gain is not None else None,
    )
    db.add(asset)
    db.commit()
    return asset


def create_equity(db, equity_type, amount, on, user_id=1):
    equity = OwnerEquity(user_id=user_id, type=equity_type, amount=Decimal(str(amount)), date=on)
    db.add(equity)
    db.commit()
    return equity


def add_payment(db, kind, parent_id, amount, on=date(2025, 3, 1), method="CASH", category=None, user_id=1):
    if category is None:
        category = "EXPENSE" if kind in (PayableType.PURCHASE, PayableType.OTHER_EXPENSES) else "INCOME"
    payment = Payment.for_parent(
        PaymentParent(kind=kind, id=parent_id),
        user_id=user_id,
        amount=Decimal(str(amount)),
        payment_method=method,
        payment_date=on,
        category=category,
    )
    db.add(payment)
    db.commit()
    return payment

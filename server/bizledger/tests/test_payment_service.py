from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

import bizledger.db as db_module
from bizledger.constants import PayableType
from bizledger.db import transaction_scope
from bizledger.errors import DatabaseUnavailable, LedgerValidationError, NotFoundError, TransactionTimeout
from bizledger.models import Payment, Purchase, Quotation, Sale
from bizledger.payments.schemas import PaymentCreate, PaymentUpdate, RefundCreate
from bizledger.payments.service import (
    create_payable,
    delete_payment,
    record_payment,
    refund_payable,
    update_payment,
)

from factories import create_purchase, create_quotation, create_sale, create_session, create_user


def _pay(amount, method="CASH", on=date(2025, 3, 10)):
    return PaymentCreate(amount_paid=Decimal(str(amount)), payment_method=method, payment_date=on)


def _edit(amount, method="CASH", on=date(2025, 3, 10)):
    return PaymentUpdate(amount_paid=Decimal(str(amount)), payment_method=method, payment_date=on)


def _setup_sale(total=10000):
    db = create_session()
    create_user(db)
    sale = create_sale(db, total)
    return db, sale


def test_payments_drive_sale_balance_and_status():
    db, sale = _setup_sale()

    first = record_payment(db, 1, PayableType.SALE, sale.id, _pay(4000))
    assert first.entity.amount_paid == Decimal("4000.00")
    assert first.entity.balance == Decimal("6000.00")
    assert first.entity.status == "PARTIALLY_PAID"
    assert first.payment.category == "INCOME"
    assert first.payment.payable_type == "SALE"

    second = record_payment(db, 1, PayableType.SALE, sale.id, _pay(6000, method="BANK_TRANSFER"))
    assert second.entity.balance == Decimal("0.00")
    assert second.entity.status == "PAID"

    edited = update_payment(db, 1, first.payment.id, _edit(3000))
    assert edited.entity.amount_paid == Decimal("9000.00")
    assert edited.entity.balance == Decimal("1000.00")
    assert edited.entity.status == "PARTIALLY_PAID"
    assert edited.payment.amount == Decimal("3000.00")


def test_update_payment_accepts_exact_maximum_and_rejects_one_cent_over():
    db, sale = _setup_sale()
    first = record_payment(db, 1, PayableType.SALE, sale.id, _pay(4000))
    record_payment(db, 1, PayableType.SALE, sale.id, _pay(2000))

    with pytest.raises(LedgerValidationError) as exc:
        update_payment(db, 1, first.payment.id, _edit("8000.01"))
    assert "Maximum for this payment: ₦8,000.00" in exc.value.message
    assert db.get(Payment, first.payment.id).amount == Decimal("4000.00")
    assert db.get(Sale, sale.id).amount_paid == Decimal("6000.00")

    result = update_payment(db, 1, first.payment.id, _edit(8000))
    assert result.entity.status == "PAID"
    assert result.entity.balance == Decimal("0.00")


def test_delete_payment_recomputes_and_second_delete_is_not_found():
    db, sale = _setup_sale()
    first = record_payment(db, 1, PayableType.SALE, sale.id, _pay(4000))
    second = record_payment(db, 1, PayableType.SALE, sale.id, _pay(6000))

    result = delete_payment(db, 1, second.payment.id)
    assert result.payment is None
    assert result.entity_type == "sale"
    assert result.entity.amount_paid == Decimal("4000.00")
    assert result.entity.balance == Decimal("6000.00")
    assert result.entity.status == "PARTIALLY_PAID"

    with pytest.raises(NotFoundError):
        delete_payment(db, 1, second.payment.id)

    delete_payment(db, 1, first.payment.id)
    sale = db.get(Sale, sale.id)
    assert sale.amount_paid == Decimal("0.00")
    assert sale.status == "UNPAID"


def test_payments_of_other_users_are_not_found():
    db, sale = _setup_sale()
    create_user(db, user_id=2)
    payment = record_payment(db, 1, PayableType.SALE, sale.id, _pay(1000)).payment

    with pytest.raises(NotFoundError) as exc:
        update_payment(db, 2, payment.id, _edit(500))
    assert exc.value.message == "Payment not found or unauthorized"

    with pytest.raises(NotFoundError) as exc:
        record_payment(db, 2, PayableType.SALE, sale.id, _pay(500))
    assert exc.value.message == "Sale not found or unauthorized"


def test_fully_paid_sale_rejects_new_payment():
    db, sale = _setup_sale(total=5000)
    record_payment(db, 1, PayableType.SALE, sale.id, _pay(5000))

    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.SALE, sale.id, _pay(1))
    assert exc.value.message == "Sale is already fully paid"


def test_new_payment_must_be_positive():
    db, sale = _setup_sale()
    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.SALE, sale.id, _pay(0))
    assert exc.value.message == "Payment amount must be greater than zero."


def test_refunded_sale_freezes_payments():
    db, sale = _setup_sale()
    payment = record_payment(db, 1, PayableType.SALE, sale.id, _pay(10000)).payment

    refunded = refund_payable(db, 1, PayableType.SALE, sale.id, RefundCreate(refund_reason="Damaged goods")).entity
    assert refunded.status == "REFUNDED"
    assert refunded.refund_amount == Decimal("10000.00")
    assert refunded.amount_paid == Decimal("0.00")
    assert refunded.balance == Decimal("10000.00")

    with pytest.raises(LedgerValidationError) as exc:
        update_payment(db, 1, payment.id, _edit(5000))
    assert exc.value.message == "Cannot update payment for a refunded sale"

    with pytest.raises(LedgerValidationError) as exc:
        delete_payment(db, 1, payment.id)
    assert exc.value.message == "Cannot delete payment for a refunded sale"

    assert db.get(Payment, payment.id).amount == Decimal("10000.00")
    assert db.get(Sale, sale.id).status == "REFUNDED"


def test_partial_refund_keeps_paid_amount():
    db, sale = _setup_sale()
    record_payment(db, 1, PayableType.SALE, sale.id, _pay(8000))

    refunded = refund_payable(
        db, 1, PayableType.SALE, sale.id, RefundCreate(refund_amount=Decimal("3000"), refund_reason="Short delivery")
    ).entity
    assert refunded.status == "PARTIALLY_REFUNDED"
    assert refunded.refund_amount == Decimal("3000.00")
    assert refunded.amount_paid == Decimal("8000.00")

    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.SALE, sale.id, _pay(100))
    assert exc.value.message == "Cannot add payment to a refunded sale"


def test_refund_guards():
    db, sale = _setup_sale()
    with pytest.raises(LedgerValidationError) as exc:
        refund_payable(db, 1, PayableType.SALE, sale.id, RefundCreate(refund_reason="Nothing paid"))
    assert exc.value.message == "Cannot refund a sale with no payments"

    record_payment(db, 1, PayableType.SALE, sale.id, _pay(2000))
    with pytest.raises(LedgerValidationError):
        refund_payable(
            db, 1, PayableType.SALE, sale.id, RefundCreate(refund_amount=Decimal("2500"), refund_reason="Too much")
        )

    refund_payable(db, 1, PayableType.SALE, sale.id, RefundCreate(refund_reason="Customer cancelled"))
    with pytest.raises(LedgerValidationError) as exc:
        refund_payable(db, 1, PayableType.SALE, sale.id, RefundCreate(refund_reason="Again"))
    assert exc.value.message == "This sale has already been refunded"
    assert db.query(Payment).count() == 1


def test_purchase_refunds_are_booked_as_payments():
    db = create_session()
    create_user(db)
    purchase = create_purchase(db, 20000)
    record_payment(db, 1, PayableType.PURCHASE, purchase.id, _pay(20000))

    result = refund_payable(
        db,
        1,
        PayableType.PURCHASE,
        purchase.id,
        RefundCreate(
            refund_amount=Decimal("5000"),
            refund_reason="Damaged crate",
            refund_date=datetime(2025, 3, 20, 10, 0),
            payment_method="CARD",
            reference="RF-9",
        ),
    )
    assert result.entity_type == "purchase"
    assert result.entity.status == "PARTIALLY_REFUNDED"
    assert result.entity.amount_paid == Decimal("15000.00")
    assert result.entity.refund_amount == Decimal("5000.00")
    assert result.entity.balance == Decimal("0.00")

    refund = result.payment
    assert refund.purchase_id == purchase.id
    assert refund.amount == Decimal("5000.00")
    assert refund.category == "INCOME"
    assert refund.payment_method == "CARD"
    assert refund.reference == "RF-9"
    assert refund.payment_date == date(2025, 3, 20)
    assert refund.notes == "Refund for purchase PUR-000001: Damaged crate"

    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.PURCHASE, purchase.id, _pay(100))
    assert exc.value.message == "Cannot add payment to a refunded purchase"

    rest = refund_payable(db, 1, PayableType.PURCHASE, purchase.id, RefundCreate(refund_reason="Order cancelled"))
    assert rest.entity.status == "REFUNDED"
    assert rest.entity.amount_paid == Decimal("0.00")
    assert rest.entity.refund_amount == Decimal("20000.00")
    assert rest.payment.amount == Decimal("15000.00")
    assert rest.payment.payment_method == "BANK_TRANSFER"

    with pytest.raises(LedgerValidationError) as exc:
        refund_payable(db, 1, PayableType.PURCHASE, purchase.id, RefundCreate(refund_reason="Once more"))
    assert exc.value.message == "Cannot refund a purchase with no payments"
    assert db.query(Payment).count() == 3


def test_quotation_refund_is_capped_by_what_remains_paid():
    db = create_session()
    create_user(db)
    quotation = create_quotation(db, 8000, status="UNPAID")
    record_payment(db, 1, PayableType.QUOTATION, quotation.id, _pay(8000))

    result = refund_payable(
        db, 1, PayableType.QUOTATION, quotation.id, RefundCreate(refund_amount=Decimal("3000"), refund_reason="Scope cut")
    )
    assert result.entity.status == "PARTIALLY_REFUNDED"
    assert result.entity.amount_paid == Decimal("5000.00")
    assert result.payment.category == "EXPENSE"
    assert result.payment.notes == "Refund for quotation QUO-000001: Scope cut"

    with pytest.raises(LedgerValidationError) as exc:
        refund_payable(
            db, 1, PayableType.QUOTATION, quotation.id, RefundCreate(refund_amount=Decimal("6000"), refund_reason="Too much")
        )
    assert exc.value.message == "Refund amount cannot exceed the amount paid (5,000.00)"
    assert db.get(Quotation, quotation.id).refund_amount == Decimal("3000.00")


def test_quotation_takes_payments_only_once_accepted():
    db = create_session()
    create_user(db)
    draft = create_quotation(db, 5000, status="DRAFT")
    sent = create_quotation(db, 5000, status="SENT")
    accepted = create_quotation(db, 5000, status="UNPAID")

    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.QUOTATION, draft.id, _pay(1000))
    assert exc.value.message == "Cannot add payment to a quotation with status draft"

    with pytest.raises(LedgerValidationError) as exc:
        record_payment(db, 1, PayableType.QUOTATION, sent.id, _pay(1000))
    assert exc.value.message == "Cannot add payment to a quotation with status sent"
    assert db.query(Payment).count() == 0

    result = record_payment(db, 1, PayableType.QUOTATION, accepted.id, _pay(1000))
    assert result.entity.status == "PARTIALLY_PAID"
    assert result.entity_type == "quotation"


def test_purchase_payments_are_expenses():
    db = create_session()
    create_user(db)
    purchase = create_purchase(db, 3000)

    result = record_payment(db, 1, PayableType.PURCHASE, purchase.id, _pay(3000))
    assert result.payment.category == "EXPENSE"
    assert result.entity.status == "PAID"


def test_create_payable_numbers_entities_and_records_initial_payment():
    db = create_session()
    create_user(db)

    first = create_payable(
        db,
        1,
        PayableType.SALE,
        {"date": date(2025, 4, 1), "total_amount": Decimal("2500"), "party_name": "Ada Stores"},
    )
    second = create_payable(
        db,
        1,
        PayableType.SALE,
        {
            "date": date(2025, 4, 2),
            "total_amount": Decimal("2500"),
            "initial_payment": {"amount_paid": Decimal("1000"), "payment_method": "CARD", "payment_date": date(2025, 4, 2)},
        },
    )
    quotation = create_payable(db, 1, PayableType.QUOTATION, {"date": date(2025, 4, 3), "total_amount": Decimal("900")})

    assert first.receipt_number == "SAL-000001"
    assert first.status == "UNPAID"
    assert first.balance == Decimal("2500.00")
    assert first.customer_name == "Ada Stores"
    assert second.receipt_number == "SAL-000002"
    assert second.status == "PARTIALLY_PAID"
    assert second.amount_paid == Decimal("1000.00")
    assert quotation.quotation_number == "QUO-000001"
    assert quotation.status == "DRAFT"


def test_entity_numbers_are_per_user_and_unique():
    db = create_session()
    create_user(db)
    create_user(db, user_id=2)
    payload = {"date": date(2025, 4, 1), "total_amount": Decimal("100")}

    mine = create_payable(db, 1, PayableType.PURCHASE, payload)
    theirs = create_payable(db, 2, PayableType.PURCHASE, payload)
    assert mine.purchase_number == theirs.purchase_number == "PUR-000001"

    db.add(
        Purchase(
            user_id=1,
            purchase_number="PUR-000001",
            purchase_date=date(2025, 4, 2),
            status="UNPAID",
            total_amount=Decimal("50"),
            amount_paid=Decimal("0"),
            balance=Decimal("50"),
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_transaction_over_budget_rolls_back(monkeypatch):
    db, sale = _setup_sale()
    payment = record_payment(db, 1, PayableType.SALE, sale.id, _pay(4000)).payment

    ticks = iter([0.0, 100.0])
    monkeypatch.setattr(db_module, "_clock", lambda: next(ticks))

    with pytest.raises(TransactionTimeout) as exc:
        update_payment(db, 1, payment.id, _edit(5000))
    assert exc.value.to_payload()["retryable"] is True

    assert db.get(Payment, payment.id).amount == Decimal("4000.00")
    sale = db.get(Sale, sale.id)
    assert sale.amount_paid == Decimal("4000.00")
    assert sale.balance == Decimal("6000.00")


def test_database_failures_are_mapped():
    db = create_session()

    with pytest.raises(TransactionTimeout):
        with transaction_scope(db):
            raise OperationalError("UPDATE sales", {}, Exception("database is locked"))

    with pytest.raises(DatabaseUnavailable):
        with transaction_scope(db):
            raise OperationalError("SELECT 1", {}, Exception("could not connect to server"))

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from bizledger.constants import PayableType, PaymentCategory, PaymentMethod, PaymentStatus, QuotationStatus
from bizledger.db import transaction_scope
from bizledger.errors import LedgerValidationError, NotFoundError
from bizledger.models import PARENT_COLUMNS, Payment, PaymentParent, Purchase, Quotation, Sale, User
from bizledger.payments.calculations import BalanceSnapshot, recalculate_balance, validate_payment_amount
from bizledger.payments.status import ensure_payments_mutable
from bizledger.utils.money import ZERO, as_money, money_sum, quantize_money

logger = logging.getLogger(__name__)

Payable = Union[Sale, Quotation, Purchase]

PAYABLE_MODELS: dict[PayableType, type] = {
    PayableType.SALE: Sale,
    PayableType.QUOTATION: Quotation,
    PayableType.PURCHASE: Purchase,
}

ENTITY_LABELS: dict[PayableType, str] = {
    PayableType.SALE: "sale",
    PayableType.QUOTATION: "quotation",
    PayableType.PURCHASE: "purchase",
}

PAYMENT_CATEGORIES: dict[PayableType, PaymentCategory] = {
    PayableType.SALE: PaymentCategory.INCOME,
    PayableType.QUOTATION: PaymentCategory.INCOME,
    PayableType.PURCHASE: PaymentCategory.EXPENSE,
}

# Refunds flow the other way from ordinary payments.
REFUND_CATEGORIES: dict[PayableType, PaymentCategory] = {
    PayableType.QUOTATION: PaymentCategory.EXPENSE,
    PayableType.PURCHASE: PaymentCategory.INCOME,
}

NUMBER_PREFIXES: dict[PayableType, str] = {
    PayableType.SALE: "SAL",
    PayableType.QUOTATION: "QUO",
    PayableType.PURCHASE: "PUR",
}


@dataclass
class PaymentMutation:
    payment: Optional[Payment]
    entity: Payable
    entity_type: str


def _as_dict(data: Any) -> dict:
    if hasattr(data, "model_dump"):
        return data.model_dump()
    if isinstance(data, dict):
        return data
    raise ValueError("Invalid payment payload.")


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def get_owned_payment(db: Session, user_id: int, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id, Payment.user_id == user_id).first()
    if not payment:
        raise NotFoundError("Payment not found or unauthorized")
    return payment


def lock_payable(db: Session, kind: PayableType, entity_id: int, user_id: int) -> Payable:
    model = PAYABLE_MODELS[kind]
    entity = (
        db.query(model)
        .filter(model.id == entity_id, model.user_id == user_id)
        .with_for_update()
        .first()
    )
    if not entity:
        raise NotFoundError(f"{ENTITY_LABELS[kind].capitalize()} not found or unauthorized")
    return entity


def payments_for(db: Session, parent: PaymentParent) -> List[Payment]:
    column = getattr(Payment, PARENT_COLUMNS[parent.kind])
    return (
        db.query(Payment)
        .filter(column == parent.id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .all()
    )


def apply_balance(entity: Payable, payments: List[Payment]) -> BalanceSnapshot:
    snapshot = recalculate_balance(entity.total_amount, entity.status, [payment.amount for payment in payments])
    entity.amount_paid = snapshot.amount_paid
    entity.balance = snapshot.balance
    entity.status = snapshot.status
    entity.updated_at = datetime.utcnow()
    return snapshot


def _payable_parent(payment: Payment) -> PaymentParent:
    parent = payment.parent
    if parent is None or parent.kind not in PAYABLE_MODELS:
        raise NotFoundError("Related entity not found")
    return parent


def _guard_mutable(entity: Payable, kind: PayableType, action: str) -> None:
    try:
        ensure_payments_mutable(entity.status, ENTITY_LABELS[kind], action=action)
    except LedgerValidationError:
        logger.warning("Rejected %s %s %s with status %s", action, ENTITY_LABELS[kind], entity.id, entity.status)
        raise


def update_payment(db: Session, user_id: int, payment_id: int, data: Any) -> PaymentMutation:
    payload = _as_dict(data)
    with transaction_scope(db):
        payment = get_owned_payment(db, user_id, payment_id)
        parent = _payable_parent(payment)
        label = ENTITY_LABELS[parent.kind]
        entity = lock_payable(db, parent.kind, parent.id, user_id)
        _guard_mutable(entity, parent.kind, "update payment for")

        siblings = payments_for(db, parent)
        if not any(sibling.id == payment.id for sibling in siblings):
            raise NotFoundError("Payment not found or unauthorized")
        others = [sibling for sibling in siblings if sibling.id != payment.id]

        new_amount = validate_payment_amount(
            payload["amount_paid"], entity.total_amount, [other.amount for other in others]
        )
        payment.amount = new_amount
        payment.payment_method = _enum_value(payload["payment_method"])
        payment.payment_date = payload["payment_date"]
        payment.reference = payload.get("reference") or None
        payment.notes = payload.get("notes") or None
        payment.updated_at = datetime.utcnow()

        snapshot = apply_balance(entity, [*others, payment])

    logger.info(
        "Payment %s updated; %s %s amount_paid=%s balance=%s status=%s",
        payment_id, label, parent.id, snapshot.amount_paid, snapshot.balance, snapshot.status,
    )
    return PaymentMutation(payment=payment, entity=entity, entity_type=label)


def delete_payment(db: Session, user_id: int, payment_id: int) -> PaymentMutation:
    with transaction_scope(db):
        payment = get_owned_payment(db, user_id, payment_id)
        parent = _payable_parent(payment)
        label = ENTITY_LABELS[parent.kind]
        entity = lock_payable(db, parent.kind, parent.id, user_id)
        _guard_mutable(entity, parent.kind, "delete payment for")

        remaining = [sibling for sibling in payments_for(db, parent) if sibling.id != payment.id]
        db.delete(payment)
        snapshot = apply_balance(entity, remaining)

    logger.info(
        "Payment %s deleted; %s %s amount_paid=%s balance=%s status=%s",
        payment_id, label, parent.id, snapshot.amount_paid, snapshot.balance, snapshot.status,
    )
    return PaymentMutation(payment=None, entity=entity, entity_type=label)


def _add_payment(db: Session, user_id: int, kind: PayableType, entity: Payable, payload: dict) -> Payment:
    label = ENTITY_LABELS[kind]
    _guard_mutable(entity, kind, "add payment to")

    parent = PaymentParent(kind=kind, id=entity.id)
    existing = payments_for(db, parent)
    if as_money(entity.total_amount) - money_sum(p.amount for p in existing) <= 0:
        raise LedgerValidationError(f"{label.capitalize()} is already fully paid")
    if as_money(payload["amount_paid"]) <= 0:
        raise LedgerValidationError("Payment amount must be greater than zero.")
    amount = validate_payment_amount(payload["amount_paid"], entity.total_amount, [p.amount for p in existing])

    payment = Payment.for_parent(
        parent,
        user_id=user_id,
        amount=amount,
        payment_method=_enum_value(payload["payment_method"]),
        payment_date=payload["payment_date"],
        reference=payload.get("reference") or None,
        notes=payload.get("notes") or None,
        category=PAYMENT_CATEGORIES[kind].value,
    )
    db.add(payment)
    db.flush()
    apply_balance(entity, [*existing, payment])
    return payment


def record_payment(db: Session, user_id: int, kind: PayableType, entity_id: int, data: Any) -> PaymentMutation:
    payload = _as_dict(data)
    with transaction_scope(db):
        entity = lock_payable(db, kind, entity_id, user_id)
        payment = _add_payment(db, user_id, kind, entity, payload)

    logger.info("Payment %s recorded against %s %s", payment.id, ENTITY_LABELS[kind], entity_id)
    return PaymentMutation(payment=payment, entity=entity, entity_type=ENTITY_LABELS[kind])


def _next_number(db: Session, kind: PayableType, user_id: int) -> str:
    # Serializes numbering per user; uq_*_user_number rejects any duplicate that slips through.
    db.query(User).filter(User.id == user_id).with_for_update().first()
    model = PAYABLE_MODELS[kind]
    count = db.query(func.count(model.id)).filter(model.user_id == user_id).scalar() or 0
    return f"{NUMBER_PREFIXES[kind]}-{int(count) + 1:06d}"


def create_payable(db: Session, user_id: int, kind: PayableType, data: Any) -> Payable:
    payload = _as_dict(data)
    total = as_money(payload["total_amount"])
    common = dict(
        user_id=user_id,
        title=payload.get("title"),
        description=payload.get("description"),
        total_amount=total,
        amount_paid=ZERO,
        balance=total,
        include_vat=payload.get("include_vat", False),
        vat_amount=as_money(payload["vat_amount"]) if payload.get("vat_amount") is not None else None,
    )
    party = dict(
        name=payload.get("party_name"),
        email=payload.get("party_email"),
        phone=payload.get("party_phone"),
    )

    with transaction_scope(db):
        number = _next_number(db, kind, user_id)
        if kind == PayableType.SALE:
            entity = Sale(
                receipt_number=number,
                sale_date=payload["date"],
                status=PaymentStatus.UNPAID.value,
                customer_name=party["name"],
                customer_email=party["email"],
                customer_phone=party["phone"],
                **common,
            )
        elif kind == PayableType.QUOTATION:
            status = _enum_value(payload.get("status")) or QuotationStatus.DRAFT.value
            entity = Quotation(
                quotation_number=number,
                issue_date=payload["date"],
                status=status,
                customer_name=party["name"],
                customer_email=party["email"],
                customer_phone=party["phone"],
                **common,
            )
        else:
            entity = Purchase(
                purchase_number=number,
                purchase_date=payload["date"],
                status=PaymentStatus.UNPAID.value,
                vendor_name=party["name"],
                vendor_email=party["email"],
                vendor_phone=party["phone"],
                **common,
            )
        db.add(entity)
        db.flush()

        initial_payment = payload.get("initial_payment")
        if initial_payment:
            _add_payment(db, user_id, kind, entity, _as_dict(initial_payment))

    logger.info("Created %s %s (%s) total=%s", ENTITY_LABELS[kind], entity.id, number, total)
    return entity


def _refund_sale(entity: Sale, refund_amount) -> None:
    amount_paid = as_money(entity.amount_paid)
    entity.refund_amount = refund_amount
    if refund_amount == amount_paid:
        entity.status = PaymentStatus.REFUNDED.value
        entity.amount_paid = ZERO
        entity.balance = as_money(entity.total_amount)
    else:
        entity.status = PaymentStatus.PARTIALLY_REFUNDED.value


def _refund_with_payment(
    db: Session, user_id: int, kind: PayableType, entity: Payable, refund_amount, payload: dict
) -> Payment:
    label = ENTITY_LABELS[kind]
    remaining = quantize_money(as_money(entity.amount_paid) - refund_amount)
    reason = payload.get("refund_reason")
    notes = f"Refund for {label} {entity.number}"
    refund = Payment.for_parent(
        PaymentParent(kind=kind, id=entity.id),
        user_id=user_id,
        amount=refund_amount,
        payment_method=_enum_value(payload.get("payment_method")) or PaymentMethod.BANK_TRANSFER.value,
        payment_date=entity.refund_date.date() if isinstance(entity.refund_date, datetime) else entity.refund_date,
        reference=payload.get("reference") or None,
        notes=f"{notes}: {reason}" if reason else notes,
        category=REFUND_CATEGORIES[kind].value,
    )
    db.add(refund)

    entity.refund_amount = quantize_money(as_money(entity.refund_amount) + refund_amount)
    entity.amount_paid = remaining
    entity.status = PaymentStatus.REFUNDED.value if remaining == 0 else PaymentStatus.PARTIALLY_REFUNDED.value
    db.flush()
    return refund


def refund_payable(db: Session, user_id: int, kind: PayableType, entity_id: int, data: Any) -> PaymentMutation:
    """Record a refund against a paid entity.

    Sales are refunded once. A full sale refund zeroes the paid amount and
    restores the balance to the total, while a partial one only marks the
    sale and leaves its payment bookkeeping alone.

    Quotations and purchases book every refund as its own payment in the
    opposite category, deduct it from ``amount_paid`` and add it to the
    running ``refund_amount``, so they can be refunded repeatedly until
    nothing paid is left. ``balance`` is left as it was.

    Either way the entity is frozen against further payment changes.
    """
    payload = _as_dict(data)
    label = ENTITY_LABELS[kind]
    refund = None
    with transaction_scope(db):
        entity = lock_payable(db, kind, entity_id, user_id)
        if kind == PayableType.SALE and as_money(entity.refund_amount) > 0:
            raise LedgerValidationError(f"This {label} has already been refunded")
        amount_paid = as_money(entity.amount_paid)
        if amount_paid <= 0:
            raise LedgerValidationError(f"Cannot refund a {label} with no payments")

        requested = payload.get("refund_amount")
        refund_amount = amount_paid if requested is None else as_money(requested)
        if refund_amount > amount_paid:
            raise LedgerValidationError(
                f"Refund amount cannot exceed the amount paid ({amount_paid:,.2f})"
            )

        entity.refund_reason = payload["refund_reason"]
        entity.refund_date = payload.get("refund_date") or datetime.utcnow()
        if kind == PayableType.SALE:
            _refund_sale(entity, refund_amount)
        else:
            refund = _refund_with_payment(db, user_id, kind, entity, refund_amount, payload)
        entity.updated_at = datetime.utcnow()

    logger.info("Refund of %s processed for %s %s (%s)", refund_amount, label, entity_id, entity.status)
    return PaymentMutation(payment=refund, entity=entity, entity_type=label)

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bizledger.auth import AuthContext, get_auth_context
from bizledger.constants import PayableType
from bizledger.db import get_db
from bizledger.payments import schemas
from bizledger.payments.service import create_payable, record_payment, refund_payable

router = APIRouter(prefix="/api", tags=["payables"])


def _record(db: Session, auth: AuthContext, kind: PayableType, entity_id: int, payload) -> dict:
    result = record_payment(db, auth.user_id, kind, entity_id, payload)
    return {
        "message": "Payment recorded successfully",
        "success": True,
        "payment": result.payment,
        "entity": result.entity,
        "entity_type": result.entity_type,
    }


def _refund(db: Session, auth: AuthContext, kind: PayableType, entity_id: int, payload) -> dict:
    result = refund_payable(db, auth.user_id, kind, entity_id, payload)
    return {
        "message": "Refund processed successfully",
        "success": True,
        "payment": result.payment,
        "entity": result.entity,
        "entity_type": result.entity_type,
    }


@router.post("/sales", response_model=schemas.PayableResponse, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: schemas.PayableCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return create_payable(db, auth.user_id, PayableType.SALE, payload)


@router.post("/sales/{sale_id}/payment", response_model=schemas.PaymentMutationResponse)
def add_sale_payment(
    sale_id: int,
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _record(db, auth, PayableType.SALE, sale_id, payload)


@router.post("/sales/{sale_id}/refund", response_model=schemas.RefundResponse)
def refund_sale(
    sale_id: int,
    payload: schemas.RefundCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _refund(db, auth, PayableType.SALE, sale_id, payload)


@router.post("/quotations", response_model=schemas.PayableResponse, status_code=status.HTTP_201_CREATED)
def create_quotation(
    payload: schemas.PayableCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return create_payable(db, auth.user_id, PayableType.QUOTATION, payload)


@router.post("/quotations/{quotation_id}/payment", response_model=schemas.PaymentMutationResponse)
def add_quotation_payment(
    quotation_id: int,
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _record(db, auth, PayableType.QUOTATION, quotation_id, payload)


@router.post("/quotations/{quotation_id}/refund", response_model=schemas.RefundResponse)
def refund_quotation(
    quotation_id: int,
    payload: schemas.RefundCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _refund(db, auth, PayableType.QUOTATION, quotation_id, payload)


@router.post("/purchases", response_model=schemas.PayableResponse, status_code=status.HTTP_201_CREATED)
def create_purchase(
    payload: schemas.PayableCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return create_payable(db, auth.user_id, PayableType.PURCHASE, payload)


@router.post("/purchases/{purchase_id}/payment", response_model=schemas.PaymentMutationResponse)
def add_purchase_payment(
    purchase_id: int,
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _record(db, auth, PayableType.PURCHASE, purchase_id, payload)


@router.post("/purchases/{purchase_id}/refund", response_model=schemas.RefundResponse)
def refund_purchase(
    purchase_id: int,
    payload: schemas.RefundCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return _refund(db, auth, PayableType.PURCHASE, purchase_id, payload)

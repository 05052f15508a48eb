from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bizledger.auth import AuthContext, get_auth_context
from bizledger.db import get_db
from bizledger.payments import schemas
from bizledger.payments.service import PaymentMutation, delete_payment, update_payment

router = APIRouter(prefix="/api/payments", tags=["payments"])


def _mutation_response(message: str, result: PaymentMutation) -> dict:
    return {
        "message": message,
        "success": True,
        "payment": result.payment,
        "entity": result.entity,
        "entity_type": result.entity_type,
    }


@router.patch("/{payment_id}", response_model=schemas.PaymentMutationResponse)
def edit_payment(
    payment_id: int,
    payload: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    result = update_payment(db, auth.user_id, payment_id, payload)
    return _mutation_response("Payment updated successfully", result)


@router.delete("/{payment_id}", response_model=schemas.PaymentMutationResponse)
def remove_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    result = delete_payment(db, auth.user_id, payment_id)
    return _mutation_response("Payment deleted successfully", result)

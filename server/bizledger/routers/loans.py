from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bizledger.auth import AuthContext, get_auth_context
from bizledger.db import get_db
from bizledger.loans import schemas
from bizledger.loans.service import record_loan_payment
from bizledger.models import IncomeRecord

router = APIRouter(prefix="/api/loans", tags=["loans"])


def _interest_record(record) -> dict | None:
    if record is None:
        return None
    if isinstance(record, IncomeRecord):
        return {"id": record.id, "kind": "INCOME", "amount": record.gross_amount, "description": record.description}
    return {"id": record.id, "kind": "EXPENSE", "amount": record.amount, "description": record.description}


@router.post("/{loan_id}/payment", response_model=schemas.LoanPaymentResponse)
def add_loan_payment(
    loan_id: int,
    payload: schemas.LoanPaymentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    result = record_loan_payment(db, auth.user_id, loan_id, payload)
    return {
        "message": "Loan payment recorded successfully",
        "success": True,
        "loan": result.loan,
        "payment": result.payment,
        "principal": result.split.principal,
        "interest": result.split.interest,
        "interest_record": _interest_record(result.interest_record),
    }

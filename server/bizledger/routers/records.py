from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bizledger.auth import AuthContext, get_auth_context
from bizledger.db import get_db
from bizledger.records import schemas
from bizledger.records.service import create_expense, create_income_record

router = APIRouter(prefix="/api", tags=["records"])


@router.post("/income", response_model=schemas.IncomeRecordCreated, status_code=status.HTTP_201_CREATED)
def add_income(
    payload: schemas.IncomeRecordCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    entry = create_income_record(db, auth.user_id, payload)
    return {"message": "Income recorded successfully", "success": True, "income": entry.record, "payment": entry.payment}


@router.post("/expenses", response_model=schemas.ExpenseCreated, status_code=status.HTTP_201_CREATED)
def add_expense(
    payload: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    entry = create_expense(db, auth.user_id, payload)
    return {"message": "Expense recorded successfully", "success": True, "expense": entry.record, "payment": entry.payment}

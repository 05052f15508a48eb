from datetime import date
from typing import List, Optional

from bizledger.payments.schemas import PaymentCreate, PaymentResponse
from bizledger.schemas import CamelModel, MoneyValue


class LoanPaymentCreate(PaymentCreate):
    pass


class LoanResponse(CamelModel):
    id: int
    loan_number: str
    loan_type: str
    party_name: Optional[str] = None
    principal_amount: MoneyValue
    interest_rate: MoneyValue
    start_date: date
    status: str
    total_paid: MoneyValue
    total_interest_paid: MoneyValue
    current_balance: MoneyValue
    payments: List[PaymentResponse] = []


class InterestRecordResponse(CamelModel):
    id: int
    kind: str
    amount: MoneyValue
    description: Optional[str] = None


class LoanPaymentResponse(CamelModel):
    message: str
    success: bool = True
    loan: LoanResponse
    payment: PaymentResponse
    principal: MoneyValue
    interest: MoneyValue
    interest_record: Optional[InterestRecordResponse] = None

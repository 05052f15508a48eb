from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from bizledger.constants import PaymentMethod, QuotationStatus
from bizledger.schemas import CamelModel, LenientDate, MoneyValue


class PaymentCreate(CamelModel):
    amount_paid: Decimal = Field(..., ge=0, max_digits=14)
    payment_method: PaymentMethod
    payment_date: LenientDate
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentUpdate(PaymentCreate):
    pass


class PaymentResponse(CamelModel):
    id: int
    amount: MoneyValue
    payment_method: str
    payment_date: LenientDate
    reference: Optional[str] = None
    notes: Optional[str] = None
    category: str
    payable_type: str
    sale_id: Optional[int] = None
    quotation_id: Optional[int] = None
    purchase_id: Optional[int] = None
    loan_id: Optional[int] = None
    income_id: Optional[int] = None
    expenses_id: Optional[int] = None


class PayableResponse(CamelModel):
    id: int
    number: str
    title: Optional[str] = None
    total_amount: MoneyValue
    amount_paid: MoneyValue
    balance: MoneyValue
    status: str
    refund_amount: Optional[MoneyValue] = None
    refund_date: Optional[datetime] = None
    refund_reason: Optional[str] = None
    payments: List[PaymentResponse] = []


class PaymentMutationResponse(CamelModel):
    message: str
    success: bool = True
    payment: Optional[PaymentResponse] = None
    entity: PayableResponse
    entity_type: str


class PayableCreate(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    date: LenientDate
    total_amount: Decimal = Field(..., gt=0, max_digits=14)
    party_name: Optional[str] = Field(None, max_length=200)
    party_email: Optional[str] = Field(None, max_length=255)
    party_phone: Optional[str] = Field(None, max_length=50)
    include_vat: bool = False
    vat_amount: Optional[Decimal] = Field(None, ge=0)
    status: Optional[QuotationStatus] = None
    initial_payment: Optional[PaymentCreate] = None


class RefundCreate(CamelModel):
    refund_amount: Optional[Decimal] = Field(None, gt=0, max_digits=14)
    refund_reason: str = Field(..., min_length=3, max_length=500)
    refund_date: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def _at_least_one_cent(self):
        if self.refund_amount is not None and self.refund_amount < Decimal("0.01"):
            raise ValueError("Refund amount must be at least 0.01")
        return self


class RefundResponse(CamelModel):
    message: str
    success: bool = True
    payment: Optional[PaymentResponse] = None
    entity: PayableResponse
    entity_type: str

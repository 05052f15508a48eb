from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import Field

from bizledger.constants import PaymentMethod
from bizledger.payments.schemas import PaymentResponse
from bizledger.schemas import CamelModel, LenientDate, MoneyValue


class IncomeRecordCreate(CamelModel):
    main_category: str = Field(..., min_length=1, max_length=50)
    sub_category: Optional[str] = Field(None, max_length=100)
    gross_amount: Decimal = Field(..., gt=0, max_digits=14)
    taxable_percentage: Decimal = Field(Decimal("100"), ge=0, le=100)
    description: Optional[str] = None
    date: Optional[LenientDate] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=100)


class ExpenseCreate(CamelModel):
    category: str = Field(..., min_length=1, max_length=50)
    sub_category: Optional[str] = Field(None, max_length=50)
    amount: Decimal = Field(..., gt=0, max_digits=14)
    description: Optional[str] = None
    vendor_name: Optional[str] = Field(None, max_length=200)
    date: Optional[LenientDate] = None
    is_deductible: bool = True
    deduction_percentage: Decimal = Field(Decimal("100"), ge=0, le=100)
    is_return: bool = False
    return_date: Optional[LenientDate] = None
    return_reason: Optional[str] = None
    receipt: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=100)


class IncomeRecordResponse(CamelModel):
    id: int
    main_category: str
    sub_category: Optional[str] = None
    custom_sub_category: Optional[str] = None
    gross_amount: MoneyValue
    taxable_percentage: MoneyValue
    description: Optional[str] = None
    date: date


class ExpenseResponse(CamelModel):
    id: int
    category: str
    sub_category: Optional[str] = None
    amount: MoneyValue
    description: Optional[str] = None
    vendor_name: Optional[str] = None
    date: date
    is_deductible: bool
    deduction_percentage: MoneyValue
    is_return: bool


class IncomeRecordCreated(CamelModel):
    message: str
    success: bool = True
    income: IncomeRecordResponse
    payment: PaymentResponse


class ExpenseCreated(CamelModel):
    message: str
    success: bool = True
    expense: ExpenseResponse
    payment: PaymentResponse

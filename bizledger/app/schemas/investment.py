"""
Investment Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Optional, List
from bizledger.app.models.enums import InvestmentType, InvestmentStatus, ReturnType
from bizledger.app.schemas.common import LedgerEntryResponse, WarningResponse


class InvestmentCreate(BaseModel):
    investment_type: InvestmentType
    investment_name: str = Field(..., min_length=1, max_length=200)
    principal_amount: Decimal = Field(..., gt=0)
    current_value: Optional[Decimal] = Field(None, ge=0)
    interest_rate: Optional[Decimal] = Field(None, ge=0)
    investment_term_months: Optional[int] = Field(None, ge=1)
    start_date: date
    maturity_date: Optional[date] = None
    bank_name: Optional[str] = None
    notes: Optional[str] = None
    # Record the purchase as an expense on this date
    create_expense: bool = False
    transaction_date: Optional[date] = None
    payment_method: Optional[str] = None


class InvestmentResponse(BaseModel):
    id: str
    investment_type: InvestmentType
    investment_name: str
    principal_amount: float
    current_value: float
    total_returns: float
    interest_rate: Optional[float] = None
    start_date: date
    maturity_date: Optional[date] = None
    bank_name: Optional[str] = None
    status: InvestmentStatus
    expense_transaction_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class InvestmentCreateResponse(BaseModel):
    investment: InvestmentResponse
    expense: Optional[LedgerEntryResponse] = None


class InvestmentListResponse(BaseModel):
    investments: List[InvestmentResponse]


class InvestmentReturnCreate(BaseModel):
    investment_id: str
    return_date: date
    return_amount: Decimal = Field(..., gt=0)
    return_type: ReturnType
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class InvestmentReturnResponse(BaseModel):
    id: str
    investment_id: str
    return_date: date
    return_amount: float
    return_type: ReturnType
    income_transaction_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class InvestmentInfo(BaseModel):
    investment_name: str
    investment_type: str


class InvestmentReturnListItem(InvestmentReturnResponse):
    investment: InvestmentInfo


class InvestmentReturnListResponse(BaseModel):
    returns: List[InvestmentReturnListItem]


class InvestmentReturnRecordedResponse(BaseModel):
    investment_return: InvestmentReturnResponse
    income: LedgerEntryResponse
    investment: InvestmentResponse
    warnings: List[WarningResponse] = []

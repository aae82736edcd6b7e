"""
Investor Funding Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Optional, List
from bizledger.app.models.enums import FundingStatus, PaymentStatus
from bizledger.app.schemas.common import LedgerEntryResponse, WarningResponse


class FundingCreate(BaseModel):
    investor_name: str = Field(..., min_length=1, max_length=200)
    investor_contact: Optional[str] = Field(None, max_length=200)
    investment_amount: Decimal = Field(..., gt=0)
    profit_share_percentage: Decimal = Field(..., gt=0, le=100)
    payment_frequency: str = Field(..., min_length=1, max_length=20)
    start_date: date
    end_date: Optional[date] = None
    duration_months: Optional[int] = Field(None, ge=1)
    agreement_number: Optional[str] = None
    notes: Optional[str] = None


class FundingResponse(BaseModel):
    id: str
    investor_name: str
    investor_contact: Optional[str] = None
    investment_amount: float
    profit_share_percentage: float
    payment_frequency: str
    start_date: date
    end_date: Optional[date] = None
    status: FundingStatus
    total_profit_shared: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class FundingListResponse(BaseModel):
    funding: List[FundingResponse]


class ProfitSharingCreate(BaseModel):
    funding_id: str
    period_start: date
    period_end: date
    business_revenue: Decimal
    business_expenses: Decimal
    due_date: date
    status: PaymentStatus = PaymentStatus.PENDING
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class ProfitSharingPay(BaseModel):
    paid_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class ProfitSharingResponse(BaseModel):
    id: str
    funding_id: str
    period_start: date
    period_end: date
    business_revenue: float
    business_expenses: float
    net_profit: float
    share_percentage: float
    share_amount: float
    due_date: date
    status: PaymentStatus
    paid_date: Optional[date] = None
    expense_transaction_id: Optional[str] = None
    notes: Optional[str] = None
    investor_name: Optional[str] = None

    class Config:
        from_attributes = True


class ProfitSharingListResponse(BaseModel):
    payments: List[ProfitSharingResponse]


class ProfitSharingRecordedResponse(BaseModel):
    payment: ProfitSharingResponse
    expense: Optional[LedgerEntryResponse] = None
    funding: FundingResponse
    warnings: List[WarningResponse] = []

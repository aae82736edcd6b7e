"""
Loan Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from bizledger.app.models.enums import LoanStatus, InstallmentStatus, InstallmentFrequency
from bizledger.app.schemas.common import LedgerEntryResponse, WarningResponse


class LoanCreate(BaseModel):
    """Schema for creating a loan; the installment schedule is generated."""
    loan_amount: Decimal = Field(..., gt=0)
    interest_rate: Decimal = Field(..., ge=0, description="Annual rate in percent")
    loan_term_months: int = Field(..., ge=1, le=600)
    loan_date: date
    first_payment_date: date
    lender_name: str = Field(..., min_length=1, max_length=200)
    lender_contact: Optional[str] = Field(None, max_length=200)
    purpose: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    installment_frequency: InstallmentFrequency = InstallmentFrequency.MONTHLY


class LoanUpdate(BaseModel):
    """Descriptive fields and status only; terms cannot change."""
    lender_name: Optional[str] = Field(None, min_length=1, max_length=200)
    lender_contact: Optional[str] = Field(None, max_length=200)
    purpose: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    status: Optional[LoanStatus] = None


class InstallmentPay(BaseModel):
    installment_id: str
    paid_date: date
    paid_amount: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class InstallmentResponse(BaseModel):
    id: str
    loan_id: str
    installment_number: int
    due_date: date
    principal_amount: float
    interest_amount: float
    total_amount: float
    status: InstallmentStatus
    paid_date: Optional[date] = None
    paid_amount: Optional[float] = None
    expense_transaction_id: Optional[str] = None

    class Config:
        from_attributes = True


class LoanResponse(BaseModel):
    id: str
    loan_amount: float
    interest_rate: float
    loan_term_months: int
    installment_amount: float
    installment_frequency: str
    loan_date: date
    first_payment_date: date
    lender_name: str
    lender_contact: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    status: LoanStatus
    total_paid: float
    remaining_balance: float
    created_at: Optional[datetime] = None
    installment_count: Optional[int] = None

    class Config:
        from_attributes = True


class LoanDetailResponse(LoanResponse):
    installments: List[InstallmentResponse] = []


class LoanListResponse(BaseModel):
    loans: List[LoanResponse]
    total: int
    limit: int
    offset: int


class LoanDeleteResponse(BaseModel):
    deleted: bool
    id: str
    installments_deleted: int


class InstallmentPaymentResponse(BaseModel):
    installment: InstallmentResponse
    expense: LedgerEntryResponse
    loan_status: LoanStatus
    loan: LoanResponse
    warnings: List[WarningResponse] = []


class UpcomingLoanInfo(BaseModel):
    lender_name: str
    loan_amount: float


class UpcomingInstallmentResponse(InstallmentResponse):
    loan: UpcomingLoanInfo


class UpcomingInstallmentListResponse(BaseModel):
    installments: List[UpcomingInstallmentResponse]

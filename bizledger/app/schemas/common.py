"""
Shared response schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List, Dict, Any


class WarningResponse(BaseModel):
    """Non-fatal side effect reported alongside a successful operation."""
    code: str
    message: str
    context: Dict[str, Any] = {}

    class Config:
        from_attributes = True


class StockAdjustmentResponse(BaseModel):
    product_id: str
    field: str
    previous: int
    current: int
    delta: int
    reason: str
    mirrored_field: Optional[str] = None

    class Config:
        from_attributes = True


class LedgerEntryResponse(BaseModel):
    """Expense or income entry; the owner and date columns vary by deployment."""
    id: str
    category: str
    subcategory: Optional[str] = None
    amount: float
    description: Optional[str] = None
    payment_method: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None

    class Config:
        from_attributes = True
        extra = "allow"


class ActivityResponse(BaseModel):
    id: str
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    meta_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]


class SummaryResponse(BaseModel):
    active_loans: int
    outstanding_loan_balance: float
    upcoming_installments: int
    upcoming_installment_amount: float
    investment_value: float
    investment_returns: float
    investor_capital: float
    profit_shared: float
    sales_count: int
    sales_total: float


class DeletedResponse(BaseModel):
    deleted: bool
    id: str

"""
Sales Transaction Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Optional, List
from bizledger.app.schemas.common import StockAdjustmentResponse, WarningResponse


class TransactionItemCreate(BaseModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = Field(None, max_length=200)
    qty: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)


class TransactionCreate(BaseModel):
    transaction_date: date
    items: List[TransactionItemCreate] = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=200)
    discount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[str] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class TransactionItemsUpdate(BaseModel):
    items: List[TransactionItemCreate] = Field(..., min_length=1)


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class TransactionItemResponse(BaseModel):
    id: str
    transaction_id: str
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    qty: int
    price: float
    subtotal: float
    stock_deducted: bool

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    id: str
    invoice_number: str
    transaction_date: date
    customer_name: Optional[str] = None
    subtotal: float
    discount: float
    total_amount: float
    payment_method: Optional[str] = None
    status: str
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class TransactionDetailResponse(TransactionResponse):
    items: List[TransactionItemResponse] = []


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    limit: int
    offset: int


class TransactionWriteResponse(BaseModel):
    transaction: TransactionResponse
    items: List[TransactionItemResponse]
    stock_adjustments: List[StockAdjustmentResponse] = []
    stock_rollback: str = "complete"
    warnings: List[WarningResponse] = []


class TransactionDeleteResponse(BaseModel):
    deleted: bool
    id: str
    stock_rollback: str
    stock_adjustments: List[StockAdjustmentResponse] = []
    warnings: List[WarningResponse] = []


class BulkDeleteResponse(BaseModel):
    deleted: int
    ids: List[str]
    stock_rollback: str
    stock_adjustments: List[StockAdjustmentResponse] = []
    warnings: List[WarningResponse] = []

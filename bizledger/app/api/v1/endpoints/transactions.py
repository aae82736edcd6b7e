"""
Sales Transaction API Endpoints.

Creating, editing and deleting a sale moves product stock along with it.
"""

from dataclasses import asdict
from datetime import date
from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.core.exceptions import warning_payload
from bizledger.app.domain.sales.transaction_service import TransactionService
from bizledger.app.schemas.transaction import (
    TransactionCreate, TransactionItemsUpdate, BulkDeleteRequest,
    TransactionDetailResponse, TransactionListResponse, TransactionWriteResponse,
    TransactionDeleteResponse, BulkDeleteResponse,
)

router = APIRouter(prefix="/transactions", tags=["Sales Transactions"])


def get_transaction_service(store=Depends(get_store), resolver=Depends(get_field_resolver)) -> TransactionService:
    return TransactionService(store, resolver)


def _serialize(result: dict) -> dict:
    """Turn the stock adjustment and warning dataclasses into plain dicts."""
    result["stock_adjustments"] = [asdict(adjustment) for adjustment in result.get("stock_adjustments", [])]
    if "warnings" in result:
        result["warnings"] = warning_payload(result["warnings"])
    return result


@router.post("", response_model=TransactionWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_data: TransactionCreate,
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    Record a sale and deduct stock for every product sold.

    Rejected with ERR_STOCK_001 before any write when a product is short.
    """
    return _serialize(await service.create_transaction(owner_id, transaction_data.model_dump(mode="json")))


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    return await service.list_transactions(owner_id, start_date, end_date, limit=limit, offset=offset)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_transactions(
    request: BulkDeleteRequest,
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    """Delete several sales; ids the caller does not own are skipped."""
    return _serialize(await service.bulk_delete(owner_id, request.ids))


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
async def get_transaction(
    transaction_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    return await service.get_transaction(owner_id, transaction_id)


@router.delete("/{transaction_id}", response_model=TransactionDeleteResponse)
async def delete_transaction(
    transaction_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    Delete a sale and restore its stock.

    Stock that cannot be restored is reported in ``warnings`` with
    ``stock_rollback: "partial"``; the sale is deleted regardless.
    """
    return _serialize(await service.delete_transaction(owner_id, transaction_id))


@router.put("/{transaction_id}/items", response_model=TransactionWriteResponse)
async def update_transaction_items(
    items_data: TransactionItemsUpdate,
    transaction_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: TransactionService = Depends(get_transaction_service)
):
    items = [item.model_dump(mode="json") for item in items_data.items]
    return _serialize(await service.update_transaction_items(owner_id, transaction_id, items))

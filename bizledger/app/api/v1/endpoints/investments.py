"""
Investment API Endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.core.exceptions import warning_payload
from bizledger.app.domain.investments.investment_service import InvestmentService
from bizledger.app.models.enums import InvestmentStatus, InvestmentType, ReturnType
from bizledger.app.schemas.investment import (
    InvestmentCreate, InvestmentCreateResponse, InvestmentListResponse,
    InvestmentReturnCreate, InvestmentReturnListResponse, InvestmentReturnRecordedResponse,
)

router = APIRouter(prefix="/investments", tags=["Investments"])


def get_investment_service(store=Depends(get_store), resolver=Depends(get_field_resolver)) -> InvestmentService:
    return InvestmentService(store, resolver)


@router.post("", response_model=InvestmentCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_investment(
    investment_data: InvestmentCreate,
    owner_id: str = Depends(get_current_owner),
    service: InvestmentService = Depends(get_investment_service)
):
    """
    Create an investment.

    With ``create_expense`` and ``transaction_date`` the purchase is also
    recorded as an expense entry linked to the investment.
    """
    return await service.create_investment(owner_id, investment_data.model_dump(mode="json"))


@router.get("", response_model=InvestmentListResponse)
async def list_investments(
    status_filter: Optional[InvestmentStatus] = Query(None, alias="status"),
    investment_type: Optional[InvestmentType] = Query(None),
    owner_id: str = Depends(get_current_owner),
    service: InvestmentService = Depends(get_investment_service)
):
    investments = await service.list_investments(
        owner_id,
        status=status_filter.value if status_filter else None,
        investment_type=investment_type.value if investment_type else None,
    )
    return {"investments": investments}


@router.post("/returns", response_model=InvestmentReturnRecordedResponse, status_code=status.HTTP_201_CREATED)
async def record_return(
    return_data: InvestmentReturnCreate,
    owner_id: str = Depends(get_current_owner),
    service: InvestmentService = Depends(get_investment_service)
):
    """Record a return as an income entry and refresh the investment totals."""
    result = await service.record_return(
        owner_id,
        return_data.investment_id,
        return_data.return_date,
        return_data.return_amount,
        return_data.return_type.value,
        payment_method=return_data.payment_method,
        notes=return_data.notes,
    )
    result["warnings"] = warning_payload(result["warnings"])
    return result


@router.get("/returns", response_model=InvestmentReturnListResponse)
async def list_returns(
    investment_id: Optional[str] = Query(None),
    return_type: Optional[ReturnType] = Query(None),
    owner_id: str = Depends(get_current_owner),
    service: InvestmentService = Depends(get_investment_service)
):
    returns = await service.list_returns(
        owner_id, investment_id=investment_id, return_type=return_type.value if return_type else None
    )
    return {"returns": returns}

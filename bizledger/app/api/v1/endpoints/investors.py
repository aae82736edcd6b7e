"""
Investor Funding API Endpoints.

Capital received from investors and the profit share paid back to them.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.core.exceptions import warning_payload
from bizledger.app.domain.investors.investor_service import InvestorService
from bizledger.app.models.enums import FundingStatus, PaymentStatus
from bizledger.app.schemas.investor import (
    FundingCreate, FundingResponse, FundingListResponse,
    ProfitSharingCreate, ProfitSharingPay, ProfitSharingListResponse, ProfitSharingRecordedResponse,
)

router = APIRouter(prefix="/investors", tags=["Investors"])


def get_investor_service(store=Depends(get_store), resolver=Depends(get_field_resolver)) -> InvestorService:
    return InvestorService(store, resolver)


@router.post("", response_model=FundingResponse, status_code=status.HTTP_201_CREATED)
async def create_funding(
    funding_data: FundingCreate,
    owner_id: str = Depends(get_current_owner),
    service: InvestorService = Depends(get_investor_service)
):
    return await service.create_funding(owner_id, funding_data.model_dump(mode="json"))


@router.get("", response_model=FundingListResponse)
async def list_funding(
    status_filter: Optional[FundingStatus] = Query(None, alias="status"),
    owner_id: str = Depends(get_current_owner),
    service: InvestorService = Depends(get_investor_service)
):
    funding = await service.list_funding(owner_id, status=status_filter.value if status_filter else None)
    return {"funding": funding}


@router.post("/profit-sharing", response_model=ProfitSharingRecordedResponse, status_code=status.HTTP_201_CREATED)
async def record_profit_sharing(
    payment_data: ProfitSharingCreate,
    owner_id: str = Depends(get_current_owner),
    service: InvestorService = Depends(get_investor_service)
):
    """
    Record the investor's share of one period's profit.

    A period that closed with a loss is rejected (422). Recording the
    payment as paid also writes the payout expense.
    """
    data = payment_data.model_dump(mode="json")
    funding_id = data.pop("funding_id")
    result = await service.record_profit_sharing_payment(owner_id, funding_id, data)
    result["warnings"] = warning_payload(result["warnings"])
    return result


@router.get("/profit-sharing", response_model=ProfitSharingListResponse)
async def list_profit_sharing(
    funding_id: Optional[str] = Query(None),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    owner_id: str = Depends(get_current_owner),
    service: InvestorService = Depends(get_investor_service)
):
    payments = await service.list_payments(
        owner_id, funding_id=funding_id, status=status_filter.value if status_filter else None
    )
    return {"payments": payments}


@router.post("/profit-sharing/{payment_id}/pay", response_model=ProfitSharingRecordedResponse)
async def pay_profit_sharing(
    pay_data: ProfitSharingPay,
    payment_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: InvestorService = Depends(get_investor_service)
):
    result = await service.mark_payment_paid(
        owner_id, payment_id, pay_data.paid_date,
        payment_method=pay_data.payment_method, notes=pay_data.notes
    )
    result["warnings"] = warning_payload(result["warnings"])
    return result

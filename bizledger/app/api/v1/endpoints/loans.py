"""
Loan API Endpoints.

Loans with an auto-generated installment schedule; paying an installment
records an expense entry in the ledger.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from typing import Optional
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.core.exceptions import warning_payload
from bizledger.app.domain.loans.loan_service import LoanService
from bizledger.app.models.enums import LoanStatus, InstallmentStatus
from bizledger.app.schemas.loan import (
    LoanCreate, LoanUpdate, InstallmentPay,
    LoanDetailResponse, LoanResponse, LoanListResponse, LoanDeleteResponse,
    InstallmentPaymentResponse, UpcomingInstallmentListResponse,
)

router = APIRouter(prefix="/loans", tags=["Loans"])


def get_loan_service(store=Depends(get_store), resolver=Depends(get_field_resolver)) -> LoanService:
    return LoanService(store, resolver)


@router.post("", response_model=LoanDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_loan(
    loan_data: LoanCreate,
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    """
    Create a loan and its full installment schedule.

    If the schedule cannot be stored the loan is removed again.
    """
    return await service.create_loan(owner_id, loan_data.model_dump(mode="json"))


@router.get("", response_model=LoanListResponse)
async def list_loans(
    status_filter: Optional[LoanStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    return await service.list_loans(
        owner_id, status=status_filter.value if status_filter else None, limit=limit, offset=offset
    )


@router.get("/installments/upcoming", response_model=UpcomingInstallmentListResponse)
async def upcoming_installments(
    days: Optional[int] = Query(None, ge=0, le=365, description="Look-ahead window in days"),
    status_filter: InstallmentStatus = Query(InstallmentStatus.PENDING, alias="status"),
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    installments = await service.upcoming_installments(owner_id, days=days, status=status_filter.value)
    return {"installments": installments}


@router.post("/installments/pay", response_model=InstallmentPaymentResponse)
async def pay_installment(
    payment: InstallmentPay,
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    """
    Pay one installment.

    The expense entry is written first; if the installment cannot be marked
    paid the expense is deleted. A failed loan total refresh is reported in
    ``warnings`` and does not fail the request.
    """
    result = await service.pay_installment(
        owner_id,
        payment.installment_id,
        payment.paid_date,
        payment.paid_amount,
        payment_method=payment.payment_method,
        notes=payment.notes,
    )
    result["warnings"] = warning_payload(result["warnings"])
    return result


@router.get("/{loan_id}", response_model=LoanDetailResponse)
async def get_loan(
    loan_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    return await service.get_loan(owner_id, loan_id)


@router.patch("/{loan_id}", response_model=LoanResponse)
async def update_loan(
    changes: LoanUpdate,
    loan_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    return await service.update_loan(owner_id, loan_id, changes.model_dump(exclude_unset=True, mode="json"))


@router.delete("/{loan_id}", response_model=LoanDeleteResponse)
async def delete_loan(
    loan_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: LoanService = Depends(get_loan_service)
):
    """Delete a loan that has no paid installments, schedule included."""
    return await service.delete_loan(owner_id, loan_id)

"""
Ledger Entry API Endpoints.

Deleting a generated entry reverses the domain event behind it.
"""

from fastapi import APIRouter, Depends, Path
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.core.exceptions import warning_payload
from bizledger.app.domain.ledger.ledger_service import LedgerService
from bizledger.app.models.enums import LedgerKind
from bizledger.app.schemas.ledger import LedgerDeleteResponse

router = APIRouter(prefix="/ledger", tags=["Ledger"])


def get_ledger_service(store=Depends(get_store), resolver=Depends(get_field_resolver)) -> LedgerService:
    return LedgerService(store, resolver)


@router.delete("/expenses/{entry_id}", response_model=LedgerDeleteResponse)
async def delete_expense(
    entry_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: LedgerService = Depends(get_ledger_service)
):
    """
    Delete an expense.

    A loan installment or profit share paid by this expense goes back to
    pending; an investment bought with it loses the link.
    """
    result = await service.delete_entry(owner_id, LedgerKind.EXPENSE, entry_id)
    result["warnings"] = warning_payload(result["warnings"])
    return result


@router.delete("/incomes/{entry_id}", response_model=LedgerDeleteResponse)
async def delete_income(
    entry_id: str = Path(...),
    owner_id: str = Depends(get_current_owner),
    service: LedgerService = Depends(get_ledger_service)
):
    """Delete an income; an investment return it recorded is removed too."""
    result = await service.delete_entry(owner_id, LedgerKind.INCOME, entry_id)
    result["warnings"] = warning_payload(result["warnings"])
    return result

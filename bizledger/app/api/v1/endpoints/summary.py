"""
Dashboard and Activity API Endpoints.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from bizledger.app.core.dependencies import get_current_owner, get_store, get_field_resolver
from bizledger.app.schemas.common import SummaryResponse, ActivityListResponse
from bizledger.app.services.activity import get_activity_log
from bizledger.app.services.summary import SummaryService

router = APIRouter(tags=["Dashboard"])


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    owner_id: str = Depends(get_current_owner),
    store=Depends(get_store),
    resolver=Depends(get_field_resolver)
):
    """Loan, investment, investor and sales totals for the dashboard."""
    return await SummaryService(store, resolver).summary(owner_id)


@router.get("/activity", response_model=ActivityListResponse)
async def list_activity(
    action: Optional[str] = Query(None, description="Filter by action"),
    limit: int = Query(100, ge=1, le=500),
    owner_id: str = Depends(get_current_owner),
    store=Depends(get_store)
):
    activities = await get_activity_log(store, owner_id, action=action, limit=limit)
    return {"activities": activities}

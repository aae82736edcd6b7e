"""
Activity logging service.

Records domain events for the owner's activity feed. Logging is best-effort:
a failed write is reported to the application log and never fails the
operation that triggered it.
"""

import json
import logging
from typing import Optional, Dict, Any, List

from bizledger.app.db.row_store import StoreError, new_id
from bizledger.app.models.activity_log import ActivityLog

logger = logging.getLogger("bizledger.activity")


class ActivityAction:
    """Standardized activity action constants."""
    LOAN_CREATED = "LOAN_CREATED"
    LOAN_UPDATED = "LOAN_UPDATED"
    LOAN_DELETED = "LOAN_DELETED"
    INSTALLMENT_PAID = "INSTALLMENT_PAID"

    INVESTMENT_CREATED = "INVESTMENT_CREATED"
    INVESTMENT_RETURN_RECORDED = "INVESTMENT_RETURN_RECORDED"

    FUNDING_CREATED = "FUNDING_CREATED"
    PROFIT_SHARING_RECORDED = "PROFIT_SHARING_RECORDED"
    PROFIT_SHARING_PAID = "PROFIT_SHARING_PAID"

    SALE_CREATED = "SALE_CREATED"
    SALE_ITEMS_UPDATED = "SALE_ITEMS_UPDATED"
    SALE_DELETED = "SALE_DELETED"

    EXPENSE_DELETED = "EXPENSE_DELETED"
    INCOME_DELETED = "INCOME_DELETED"


async def log_activity(
    store,
    owner_id: str,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Record an activity entry.

    Args:
        store: Row store
        owner_id: Acting owner
        action: Action performed (use ActivityAction constants)
        entity_type: Kind of record acted upon
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON

    Returns:
        The stored row, or None if the write failed
    """
    row = {
        "id": new_id(),
        "owner_id": owner_id,
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "meta_data": metadata,
    }
    try:
        inserted = await store.insert(ActivityLog.__tablename__, row)
    except StoreError as e:
        logger.warning("Activity %s for %s not recorded: %s", action, entity_id, e.message)
        return None
    return inserted[0] if inserted else None


async def get_activity_log(
    store,
    owner_id: str,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """
    Retrieve the owner's activity feed, most recent first.
    """
    filters = {"owner_id": owner_id}
    if action:
        filters["action"] = action
    rows = await store.select(
        ActivityLog.__tablename__,
        filters=filters,
        order_by="created_at",
        descending=True,
        limit=limit,
    )
    for row in rows:
        # Stores without a native JSON type hand the payload back as text
        if isinstance(row.get("meta_data"), str):
            row["meta_data"] = json.loads(row["meta_data"])
    return rows

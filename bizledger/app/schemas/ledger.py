"""
Ledger Entry Schemas.
"""

from pydantic import BaseModel
from typing import Optional, List
from bizledger.app.schemas.common import WarningResponse


class ReversedSource(BaseModel):
    source_type: str
    id: str


class LedgerDeleteResponse(BaseModel):
    deleted: bool
    id: str
    reversed: Optional[ReversedSource] = None
    warnings: List[WarningResponse] = []

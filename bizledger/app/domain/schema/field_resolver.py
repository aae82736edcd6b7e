"""
Schema-tolerant field resolution.

Several tables exist in more than one historical shape (ownership column
``user_id`` vs ``owner_id``, stock column ``stock_quantity`` vs ``stock``).
The resolver finds out at runtime which one a deployment has by probing the
store with zero-row reads, and remembers the answer for the process lifetime.

Missing-column detection partly relies on matching error text, since the
error surface is not uniformly structured across drivers and client versions.
Treat the wording list as a stopgap, not a contract.
"""

import asyncio
import logging
from typing import Dict, Optional, Sequence, Tuple

from bizledger.app.core.exceptions import SchemaShapeUnresolvedError
from bizledger.app.db.row_store import StoreError

logger = logging.getLogger("bizledger.schema")

UNDEFINED_COLUMN_CODE = "42703"


def is_missing_column_error(error: StoreError, column_name: str, table_name: str = None) -> bool:
    """
    Classify a store error as "this column does not exist".

    Recognizes the Postgres ``undefined_column`` SQLSTATE and the wordings
    produced by Postgres, PostgREST-style schema caches and SQLite.
    """
    code = (error.code or "").upper()
    if code == UNDEFINED_COLUMN_CODE:
        return True

    msg = (error.message or "").lower()
    col = column_name.lower()
    if col not in msg:
        return False

    # PostgREST schema cache: "Could not find the 'owner_id' column of 'x' in the schema cache"
    if "schema cache" in msg:
        return True
    if "could not find" in msg and ("column" in msg or "field" in msg):
        return True
    if "unknown field" in msg:
        return True
    # SQLite: "no such column: owner_id"
    if "no such column" in msg:
        return True

    if "does not exist" not in msg:
        return False
    tbl = (table_name or error.table or "").lower()
    return (
        f"{tbl}.{col}" in msg
        or f'column "{col}"' in msg
        or f'"{col}" of relation' in msg
        or f" {col} " in msg
    )


class FieldResolver:
    """
    Process-scoped column resolver.

    Construct one per application (see ``main.lifespan``) and share it;
    ``reset()`` clears the cache on teardown.
    """

    def __init__(self, store):
        self.store = store
        self._resolved: Dict[Tuple[str, Tuple[str, ...]], str] = {}
        self._present: Dict[Tuple[str, str], bool] = {}
        self._lock = asyncio.Lock()

    async def _column_exists(self, table_name: str, column_name: str) -> bool:
        try:
            await self.store.probe(table_name, column_name)
        except StoreError as e:
            if is_missing_column_error(e, column_name, table_name):
                return False
            # RLS / permission errors still prove the column is there
            logger.debug(
                "Probe of %s.%s failed with a non-schema error, assuming present: %s",
                table_name, column_name, e.message
            )
        return True

    async def resolve(self, table_name: str, candidates: Sequence[str]) -> str:
        """
        Return the first candidate column the table actually has.

        Falls back to the most-preferred candidate (uncached) when none
        answers; the caller's subsequent write will surface the real error.
        """
        if not candidates:
            raise ValueError("At least one candidate column is required")
        key = (table_name, tuple(candidates))
        cached = self._resolved.get(key)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._resolved.get(key)
            if cached is not None:
                return cached

            for candidate in candidates:
                if await self._column_exists(table_name, candidate):
                    self._resolved[key] = candidate
                    self._present[(table_name, candidate)] = True
                    logger.info("Resolved %s column to '%s'", table_name, candidate)
                    return candidate
                self._present[(table_name, candidate)] = False

        logger.warning(
            "%s; falling back to '%s'",
            SchemaShapeUnresolvedError(table_name, candidates), candidates[0]
        )
        return candidates[0]

    async def has_column(self, table_name: str, column_name: str) -> bool:
        key = (table_name, column_name)
        known: Optional[bool] = self._present.get(key)
        if known is not None:
            return known
        present = await self._column_exists(table_name, column_name)
        self._present[key] = present
        return present

    def cached(self, table_name: str, candidates: Sequence[str]) -> Optional[str]:
        return self._resolved.get((table_name, tuple(candidates)))

    def reset(self) -> None:
        self._resolved.clear()
        self._present.clear()

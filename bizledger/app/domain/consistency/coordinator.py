"""
Compensating Write Coordinator.

The store offers no transaction spanning several statements, so an operation
that must touch several records runs them as an ordered list of steps, each
registered with its inverse. If step i fails, the inverses of steps i-1..1
run in reverse order and a single consolidated error surfaces.

Flow:
    IDLE -> EXECUTING -> COMMITTED
                      -> ROLLING_BACK -> ROLLED_BACK

A failing inverse is logged and recorded on the raised error but never
re-raised: the user-visible failure path must not be blocked by cleanup.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bizledger.app.core.exceptions import AppException, DependentWriteError, PersistenceError
from bizledger.app.db.row_store import StoreError

logger = logging.getLogger("bizledger.coordinator")

Results = Dict[str, Any]


class CoordinatorState(str, enum.Enum):
    IDLE = "IDLE"
    EXECUTING = "EXECUTING"
    COMMITTED = "COMMITTED"
    ROLLING_BACK = "ROLLING_BACK"
    ROLLED_BACK = "ROLLED_BACK"


@dataclass
class WriteStep:
    """
    One forward write and its inverse.

    ``action`` receives the results of earlier steps (keyed by step name) and
    returns this step's result; ``compensate`` receives that result.
    """
    name: str
    action: Callable[[Results], Awaitable[Any]]
    compensate: Optional[Callable[[Any], Awaitable[None]]] = None


def _resolve(value, results: Results):
    return value(results) if callable(value) else value


class CompensatingWriteCoordinator:
    """
    Usage:
        coordinator = CompensatingWriteCoordinator(store, "pay_installment")
        coordinator.insert("expense", "expenses", expense_row)
        coordinator.update(
            "installment", "loan_installments",
            filters={"id": installment_id, "status": "pending"},
            values=lambda r: {"status": "paid", "expense_transaction_id": r["expense"]["id"]},
        )
        results = await coordinator.execute()
    """

    def __init__(self, store, operation: str):
        self.store = store
        self.operation = operation
        self.state = CoordinatorState.IDLE
        self.steps: List[WriteStep] = []
        self.results: Results = {}
        self.rolled_back: List[str] = []
        self.compensation_failures: List[Dict[str, str]] = []
        self._completed: List[tuple] = []

    # Step registration

    def step(self, name: str, action, compensate=None) -> "CompensatingWriteCoordinator":
        if self.state != CoordinatorState.IDLE:
            raise RuntimeError(f"Cannot add steps to a coordinator in state {self.state.value}")
        if any(existing.name == name for existing in self.steps):
            raise ValueError(f"Duplicate step name '{name}'")
        self.steps.append(WriteStep(name=name, action=action, compensate=compensate))
        return self

    def insert(self, name: str, table_name: str, rows) -> "CompensatingWriteCoordinator":
        """Insert one row (dict) or many (list). Inverse: delete the inserted ids."""

        async def action(results: Results):
            payload = _resolve(rows, results)
            inserted = await self.store.insert(table_name, payload)
            expected = 1 if isinstance(payload, dict) else len(payload)
            if len(inserted) != expected:
                raise StoreError("insert", table_name, f"expected {expected} rows back, got {len(inserted)}")
            return inserted[0] if isinstance(payload, dict) else inserted

        async def compensate(result):
            inserted = [result] if isinstance(result, dict) else list(result)
            ids = [row["id"] for row in inserted]
            if ids:
                await self.store.delete(table_name, {"id": ids})

        return self.step(name, action, compensate)

    def update(self, name: str, table_name: str, filters, values, require_match: bool = True) -> "CompensatingWriteCoordinator":
        """
        Update rows matching ``filters``. The pre-image of the touched columns
        is captured first; the inverse writes it back row by row.
        """

        async def action(results: Results):
            where = _resolve(filters, results)
            changes = _resolve(values, results)
            before = await self.store.select(table_name, columns=["id", *changes.keys()], filters=where)
            if not before and require_match:
                raise StoreError("update", table_name, f"no rows matched {where}")
            after = await self.store.update(table_name, changes, where)
            if not after and require_match:
                raise StoreError("update", table_name, f"no rows updated for {where}")
            return {"before": before, "after": after}

        async def compensate(result):
            for row in result["before"]:
                restore = {key: value for key, value in row.items() if key != "id"}
                await self.store.update(table_name, restore, {"id": row["id"]})

        return self.step(name, action, compensate)

    def delete(self, name: str, table_name: str, filters) -> "CompensatingWriteCoordinator":
        """Delete rows matching ``filters``. Inverse: re-insert the captured rows."""

        async def action(results: Results):
            where = _resolve(filters, results)
            rows = await self.store.select(table_name, filters=where)
            if rows:
                await self.store.delete(table_name, {"id": [row["id"] for row in rows]})
            return rows

        async def compensate(rows):
            if rows:
                await self.store.insert(table_name, rows)

        return self.step(name, action, compensate)

    # Execution

    async def execute(self) -> Results:
        if self.state != CoordinatorState.IDLE:
            raise RuntimeError(f"Coordinator for {self.operation} already ran ({self.state.value})")

        self.state = CoordinatorState.EXECUTING
        for index, step in enumerate(self.steps):
            logger.debug("%s: executing step %d '%s'", self.operation, index + 1, step.name)
            try:
                result = await step.action(self.results)
            except Exception as exc:
                logger.warning(
                    "%s: step '%s' failed, rolling back %d completed step(s)",
                    self.operation, step.name, len(self._completed),
                    extra={"operation": self.operation, "failed_step": step.name, "error": str(exc)}
                )
                await self._roll_back()
                raise self._consolidated_error(index, step, exc) from exc
            self.results[step.name] = result
            self._completed.append((step, result))

        self.state = CoordinatorState.COMMITTED
        logger.info("%s: committed %d step(s)", self.operation, len(self.steps))
        return self.results

    async def _roll_back(self) -> None:
        self.state = CoordinatorState.ROLLING_BACK
        for step, result in reversed(self._completed):
            if step.compensate is None:
                continue
            try:
                await step.compensate(result)
                self.rolled_back.append(step.name)
            except Exception as exc:
                logger.error(
                    "%s: compensation for step '%s' failed: %s",
                    self.operation, step.name, exc,
                    extra={"operation": self.operation, "step": step.name}
                )
                self.compensation_failures.append({"step": step.name, "error": str(exc)})
        self.state = CoordinatorState.ROLLED_BACK

    def _consolidated_error(self, index: int, step: WriteStep, exc: Exception) -> Exception:
        # Domain errors raised inside a step reach the caller unchanged
        if isinstance(exc, AppException):
            return exc
        cause = exc.message if isinstance(exc, StoreError) else str(exc)
        if index == 0:
            return PersistenceError(
                f"{self.operation} failed at step '{step.name}': {cause}",
                details={"operation": self.operation, "failed_step": step.name}
            )
        return DependentWriteError(
            operation=self.operation,
            failed_step=step.name,
            cause=cause,
            rolled_back=list(self.rolled_back),
            compensation_failures=list(self.compensation_failures),
        )

    @property
    def committed(self) -> bool:
        return self.state == CoordinatorState.COMMITTED

"""
In-Memory Storage Implementation

Used by the test suite and by STORAGE_BACKEND=memory for local runs.
Records live in a process-local list and vanish on restart.
"""

from decimal import Decimal
from typing import Optional

from expense_bot.models.audit import AuditEvent
from expense_bot.models.expense import ExpenseFilter, ExpenseRecord
from expense_bot.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    RecordMissingError,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """List-backed expense storage with the same semantics as Sheets."""

    def __init__(self, records: Optional[list[ExpenseRecord]] = None):
        self._records: list[ExpenseRecord] = [
            record.model_copy() for record in (records or [])
        ]

    def _matching(
        self,
        expense_filter: Optional[ExpenseFilter],
        newest_first: bool,
    ) -> list[ExpenseRecord]:
        matched = [
            record for record in self._records
            if expense_filter is None or expense_filter.matches(record)
        ]
        matched.sort(key=lambda r: r.timestamp, reverse=newest_first)
        return matched

    async def create(self, record: ExpenseRecord) -> ExpenseRecord:
        self._records.append(record.model_copy())
        return record

    async def find(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
        newest_first: bool = True,
    ) -> list[ExpenseRecord]:
        return [r.model_copy() for r in self._matching(expense_filter, newest_first)]

    async def find_one(
        self,
        expense_filter: ExpenseFilter,
        newest_first: bool = True,
    ) -> Optional[ExpenseRecord]:
        matched = self._matching(expense_filter, newest_first)
        return matched[0].model_copy() if matched else None

    async def find_one_and_delete(
        self,
        expense_filter: ExpenseFilter,
    ) -> Optional[ExpenseRecord]:
        matched = self._matching(expense_filter, newest_first=False)
        if not matched:
            return None
        target = matched[0]
        self._records = [r for r in self._records if r.id != target.id]
        return target

    async def replace(self, record: ExpenseRecord) -> ExpenseRecord:
        for idx, stored in enumerate(self._records):
            if stored.id == record.id:
                self._records[idx] = record.model_copy()
                return record
        raise RecordMissingError(f"Expense not found: {record.id}")

    async def aggregate_sum(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
    ) -> Decimal:
        return sum(
            (r.amount for r in self._matching(expense_filter, newest_first=True)),
            Decimal("0"),
        )

    async def count(self) -> int:
        return len(self._records)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

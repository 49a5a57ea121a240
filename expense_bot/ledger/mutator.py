"""
Ledger Mutations

Add, batch-add, edit and delete expense records.

IMPORTANT: Records have no user-visible id. Edit and delete find their
target by (amount, category, time window), using the configured match
mode for the category. The internal storage id is only used to write the
edited record back.

Batch add is NOT atomic. Each item is its own create call; the result
reports which items were saved and which were not.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from expense_bot.dates.resolver import DateRangeResolver
from expense_bot.exceptions import NotFoundError, ValidationError
from expense_bot.ledger.normalizer import CategoryNormalizer
from expense_bot.models.expense import (
    AddedExpense,
    BatchAddResult,
    CategoryMatch,
    DeleteResult,
    EditResult,
    ExpenseFilter,
    ExpenseItem,
    ExpenseRecord,
    FailedItem,
)
from expense_bot.services.storage.interface import ExpenseStorageInterface


logger = structlog.get_logger(__name__)


def _require_amount(value: Optional[Decimal], field: str) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required", fields=[field])
    if value <= 0:
        raise ValidationError(f"{field} must be greater than zero", fields=[field])
    return value


def _require_category(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", fields=[field])
    return value


class LedgerMutator:
    """
    Performs every write to the ledger.

    GUARANTEES:
    - Nothing is written unless amount > 0 and category is non-empty
    - Edit changes only the amount of exactly one record
    - Delete removes at most one record
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        resolver: DateRangeResolver,
        normalizer: CategoryNormalizer,
        edit_match: CategoryMatch = CategoryMatch.EXACT,
        delete_match: CategoryMatch = CategoryMatch.EXACT,
    ):
        self._storage = storage
        self._resolver = resolver
        self._normalizer = normalizer
        self._edit_match = edit_match
        self._delete_match = delete_match

    async def _save(
        self,
        amount: Decimal,
        category: str,
        timestamp: datetime,
    ) -> AddedExpense:
        normalized = await self._normalizer.normalize(category)
        record = ExpenseRecord(amount=amount, category=normalized, timestamp=timestamp)
        await self._storage.create(record)
        return AddedExpense(
            amount=record.amount,
            category=record.category,
            timestamp=record.timestamp,
        )

    async def add_expense(
        self,
        amount: Optional[Decimal],
        category: Optional[str],
        date: Optional[str] = None,
    ) -> AddedExpense:
        """
        Record one expense.

        The date defaults to now; the category is normalized first.
        """
        amount = _require_amount(amount, "amount")
        category = _require_category(category, "category")
        timestamp = self._resolver.resolve_freeform(date)
        return await self._save(amount, category, timestamp)

    async def add_expenses(
        self,
        items: list[ExpenseItem],
        date: Optional[str] = None,
    ) -> BatchAddResult:
        """
        Record several expenses that share one date.

        Items are saved one after another. A failing item is reported in
        result.failed and the remaining items are still attempted; items
        already saved stay saved.
        """
        if not items:
            raise ValidationError("items are required", fields=["items"])

        timestamp = self._resolver.resolve_freeform(date)
        result = BatchAddResult(timestamp=timestamp)

        for position, item in enumerate(items):
            try:
                amount = _require_amount(item.amount, "amount")
                category = _require_category(item.category, "category")
                result.added.append(await self._save(amount, category, timestamp))
            except Exception as e:
                logger.warning(
                    "batch_item_failed",
                    position=position,
                    amount=str(item.amount),
                    category=item.category,
                    error=str(e),
                    exc_info=not isinstance(e, ValidationError),
                )
                result.failed.append(FailedItem(
                    amount=item.amount,
                    category=item.category,
                    reason=f"{type(e).__name__}: {e}",
                ))

        return result

    async def edit_expense(
        self,
        old_amount: Optional[Decimal],
        old_category: Optional[str],
        new_amount: Optional[Decimal],
    ) -> EditResult:
        """
        Change the amount of the most recent matching expense.

        old_category is matched as given (no normalization).
        """
        missing = [
            name for name, value in (
                ("old_amount", old_amount),
                ("old_category", old_category),
                ("new_amount", new_amount),
            )
            if value is None
        ]
        if missing:
            raise ValidationError(f"missing fields: {', '.join(missing)}", fields=missing)
        new_amount = _require_amount(new_amount, "new_amount")

        record = await self._storage.find_one(
            ExpenseFilter(
                amount=old_amount,
                category=old_category,
                category_match=self._edit_match,
            ),
            newest_first=True,
        )
        if record is None:
            raise NotFoundError(
                f"No expense of {old_amount} for {old_category}",
                searched={"amount": old_amount, "category": old_category},
            )

        await self._storage.replace(record.model_copy(update={"amount": new_amount}))
        return EditResult(
            category=record.category,
            old_amount=record.amount,
            new_amount=new_amount,
            timestamp=record.timestamp,
        )

    async def delete_expense(
        self,
        amount: Optional[Decimal],
        category: Optional[str],
        date: Optional[str] = None,
    ) -> DeleteResult:
        """
        Delete one expense matching amount and category on a given day.

        The day defaults to today.
        """
        amount = _require_amount(amount, "amount")
        category = _require_category(category, "category")
        window = self._resolver.day_window(self._resolver.resolve_freeform(date))

        record = await self._storage.find_one_and_delete(
            ExpenseFilter(
                amount=amount,
                category=category,
                category_match=self._delete_match,
                date_range=window,
            )
        )
        if record is None:
            raise NotFoundError(
                f"No expense of {amount} for {category} between "
                f"{window.start.isoformat()} and {window.end.isoformat()}",
                searched={
                    "amount": amount,
                    "category": category,
                    "start": window.start,
                    "end": window.end,
                },
            )

        return DeleteResult(
            amount=record.amount,
            category=record.category,
            timestamp=record.timestamp,
        )

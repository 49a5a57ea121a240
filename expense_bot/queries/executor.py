"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
The LLM only says what the user asked ("total", "food", "this_month").
This engine resolves the window and sums actual stored records.
The LLM never computes or phrases a number.

Category filtering here is deliberately looser than in edit/delete:
by default a case-insensitive substring match, so "food" also counts
"Food" and "fast food". The mode is configurable.
"""

from decimal import Decimal
from typing import Optional

import structlog

from expense_bot.dates.resolver import DateRangeResolver, parse_period
from expense_bot.exceptions import ValidationError
from expense_bot.models.expense import (
    CategoryMatch,
    DateRange,
    ExpenseFilter,
    ListResult,
    QueryIntent,
    QueryType,
    TotalResult,
)
from expense_bot.services.storage.interface import ExpenseStorageInterface


logger = structlog.get_logger(__name__)


class LedgerQueryEngine:
    """
    Executes aggregate and listing queries against expense storage.

    GUARANTEES:
    - Only returns real data from storage
    - A total of 0 means nothing matched; None means the query failed
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        resolver: DateRangeResolver,
        category_match: CategoryMatch = CategoryMatch.CONTAINS,
    ):
        self._storage = storage
        self._resolver = resolver
        self._category_match = category_match

    async def total(
        self,
        date_range: Optional[DateRange] = None,
        category: Optional[str] = None,
    ) -> Optional[Decimal]:
        """
        Sum matching expenses.

        Returns:
            The sum (Decimal("0") if nothing matched), or None if the
            storage call failed. The failure is logged, not raised.
        """
        expense_filter = ExpenseFilter(
            category=category or None,
            category_match=self._category_match,
            date_range=date_range if date_range and date_range.is_bounded else None,
        )
        try:
            return await self._storage.aggregate_sum(expense_filter)
        except Exception as e:
            logger.error(
                "total_query_failed",
                category=category,
                error=str(e),
                exc_info=True,
            )
            return None

    async def list_all(self) -> ListResult:
        """Every expense, newest first."""
        records = await self._storage.find(None, newest_first=True)
        return ListResult(records=records)

    async def answer(self, query: QueryIntent) -> TotalResult:
        """
        Execute a query intent.

        Window resolution:
        - a known period token wins ("this_month")
        - else a date string selects that calendar day
        - else no date filter

        Raises:
            ValidationError: category query without a category, or
                             date query without a date/period
        """
        query_type = query.query_type or QueryType.TOTAL
        result = TotalResult(query_type=query_type, category=query.category or None)

        if parse_period(query.period) is not None:
            result.date_range = self._resolver.resolve_symbolic(query.period)
            result.period_label = self._resolver.describe(query.period)
        elif query.date:
            day = self._resolver.resolve_freeform(query.date)
            result.date_range = self._resolver.day_window(day)
            result.day = result.date_range.start

        if query_type is QueryType.CATEGORY and not result.category:
            raise ValidationError("category is required", fields=["category"])
        if query_type is QueryType.DATE and not result.date_range.is_bounded:
            raise ValidationError("date is required", fields=["date"])

        result.total = await self.total(result.date_range, result.category)
        return result

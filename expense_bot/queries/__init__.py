"""Query execution package."""

from expense_bot.queries.executor import LedgerQueryEngine

__all__ = ["LedgerQueryEngine"]

"""Date resolution package."""

from expense_bot.dates.resolver import DateRangeResolver

__all__ = ["DateRangeResolver"]

"""
Date Resolution

Turns what users say about time into concrete local-time values:
- symbolic periods ("this_month") become half-open [start, end) ranges
- free-form dates ("yesterday", "04/02/2025", "Feb 4") become instants

This is DETERMINISTIC - no LLM involvement. Every window is anchored to
the resolver's clock at the moment of the call.

DESIGN DECISION: An unparseable free-form date does NOT fail the request.
It is logged and replaced with "now", so an expense is never lost because
the classifier echoed an odd date string.

Expenses are in the past: a free-form date that parses to a day after
today is read back to its latest past occurrence.
"""

import re
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from dateutil import parser as date_parser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from expense_bot.models.expense import DateRange, SymbolicPeriod


logger = structlog.get_logger(__name__)


WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)

_PARSER_INFO = date_parser.parserinfo()


PERIOD_LABELS = {
    SymbolicPeriod.TODAY: "today",
    SymbolicPeriod.YESTERDAY: "yesterday",
    SymbolicPeriod.THIS_MONTH: "this month",
    SymbolicPeriod.LAST_MONTH: "last month",
    SymbolicPeriod.LAST_WEEK: "in the last week",
}


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _as_local(moment: datetime) -> datetime:
    """Ledger times are naive local time; convert aware values."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def _latest_past(text: str, parsed: datetime, today: datetime) -> Optional[datetime]:
    """
    Re-read a parse that landed after today as the most recent past date.

    dateutil moves a bare weekday forward and fills a missing year with the
    current one. Returns None when the text names its year explicitly.
    """
    words = re.findall(r"[a-z]+", text.lower())
    numbers = re.findall(r"\d+", text)
    has_weekday = any(_PARSER_INFO.weekday(word) is not None for word in words)
    has_month = any(_PARSER_INFO.month(word) is not None for word in words)

    if has_weekday and not has_month and not numbers:
        yesterday = today - timedelta(days=1)
        return yesterday + relativedelta(weekday=WEEKDAYS[parsed.weekday()](-1))

    has_year = (
        any(len(number) == 4 for number in numbers)
        or len(numbers) >= 3
        or (has_month and len(numbers) >= 2)
    )
    if has_year:
        return None

    rolled = parsed - relativedelta(years=1)
    if rolled < today + timedelta(days=1):
        return rolled
    return None


def parse_period(period: Optional[str]) -> Optional[SymbolicPeriod]:
    """Map 'This Month', 'this-month' or 'this_month' to a SymbolicPeriod."""
    if not period:
        return None
    token = period.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return SymbolicPeriod(token)
    except ValueError:
        return None


class DateRangeResolver:
    """
    Resolves symbolic periods and free-form date strings.

    The clock is injectable so tests can pin "now".
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    def resolve_symbolic(self, period: Optional[str]) -> DateRange:
        """
        Resolve a period token to a half-open range.

        today      = [midnight today, midnight tomorrow)
        yesterday  = [midnight yesterday, midnight today)
        this_month = [first of month, first of next month)
        last_month = [first of previous month, first of this month)
        last_week  = [midnight 7 days ago, midnight today)

        last_week ends at today's midnight, so it never includes today
        but does include yesterday.

        Unknown tokens give an unbounded range (no filter).
        """
        token = parse_period(period)
        if token is None:
            return DateRange.unbounded()

        today = _midnight(self.now())
        first_of_month = today.replace(day=1)

        if token is SymbolicPeriod.TODAY:
            return DateRange(start=today, end=today + timedelta(days=1))
        if token is SymbolicPeriod.YESTERDAY:
            return DateRange(start=today - timedelta(days=1), end=today)
        if token is SymbolicPeriod.THIS_MONTH:
            return DateRange(
                start=first_of_month,
                end=first_of_month + relativedelta(months=1),
            )
        if token is SymbolicPeriod.LAST_MONTH:
            return DateRange(
                start=first_of_month - relativedelta(months=1),
                end=first_of_month,
            )
        # last_week
        return DateRange(start=today - timedelta(days=7), end=today)

    def resolve_freeform(self, date_str: Optional[str]) -> datetime:
        """
        Resolve a free-form date to an instant.

        "today" / empty -> now
        "yesterday"     -> now minus one day
        anything else   -> parsed (ISO first, then day-first formats);
                           missing parts are taken from today
        after today     -> the latest past reading ("friday" is last
                           Friday, "Dec 25" is last Christmas), else now
        unparseable     -> now, with a warning
        """
        now = self.now()
        if not date_str or not date_str.strip():
            return now

        text = date_str.strip()
        lowered = text.lower()
        if lowered == "today":
            return now
        if lowered == "yesterday":
            return now - timedelta(days=1)

        today = _midnight(now)
        try:
            parsed = _as_local(datetime.fromisoformat(text))
        except ValueError:
            try:
                parsed = _as_local(date_parser.parse(text, dayfirst=True, default=today))
            except (ValueError, OverflowError) as e:
                return self._fallback(text, now, str(e))

        if parsed < today + timedelta(days=1):
            return parsed

        past = _latest_past(text, parsed, today)
        if past is None:
            return self._fallback(text, now, f"date {parsed.isoformat()} is in the future")
        return past

    @staticmethod
    def _fallback(text: str, now: datetime, error: str) -> datetime:
        logger.warning(
            "date_parse_fallback",
            date_str=text,
            error=error,
            fallback=now.isoformat(),
        )
        return now

    def day_window(self, moment: datetime) -> DateRange:
        """The calendar day containing moment, as [midnight, next midnight)."""
        start = _midnight(moment)
        return DateRange(start=start, end=start + timedelta(days=1))

    def describe(self, period: Optional[str]) -> Optional[str]:
        """Human label for a period token, e.g. 'this month'."""
        token = parse_period(period)
        return PERIOD_LABELS.get(token) if token else None

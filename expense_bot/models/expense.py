"""
Core Data Models for Expense Bot

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Validate the LLM's loosely-typed JSON at the boundary
2. Keep ledger records well-formed (amount > 0, category non-empty)
3. Be serializable for storage and logging

DESIGN DECISION: The Intent is a CLOSED discriminated union on the "intent"
tag. Anything the classifier says that does not fit one of these shapes is
rejected before it reaches a ledger handler. Fields inside each variant are
optional on purpose: which ones are required is decided per handler.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    BeforeValidator,
    Field,
    TypeAdapter,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Canonical expense categories.

    Free text is still accepted for a record's category; this is the
    taxonomy the normalizer steers towards.
    """
    FOOD = "Food"
    GROCERIES = "Groceries"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BEVERAGES = "Beverages"
    HEALTHCARE = "Healthcare"
    UTILITIES = "Utilities"
    OTHERS = "Others"

    @classmethod
    def lookup(cls, name: str) -> Optional["ExpenseCategory"]:
        """Case-insensitive lookup by value. None if not in the taxonomy."""
        cleaned = name.strip().strip(".\"'").lower()
        for category in cls:
            if category.value.lower() == cleaned:
                return category
        return None


class CategoryMatch(str, Enum):
    """
    How a stored category is compared against a requested one.

    Edit/delete default to EXACT and totals default to CONTAINS;
    each operation's mode is configurable.
    """
    EXACT = "exact"          # case-sensitive equality
    IEXACT = "iexact"        # case-insensitive equality
    CONTAINS = "contains"    # case-insensitive substring

    def matches(self, stored: str, wanted: str) -> bool:
        if self is CategoryMatch.EXACT:
            return stored == wanted
        if self is CategoryMatch.IEXACT:
            return stored.lower() == wanted.lower()
        return re.search(re.escape(wanted), stored, re.IGNORECASE) is not None


class SymbolicPeriod(str, Enum):
    """Period tokens the date resolver understands."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    LAST_WEEK = "last_week"


class QueryType(str, Enum):
    """What kind of aggregate a query asks for."""
    TOTAL = "total"
    CATEGORY = "category"
    DATE = "date"


# =============================================================================
# LEDGER MODELS
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single expense in the ledger.

    The id is an internal storage key. It is never shown to the user and
    never used for matching: edit/delete address records by
    (amount, category, time window).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Internal storage key"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category, ideally one of ExpenseCategory"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the expense happened (local time)"
    )


class DateRange(BaseModel):
    """
    Half-open interval [start, end) in local time.

    DateRange(start=None, end=None) means "no filter applied".
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        """Start must come before end when both are set."""
        if self.start and self.end and self.start >= self.end:
            raise ValueError("Date range start must be before end")
        return self

    @classmethod
    def unbounded(cls) -> 'DateRange':
        return cls(start=None, end=None)

    @property
    def is_bounded(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


class ExpenseFilter(BaseModel):
    """Filter passed to the storage layer."""

    amount: Optional[Decimal] = None
    category: Optional[str] = None
    category_match: CategoryMatch = CategoryMatch.EXACT
    date_range: Optional[DateRange] = None

    def matches(self, record: ExpenseRecord) -> bool:
        if self.amount is not None and record.amount != self.amount:
            return False
        if self.category is not None and not self.category_match.matches(
            record.category, self.category
        ):
            return False
        if self.date_range is not None and not self.date_range.contains(record.timestamp):
            return False
        return True


# =============================================================================
# INTENT MODELS (classifier boundary)
# =============================================================================

def _coerce_amount(value):
    """Accept '₹500', '1,200' or 'Rs 80' from the LLM as plain numbers."""
    if isinstance(value, str):
        cleaned = re.sub(r"(?i)(₹|rs\.?|inr|,|\s)", "", value)
        return cleaned or None
    return value


LooseAmount = Annotated[Optional[Decimal], BeforeValidator(_coerce_amount)]


class _IntentBase(BaseModel):
    """Shared config: snake_case fields, camelCase accepted too."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ExpenseItem(_IntentBase):
    """One line of a multi-item message."""

    amount: LooseAmount = None
    category: Optional[str] = None


class AddExpenseIntent(_IntentBase):
    """'Spent 500 on food yesterday'"""

    intent: Literal["add_expense"] = "add_expense"
    amount: LooseAmount = None
    category: Optional[str] = None
    date: Optional[str] = None


class AddExpensesIntent(_IntentBase):
    """'100 on coffee and 200 on chocolate'"""

    intent: Literal["add_expenses"] = "add_expenses"
    items: list[ExpenseItem] = Field(default_factory=list)
    date: Optional[str] = None


class QueryIntent(_IntentBase):
    """'How much did I spend on food this month?'"""

    intent: Literal["query"] = "query"
    query_type: Optional[QueryType] = QueryType.TOTAL
    category: Optional[str] = None
    period: Optional[str] = None
    date: Optional[str] = None


class EditExpenseIntent(_IntentBase):
    """'Change the 500 food expense to 600'"""

    intent: Literal["edit_expense"] = "edit_expense"
    old_amount: LooseAmount = None
    old_category: Optional[str] = None
    new_amount: LooseAmount = None


class DeleteExpenseIntent(_IntentBase):
    """'Delete the 300 groceries expense from yesterday'"""

    intent: Literal["delete_expense"] = "delete_expense"
    amount: LooseAmount = None
    category: Optional[str] = None
    date: Optional[str] = None


class ListAllIntent(_IntentBase):
    intent: Literal["list_all"] = "list_all"


class HelpIntent(_IntentBase):
    intent: Literal["help"] = "help"


class GreetingIntent(_IntentBase):
    intent: Literal["greeting"] = "greeting"


class GoodbyeIntent(_IntentBase):
    intent: Literal["goodbye"] = "goodbye"


class UnknownIntent(_IntentBase):
    intent: Literal["unknown"] = "unknown"


Intent = Annotated[
    Union[
        AddExpenseIntent,
        AddExpensesIntent,
        QueryIntent,
        EditExpenseIntent,
        DeleteExpenseIntent,
        ListAllIntent,
        HelpIntent,
        GreetingIntent,
        GoodbyeIntent,
        UnknownIntent,
    ],
    Field(discriminator="intent"),
]

IntentAdapter = TypeAdapter(Intent)

INTENT_TAGS = frozenset({
    "add_expense",
    "add_expenses",
    "query",
    "edit_expense",
    "delete_expense",
    "list_all",
    "help",
    "greeting",
    "goodbye",
    "unknown",
})


# =============================================================================
# RESULT MODELS (handler -> formatter)
# =============================================================================

class AddedExpense(BaseModel):
    """Confirmation data for one persisted expense."""

    amount: Decimal
    category: str
    timestamp: datetime


class FailedItem(BaseModel):
    """
    A batch item that was not saved.

    reason is for logs only; the formatter never shows it.
    """

    amount: Optional[Decimal] = None
    category: Optional[str] = None
    reason: str


class BatchAddResult(BaseModel):
    """Per-item report of a multi-item add."""

    timestamp: datetime
    added: list[AddedExpense] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


class EditResult(BaseModel):
    category: str
    old_amount: Decimal
    new_amount: Decimal
    timestamp: datetime


class DeleteResult(BaseModel):
    amount: Decimal
    category: str
    timestamp: datetime


class TotalResult(BaseModel):
    """
    Result of an aggregate query.

    total is None only when the query itself failed; Decimal("0")
    means nothing was spent.
    """

    query_type: QueryType
    total: Optional[Decimal] = None
    category: Optional[str] = None
    period_label: Optional[str] = None
    day: Optional[datetime] = None
    date_range: DateRange = Field(default_factory=DateRange.unbounded)


class ListResult(BaseModel):
    records: list[ExpenseRecord] = Field(default_factory=list)

"""
Data Models Package

This package contains all Pydantic models used in the Expense Bot system.
All data flowing through the system must conform to these schemas.
"""

from expense_bot.models.expense import (
    INTENT_TAGS,
    AddedExpense,
    AddExpenseIntent,
    AddExpensesIntent,
    BatchAddResult,
    CategoryMatch,
    DateRange,
    DeleteExpenseIntent,
    DeleteResult,
    EditExpenseIntent,
    EditResult,
    ExpenseCategory,
    ExpenseFilter,
    ExpenseItem,
    ExpenseRecord,
    FailedItem,
    GoodbyeIntent,
    GreetingIntent,
    HelpIntent,
    Intent,
    IntentAdapter,
    ListAllIntent,
    ListResult,
    QueryIntent,
    QueryType,
    SymbolicPeriod,
    TotalResult,
    UnknownIntent,
)
from expense_bot.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AddedExpense",
    "BatchAddResult",
    "CategoryMatch",
    "DateRange",
    "DeleteResult",
    "EditResult",
    "ExpenseCategory",
    "ExpenseFilter",
    "ExpenseRecord",
    "FailedItem",
    "ListResult",
    "QueryType",
    "SymbolicPeriod",
    "TotalResult",
    # Intent models
    "INTENT_TAGS",
    "AddExpenseIntent",
    "AddExpensesIntent",
    "DeleteExpenseIntent",
    "EditExpenseIntent",
    "ExpenseItem",
    "GoodbyeIntent",
    "GreetingIntent",
    "HelpIntent",
    "Intent",
    "IntentAdapter",
    "ListAllIntent",
    "QueryIntent",
    "UnknownIntent",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

"""
Storage Services Package

Provides the abstract storage interface and its implementations.
Google Sheets is the production backend; the in-memory backend serves
tests and local runs.
"""

from expense_bot.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    MissingCredentialsError,
    RecordMissingError,
    StorageConnectionError,
    StorageError,
)
from expense_bot.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)
from expense_bot.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    # Exceptions
    "MissingCredentialsError",
    "RecordMissingError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
]

"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and local runs
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally narrow - it is exactly the capability the
ledger needs: create, find, find-one, find-one-and-delete, replace and
aggregate-sum. There is no migration or schema surface.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from expense_bot.exceptions import UpstreamError
from expense_bot.models.audit import AuditEvent
from expense_bot.models.expense import ExpenseFilter, ExpenseRecord


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, in-memory, a database)
    must implement these methods. Failures raise StorageError.
    """

    @abstractmethod
    async def create(self, record: ExpenseRecord) -> ExpenseRecord:
        """
        Persist a new expense record.

        Returns:
            The record as stored

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def find(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
        newest_first: bool = True,
    ) -> list[ExpenseRecord]:
        """
        Find all records matching a filter.

        Args:
            expense_filter: Filter to apply; None matches everything
            newest_first: Sort by timestamp descending (else ascending)

        Returns:
            Matching records, sorted by timestamp
        """
        pass

    @abstractmethod
    async def find_one(
        self,
        expense_filter: ExpenseFilter,
        newest_first: bool = True,
    ) -> Optional[ExpenseRecord]:
        """
        Find the first record matching a filter in timestamp order.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_one_and_delete(
        self,
        expense_filter: ExpenseFilter,
    ) -> Optional[ExpenseRecord]:
        """
        Delete the first record (oldest first) matching a filter.

        Returns:
            The deleted record, or None if nothing matched
        """
        pass

    @abstractmethod
    async def replace(self, record: ExpenseRecord) -> ExpenseRecord:
        """
        Overwrite the stored record that has record.id.

        Raises:
            RecordMissingError: If no record has that id any more
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def aggregate_sum(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
    ) -> Decimal:
        """
        Sum the amounts of matching records.

        Returns:
            The sum, Decimal("0") when nothing matches
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of records in the ledger."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(UpstreamError):
    """Base exception for storage operations."""
    pass


class RecordMissingError(StorageError):
    """A record disappeared between lookup and write."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class MissingCredentialsError(StorageConnectionError):
    """The service account credentials file does not exist."""
    pass

"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the production storage backend because:
1. The user can open the ledger and read it directly
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for one person's expenses)
- No transactions (concurrent edits are last-write-wins)
- Limited query capabilities (we filter and sum in Python)

The connection is opened once at startup (with retries). Per-request
calls are NOT retried: a failed call fails that request.

gspread is blocking. Every sheet call made while serving a request runs
in a worker thread (asyncio.to_thread), never on the event loop.
"""

import asyncio
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_bot.config.settings import GoogleSheetsSettings
from expense_bot.models.audit import AuditEvent
from expense_bot.models.expense import ExpenseFilter, ExpenseRecord
from expense_bot.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    MissingCredentialsError,
    RecordMissingError,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "timestamp",
    "amount",
    "category",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(MissingCredentialsError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        Called from the startup wiring, never from a request.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise MissingCredentialsError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            except gspread.exceptions.APIError as e:
                raise StorageConnectionError(f"Failed to open spreadsheet: {e}")
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row. Amounts are stored as decimal strings so
    sums stay exact.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    @staticmethod
    def _record_to_row(record: ExpenseRecord) -> list:
        """Convert an ExpenseRecord to a spreadsheet row."""
        return [
            str(record.id),
            record.timestamp.isoformat(),
            str(record.amount),
            record.category,
        ]

    @staticmethod
    def _row_to_record(row: list) -> ExpenseRecord:
        """Convert a spreadsheet row to an ExpenseRecord."""
        return ExpenseRecord(
            id=UUID(row[0]),
            timestamp=datetime.fromisoformat(row[1]),
            amount=Decimal(row[2]),
            category=row[3],
        )

    def _load_rows(self) -> list[tuple[int, ExpenseRecord]]:
        """
        Read every record with its 1-based sheet row number.

        Malformed rows (hand edits in the sheet) are skipped with a warning.
        """
        sheet = self._client.get_expenses_sheet()
        rows = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                rows.append((idx, self._row_to_record(row)))
            except (ValueError, IndexError, InvalidOperation) as e:
                logger.warning("malformed_expense_row", row_number=idx, error=str(e))
        return rows

    def _matching(
        self,
        expense_filter: Optional[ExpenseFilter],
        newest_first: bool,
    ) -> list[tuple[int, ExpenseRecord]]:
        rows = [
            (idx, record) for idx, record in self._load_rows()
            if expense_filter is None or expense_filter.matches(record)
        ]
        rows.sort(key=lambda pair: pair[1].timestamp, reverse=newest_first)
        return rows

    def _append(self, record: ExpenseRecord) -> None:
        sheet = self._client.get_expenses_sheet()
        sheet.append_row(self._record_to_row(record), value_input_option="RAW")

    def _delete_oldest(self, expense_filter: ExpenseFilter) -> Optional[ExpenseRecord]:
        matched = self._matching(expense_filter, newest_first=False)
        if not matched:
            return None
        row_number, record = matched[0]
        self._client.get_expenses_sheet().delete_rows(row_number)
        return record

    def _rewrite(self, record: ExpenseRecord) -> bool:
        sheet = self._client.get_expenses_sheet()
        for row_number, stored in self._load_rows():
            if stored.id == record.id:
                for col_idx, value in enumerate(self._record_to_row(record), start=1):
                    sheet.update_cell(row_number, col_idx, value)
                return True
        return False

    async def create(self, record: ExpenseRecord) -> ExpenseRecord:
        """Append a new expense row."""
        try:
            await asyncio.to_thread(self._append, record)
            return record
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def find(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
        newest_first: bool = True,
    ) -> list[ExpenseRecord]:
        try:
            rows = await asyncio.to_thread(self._matching, expense_filter, newest_first)
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")
        return [record for _, record in rows]

    async def find_one(
        self,
        expense_filter: ExpenseFilter,
        newest_first: bool = True,
    ) -> Optional[ExpenseRecord]:
        records = await self.find(expense_filter, newest_first)
        return records[0] if records else None

    async def find_one_and_delete(
        self,
        expense_filter: ExpenseFilter,
    ) -> Optional[ExpenseRecord]:
        """Delete the oldest matching row."""
        try:
            return await asyncio.to_thread(self._delete_oldest, expense_filter)
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def replace(self, record: ExpenseRecord) -> ExpenseRecord:
        """Rewrite the row holding record.id."""
        try:
            found = await asyncio.to_thread(self._rewrite, record)
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

        if not found:
            raise RecordMissingError(f"Expense not found: {record.id}")
        return record

    async def aggregate_sum(
        self,
        expense_filter: Optional[ExpenseFilter] = None,
    ) -> Decimal:
        records = await self.find(expense_filter)
        return sum((record.amount for record in records), Decimal("0"))

    async def count(self) -> int:
        try:
            return len(await asyncio.to_thread(self._load_rows))
        except Exception as e:
            raise StorageError(f"Failed to count expenses: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only. The sheet is read by people, not by
    the bot.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _append(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append, event)
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.error("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

"""
Main Orchestrator for Expense Bot

This module ties together all the components and defines the
end-to-end flow for one inbound message:

    text -> (small talk | LLM classifier) -> Intent -> handler -> reply

DESIGN DECISION: The router enforces the boundaries:
- Every message gets exactly one reply, whatever fails
- Corrective replies for what the user can fix (missing fields, no match)
- One generic apology for what they can't (LLM/storage failures)
- Internal detail goes to the audit log, never into the reply

This is the "glue" that keeps the transport safe even when individual
components misbehave.
"""

import re
from typing import Awaitable, Callable, Optional
from uuid import UUID

import structlog

from expense_bot.agents import CategoryClassifier, IntentClassifier
from expense_bot.audit import AuditLogger, create_correlation_id
from expense_bot.config import Settings, get_settings
from expense_bot.dates import DateRangeResolver
from expense_bot.exceptions import (
    NotFoundError,
    UnknownIntentError,
    UpstreamError,
    ValidationError,
)
from expense_bot.formatter import ResponseFormatter
from expense_bot.ledger import CategoryNormalizer, LedgerMutator
from expense_bot.models.expense import (
    AddExpenseIntent,
    AddExpensesIntent,
    DeleteExpenseIntent,
    EditExpenseIntent,
    GoodbyeIntent,
    GreetingIntent,
    HelpIntent,
    Intent,
    ListAllIntent,
    QueryIntent,
)
from expense_bot.queries import LedgerQueryEngine
from expense_bot.services.storage import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryExpenseStorage,
)


logger = structlog.get_logger(__name__)


# Answered without calling the classifier
SMALL_TALK = [
    (re.compile(r"^(hi|hello)[!.]*$", re.IGNORECASE), GreetingIntent),
    (re.compile(r"^(bye|goodbye)[!.]*$", re.IGNORECASE), GoodbyeIntent),
]


Handler = Callable[[Intent, UUID], Awaitable[str]]


class IntentRouter:
    """
    Dispatches one Intent to its handler and always returns one reply.

    The dispatch table is keyed by Intent model class. A variant with no
    entry (UnknownIntent) gets the guidance message.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        mutator: LedgerMutator,
        query_engine: LedgerQueryEngine,
        formatter: ResponseFormatter,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._classifier = classifier
        self._mutator = mutator
        self._queries = query_engine
        self._formatter = formatter
        self._audit = audit_logger or AuditLogger()

        self._handlers: dict[type, Handler] = {
            AddExpenseIntent: self._handle_add_expense,
            AddExpensesIntent: self._handle_add_expenses,
            QueryIntent: self._handle_query,
            EditExpenseIntent: self._handle_edit_expense,
            DeleteExpenseIntent: self._handle_delete_expense,
            ListAllIntent: self._handle_list_all,
            HelpIntent: self._handle_help,
            GreetingIntent: self._handle_greeting,
            GoodbyeIntent: self._handle_goodbye,
        }

    async def handle_message(self, text: Optional[str]) -> str:
        """
        Entry point for the transport: raw text in, reply text out.

        Never raises.
        """
        correlation_id = create_correlation_id()
        text = (text or "").strip()
        if not text:
            return self._formatter.guidance()

        try:
            await self._audit.log_message_received(text, correlation_id)

            intent = self._small_talk(text)
            if intent is None:
                intent, payload = await self._classifier.classify(text)
                await self._audit.log_intent_classified(
                    intent.intent, payload, correlation_id
                )
        except Exception as e:
            return await self._fail(e, correlation_id)

        return await self.dispatch(intent, correlation_id)

    async def dispatch(self, intent: Intent, correlation_id: Optional[UUID] = None) -> str:
        """Run the handler for intent and convert any outcome to text."""
        correlation_id = correlation_id or create_correlation_id()
        handler = self._handlers.get(type(intent))
        if handler is None:
            return self._formatter.guidance()

        try:
            return await handler(intent, correlation_id)
        except ValidationError as e:
            await self._audit.log_request_rejected(intent.intent, str(e), correlation_id)
            return self._formatter.missing_fields(intent.intent)
        except NotFoundError as e:
            await self._audit.log_request_rejected(intent.intent, str(e), correlation_id)
            return self._formatter.not_found(intent.intent, e)
        except Exception as e:
            return await self._fail(e, correlation_id)

    @staticmethod
    def _small_talk(text: str) -> Optional[Intent]:
        for pattern, intent_cls in SMALL_TALK:
            if pattern.match(text):
                return intent_cls()
        return None

    async def _fail(self, error: Exception, correlation_id: UUID) -> str:
        """Log the full failure and return the generic apology."""
        if isinstance(error, UnknownIntentError):
            logger.warning("unknown_intent", tag=error.tag, correlation_id=str(correlation_id))
        elif isinstance(error, UpstreamError):
            logger.error("upstream_failure", error=str(error), correlation_id=str(correlation_id))
            await self._audit.log_external_service_error(
                type(error).__name__, str(error), correlation_id
            )
        else:
            logger.exception("unexpected_failure", correlation_id=str(correlation_id))

        await self._audit.log_request_failed(type(error).__name__, str(error), correlation_id)
        return self._formatter.apology()

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_add_expense(self, intent: AddExpenseIntent, correlation_id: UUID) -> str:
        result = await self._mutator.add_expense(intent.amount, intent.category, intent.date)
        await self._audit.log_expense_added(str(result.amount), result.category, correlation_id)
        return self._formatter.added(result)

    async def _handle_add_expenses(self, intent: AddExpensesIntent, correlation_id: UUID) -> str:
        result = await self._mutator.add_expenses(intent.items, intent.date)
        await self._audit.log_expenses_batch_added(
            len(result.added), len(result.failed), correlation_id
        )
        return self._formatter.batch_added(result)

    async def _handle_query(self, intent: QueryIntent, correlation_id: UUID) -> str:
        result = await self._queries.answer(intent)
        if result.total is None:
            await self._audit.log_request_failed(
                "QueryFailed", f"total query returned no result: {intent!r}", correlation_id
            )
            return self._formatter.apology()
        await self._audit.log_query_executed(
            result.query_type.value, str(result.total), correlation_id
        )
        return self._formatter.total(result)

    async def _handle_edit_expense(self, intent: EditExpenseIntent, correlation_id: UUID) -> str:
        result = await self._mutator.edit_expense(
            intent.old_amount, intent.old_category, intent.new_amount
        )
        await self._audit.log_expense_edited(
            result.category, str(result.old_amount), str(result.new_amount), correlation_id
        )
        return self._formatter.edited(result)

    async def _handle_delete_expense(self, intent: DeleteExpenseIntent, correlation_id: UUID) -> str:
        result = await self._mutator.delete_expense(intent.amount, intent.category, intent.date)
        await self._audit.log_expense_deleted(str(result.amount), result.category, correlation_id)
        return self._formatter.deleted(result)

    async def _handle_list_all(self, intent: ListAllIntent, correlation_id: UUID) -> str:
        result = await self._queries.list_all()
        await self._audit.log_query_executed("list_all", None, correlation_id)
        return self._formatter.listing(result)

    async def _handle_help(self, intent: HelpIntent, correlation_id: UUID) -> str:
        return self._formatter.help()

    async def _handle_greeting(self, intent: GreetingIntent, correlation_id: UUID) -> str:
        return self._formatter.greeting()

    async def _handle_goodbye(self, intent: GoodbyeIntent, correlation_id: UUID) -> str:
        return self._formatter.goodbye()


def create_storage(
    settings: Settings,
) -> tuple[ExpenseStorageInterface, Optional[AuditStorageInterface]]:
    """
    Build the configured storage backend.

    Google Sheets connects and opens the spreadsheet here, at startup, so
    a bad credential or spreadsheet id fails the process instead of the
    first message.
    """
    if settings.app.storage_backend == "memory":
        logger.warning("using_in_memory_storage")
        return InMemoryExpenseStorage(), None

    sheets_client = GoogleSheetsClient(settings.google_sheets)
    sheets_client.get_spreadsheet()
    return (
        GoogleSheetsExpenseStorage(sheets_client),
        GoogleSheetsAuditStorage(sheets_client),
    )


def create_app_components(
    settings: Optional[Settings] = None,
    expense_storage: Optional[ExpenseStorageInterface] = None,
    intent_classifier: Optional[IntentClassifier] = None,
    category_classifier: Optional[CategoryClassifier] = None,
) -> IntentRouter:
    """
    Factory function to create all application components.

    Settings are read once here and handed to each component.

    Args:
        settings: Loaded settings; defaults to get_settings()
        expense_storage: Pre-built storage (tests); skips create_storage
        intent_classifier / category_classifier: Pre-built LLM agents (tests)

    Returns:
        The IntentRouter the transport calls for every message
    """
    settings = settings or get_settings()
    app_settings = settings.app

    audit_storage = None
    if expense_storage is None:
        expense_storage, audit_storage = create_storage(settings)

    intent_classifier = intent_classifier or IntentClassifier(settings.gemini)
    category_classifier = category_classifier or CategoryClassifier(settings.gemini)

    resolver = DateRangeResolver()
    mutator = LedgerMutator(
        storage=expense_storage,
        resolver=resolver,
        normalizer=CategoryNormalizer(category_classifier),
        edit_match=app_settings.edit_category_match,
        delete_match=app_settings.delete_category_match,
    )
    query_engine = LedgerQueryEngine(
        storage=expense_storage,
        resolver=resolver,
        category_match=app_settings.query_category_match,
    )

    return IntentRouter(
        classifier=intent_classifier,
        mutator=mutator,
        query_engine=query_engine,
        formatter=ResponseFormatter(app_settings.currency_symbol),
        audit_logger=AuditLogger(audit_storage),
    )

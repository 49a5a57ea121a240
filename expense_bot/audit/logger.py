"""
Audit Logger

DESIGN DECISION: Every inbound message leaves a trail.
This provides:
1. Complete traceability of ledger changes
2. The full error detail that the user-facing reply deliberately hides
3. A way to reconstruct what the bot did for one message

The audit logger:
- Always writes a structured local log line
- Persists to storage when one is configured
- Never fails the request if persisting fails
- Ties the events of one message together with a correlation ID
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_bot.models.audit import AuditEvent, AuditEventBuilder
from expense_bot.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_bot.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_message_received(self, text: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.message_received(text, correlation_id))

    async def log_intent_classified(
        self,
        intent: str,
        payload: dict,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.intent_classified(intent, payload, correlation_id))

    async def log_expense_added(
        self,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(amount, category, correlation_id))

    async def log_expenses_batch_added(
        self,
        added: int,
        failed: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expenses_batch_added(added, failed, correlation_id))

    async def log_expense_edited(
        self,
        category: str,
        old_amount: str,
        new_amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_edited(
            category, old_amount, new_amount, correlation_id
        ))

    async def log_expense_deleted(
        self,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(amount, category, correlation_id))

    async def log_query_executed(
        self,
        query_type: str,
        total: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.query_executed(query_type, total, correlation_id))

    async def log_request_rejected(
        self,
        intent: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.request_rejected(intent, reason, correlation_id))

    async def log_request_failed(
        self,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.request_failed(
            error_type, error_message, correlation_id
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service, error_message, correlation_id
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    One per inbound message; passed through every audit call for it.
    """
    return uuid4()

"""
Audit Models for Expense Bot

Every request through the bot leaves an audit trail:
1. What the user sent and what the classifier made of it
2. Which ledger mutation or query ran
3. Why a request was rejected or failed (full detail, never shown to the user)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Inbound
    MESSAGE_RECEIVED = "message_received"
    INTENT_CLASSIFIED = "intent_classified"

    # Ledger mutations
    EXPENSE_ADDED = "expense_added"
    EXPENSES_BATCH_ADDED = "expenses_batch_added"
    EXPENSE_EDITED = "expense_edited"
    EXPENSE_DELETED = "expense_deleted"

    # Queries
    QUERY_EXECUTED = "query_executed"

    # Outcomes
    REQUEST_REJECTED = "request_rejected"
    REQUEST_FAILED = "request_failed"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    One request usually produces two or three of these, tied together
    by correlation_id.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one inbound message"
    )

    description: str = Field(
        ...,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Columns: [event_id, timestamp, event_type, severity, correlation_id,
                  description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(text, correlation_id)
        event = AuditEventBuilder.expense_added("500", "Food", correlation_id)
    """

    @staticmethod
    def message_received(text: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            correlation_id=correlation_id,
            description="Inbound message received",
            details={"text": text[:300]},
        )

    @staticmethod
    def intent_classified(intent: str, payload: dict, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_CLASSIFIED,
            correlation_id=correlation_id,
            description=f"Message classified as {intent}",
            details={"intent": intent, "payload": payload},
        )

    @staticmethod
    def expense_added(amount: str, category: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            correlation_id=correlation_id,
            description=f"Expense added: {amount} on {category}",
            details={"amount": amount, "category": category},
        )

    @staticmethod
    def expenses_batch_added(
        added: int,
        failed: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_BATCH_ADDED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Batch add: {added} saved, {failed} failed",
            details={"added": added, "failed": failed},
        )

    @staticmethod
    def expense_edited(
        category: str,
        old_amount: str,
        new_amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_EDITED,
            correlation_id=correlation_id,
            description=f"Expense edited: {category} {old_amount} -> {new_amount}",
            details={
                "category": category,
                "old_amount": old_amount,
                "new_amount": new_amount,
            },
        )

    @staticmethod
    def expense_deleted(amount: str, category: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            correlation_id=correlation_id,
            description=f"Expense deleted: {amount} on {category}",
            details={"amount": amount, "category": category},
        )

    @staticmethod
    def query_executed(
        query_type: str,
        total: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            correlation_id=correlation_id,
            description=f"Query executed: {query_type}",
            details={"query_type": query_type, "total": total},
        )

    @staticmethod
    def request_rejected(
        intent: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Request rejected ({intent})",
            details={"intent": intent},
            error_message=reason,
        )

    @staticmethod
    def request_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Request failed: {error_type}",
            details={"error_type": error_type},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )

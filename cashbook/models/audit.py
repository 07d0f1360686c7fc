"""
Audit Models for Cashbook

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when a balance drifts
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them,
even when the Movement they describe is later reversed.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from cashbook.models.ledger import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Accounts
    ACCOUNT_REGISTERED = "account_registered"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    ACCOUNT_DELETED = "account_deleted"

    # Balance ledger
    MOVEMENT_APPLIED = "movement_applied"
    MOVEMENT_REVERSED = "movement_reversed"

    # Payables
    PAYABLE_CREATED = "payable_created"
    PAYABLE_UPDATED = "payable_updated"
    PAYABLE_SETTLED = "payable_settled"
    SETTLEMENT_REVERSED = "settlement_reversed"
    PAYABLE_DELETED = "payable_deleted"

    # Sales
    SALE_RECORDED = "sale_recorded"
    SALE_UPDATED = "sale_updated"
    SALE_DELETED = "sale_deleted"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    RECURRENCES_GENERATED = "recurrences_generated"

    # Revenue table
    SUPPLEMENT_SAVED = "supplement_saved"

    # Document import
    IMPORT_COMPLETED = "import_completed"
    IMPORT_DOCUMENT_REJECTED = "import_document_rejected"

    # System events
    DATA_RESET = "data_reset"
    VALIDATION_FAILED = "validation_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'payable', 'sale', 'account')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one sale edit)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.movement_applied(movement_id, account_id, ...)
        event = AuditEventBuilder.payable_settled(payable_id, "cash", amount)

    Amounts are passed as strings so that details stay JSON-serializable.
    """

    @staticmethod
    def entity_event(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def movement_applied(
        movement_id: UUID,
        account_id: UUID,
        direction: str,
        amount: Decimal,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MOVEMENT_APPLIED,
            entity_type="movement",
            entity_id=movement_id,
            correlation_id=correlation_id,
            description=f"Movement {direction} {amount} on account {account_id}",
            details={
                "account_id": str(account_id),
                "direction": direction,
                "amount": str(amount),
                "new_balance": str(new_balance),
            },
        )

    @staticmethod
    def movement_reversed(
        movement_id: UUID,
        account_id: UUID,
        origin_id: Optional[UUID],
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MOVEMENT_REVERSED,
            entity_type="movement",
            entity_id=movement_id,
            correlation_id=correlation_id,
            description=f"Movement of {amount} reversed on account {account_id}",
            details={
                "account_id": str(account_id),
                "origin_id": str(origin_id) if origin_id else None,
                "amount": str(amount),
            },
        )

    @staticmethod
    def payable_settled(
        payable_id: UUID,
        source: str,
        amount: Decimal,
        account_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYABLE_SETTLED,
            entity_type="payable",
            entity_id=payable_id,
            correlation_id=correlation_id,
            description=f"Payable settled from {source}: {amount}",
            details={
                "source": source,
                "amount": str(amount),
                "account_id": str(account_id) if account_id else None,
            },
        )

    @staticmethod
    def recurrences_generated(
        count: int,
        horizon: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRENCES_GENERATED,
            entity_type="expense",
            description=f"Generated {count} recurring expense instance(s) up to {horizon}",
            details={
                "count": count,
                "horizon": horizon,
            },
        )

    @staticmethod
    def import_completed(
        created: int,
        failed: int,
        awaiting_payment: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if failed else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=severity,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Imported {created} document(s), {failed} skipped",
            details={
                "created": created,
                "failed": failed,
                "awaiting_payment": awaiting_payment,
            },
        )

    @staticmethod
    def import_document_rejected(
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_DOCUMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Document rejected: {name}",
            error_message=reason,
            details={
                "name": name,
            },
        )

    @staticmethod
    def data_reset(collections: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            severity=AuditSeverity.WARNING,
            description="All collections cleared",
            details={
                "collections": collections,
            },
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issue(s)",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

"""
Audit Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a reconciliation fails
3. The owner can see the history of their actions

The audit logger:
- Always writes a structured local log line
- Gracefully handles storage failures (a broken audit sheet never blocks
  a sale from being recorded)
- Supports correlation IDs to trace related events (e.g. the reversal and
  re-application of one sale edit)
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cashbook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from cashbook.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
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
        self._logger = structlog.get_logger("cashbook.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_entity_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a create/update/delete style event for one entity."""
        event = AuditEventBuilder.entity_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_movement_applied(
        self,
        movement_id: UUID,
        account_id: UUID,
        direction: str,
        amount: Decimal,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a balance change."""
        event = AuditEventBuilder.movement_applied(
            movement_id=movement_id,
            account_id=account_id,
            direction=direction,
            amount=amount,
            new_balance=new_balance,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_movement_reversed(
        self,
        movement_id: UUID,
        account_id: UUID,
        origin_id: Optional[UUID],
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the reversal of a balance change."""
        event = AuditEventBuilder.movement_reversed(
            movement_id=movement_id,
            account_id=account_id,
            origin_id=origin_id,
            amount=amount,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_payable_settled(
        self,
        payable_id: UUID,
        source: str,
        amount: Decimal,
        account_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a payable settlement."""
        event = AuditEventBuilder.payable_settled(
            payable_id=payable_id,
            source=source,
            amount=amount,
            account_id=account_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_recurrences_generated(self, count: int, horizon: str) -> None:
        """Log recurring expense generation."""
        self.log(AuditEventBuilder.recurrences_generated(count=count, horizon=horizon))

    def log_import_completed(
        self,
        created: int,
        failed: int,
        awaiting_payment: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the outcome of a document import."""
        event = AuditEventBuilder.import_completed(
            created=created,
            failed=failed,
            awaiting_payment=awaiting_payment,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_import_rejected(
        self,
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a skipped import document."""
        event = AuditEventBuilder.import_document_rejected(
            name=name,
            reason=reason,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected operation."""
        event = AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_data_reset(self, collections: list[str]) -> None:
        """Log a full data reset."""
        self.log(AuditEventBuilder.data_reset(collections))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., editing a sale).
    Pass it through all subsequent operations.
    """
    return uuid4()

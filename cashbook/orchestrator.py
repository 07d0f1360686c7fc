"""
Main Orchestrator for Cashbook

This module ties together all the components and defines the
flows that span more than one manager:
1. Document import (NFe XML -> proposed payables -> optional settlement)
2. Reset all data
3. The application factory that wires storage, audit and managers

DESIGN DECISION: The import flow never settles without confirmation.
Documents that declare a payment method are handed back with a
SUGGESTED source; money only moves when confirm_payments() is called
with the mapping the owner accepted.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as SettingsError

from cashbook.audit import AuditLogger, create_correlation_id
from cashbook.config import LedgerSettings, get_settings
from cashbook.ledger import (
    AccountManager,
    BalanceLedger,
    ExpenseEngine,
    ImportParseError,
    LedgerError,
    PayableManager,
    SaleManager,
)
from cashbook.models.reports import (
    ConfirmationResult,
    ImportedDocument,
    ImportFailure,
    ImportResult,
    PendingImport,
    SettlementRequest,
)
from cashbook.reports import ReportingAggregator, RevenueSupplementManager
from cashbook.services.nfe import parse_nfe_xml, suggested_source
from cashbook.services.storage import (
    AuditStorageInterface,
    CollectionBackend,
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryBackend,
    JsonFileBackend,
    LedgerStore,
    StorageError,
)
from cashbook.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class DocumentImportFlow:
    """
    Orchestrates bulk payable creation from NFe documents.

    Flow:
    1. Parse each document (non-.xml names and unreadable XML are skipped)
    2. No payment method in the document -> create a pending payable now
    3. Payment method present -> return it for confirmation
    4. Confirm -> create the payable and settle it from the chosen source

    One bad document never stops the others.
    """

    def __init__(
        self,
        payables: PayableManager,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._payables = payables
        self._audit_logger = audit_logger
        self._clock = clock

    def parse_document(self, name: str, text: str) -> ImportedDocument:
        """
        Raises:
            ImportParseError: not an .xml file, or no usable NFe data
        """
        if not name.lower().endswith(".xml"):
            raise ImportParseError(name, f"{name}: only .xml files can be imported")
        document = parse_nfe_xml(text, today=self._clock())
        if document is None:
            raise ImportParseError(name, f"{name}: not a valid NFe or total is not positive")
        return document

    def import_documents(
        self,
        documents: Iterable[tuple[str, str]],
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Import (name, xml_text) pairs.

        Returns:
            ImportResult with the created payable ids, the per-document
            failures and the documents awaiting payment confirmation
        """
        correlation_id = correlation_id or create_correlation_id()
        result = ImportResult()

        for name, text in documents:
            try:
                document = self.parse_document(name, text)
                if document.payment_method_code is None:
                    payable = self._payables.create(
                        document.description, document.amount, document.due_date
                    )
                    result.created.append(payable.id)
                else:
                    result.awaiting_payment.append(PendingImport(
                        document=document,
                        source=suggested_source(document.payment_method_code),
                    ))
            except (LedgerError, StorageError) as e:
                result.failures.append(ImportFailure(name=name, message=str(e)))
                if self._audit_logger:
                    self._audit_logger.log_import_rejected(
                        name=name,
                        reason=str(e),
                        correlation_id=correlation_id,
                    )

        if self._audit_logger:
            self._audit_logger.log_import_completed(
                created=result.created_count,
                failed=result.failed_count,
                awaiting_payment=len(result.awaiting_payment),
                correlation_id=correlation_id,
            )
        return result

    def confirm_payments(self, items: Iterable[PendingImport]) -> ConfirmationResult:
        """
        Create a payable per item, then settle the ones given a source.

        Items with source=None stay pending. Settlement failures
        (insufficient funds, missing account, ...) leave that payable
        pending and are reported per item.
        """
        result = ConfirmationResult()
        requests = []
        for item in items:
            document = item.document
            payable = self._payables.create(document.description, document.amount, document.due_date)
            result.created.append(payable.id)
            if item.source is not None:
                requests.append(SettlementRequest(
                    payable_id=payable.id,
                    source=item.source,
                    account_id=item.account_id,
                ))

        if requests:
            result.settlement = self._payables.settle_many(requests)
        return result


def reset_all_data(store: LedgerStore, audit_logger: Optional[AuditLogger] = None) -> list[str]:
    """
    Clear every collection. There is no undo.

    Returns the names of the cleared collections.
    """
    cleared = store.reset_all()
    if audit_logger:
        audit_logger.log_data_reset(cleared)
    return cleared


@dataclass
class AppComponents:
    """Everything a front end needs, wired to one store."""

    store: LedgerStore
    audit_logger: AuditLogger
    ledger: BalanceLedger
    accounts: AccountManager
    payables: PayableManager
    sales: SaleManager
    expenses: ExpenseEngine
    reports: ReportingAggregator
    supplements: RevenueSupplementManager
    import_flow: DocumentImportFlow

    def reset_all_data(self) -> list[str]:
        return reset_all_data(self.store, self.audit_logger)


def _configured_backend() -> tuple[CollectionBackend, Optional[AuditStorageInterface]]:
    """Pick the backend named in settings."""
    backend_name = get_settings().storage.backend

    if backend_name == "memory":
        return InMemoryBackend(), None

    if backend_name == "google_sheets":
        try:
            client = GoogleSheetsClient()
            return GoogleSheetsBackend(client), GoogleSheetsAuditStorage(client)
        except SettingsError as e:
            # Google Sheets not configured - continue with local files
            logger.warning("google_sheets_not_configured", error=str(e))

    return JsonFileBackend(), None


def create_app_components(
    backend: Optional[CollectionBackend] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    settings: Optional[LedgerSettings] = None,
    clock: Callable[[], date] = date.today,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Collection backend to use. If None, the one selected by
                 CASHBOOK_STORAGE_BACKEND is created.
        audit_storage: Where audit events are persisted. If None, only
                       local structured logging happens (unless the
                       configured backend provides one).
        settings: Business rule settings. If None, read from the environment.
        clock: Source of "today", injectable for tests.
    """
    if backend is None:
        backend, configured_audit = _configured_backend()
        audit_storage = audit_storage or configured_audit

    settings = settings or get_settings().ledger
    store = LedgerStore(backend)
    audit_logger = AuditLogger(audit_storage)
    validator = LedgerValidator()

    ledger = BalanceLedger(store, audit_logger, clock=clock)
    payables = PayableManager(store, ledger, validator, audit_logger, settings=settings, clock=clock)
    expenses = ExpenseEngine(store, validator, audit_logger, settings=settings, clock=clock)

    return AppComponents(
        store=store,
        audit_logger=audit_logger,
        ledger=ledger,
        accounts=AccountManager(store, ledger, validator, audit_logger),
        payables=payables,
        sales=SaleManager(store, ledger, validator, audit_logger, clock=clock),
        expenses=expenses,
        reports=ReportingAggregator(store, expenses, validator, settings=settings, clock=clock),
        supplements=RevenueSupplementManager(store, validator, audit_logger),
        import_flow=DocumentImportFlow(payables, audit_logger, clock=clock),
    )

"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The owner can look at the raw data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a small shop is fine)
- No transactions (each collection is rewritten as one unit)
- Limited query capabilities (we filter in Python)

Each collection is a worksheet named `<namespace>-<collection>` with two
columns: the record id and the record serialized as JSON.
"""

import json
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cashbook.config import get_settings
from cashbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    CollectionBackend,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

COLLECTION_COLUMNS = ["id", "record_json"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_retry_api = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_retry_api
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
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
        return self._spreadsheet

    def get_worksheet(self, title: str, header: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header on creation."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(header),
            )
            sheet.append_row(header)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsBackend(CollectionBackend):
    """
    Google Sheets implementation of the collection backend.

    replace() clears the worksheet and rewrites header plus rows.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        namespace: Optional[str] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._namespace = namespace or get_settings().storage.key_namespace

    def _title(self, name: str) -> str:
        return f"{self._namespace}-{name}"

    def _sheet(self, name: str) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title(name), COLLECTION_COLUMNS)

    @_retry_api
    def load(self, name: str) -> list[dict]:
        sheet = self._sheet(name)
        records = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if len(row) < 2 or not row[1]:
                continue
            try:
                records.append(json.loads(row[1]))
            except json.JSONDecodeError:
                logger.warning("sheet_row_malformed", collection=name, row_id=row[0])
        return records

    @_retry_api
    def replace(self, name: str, records: list[dict]) -> None:
        sheet = self._sheet(name)
        rows = [
            [str(record.get("id", "")), json.dumps(record, ensure_ascii=False)]
            for record in records
        ]
        try:
            sheet.clear()
            sheet.append_row(COLLECTION_COLUMNS)
            if rows:
                sheet.append_rows(rows, value_input_option="RAW")
        except gspread.exceptions.APIError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write collection {name}: {e}")

    @_retry_api
    def drop(self, name: str) -> None:
        sheet = self._sheet(name)
        sheet.clear()
        sheet.append_row(COLLECTION_COLUMNS)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def _all_events(self) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                logger.warning("audit_row_malformed", event_id=row[0])
        return events

    @_retry_api
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

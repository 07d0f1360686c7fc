"""
Shared fixtures.

Every test runs against the in-memory backend with a fixed "today",
so nothing touches the network or the filesystem unless it asks for
tmp_path.
"""

from datetime import date
from decimal import Decimal

import pytest

from cashbook.config import LedgerSettings
from cashbook.models.ledger import PaymentMethod
from cashbook.orchestrator import create_app_components
from cashbook.services.storage import InMemoryAuditStorage, InMemoryBackend


TODAY = date(2026, 3, 15)


def make_settings(**overrides) -> LedgerSettings:
    values = {"seed_expenses_on_first_run": False}
    values.update(overrides)
    return LedgerSettings(**values)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def app(audit_storage):
    return create_app_components(
        backend=InMemoryBackend(),
        audit_storage=audit_storage,
        settings=make_settings(),
        clock=lambda: TODAY,
    )


@pytest.fixture
def checking(app):
    """Account "Checking" opened with 1000.00, accepting every method."""
    return app.accounts.register("Checking", opening_balance=Decimal("1000.00"))


@pytest.fixture
def pix_only(app):
    return app.accounts.register(
        "Savings",
        opening_balance=Decimal("0.00"),
        accepted_methods=[PaymentMethod.PIX],
    )

"""Tests for the payable lifecycle."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from cashbook.ledger import InsufficientFundsError, ValidationError
from cashbook.models.ledger import PaymentSource, SaleMethod
from cashbook.models.reports import SettlementRequest
from cashbook.orchestrator import create_app_components
from cashbook.services.storage import InMemoryBackend, NotFoundError, StorageError

from tests.conftest import TODAY, make_settings


class TestCreateAndEdit:
    """Tests for creating and editing payables."""

    def test_create_is_pending(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), date(2026, 3, 20))
        assert payable.paid is False
        assert payable.payment_date is None
        assert app.payables.pending() == [payable]

    def test_create_rejects_invalid_input(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.payables.create(" ", Decimal("0"), date(2026, 3, 20))
        fields = {issue.field for issue in exc_info.value.issues}
        assert fields == {"description", "amount"}
        assert app.payables.list_all() == []

    @pytest.mark.parametrize("description, amount, field, issue_type", [
        ("Bill", Decimal("10.005"), "amount", "invalid_precision"),
        ("B" * 201, Decimal("10.00"), "description", "too_long"),
    ])
    def test_create_rejects_values_the_record_cannot_hold(self, app, description, amount, field, issue_type):
        with pytest.raises(ValidationError) as exc_info:
            app.payables.create(description, amount, TODAY)
        assert [(i.field, i.issue_type) for i in exc_info.value.issues] == [(field, issue_type)]
        assert app.payables.list_all() == []

    def test_edit_rejects_extra_decimal_places(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        with pytest.raises(ValidationError):
            app.payables.edit(payable.id, amount=Decimal("250.001"))
        assert app.payables.get(payable.id).amount == Decimal("250.00")

    def test_edit_pending(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), date(2026, 3, 20))
        updated = app.payables.edit(
            payable.id,
            description="Power",
            amount=Decimal("260.00"),
            due_date=date(2026, 3, 25),
        )
        assert (updated.description, updated.amount, updated.due_date) == (
            "Power", Decimal("260.00"), date(2026, 3, 25)
        )

    def test_edit_unknown(self, app):
        with pytest.raises(NotFoundError):
            app.payables.edit(uuid4(), description="x")

    def test_paid_amount_edit_rejected_by_default(self, app, checking):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)

        with pytest.raises(ValidationError):
            app.payables.edit(payable.id, amount=Decimal("300.00"))
        assert app.payables.get(payable.id).amount == Decimal("250.00")

    def test_paid_amount_edit_ignored_when_configured(self):
        app = create_app_components(
            backend=InMemoryBackend(),
            settings=make_settings(paid_amount_edit_policy="ignore"),
            clock=lambda: TODAY,
        )
        account = app.accounts.register("Checking", opening_balance=Decimal("1000.00"))
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, account.id)

        updated = app.payables.edit(payable.id, amount=Decimal("300.00"), description="Power")

        assert updated.amount == Decimal("250.00")
        assert updated.description == "Power"
        assert app.accounts.get(account.id).current_balance == Decimal("750.00")

    def test_paid_due_date_still_editable(self, app, checking):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)
        updated = app.payables.edit(payable.id, due_date=date(2026, 4, 1))
        assert updated.due_date == date(2026, 4, 1)
        assert updated.paid is True


class TestSettlement:
    """Tests for settle and reverse_settlement."""

    def test_failed_movement_write_leaves_payable_pending(self, app, checking, monkeypatch):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)

        def failing_apply(*args, **kwargs):
            raise StorageError("movements unavailable")

        monkeypatch.setattr(app.ledger, "apply_effect", failing_apply)
        with pytest.raises(StorageError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)

        assert app.payables.get(payable.id).paid is False
        assert app.store.movements.get_all() == []

    def test_checking_round_trip(self, app, checking):
        """Checking opens at 1000, pays a 250 bill, then reverses it."""
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)

        settled = app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)

        assert settled.paid is True
        assert settled.payment_date == TODAY
        assert settled.account_id == checking.id
        assert app.accounts.get(checking.id).current_balance == Decimal("750.00")
        movements = app.ledger.movements_for(checking.id)
        assert len(movements) == 1
        assert movements[0].amount == Decimal("250.00")
        assert movements[0].direction.value == "out"
        assert movements[0].description == "Payable payment: Electric bill"

        reopened = app.payables.reverse_settlement(payable.id)

        assert reopened.paid is False
        assert reopened.payment_source is None
        assert reopened.account_id is None
        assert app.accounts.get(checking.id).current_balance == Decimal("1000.00")
        assert app.ledger.movements_for(checking.id) == []

    def test_cash_settlement_feeds_cash_on_hand(self, app):
        """Cash sale of 80, bill of 50 paid in cash: 30 left."""
        app.sales.create("Counter", Decimal("80.00"), SaleMethod.CASH)
        payable = app.payables.create("Courier", Decimal("50.00"), TODAY)

        settled = app.payables.settle(payable.id, PaymentSource.CASH)

        assert settled.payment_source is PaymentSource.CASH
        assert settled.account_id is None
        assert app.reports.cash_on_hand() == Decimal("30.00")
        assert app.store.movements.get_all() == []

    def test_settle_on_given_date(self, app, checking):
        payable = app.payables.create("Electric bill", Decimal("10.00"), TODAY)
        settled = app.payables.settle(
            payable.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 3, 1)
        )
        assert settled.payment_date == date(2026, 3, 1)
        assert app.ledger.movements_for(checking.id)[0].movement_date == date(2026, 3, 1)

    def test_insufficient_cash(self, app):
        app.sales.create("Counter", Decimal("20.00"), SaleMethod.CASH)
        payable = app.payables.create("Courier", Decimal("50.00"), TODAY)

        with pytest.raises(InsufficientFundsError) as exc_info:
            app.payables.settle(payable.id, PaymentSource.CASH)

        assert exc_info.value.available == Decimal("20.00")
        assert exc_info.value.required == Decimal("50.00")
        assert app.payables.get(payable.id).paid is False

    def test_insufficient_account_balance(self, app, checking):
        payable = app.payables.create("Equipment", Decimal("1500.00"), TODAY)
        with pytest.raises(InsufficientFundsError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)
        assert app.accounts.get(checking.id).current_balance == Decimal("1000.00")

    def test_account_overdraft_allowed_when_not_enforced(self):
        app = create_app_components(
            backend=InMemoryBackend(),
            settings=make_settings(enforce_account_funds=False),
            clock=lambda: TODAY,
        )
        account = app.accounts.register("Checking", opening_balance=Decimal("100.00"))
        payable = app.payables.create("Equipment", Decimal("150.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, account.id)
        assert app.accounts.get(account.id).current_balance == Decimal("-50.00")

    def test_cannot_settle_twice(self, app, checking):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)
        with pytest.raises(ValidationError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)
        assert app.accounts.get(checking.id).current_balance == Decimal("750.00")

    def test_bank_settlement_needs_account(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        with pytest.raises(ValidationError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT)

    def test_unknown_account(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        with pytest.raises(NotFoundError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, uuid4())

    def test_inactive_account(self, app, checking):
        app.accounts.deactivate(checking.id)
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        with pytest.raises(ValidationError):
            app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)

    def test_reverse_requires_paid(self, app):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        with pytest.raises(ValidationError):
            app.payables.reverse_settlement(payable.id)

    def test_reverse_cash_settlement_restores_cash(self, app):
        app.sales.create("Counter", Decimal("80.00"), SaleMethod.CASH)
        payable = app.payables.create("Courier", Decimal("50.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.CASH)
        app.payables.reverse_settlement(payable.id)
        assert app.reports.cash_on_hand() == Decimal("80.00")


class TestDeleteAndViews:
    """Tests for delete and the pending/paid views."""

    def test_delete_paid_returns_money(self, app, checking):
        payable = app.payables.create("Electric bill", Decimal("250.00"), TODAY)
        app.payables.settle(payable.id, PaymentSource.BANK_ACCOUNT, checking.id)

        app.payables.delete(payable.id)

        assert app.payables.get(payable.id) is None
        assert app.accounts.get(checking.id).current_balance == Decimal("1000.00")
        assert app.ledger.movements_for(checking.id) == []

    def test_delete_unknown(self, app):
        with pytest.raises(NotFoundError):
            app.payables.delete(uuid4())

    def test_views_are_sorted(self, app, checking):
        late = app.payables.create("Late", Decimal("10.00"), date(2026, 3, 30))
        early = app.payables.create("Early", Decimal("10.00"), date(2026, 3, 2))
        first = app.payables.create("First paid", Decimal("10.00"), date(2026, 3, 1))
        second = app.payables.create("Second paid", Decimal("10.00"), date(2026, 3, 1))
        app.payables.settle(first.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 3, 3))
        app.payables.settle(second.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 3, 9))

        assert [p.id for p in app.payables.pending()] == [early.id, late.id]
        assert [p.id for p in app.payables.paid()] == [second.id, first.id]


class TestBulkSettlement:
    """Each item of a bulk settlement stands on its own."""

    def test_failures_do_not_roll_back_successes(self, app, checking):
        affordable = app.payables.create("Affordable", Decimal("600.00"), TODAY)
        too_big = app.payables.create("Too big", Decimal("600.00"), TODAY)
        missing = uuid4()

        result = app.payables.settle_many([
            SettlementRequest(payable_id=affordable.id, source=PaymentSource.BANK_ACCOUNT, account_id=checking.id),
            SettlementRequest(payable_id=too_big.id, source=PaymentSource.BANK_ACCOUNT, account_id=checking.id),
            SettlementRequest(payable_id=missing, source=PaymentSource.CASH),
        ])

        assert result.settled == [affordable.id]
        assert [(f.payable_id, f.error_type) for f in result.failures] == [
            (too_big.id, "InsufficientFundsError"),
            (missing, "NotFoundError"),
        ]
        assert app.payables.get(affordable.id).paid is True
        assert app.payables.get(too_big.id).paid is False
        assert app.accounts.get(checking.id).current_balance == Decimal("400.00")

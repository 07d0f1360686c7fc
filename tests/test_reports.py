"""Tests for the reporting aggregator and revenue supplements."""

import pytest
from datetime import date
from decimal import Decimal

from cashbook.ledger import ValidationError
from cashbook.models.ledger import (
    ExpenseCategory,
    ExpenseType,
    PaymentSource,
    SaleMethod,
)


class TestOverviewAndSales:
    """Headline figures and sales views."""

    def test_empty_ledger_is_all_zeros(self, app):
        overview = app.reports.overview()
        assert overview.total_bank_balance == Decimal("0")
        assert overview.cash_on_hand == Decimal("0")
        assert overview.pending_payables_count == 0

    def test_overview(self, app, checking):
        app.sales.create("Counter", Decimal("100.00"), SaleMethod.PIX, checking.id)
        app.sales.create("Counter", Decimal("50.00"), SaleMethod.CASH)
        app.payables.create("Courier", Decimal("30.00"), date(2026, 3, 20))

        overview = app.reports.overview()

        assert overview.total_bank_balance == Decimal("1100.00")
        assert overview.cash_on_hand == Decimal("50.00")
        assert overview.pending_payables_count == 1
        assert overview.pending_payables_total == Decimal("30.00")
        assert overview.total_sales == Decimal("150.00")

    def test_sales_by_method(self, app, checking):
        app.sales.create("A", Decimal("10.00"), SaleMethod.PIX, checking.id, sale_date=date(2026, 3, 1))
        app.sales.create("B", Decimal("20.00"), SaleMethod.DEBIT, checking.id, sale_date=date(2026, 3, 2))
        app.sales.create("C", Decimal("30.00"), SaleMethod.CREDIT, checking.id, sale_date=date(2026, 3, 3))
        app.sales.create("D", Decimal("40.00"), SaleMethod.CASH, sale_date=date(2026, 2, 1))

        everything = app.reports.sales_by_method()
        assert (everything.pix, everything.debit, everything.credit, everything.cash) == (
            Decimal("10.00"), Decimal("20.00"), Decimal("30.00"), Decimal("40.00")
        )
        assert everything.card == Decimal("50.00")
        assert everything.total == Decimal("100.00")

        march = app.reports.sales_by_method(date(2026, 3, 1), date(2026, 3, 31))
        assert march.cash == Decimal("0")
        assert march.total == Decimal("60.00")

    def test_sales_report_is_inclusive_and_sorted(self, app):
        late = app.sales.create("Late", Decimal("5.00"), SaleMethod.CASH, sale_date=date(2026, 3, 10))
        early = app.sales.create("Early", Decimal("7.00"), SaleMethod.CASH, sale_date=date(2026, 3, 1))
        app.sales.create("Outside", Decimal("9.00"), SaleMethod.CASH, sale_date=date(2026, 3, 11))

        report = app.reports.sales_report(date(2026, 3, 1), date(2026, 3, 10))

        assert [s.id for s in report.sales] == [early.id, late.id]
        assert report.total == Decimal("12.00")

    def test_sales_report_inverted_range(self, app):
        with pytest.raises(ValidationError):
            app.reports.sales_report(date(2026, 3, 10), date(2026, 3, 1))

    def test_monthly_sales_series(self, app, checking):
        app.sales.create("Jan", Decimal("10.00"), SaleMethod.CASH, sale_date=date(2026, 1, 31))
        app.sales.create("Mar", Decimal("20.00"), SaleMethod.PIX, checking.id, sale_date=date(2026, 3, 1))
        app.sales.create("Old", Decimal("99.00"), SaleMethod.CASH, sale_date=date(2025, 12, 31))

        series = app.reports.monthly_sales_series(months=3)

        assert [(p.year, p.month) for p in series] == [(2026, 1), (2026, 2), (2026, 3)]
        assert [p.by_method.total for p in series] == [
            Decimal("10.00"), Decimal("0"), Decimal("20.00"),
        ]
        assert series[2].by_method.pix == Decimal("20.00")


class TestPayableReports:
    def test_paid_payables_report(self, app, checking):
        first = app.payables.create("First", Decimal("10.00"), date(2026, 2, 25))
        second = app.payables.create("Second", Decimal("15.00"), date(2026, 3, 1))
        other_month = app.payables.create("Other", Decimal("20.00"), date(2026, 3, 1))
        app.payables.create("Pending", Decimal("25.00"), date(2026, 3, 1))
        app.payables.settle(second.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 3, 9))
        app.payables.settle(first.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 3, 3))
        app.payables.settle(other_month.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 2, 28))

        report = app.reports.paid_payables_report(2026, 3)

        assert [p.id for p in report.payables] == [first.id, second.id]
        assert report.total == Decimal("25.00")

    def test_invalid_month(self, app):
        with pytest.raises(ValidationError):
            app.reports.paid_payables_report(2026, 13)

    def test_payables_by_due_date(self, app):
        a = app.payables.create("A", Decimal("1.00"), date(2026, 3, 10))
        b = app.payables.create("B", Decimal("2.00"), date(2026, 3, 10))
        c = app.payables.create("C", Decimal("3.00"), date(2026, 3, 2))
        app.payables.create("April", Decimal("4.00"), date(2026, 4, 10))

        calendar = app.reports.payables_by_due_date(2026, 3)

        assert list(calendar) == [date(2026, 3, 2), date(2026, 3, 10)]
        assert [p.id for p in calendar[date(2026, 3, 2)]] == [c.id]
        assert {p.id for p in calendar[date(2026, 3, 10)]} == {a.id, b.id}


class TestExpenseDashboard:
    """Monthly totals, category alerts and next-month projection."""

    @pytest.fixture
    def march(self, app):
        app.expenses.create(
            "Power", ExpenseCategory.ELECTRICITY, ExpenseType.FIXED, Decimal("1200.00"), date(2026, 3, 5)
        )
        app.expenses.create(
            "Rent", ExpenseCategory.RENT, ExpenseType.FIXED, Decimal("900.00"), date(2026, 3, 10)
        )
        app.expenses.create(
            "Fuel", ExpenseCategory.FUEL, ExpenseType.VARIABLE, Decimal("900.00"), date(2026, 3, 20)
        )
        return app

    def test_totals(self, march):
        dashboard = march.reports.expense_dashboard(2026, 3)

        assert dashboard.total == Decimal("3000.00")
        assert dashboard.total_overdue == Decimal("2100.00")
        assert dashboard.total_pending == Decimal("900.00")
        assert dashboard.total_paid == Decimal("0")
        assert dashboard.fixed_total == Decimal("2100.00")
        assert dashboard.variable_total == Decimal("900.00")

    def test_category_alert_is_strictly_above_threshold(self, march):
        categories = {c.category: c for c in march.reports.expense_dashboard(2026, 3).categories}

        assert categories[ExpenseCategory.ELECTRICITY].percent_of_total == pytest.approx(40.0)
        assert categories[ExpenseCategory.ELECTRICITY].alert is True
        assert categories[ExpenseCategory.RENT].percent_of_total == pytest.approx(30.0)
        assert categories[ExpenseCategory.RENT].alert is False
        assert ExpenseCategory.WATER not in categories

    def test_categories_sorted_by_total(self, march):
        categories = march.reports.expense_dashboard(2026, 3).categories
        assert categories[0].category is ExpenseCategory.ELECTRICITY

    def test_projection_without_history_is_current_total(self, march):
        assert march.reports.expense_dashboard(2026, 3).projected_next_month == Decimal("3000.00")

    def test_projection_averages_non_empty_months(self, march):
        march.expenses.create(
            "Feb rent", ExpenseCategory.RENT, ExpenseType.FIXED, Decimal("1000.00"), date(2026, 2, 10)
        )
        march.expenses.create(
            "Dec rent", ExpenseCategory.RENT, ExpenseType.FIXED, Decimal("2001.00"), date(2025, 12, 10)
        )
        march.expenses.create(
            "Too old", ExpenseCategory.RENT, ExpenseType.FIXED, Decimal("9999.00"), date(2025, 11, 10)
        )

        dashboard = march.reports.expense_dashboard(2026, 3)

        assert dashboard.projected_next_month == Decimal("1500.50")

    def test_empty_month(self, app):
        dashboard = app.reports.expense_dashboard(2026, 3)
        assert dashboard.total == Decimal("0")
        assert dashboard.categories == []
        assert dashboard.projected_next_month == Decimal("0")


class TestRevenueTable:
    """The twelve-month revenue/cost table."""

    @pytest.fixture
    def year(self, app, checking):
        app.sales.create("Jan pix", Decimal("1000.00"), SaleMethod.PIX, checking.id, sale_date=date(2026, 1, 10))
        app.sales.create("Jan card", Decimal("500.00"), SaleMethod.CREDIT, checking.id, sale_date=date(2026, 1, 11))
        app.sales.create("Jan cash", Decimal("200.00"), SaleMethod.CASH, sale_date=date(2026, 1, 12))
        app.sales.create("Feb cash", Decimal("200.00"), SaleMethod.CASH, sale_date=date(2026, 2, 12))
        app.sales.create("Last Jan", Decimal("800.00"), SaleMethod.CASH, sale_date=date(2025, 1, 5))

        supplier = app.payables.create("Supplier", Decimal("200.00"), date(2026, 1, 15))
        app.payables.settle(supplier.id, PaymentSource.BANK_ACCOUNT, checking.id, on=date(2026, 1, 20))

        app.supplements.save(2026, 1, closing_inventory=Decimal("300.00"), purchases=Decimal("400.00"))
        app.supplements.save(
            2026, 2,
            closing_inventory=Decimal("100.00"),
            settlements=Decimal("50.00"),
            merchandise=Decimal("25.00"),
        )
        return app

    def test_january(self, year):
        row = year.reports.revenue_table(2026).rows[0]

        assert row.revenue == Decimal("1700.00")
        assert row.card_revenue == Decimal("500.00")
        assert row.expenses == Decimal("200.00")
        assert row.opening_inventory == Decimal("0")
        assert row.cost_of_goods_sold == Decimal("100.00")
        assert row.gross_profit == Decimal("1600.00")
        assert row.net_profit == Decimal("1400.00")
        assert row.net_margin_percent == pytest.approx(1400 / 1700 * 100)
        assert row.prior_year_total == Decimal("800.00")
        assert row.growth_percent == pytest.approx(112.5)

    def test_february_chains_inventory(self, year):
        row = year.reports.revenue_table(2026).rows[1]

        assert row.opening_inventory == Decimal("300.00")
        assert row.closing_inventory == Decimal("100.00")
        assert row.cost_of_goods_sold == Decimal("200.00")
        assert row.total == Decimal("275.00")
        assert row.growth_percent is None

    def test_month_without_revenue_has_no_margin(self, year):
        row = year.reports.revenue_table(2026).rows[3]
        assert row.revenue == Decimal("0")
        assert row.net_margin_percent is None
        assert row.supplement_id is None

    def test_totals_and_averages(self, year):
        table = year.reports.revenue_table(2026)

        assert len(table.rows) == 12
        assert table.totals["revenue"] == Decimal("1900.00")
        assert table.totals["total"] == Decimal("1975.00")
        assert table.averages["revenue"] == Decimal("158.33")
        assert "net_profit" not in table.averages
        assert table.prior_year_total == Decimal("800.00")
        assert table.annual_growth_percent == pytest.approx(146.875)

    def test_explicit_opening_inventory_wins(self, year):
        year.supplements.save(2026, 2, opening_inventory=Decimal("50.00"), closing_inventory=Decimal("100.00"))
        row = year.reports.revenue_table(2026).rows[1]
        assert row.opening_inventory == Decimal("50.00")
        assert row.cost_of_goods_sold == Decimal("-50.00")

    def test_empty_year(self, app):
        table = app.reports.revenue_table(2026)
        assert table.totals["total"] == Decimal("0")
        assert table.annual_growth_percent is None


class TestRevenueSupplements:
    def test_save_twice_updates(self, app, audit_storage):
        first = app.supplements.save(2026, 1, purchases=Decimal("100.00"))
        second = app.supplements.save(2026, 1, purchases=Decimal("150.00"))

        assert second.id == first.id
        assert app.supplements.get(2026, 1).purchases == Decimal("150.00")
        assert len(app.store.revenue_supplements.get_all()) == 1
        assert len(audit_storage.get_events_by_entity("revenue_supplement", first.id)) == 2

    def test_negative_values_rejected(self, app):
        with pytest.raises(ValidationError):
            app.supplements.save(2026, 1, purchases=Decimal("-1.00"))
        assert app.supplements.get(2026, 1) is None

    def test_extra_decimal_places_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.supplements.save(2026, 1, closing_inventory=Decimal("10.125"))
        assert exc_info.value.issues[0].field == "closing_inventory"
        assert app.supplements.get(2026, 1) is None

    def test_invalid_month_rejected(self, app):
        with pytest.raises(ValidationError):
            app.supplements.save(2026, 0)

    def test_suggested_opening_inventory(self, app):
        app.supplements.save(2026, 1, closing_inventory=Decimal("300.00"))
        assert app.supplements.suggested_opening_inventory(2026, 2) == Decimal("300.00")
        assert app.supplements.suggested_opening_inventory(2026, 1) == Decimal("0")
        assert app.supplements.suggested_opening_inventory(2026, 5) == Decimal("0")

    def test_delete(self, app):
        supplement = app.supplements.save(2026, 1)
        assert app.supplements.delete(supplement.id) is True
        assert app.supplements.get(2026, 1) is None

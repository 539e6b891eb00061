"""Tests for statement composition and health scores."""

from decimal import Decimal

import pytest

from ledger_insights.classification import classify_account
from ledger_insights.models import AccountBalance
from ledger_insights.statements import (
    FinancialStatement,
    HealthStatus,
    StatementComposer,
    activity_health,
    pending_entries_health,
    reconciliation_health,
    trial_balance_health,
)


def balance(account_type: str, debit: str = "0", credit: str = "0", code: str = "") -> AccountBalance:
    return AccountBalance(
        account_id=f"acc-{account_type}-{debit}-{credit}",
        account_code=code,
        account_name=account_type,
        account_type=account_type,
        category=classify_account(account_type),
        debit_total=Decimal(debit),
        credit_total=Decimal(credit),
    )


def statement(debits: str, credits: str) -> FinancialStatement:
    return FinancialStatement(
        total_debits=Decimal(debits),
        total_credits=Decimal(credits),
        total_assets=Decimal("0"),
        total_revenue=Decimal("0"),
        total_expenses=Decimal("0"),
    )


class TestTrialBalance:
    """Tests for debit/credit totals and the cent tolerance."""

    def test_balanced_ledger(self):
        result = StatementComposer().compose(
            [balance("Current Asset", debit="100"), balance("Equity", credit="100")]
        )

        assert result.total_debits == Decimal("100")
        assert result.total_credits == Decimal("100")
        assert result.balance_difference == Decimal("0")
        assert result.is_balanced

    def test_sub_cent_difference_is_balanced(self):
        assert statement("100.005", "100.000").is_balanced

    def test_cent_difference_is_unbalanced(self):
        result = statement("100.01", "100.00")

        assert not result.is_balanced
        assert result.balance_difference == Decimal("0.01")

    def test_empty_ledger(self):
        result = StatementComposer().compose([])

        assert result.is_balanced
        assert result.net_income == Decimal("0")


class TestSectionTotals:
    """Tests for asset, revenue and expense totals."""

    def test_negative_asset_balance_floored(self):
        result = StatementComposer().compose(
            [
                balance("Current Asset", debit="500"),
                balance("Fixed Asset", debit="100", credit="400"),
            ]
        )

        assert result.total_assets == Decimal("500")

    def test_revenue_counts_only_positive_net(self):
        """Revenue uses max(0, debit - credit), so credit-normal accounts add nothing."""
        result = StatementComposer().compose(
            [
                balance("Revenue", credit="1200"),
                balance("Other Income", debit="50"),
            ]
        )

        assert result.total_revenue == Decimal("50")

    def test_expenses_use_absolute_value(self):
        result = StatementComposer().compose(
            [
                balance("Operating Expense", debit="300"),
                balance("Cost of Goods Sold", credit="20"),
            ]
        )

        assert result.total_expenses == Decimal("320")

    def test_net_income(self):
        result = StatementComposer().compose(
            [balance("Sales", debit="900"), balance("Overhead", debit="250")]
        )

        assert result.net_income == Decimal("650")

    def test_unclassified_accounts_only_in_trial_balance(self):
        result = StatementComposer().compose([balance("Suspense", debit="75")])

        assert result.total_debits == Decimal("75")
        assert result.total_assets == Decimal("0")
        assert result.total_revenue == Decimal("0")
        assert result.total_expenses == Decimal("0")

    def test_account_in_two_sections_counted_twice(self):
        result = StatementComposer().compose([balance("Asset Expense", debit="40")])

        assert result.total_assets == Decimal("40")
        assert result.total_expenses == Decimal("40")

    def test_to_dict(self):
        data = StatementComposer().compose([balance("Current Asset", debit="10")]).to_dict()

        assert data["total_assets"] == "10"
        assert data["trial_balance_ok"] is False
        assert data["balance_difference"] == "10"


class TestHealthMetrics:
    """Tests for the ledger health scores."""

    @pytest.mark.parametrize(
        "count,value,status",
        [
            (0, 100, HealthStatus.OK),
            (1, 90, HealthStatus.WARN),
            (4, 60, HealthStatus.WARN),
            (5, 50, HealthStatus.DUE),
            (12, 0, HealthStatus.DUE),
        ],
    )
    def test_reconciliation(self, count, value, status):
        metric = reconciliation_health(count)

        assert metric.value == value
        assert metric.status == status

    @pytest.mark.parametrize(
        "count,value,status",
        [
            (0, 100, HealthStatus.OK),
            (4, 80, HealthStatus.WARN),
            (5, 75, HealthStatus.DUE),
            (30, 50, HealthStatus.DUE),
        ],
    )
    def test_pending_entries(self, count, value, status):
        metric = pending_entries_health(count, total_entries=40)

        assert metric.value == value
        assert metric.status == status
        assert metric.description == f"40 entries posted, {count} pending review"

    def test_trial_balance_scores(self):
        assert trial_balance_health(statement("10", "10")).value == 100
        unbalanced = trial_balance_health(statement("10", "9.5"))
        assert unbalanced.value == 75
        assert unbalanced.status == HealthStatus.WARN
        assert unbalanced.description == "Balance difference: 0.50"

    def test_activity_scores(self):
        assert activity_health(3).value == 85
        assert activity_health(3).status == HealthStatus.OK
        assert activity_health(0).value == 60
        assert activity_health(0).status == HealthStatus.DUE

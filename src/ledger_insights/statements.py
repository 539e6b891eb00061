"""Statement totals, trial balance check and ledger health scores."""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from ledger_insights.classification import matching_sections
from ledger_insights.models import FATAL, ZERO, AccountBalance, StatementCategory

ERROR_POLICY = FATAL

# Debits and credits within a cent count as balanced
BALANCE_TOLERANCE = Decimal("0.01")


class HealthStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    DUE = "due"


@dataclass(frozen=True)
class HealthMetric:
    label: str
    value: int
    status: HealthStatus
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "value": self.value,
            "status": self.status.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class FinancialStatement:
    """Section totals derived from classified account balances."""

    total_debits: Decimal
    total_credits: Decimal
    total_assets: Decimal
    total_revenue: Decimal
    total_expenses: Decimal

    @property
    def balance_difference(self) -> Decimal:
        return self.total_debits - self.total_credits

    @property
    def is_balanced(self) -> bool:
        return abs(self.balance_difference) < BALANCE_TOLERANCE

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_debits": str(self.total_debits),
            "total_credits": str(self.total_credits),
            "balance_difference": str(self.balance_difference),
            "trial_balance_ok": self.is_balanced,
            "total_assets": str(self.total_assets),
            "total_revenue": str(self.total_revenue),
            "total_expenses": str(self.total_expenses),
            "net_income": str(self.net_income),
        }


class StatementComposer:
    """Folds account balances into statement totals.

    Section membership comes from ``matching_sections``; each section is
    an independent filter over the balances.
    """

    def compose(self, balances: Sequence[AccountBalance]) -> FinancialStatement:
        total_debits = sum((b.debit_total for b in balances), ZERO)
        total_credits = sum((b.credit_total for b in balances), ZERO)

        total_assets = ZERO
        total_revenue = ZERO
        total_expenses = ZERO
        for balance in balances:
            sections = matching_sections(balance.account_type)
            net = balance.net_balance
            if StatementCategory.ASSET in sections:
                total_assets += max(ZERO, net)
            if StatementCategory.REVENUE in sections:
                total_revenue += max(ZERO, net)
            if StatementCategory.EXPENSE in sections:
                total_expenses += abs(net)

        return FinancialStatement(
            total_debits=total_debits,
            total_credits=total_credits,
            total_assets=total_assets,
            total_revenue=total_revenue,
            total_expenses=total_expenses,
        )


# =============================================================================
# HEALTH SCORES
# =============================================================================


def _count_status(count: int) -> HealthStatus:
    if count == 0:
        return HealthStatus.OK
    return HealthStatus.WARN if count < 5 else HealthStatus.DUE


def reconciliation_health(unreconciled_accounts: int) -> HealthMetric:
    value = 100 if unreconciled_accounts == 0 else max(0, 100 - 10 * unreconciled_accounts)
    description = (
        "All accounts are reconciled"
        if unreconciled_accounts == 0
        else f"{unreconciled_accounts} accounts need reconciliation"
    )
    return HealthMetric(
        label="Account Reconciliation",
        value=value,
        status=_count_status(unreconciled_accounts),
        description=description,
    )


def pending_entries_health(pending_entries: int, total_entries: int) -> HealthMetric:
    value = 100 if pending_entries == 0 else max(50, 100 - 5 * pending_entries)
    return HealthMetric(
        label="Journal Entries",
        value=value,
        status=_count_status(pending_entries),
        description=f"{total_entries} entries posted, {pending_entries} pending review",
    )


def trial_balance_health(statement: FinancialStatement) -> HealthMetric:
    if statement.is_balanced:
        return HealthMetric(
            label="Trial Balance",
            value=100,
            status=HealthStatus.OK,
            description="Total debits equal total credits",
        )
    return HealthMetric(
        label="Trial Balance",
        value=75,
        status=HealthStatus.WARN,
        description=f"Balance difference: {statement.balance_difference:.2f}",
    )


def activity_health(recent_entries: int) -> HealthMetric:
    if recent_entries > 0:
        return HealthMetric(
            label="Financial Reports",
            value=85,
            status=HealthStatus.OK,
            description="Recent activity detected",
        )
    return HealthMetric(
        label="Financial Reports",
        value=60,
        status=HealthStatus.DUE,
        description="No recent journal entries",
    )

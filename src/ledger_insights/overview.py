"""Accounting overview: statement metrics, health scores, activity and tasks."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Any

import structlog

from ledger_insights.balances import BalanceAggregator
from ledger_insights.exceptions import require_scope
from ledger_insights.models import FATAL, AccountBalance, EntryStatus, JournalEntry
from ledger_insights.statements import (
    FinancialStatement,
    HealthMetric,
    StatementComposer,
    activity_health,
    pending_entries_health,
    reconciliation_health,
    trial_balance_health,
)
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = FATAL

ACTIVITY_WINDOW = timedelta(days=30)
RECENT_ACTIVITY_LIMIT = 10


def _whole(amount: Decimal) -> int:
    """Round to whole units, halves toward positive infinity (-2.5 -> -2)."""
    return int((amount + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


@dataclass(frozen=True)
class ActivityItem:
    entry_id: str
    icon: str
    title: str
    detail: str
    minutes_ago: int | None

    @classmethod
    def from_entry(cls, entry: JournalEntry, now: datetime) -> "ActivityItem":
        minutes_ago = None
        if entry.created_at is not None:
            minutes_ago = round((now - entry.created_at).total_seconds() / 60)
        return cls(
            entry_id=entry.id,
            icon="approved" if entry.is_posted else "review",
            title="Journal Entry Posted" if entry.is_posted else "Journal Entry Pending",
            detail=f"{entry.reference or 'Entry'} - {entry.memo or 'No memo'}",
            minutes_ago=minutes_ago,
        )


@dataclass(frozen=True)
class TaskItem:
    label: str
    count: int
    variant: str


@dataclass
class AccountingOverview:
    """Everything the dashboard shows about the state of the books."""

    statement: FinancialStatement
    balances: list[AccountBalance]
    total_entries: int
    health: list[HealthMetric]
    activity: list[ActivityItem]
    tasks: list[TaskItem]
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        net_income = _whole(self.statement.net_income)
        return {
            "metrics": {
                "assets": _whole(self.statement.total_assets),
                "net_income": net_income,
                "journal_entries": self.total_entries,
                "balance_ok": self.statement.is_balanced,
            },
            "health": [metric.to_dict() for metric in self.health],
            "summary": {
                "revenue": _whole(self.statement.total_revenue),
                "expenses": _whole(self.statement.total_expenses),
                "profit": net_income,
                "net_income": net_income,
            },
            "activity": [
                {
                    "id": item.entry_id,
                    "icon": item.icon,
                    "title": item.title,
                    "detail": item.detail,
                    "minutes_ago": item.minutes_ago,
                }
                for item in self.activity
            ],
            "tasks": [
                {"label": task.label, "count": task.count, "variant": task.variant}
                for task in self.tasks
            ],
            "generated_at": self.generated_at.isoformat(),
        }


class OverviewBuilder:
    """Builds the accounting overview for one company."""

    def __init__(
        self,
        store: LedgerStore,
        aggregator: BalanceAggregator | None = None,
        composer: StatementComposer | None = None,
    ):
        self._store = store
        self._aggregator = aggregator or BalanceAggregator(store)
        self._composer = composer or StatementComposer()

    async def build(
        self,
        tenant_id: str,
        company_id: str,
        as_of: datetime | None = None,
    ) -> AccountingOverview:
        require_scope(tenant_id, company_id)
        now = as_of or datetime.now(UTC)

        accounts = await self._store.list_accounts(tenant_id, company_id, active_only=True)
        balances = await self._aggregator.compute_for_accounts(
            tenant_id, company_id, accounts, as_of=now
        )
        statement = self._composer.compose(balances)

        total_entries = await self._store.count_journal_entries(tenant_id, company_id)
        recent_entries = await self._store.count_journal_entries(
            tenant_id, company_id, created_since=now - ACTIVITY_WINDOW
        )
        pending_entries = await self._store.count_journal_entries(
            tenant_id, company_id, status=EntryStatus.DRAFT.value
        )
        latest = await self._store.list_journal_entries(
            tenant_id, company_id, newest_first=True, limit=RECENT_ACTIVITY_LIMIT
        )
        unreconciled = sum(1 for account in accounts if not account.is_reconciled)

        health = [
            reconciliation_health(unreconciled),
            pending_entries_health(pending_entries, total_entries),
            trial_balance_health(statement),
            activity_health(recent_entries),
        ]

        logger.info(
            "overview_built",
            tenant_id=tenant_id,
            company_id=company_id,
            accounts=len(accounts),
            balanced=statement.is_balanced,
        )

        return AccountingOverview(
            statement=statement,
            balances=balances,
            total_entries=total_entries,
            health=health,
            activity=[ActivityItem.from_entry(entry, now) for entry in latest],
            tasks=self._tasks(statement, pending_entries, unreconciled, total_entries),
            generated_at=now,
        )

    @staticmethod
    def _tasks(
        statement: FinancialStatement,
        pending_entries: int,
        unreconciled: int,
        total_entries: int,
    ) -> list[TaskItem]:
        unbalanced = statement.balance_difference != 0
        return [
            TaskItem(
                label="Review journal entries",
                count=pending_entries,
                variant="secondary" if pending_entries > 0 else "outline",
            ),
            TaskItem(
                label="Bank reconciliations",
                count=min(unreconciled, 5),
                variant="secondary" if unreconciled > 0 else "outline",
            ),
            TaskItem(
                label="Month-end closing",
                count=1 if unbalanced else 0,
                variant="destructive" if unbalanced else "outline",
            ),
            TaskItem(
                label="Audit preparation",
                count=max(0, total_entries // 100),
                variant="outline",
            ),
        ]

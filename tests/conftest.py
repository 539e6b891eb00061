"""Pytest configuration and fixtures."""

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest
import structlog

# Set test environment variables before importing settings
os.environ.setdefault("LEDGER_API_URL", "http://ledger.test")
os.environ.setdefault("LEDGER_API_TOKEN", "test-token")

from ledger_insights.exceptions import LedgerStoreError  # noqa: E402
from ledger_insights.models import (  # noqa: E402
    Account,
    AnomalyRecord,
    DateRange,
    Expense,
    InsightRecord,
    Invoice,
    JournalEntry,
    JournalLine,
    PredictionRecord,
    RecommendationRecord,
    Transaction,
)
from ledger_insights.store import LedgerStore  # noqa: E402


@dataclass
class FakeLedgerStore(LedgerStore):
    """In-memory store for one company. ``fail_on`` names methods that raise."""

    accounts: list[Account] = field(default_factory=list)
    entries: list[JournalEntry] = field(default_factory=list)
    invoices: list[Invoice] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    anomalies: list[AnomalyRecord] = field(default_factory=list)
    insights: list[InsightRecord] = field(default_factory=list)
    predictions: list[PredictionRecord] = field(default_factory=list)
    recommendations: list[RecommendationRecord] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    failing_account_id: str | None = None
    calls: list[str] = field(default_factory=list)

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise LedgerStoreError(f"{name} unavailable", status_code=503)

    async def list_accounts(
        self, tenant_id: str, company_id: str, active_only: bool = True
    ) -> list[Account]:
        self._check("list_accounts")
        return [a for a in self.accounts if a.is_active or not active_only]

    async def list_journal_lines(
        self,
        tenant_id: str,
        account_id: str,
        company_id: str,
        posted_only: bool = True,
        as_of: datetime | None = None,
    ) -> list[JournalLine]:
        self._check("list_journal_lines")
        if account_id == self.failing_account_id:
            raise LedgerStoreError(f"lines for {account_id} unavailable", status_code=500)
        lines: list[JournalLine] = []
        for entry in self.entries:
            if posted_only and entry.status != "POSTED":
                continue
            if as_of is not None and entry.entry_date > as_of.date():
                continue
            lines.extend(line for line in entry.lines if line.account_id == account_id)
        return lines

    async def list_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        statuses: Sequence[str] | None = None,
        date_range: DateRange | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[JournalEntry]:
        self._check("list_journal_entries")
        found = [
            e
            for e in self.entries
            if (statuses is None or e.status in statuses)
            and (date_range is None or date_range.contains(e.entry_date))
        ]
        if newest_first:
            oldest = datetime.min.replace(tzinfo=UTC)
            found.sort(key=lambda e: e.created_at or oldest, reverse=True)
        else:
            found.sort(key=lambda e: e.entry_date)
        return found[:limit] if limit is not None else found

    async def count_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        status: str | None = None,
        created_since: datetime | None = None,
    ) -> int:
        self._check("count_journal_entries")
        return sum(
            1
            for e in self.entries
            if (status is None or e.status == status)
            and (
                created_since is None
                or (e.created_at is not None and e.created_at >= created_since)
            )
        )

    async def list_invoices(
        self,
        tenant_id: str,
        company_id: str,
        date_range: DateRange | None = None,
        statuses: Sequence[str] | None = None,
        due_before: date | None = None,
        with_balance_due: bool = False,
        limit: int | None = None,
    ) -> list[Invoice]:
        self._check("list_invoices")
        found = [
            inv
            for inv in self.invoices
            if (date_range is None or date_range.contains(inv.issue_date))
            and (statuses is None or inv.status in statuses)
            and (due_before is None or (inv.due_date is not None and inv.due_date < due_before))
            and (not with_balance_due or inv.balance_due > 0)
        ]
        found.sort(key=lambda inv: inv.issue_date or date.min)
        return found[:limit] if limit is not None else found

    async def list_expenses(
        self,
        tenant_id: str,
        company_id: str,
        date_range: DateRange | None = None,
        largest_first: bool = False,
        limit: int | None = None,
    ) -> list[Expense]:
        self._check("list_expenses")
        found = [
            exp
            for exp in self.expenses
            if date_range is None or date_range.contains(exp.expense_date)
        ]
        if largest_first:
            found.sort(key=lambda exp: exp.amount, reverse=True)
        else:
            found.sort(key=lambda exp: exp.expense_date or date.min)
        return found[:limit] if limit is not None else found

    async def list_transactions(
        self, tenant_id: str, company_id: str, limit: int = 100
    ) -> list[Transaction]:
        self._check("list_transactions")
        ordered = sorted(self.transactions, key=lambda t: t.transaction_date, reverse=True)
        return ordered[:limit]

    async def create_anomaly(self, record: AnomalyRecord) -> AnomalyRecord:
        self._check("create_anomaly")
        saved = record.with_id(f"anomaly-{len(self.anomalies) + 1}")
        self.anomalies.append(saved)
        return saved

    async def create_insight(self, record: InsightRecord) -> InsightRecord:
        self._check("create_insight")
        saved = record.with_id(f"insight-{len(self.insights) + 1}")
        self.insights.append(saved)
        return saved

    async def delete_insights_matching(
        self, tenant_id: str, company_id: str, patterns: Sequence[str]
    ) -> int:
        self._check("delete_insights_matching")
        kept = [i for i in self.insights if not any(p in i.insight_text for p in patterns)]
        deleted = len(self.insights) - len(kept)
        self.insights = kept
        return deleted

    async def create_prediction(self, record: PredictionRecord) -> PredictionRecord:
        self._check("create_prediction")
        saved = record.with_id(f"prediction-{len(self.predictions) + 1}")
        self.predictions.append(saved)
        return saved

    async def create_recommendation(
        self, record: RecommendationRecord
    ) -> RecommendationRecord:
        self._check("create_recommendation")
        saved = record.with_id(f"recommendation-{len(self.recommendations) + 1}")
        self.recommendations.append(saved)
        return saved


@pytest.fixture
def store():
    """Create an empty in-memory ledger store."""
    return FakeLedgerStore()


@pytest.fixture
def now():
    """Fixed evaluation instant."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo ``configure_logging`` so later tests never write to a closed capture stream."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    logging.basicConfig(force=True, handlers=[logging.NullHandler()])

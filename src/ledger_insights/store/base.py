"""Abstract ledger store interface.

The analytics engine never talks to a database directly. Everything it
reads or writes goes through a ``LedgerStore`` so the REST client can be
swapped for an in-memory store in tests. Every call is scoped by tenant
and company.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date, datetime

from ledger_insights.models import (
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


class LedgerStore(ABC):
    """Read/write contract the analytics components depend on."""

    # === Reads ===

    @abstractmethod
    async def list_accounts(
        self, tenant_id: str, company_id: str, active_only: bool = True
    ) -> list[Account]:
        """List the company's chart of accounts, in a stable order."""

    @abstractmethod
    async def list_journal_lines(
        self,
        tenant_id: str,
        account_id: str,
        company_id: str,
        posted_only: bool = True,
        as_of: datetime | None = None,
    ) -> list[JournalLine]:
        """List lines posted to one account.

        With ``posted_only`` only lines whose entry status is exactly
        ``POSTED`` are returned; with ``as_of`` only entries dated on or
        before that instant.
        """

    @abstractmethod
    async def list_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        statuses: Sequence[str] | None = None,
        date_range: DateRange | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[JournalEntry]:
        """List journal entries with their lines and line accounts joined.

        Entries are ordered by entry date ascending, or by creation time
        descending when ``newest_first`` is set.
        """

    @abstractmethod
    async def count_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        status: str | None = None,
        created_since: datetime | None = None,
    ) -> int:
        """Count journal entries, optionally by exact status or creation time."""

    @abstractmethod
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
        """List invoices ordered by issue date ascending."""

    @abstractmethod
    async def list_expenses(
        self,
        tenant_id: str,
        company_id: str,
        date_range: DateRange | None = None,
        largest_first: bool = False,
        limit: int | None = None,
    ) -> list[Expense]:
        """List expenses ordered by expense date, or by amount descending."""

    @abstractmethod
    async def list_transactions(
        self, tenant_id: str, company_id: str, limit: int = 100
    ) -> list[Transaction]:
        """List the newest ``limit`` transactions, newest first."""

    # === Writes ===

    @abstractmethod
    async def create_anomaly(self, record: AnomalyRecord) -> AnomalyRecord:
        """Append an anomaly to the log and return it with its id."""

    @abstractmethod
    async def create_insight(self, record: InsightRecord) -> InsightRecord:
        """Persist an insight and return it with its id."""

    @abstractmethod
    async def delete_insights_matching(
        self, tenant_id: str, company_id: str, patterns: Sequence[str]
    ) -> int:
        """Delete insights whose text contains any pattern. Returns the count."""

    @abstractmethod
    async def create_prediction(self, record: PredictionRecord) -> PredictionRecord:
        """Persist one forecast step and return it with its id."""

    @abstractmethod
    async def create_recommendation(
        self, record: RecommendationRecord
    ) -> RecommendationRecord:
        """Persist a recommendation and return it with its id."""

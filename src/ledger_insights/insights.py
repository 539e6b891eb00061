"""Financial insights over the trailing 30 days.

Revenue is invoice totals adjusted by posted journal lines on revenue
accounts (code starting with 4); expenses are expense amounts adjusted by
lines on expense accounts (codes starting with 5 through 9). Each insight
rule fires independently.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import structlog

from ledger_insights.exceptions import require_scope
from ledger_insights.models import (
    POSTED_STATUSES,
    RECOVERED,
    ZERO,
    DateRange,
    Expense,
    InsightPriority,
    InsightRecord,
    Invoice,
    JournalEntry,
)
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = RECOVERED

INSIGHT_WINDOW = timedelta(days=30)

# Text left behind by an old formatting bug that reported zero losses
STALE_INSIGHT_PATTERNS: tuple[str, ...] = ("losing $0", "$0/month", "losing $0/month")

EXPENSE_CODE_PREFIXES = ("5", "6", "7", "8", "9")

NO_DATA_TEXT = (
    "No financial data available for analysis. "
    "Add invoices and expenses to get meaningful insights."
)
FALLBACK_TEXT = "Unable to analyze financial data. Please check your data sources."


@dataclass(frozen=True)
class InsightDraft:
    category: str
    text: str
    priority: InsightPriority


@dataclass
class FinancialSnapshot:
    """Revenue and expense figures for the insight window."""

    revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    monthly_revenue: list[Decimal] = field(default_factory=list)

    @property
    def net_profit(self) -> Decimal:
        return self.revenue - self.expenses

    @property
    def profit_margin(self) -> Decimal:
        if self.revenue <= 0:
            return ZERO
        return (self.revenue - self.expenses) / self.revenue * 100


def monthly_invoice_totals(invoices: Sequence[Invoice]) -> list[Decimal]:
    """Sum invoice totals per calendar month, months ascending."""
    totals: dict[str, Decimal] = {}
    for invoice in invoices:
        if invoice.issue_date is None:
            continue
        month = invoice.issue_date.strftime("%Y-%m")
        totals[month] = totals.get(month, ZERO) + invoice.total_amount
    return [totals[month] for month in sorted(totals)]


def summarize_window(
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    entries: Sequence[JournalEntry],
) -> FinancialSnapshot:
    revenue = sum((invoice.total_amount for invoice in invoices), ZERO)
    spent = sum((expense.amount for expense in expenses), ZERO)

    for entry in entries:
        for line in entry.lines:
            code = line.account_code
            if code.startswith("4"):
                revenue += line.credit - line.debit
            if code.startswith(EXPENSE_CODE_PREFIXES):
                spent += line.debit - line.credit

    return FinancialSnapshot(
        revenue=revenue,
        expenses=spent,
        monthly_revenue=monthly_invoice_totals(invoices),
    )


def draft_insights(snapshot: FinancialSnapshot) -> list[InsightDraft]:
    """Apply the insight rules to a snapshot."""
    drafts: list[InsightDraft] = []

    monthly = snapshot.monthly_revenue
    if len(monthly) > 1:
        trend = monthly[-1] - monthly[0]
        average = sum(monthly, ZERO) / len(monthly)
        if average > 0 and trend > average * Decimal("0.2"):
            growth = trend / average * 100
            drafts.append(
                InsightDraft(
                    "revenue",
                    f"Strong revenue growth trend: +{growth:.1f}% over recent period",
                    InsightPriority.HIGH,
                )
            )

    if snapshot.revenue > 0 and snapshot.profit_margin < 10:
        drafts.append(
            InsightDraft(
                "expenses",
                f"Low profit margin: {snapshot.profit_margin:.1f}%. "
                "Consider reviewing expense categories.",
                InsightPriority.HIGH,
            )
        )

    if snapshot.net_profit < 0:
        drafts.append(
            InsightDraft(
                "financial_crisis",
                f"Critical financial situation: losing ${abs(snapshot.net_profit):,.2f}/month",
                InsightPriority.HIGH,
            )
        )

    cash_flow = snapshot.revenue - snapshot.expenses
    if cash_flow < 0:
        drafts.append(
            InsightDraft(
                "cashflow",
                f"Negative cash flow detected: -${abs(cash_flow):,.2f}. "
                "Review payment terms and collection processes.",
                InsightPriority.MEDIUM,
            )
        )
    elif cash_flow > 0:
        drafts.append(
            InsightDraft(
                "financial",
                f"Positive cash flow: +${cash_flow:,.2f}. "
                "Consider reinvestment opportunities.",
                InsightPriority.MEDIUM,
            )
        )

    if snapshot.revenue == 0 and snapshot.expenses == 0:
        drafts.append(InsightDraft("system", NO_DATA_TEXT, InsightPriority.LOW))

    return drafts


class InsightGenerator:
    """Generates and persists insights for one company."""

    def __init__(self, store: LedgerStore):
        self._store = store
        self._logger = logger.bind(component="insight_generator")

    async def generate(
        self,
        tenant_id: str,
        company_id: str,
        as_of: datetime | None = None,
    ) -> list[InsightRecord]:
        require_scope(tenant_id, company_id)
        now = as_of or datetime.now(UTC)
        window = DateRange(start=(now - INSIGHT_WINDOW).date(), end=now.date())
        insights: list[InsightRecord] = []

        try:
            invoices = await self._store.list_invoices(
                tenant_id, company_id, date_range=window
            )
            expenses = await self._store.list_expenses(
                tenant_id, company_id, date_range=window
            )
            entries = await self._store.list_journal_entries(
                tenant_id, company_id, statuses=POSTED_STATUSES, date_range=window
            )
            snapshot = summarize_window(invoices, expenses, entries)

            # Cleanup must run before this run's insights are written
            await self._cleanup_stale(tenant_id, company_id)

            for draft in draft_insights(snapshot):
                insights.append(await self._add(tenant_id, company_id, draft))

            self._logger.info(
                "insights_generated",
                company_id=company_id,
                revenue=str(snapshot.revenue),
                expenses=str(snapshot.expenses),
                count=len(insights),
            )
        except Exception as e:
            self._logger.error(
                "insight_generation_failed", company_id=company_id, error=str(e)
            )
            fallback = InsightDraft("system", FALLBACK_TEXT, InsightPriority.LOW)
            try:
                insights.append(await self._add(tenant_id, company_id, fallback))
            except Exception as write_error:
                self._logger.error(
                    "fallback_insight_failed",
                    company_id=company_id,
                    error=str(write_error),
                )

        return insights

    async def _add(
        self, tenant_id: str, company_id: str, draft: InsightDraft
    ) -> InsightRecord:
        return await self._store.create_insight(
            InsightRecord(
                tenant_id=tenant_id,
                company_id=company_id,
                category=draft.category,
                insight_text=draft.text,
                priority=draft.priority,
            )
        )

    async def _cleanup_stale(self, tenant_id: str, company_id: str) -> None:
        try:
            deleted = await self._store.delete_insights_matching(
                tenant_id, company_id, STALE_INSIGHT_PATTERNS
            )
        except Exception as e:
            self._logger.warning(
                "stale_insight_cleanup_failed", company_id=company_id, error=str(e)
            )
            return
        if deleted:
            self._logger.info("stale_insights_removed", company_id=company_id, deleted=deleted)

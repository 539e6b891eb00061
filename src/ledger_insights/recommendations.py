"""Rule-based recommendations: collections, outlier expenses, payment rate."""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import structlog

from ledger_insights.exceptions import require_scope
from ledger_insights.models import (
    OPEN_INVOICE_STATUSES,
    RECOVERED,
    ZERO,
    DateRange,
    Expense,
    Invoice,
    RecommendationRecord,
)
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = RECOVERED

LOOKBACK = timedelta(days=90)
TOP_EXPENSES = 10
RECENT_INVOICES = 20
TARGET_PAYMENT_RATE = Decimal("0.8")


def overdue_recommendation(invoices: Sequence[Invoice]) -> str | None:
    if not invoices:
        return None
    total = sum((inv.balance_due for inv in invoices), ZERO)
    return (
        f"Follow up on {len(invoices)} overdue invoices totaling ${total:,.2f}. "
        "Consider implementing automated reminders."
    )


def high_expense_recommendation(expenses: Sequence[Expense]) -> str | None:
    """Flag expenses above twice the average of the largest expenses."""
    if not expenses:
        return None
    average = sum((exp.amount for exp in expenses), ZERO) / len(expenses)
    high = [exp for exp in expenses if exp.amount > average * 2]
    if not high:
        return None
    return (
        f"{len(high)} expenses are significantly above average (${average:,.2f}). "
        "Review high-cost items for potential savings."
    )


def payment_rate_recommendation(invoices: Sequence[Invoice]) -> str | None:
    if not invoices:
        return None
    paid = sum(1 for inv in invoices if inv.status.lower() == "paid")
    rate = Decimal(paid) / Decimal(len(invoices))
    if rate >= TARGET_PAYMENT_RATE:
        return None
    return (
        f"Payment rate is {rate * 100:.1f}%. Consider improving payment terms "
        "or follow-up processes to increase cash flow."
    )


class RecommendationEngine:
    """Runs each recommendation rule and persists what fires."""

    def __init__(self, store: LedgerStore):
        self._store = store
        self._logger = logger.bind(component="recommendation_engine")

    async def generate(
        self,
        tenant_id: str,
        company_id: str,
        as_of: datetime | None = None,
    ) -> list[RecommendationRecord]:
        require_scope(tenant_id, company_id)
        now = as_of or datetime.now(UTC)
        window = DateRange(start=(now - LOOKBACK).date(), end=now.date())
        recommendations: list[RecommendationRecord] = []

        try:
            overdue = await self._store.list_invoices(
                tenant_id,
                company_id,
                statuses=OPEN_INVOICE_STATUSES,
                due_before=now.date(),
                with_balance_due=True,
            )
            # Overdue: past due, unpaid balance, open status
            overdue = [
                inv
                for inv in overdue
                if inv.due_date is not None
                and inv.due_date < now.date()
                and inv.balance_due > 0
                and inv.status in OPEN_INVOICE_STATUSES
            ]
            text = overdue_recommendation(overdue)
            if text:
                recommendations.append(
                    await self._add(tenant_id, company_id, "payment_timing", text)
                )

            top_expenses = await self._store.list_expenses(
                tenant_id, company_id, date_range=window, largest_first=True, limit=TOP_EXPENSES
            )
            text = high_expense_recommendation(top_expenses[:TOP_EXPENSES])
            if text:
                recommendations.append(
                    await self._add(tenant_id, company_id, "cost_cutting", text)
                )

            recent_invoices = await self._store.list_invoices(
                tenant_id, company_id, date_range=window, limit=RECENT_INVOICES
            )
            text = payment_rate_recommendation(recent_invoices[:RECENT_INVOICES])
            if text:
                recommendations.append(
                    await self._add(tenant_id, company_id, "revenue_optimization", text)
                )
        except Exception as e:
            self._logger.error(
                "recommendation_generation_failed",
                company_id=company_id,
                produced=len(recommendations),
                error=str(e),
            )
            return recommendations

        self._logger.info(
            "recommendations_generated",
            company_id=company_id,
            count=len(recommendations),
        )
        return recommendations

    async def _add(
        self, tenant_id: str, company_id: str, kind: str, text: str
    ) -> RecommendationRecord:
        return await self._store.create_recommendation(
            RecommendationRecord(
                tenant_id=tenant_id,
                company_id=company_id,
                recommendation_type=kind,
                recommendation_text=text,
            )
        )

"""Tests for per-account balance aggregation."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from ledger_insights.balances import BalanceAggregator
from ledger_insights.exceptions import LedgerStoreError, MissingScopeError
from ledger_insights.models import Account, JournalEntry, JournalLine, StatementCategory


def line(account_id: str, debit: str = "0", credit: str = "0") -> JournalLine:
    return JournalLine(account_id=account_id, debit=Decimal(debit), credit=Decimal(credit))


def entry(entry_id: str, day: date, *lines: JournalLine, status: str = "POSTED") -> JournalEntry:
    return JournalEntry(id=entry_id, entry_date=day, status=status, lines=tuple(lines))


@pytest.fixture
def ledger(store):
    """A small, balanced ledger with a draft and a future-dated entry."""
    store.accounts = [
        Account(id="cash", code="1000", name="Cash", type_label="Current Asset"),
        Account(id="ap", code="2000", name="Accounts Payable", type_label="Current Liability"),
        Account(id="equity", code="3000", name="Owner Capital", type_label="Equity"),
        Account(id="sales", code="4000", name="Sales", type_label="Revenue"),
        Account(id="cogs", code="5000", name="COGS", type_label="Cost of Goods Sold"),
        Account(id="old", code="1900", name="Closed", type_label="Asset", is_active=False),
    ]
    store.entries = [
        entry("je-1", date(2024, 1, 2), line("cash", debit="5000"), line("equity", credit="5000")),
        entry("je-2", date(2024, 2, 3), line("cash", debit="1200"), line("sales", credit="1200")),
        entry("je-3", date(2024, 2, 4), line("cogs", debit="300"), line("cash", credit="300")),
        entry("je-4", date(2024, 2, 5), line("cogs", debit="80"), line("ap", credit="80")),
        entry(
            "je-draft",
            date(2024, 2, 6),
            line("cash", debit="999"),
            line("sales", credit="999"),
            status="DRAFT",
        ),
        entry("je-future", date(2024, 12, 31), line("cash", debit="50"), line("sales", credit="50")),
    ]
    return store


class TestBalanceAggregator:
    """Tests for BalanceAggregator.compute."""

    @pytest.mark.asyncio
    async def test_double_entry_balances_to_zero(self, ledger, now):
        balances = await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)

        total = sum((b.net_balance for b in balances), Decimal("0"))
        assert abs(total) < Decimal("0.01")
        assert sum(b.debit_total for b in balances) == sum(b.credit_total for b in balances)

    @pytest.mark.asyncio
    async def test_one_balance_per_active_account_in_order(self, ledger, now):
        balances = await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)

        assert [b.account_id for b in balances] == ["cash", "ap", "equity", "sales", "cogs"]

    @pytest.mark.asyncio
    async def test_draft_and_future_entries_excluded(self, ledger, now):
        balances = await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)
        cash = balances[0]

        assert cash.debit_total == Decimal("6200")
        assert cash.credit_total == Decimal("300")
        assert cash.net_balance == Decimal("5900")

    @pytest.mark.asyncio
    async def test_balances_carry_classification(self, ledger, now):
        balances = await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)
        by_id = {b.account_id: b for b in balances}

        assert by_id["cash"].category == StatementCategory.ASSET
        assert by_id["sales"].category == StatementCategory.REVENUE
        assert by_id["cogs"].category == StatementCategory.EXPENSE
        assert by_id["sales"].net_balance == Decimal("-1200")

    @pytest.mark.asyncio
    async def test_debit_and_credit_summed_independently(self, store, now):
        store.accounts = [Account(id="x", code="1100", name="Odd", type_label="Asset")]
        store.entries = [
            entry("je-1", date(2024, 3, 1), line("x", debit="40", credit="15")),
        ]

        [balance] = await BalanceAggregator(store).compute("t1", "c1", as_of=now)

        assert balance.debit_total == Decimal("40")
        assert balance.credit_total == Decimal("15")
        assert balance.net_balance == Decimal("25")

    @pytest.mark.asyncio
    async def test_account_without_lines_is_zero(self, store, now):
        store.accounts = [Account(id="idle", code="1500", name="Idle", type_label="Asset")]

        [balance] = await BalanceAggregator(store).compute("t1", "c1", as_of=now)

        assert balance.debit_total == Decimal("0")
        assert balance.net_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_output_order_ignores_completion_order(self, ledger, now):
        """Slow early accounts still come back first."""
        delays = {"cash": 0.05, "ap": 0.04, "equity": 0.03, "sales": 0.02, "cogs": 0.0}
        real_lines = ledger.list_journal_lines

        async def slow_lines(tenant_id, account_id, *args, **kwargs):
            await asyncio.sleep(delays[account_id])
            return await real_lines(tenant_id, account_id, *args, **kwargs)

        ledger.list_journal_lines = slow_lines

        balances = await BalanceAggregator(ledger, max_concurrency=5).compute(
            "t1", "c1", as_of=now
        )

        assert [b.account_id for b in balances] == ["cash", "ap", "equity", "sales", "cogs"]

    @pytest.mark.asyncio
    async def test_single_account_failure_fails_aggregation(self, ledger, now):
        ledger.failing_account_id = "sales"

        with pytest.raises(LedgerStoreError):
            await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)

    @pytest.mark.asyncio
    async def test_account_listing_failure_propagates(self, ledger, now):
        ledger.fail_on.add("list_accounts")

        with pytest.raises(LedgerStoreError):
            await BalanceAggregator(ledger).compute("t1", "c1", as_of=now)

    @pytest.mark.asyncio
    async def test_missing_company_rejected(self, ledger):
        with pytest.raises(MissingScopeError) as exc_info:
            await BalanceAggregator(ledger).compute("t1", "")

        assert exc_info.value.field == "company_id"
        assert ledger.calls == []

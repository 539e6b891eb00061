"""Per-account debit/credit aggregation over posted journal lines."""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from ledger_insights.classification import classify_account
from ledger_insights.exceptions import require_scope
from ledger_insights.models import FATAL, ZERO, Account, AccountBalance
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = FATAL


class BalanceAggregator:
    """Computes one ``AccountBalance`` per active account.

    Accounts are queried concurrently, at most ``max_concurrency`` at a
    time. Output keeps the store's account order. If any account query
    fails the whole aggregation fails.
    """

    def __init__(self, store: LedgerStore, max_concurrency: int = 10):
        self._store = store
        self._semaphore_size = max(1, max_concurrency)
        self._logger = logger.bind(component="balance_aggregator")

    async def compute(
        self,
        tenant_id: str,
        company_id: str,
        as_of: datetime | None = None,
    ) -> list[AccountBalance]:
        require_scope(tenant_id, company_id)
        accounts = await self._store.list_accounts(tenant_id, company_id, active_only=True)
        return await self.compute_for_accounts(tenant_id, company_id, accounts, as_of)

    async def compute_for_accounts(
        self,
        tenant_id: str,
        company_id: str,
        accounts: Sequence[Account],
        as_of: datetime | None = None,
    ) -> list[AccountBalance]:
        """Compute balances for accounts the caller has already listed."""
        require_scope(tenant_id, company_id)
        as_of = as_of or datetime.now(UTC)
        semaphore = asyncio.Semaphore(self._semaphore_size)

        async def balance_for(account: Account) -> AccountBalance:
            async with semaphore:
                return await self._account_balance(tenant_id, company_id, account, as_of)

        tasks = [asyncio.ensure_future(balance_for(account)) for account in accounts]
        try:
            balances = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            self._logger.error(
                "balance_aggregation_failed",
                tenant_id=tenant_id,
                company_id=company_id,
                account_count=len(accounts),
            )
            raise

        self._logger.debug(
            "balances_computed",
            company_id=company_id,
            account_count=len(balances),
            as_of=as_of.isoformat(),
        )
        return list(balances)

    async def _account_balance(
        self,
        tenant_id: str,
        company_id: str,
        account: Account,
        as_of: datetime,
    ) -> AccountBalance:
        lines = await self._store.list_journal_lines(
            tenant_id,
            account.id,
            company_id,
            posted_only=True,
            as_of=as_of,
        )
        debit_total = sum((line.debit for line in lines), ZERO)
        credit_total = sum((line.credit for line in lines), ZERO)

        return AccountBalance(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.type_label,
            category=classify_account(account.type_label),
            debit_total=debit_total,
            credit_total=credit_total,
        )

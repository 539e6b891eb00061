"""REST ledger store client with bearer-token auth and retry."""

import asyncio
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import httpx
import structlog

from ledger_insights.config import get_settings
from ledger_insights.exceptions import (
    AuthenticationError,
    LedgerStoreError,
    RateLimitError,
)
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
from ledger_insights.store.base import LedgerStore

logger = structlog.get_logger(__name__)


class LedgerAPIClient(LedgerStore):
    """Async ``LedgerStore`` backed by the ledger service's REST API."""

    PAGE_SIZE = 200

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        if base_url is None or token is None or timeout is None or max_retries is None:
            settings = get_settings()
            base_url = base_url or settings.ledger_api_url
            token = token or settings.ledger_api_token.get_secret_value()
            timeout = timeout if timeout is not None else settings.ledger_api_timeout
            max_retries = (
                max_retries if max_retries is not None else settings.ledger_api_max_retries
            )
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LedgerAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self, tenant_id: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._token}",
            "X-Tenant-ID": tenant_id,
        }

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        path: str,
        tenant_id: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make an authenticated request, retrying transport failures."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=self._get_headers(tenant_id),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)
                return await self._request(
                    method, path, tenant_id, params, json, retry_count + 1
                )
            raise LedgerStoreError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Ledger store rejected the API token", status_code=401)

        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", "60"))
            raise RateLimitError(
                f"Rate limited, retry after {retry_after}s",
                status_code=429,
                details={"retry_after": retry_after},
            )

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise LedgerStoreError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else {}

    async def get(
        self, path: str, tenant_id: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        return await self._request("GET", path, tenant_id, params=params)

    async def post(
        self, path: str, tenant_id: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        return await self._request("POST", path, tenant_id, json=json)

    async def delete(
        self, path: str, tenant_id: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        return await self._request("DELETE", path, tenant_id, params=params)

    @staticmethod
    def _clamp_limit(limit: int) -> int:
        return min(max(limit, 1), 500)

    @staticmethod
    def _extract_items(result: Any) -> list[dict[str, Any]]:
        """Return list of items from a list or paged response."""
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            items = result.get("items")
            if isinstance(items, list):
                return items
        return []

    async def _fetch(
        self,
        path: str,
        tenant_id: str,
        params: dict[str, Any],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch one bounded page, or every page when ``limit`` is None."""
        if limit is not None:
            page = {**params, "offset": 0, "limit": self._clamp_limit(limit)}
            return self._extract_items(await self.get(path, tenant_id, params=page))

        items: list[dict[str, Any]] = []
        offset = 0
        while True:
            page = {**params, "offset": offset, "limit": self.PAGE_SIZE}
            batch = self._extract_items(await self.get(path, tenant_id, params=page))
            if not batch:
                break
            items.extend(batch)
            if len(batch) < self.PAGE_SIZE:
                break
            offset += self.PAGE_SIZE
        return items

    @staticmethod
    def _range_params(prefix: str, date_range: DateRange | None) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if date_range and date_range.start:
            params[f"{prefix}_from"] = date_range.start.isoformat()
        if date_range and date_range.end:
            params[f"{prefix}_to"] = date_range.end.isoformat()
        return params

    # === Reads ===

    async def list_accounts(
        self, tenant_id: str, company_id: str, active_only: bool = True
    ) -> list[Account]:
        params: dict[str, Any] = {"company_id": company_id}
        if active_only:
            params["is_active"] = "true"
        items = await self._fetch("/api/v1/accounts/", tenant_id, params)
        return [Account.from_dict(item) for item in items]

    async def list_journal_lines(
        self,
        tenant_id: str,
        account_id: str,
        company_id: str,
        posted_only: bool = True,
        as_of: datetime | None = None,
    ) -> list[JournalLine]:
        params: dict[str, Any] = {"company_id": company_id}
        if posted_only:
            params["status"] = "POSTED"
        if as_of is not None:
            params["as_of"] = as_of.isoformat()
        items = await self._fetch(
            f"/api/v1/accounts/{account_id}/journal-lines", tenant_id, params
        )
        return [JournalLine.from_dict(item) for item in items]

    async def list_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        statuses: Sequence[str] | None = None,
        date_range: DateRange | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[JournalEntry]:
        params: dict[str, Any] = {
            "company_id": company_id,
            "include": "lines",
            "order": "-created_at" if newest_first else "date",
            **self._range_params("date", date_range),
        }
        if statuses:
            params["status"] = list(statuses)
        items = await self._fetch("/api/v1/journal-entries/", tenant_id, params, limit)
        return [JournalEntry.from_dict(item) for item in items]

    async def count_journal_entries(
        self,
        tenant_id: str,
        company_id: str,
        status: str | None = None,
        created_since: datetime | None = None,
    ) -> int:
        params: dict[str, Any] = {"company_id": company_id}
        if status:
            params["status"] = status
        if created_since is not None:
            params["created_since"] = created_since.isoformat()
        result = await self.get("/api/v1/journal-entries/count", tenant_id, params=params)
        if not isinstance(result, dict) or "count" not in result:
            raise LedgerStoreError("Invalid count response format", details=result)
        return int(result["count"])

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
        params: dict[str, Any] = {
            "company_id": company_id,
            **self._range_params("issue_date", date_range),
        }
        if statuses:
            params["status"] = list(statuses)
        if due_before is not None:
            params["due_before"] = due_before.isoformat()
        if with_balance_due:
            params["balance_due_gt"] = "0"
        items = await self._fetch("/api/v1/invoices/", tenant_id, params, limit)
        return [Invoice.from_dict(item) for item in items]

    async def list_expenses(
        self,
        tenant_id: str,
        company_id: str,
        date_range: DateRange | None = None,
        largest_first: bool = False,
        limit: int | None = None,
    ) -> list[Expense]:
        params: dict[str, Any] = {
            "company_id": company_id,
            "order": "-amount" if largest_first else "expense_date",
            **self._range_params("expense_date", date_range),
        }
        items = await self._fetch("/api/v1/expenses/", tenant_id, params, limit)
        return [Expense.from_dict(item) for item in items]

    async def list_transactions(
        self, tenant_id: str, company_id: str, limit: int = 100
    ) -> list[Transaction]:
        params = {"company_id": company_id, "order": "-transaction_date"}
        items = await self._fetch("/api/v1/transactions/", tenant_id, params, limit)
        return [Transaction.from_dict(item) for item in items]

    # === Writes ===

    async def _create(self, path: str, tenant_id: str, payload: dict[str, Any]) -> Any:
        payload = {key: value for key, value in payload.items() if key != "id"}
        result = await self.post(path, tenant_id, json=payload)
        return result.get("id") if isinstance(result, dict) else None

    async def create_anomaly(self, record: AnomalyRecord) -> AnomalyRecord:
        record_id = await self._create("/api/v1/ai/anomalies/", record.tenant_id, record.to_dict())
        return record.with_id(record_id)

    async def create_insight(self, record: InsightRecord) -> InsightRecord:
        record_id = await self._create("/api/v1/ai/insights/", record.tenant_id, record.to_dict())
        return record.with_id(record_id)

    async def delete_insights_matching(
        self, tenant_id: str, company_id: str, patterns: Sequence[str]
    ) -> int:
        result = await self.delete(
            "/api/v1/ai/insights/",
            tenant_id,
            params={"company_id": company_id, "text_contains": list(patterns)},
        )
        deleted = int(result.get("deleted", 0)) if isinstance(result, dict) else 0
        logger.debug("insights_deleted", company_id=company_id, deleted=deleted)
        return deleted

    async def create_prediction(self, record: PredictionRecord) -> PredictionRecord:
        record_id = await self._create(
            "/api/v1/ai/predictions/", record.tenant_id, record.to_dict()
        )
        return record.with_id(record_id)

    async def create_recommendation(
        self, record: RecommendationRecord
    ) -> RecommendationRecord:
        record_id = await self._create(
            "/api/v1/ai/recommendations/", record.tenant_id, record.to_dict()
        )
        return record.with_id(record_id)

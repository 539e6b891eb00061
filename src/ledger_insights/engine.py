"""Single entry point bundling every analytics component over one store."""

from datetime import datetime
from typing import Any

from ledger_insights.anomalies import AnomalyDetector
from ledger_insights.balances import BalanceAggregator
from ledger_insights.config import get_settings
from ledger_insights.forecasting import Forecaster
from ledger_insights.insights import InsightGenerator
from ledger_insights.models import (
    AccountBalance,
    AnomalyRecord,
    InsightRecord,
    PredictionRecord,
    RecommendationRecord,
)
from ledger_insights.overview import AccountingOverview, OverviewBuilder
from ledger_insights.recommendations import RecommendationEngine
from ledger_insights.statements import FinancialStatement, StatementComposer
from ledger_insights.store import LedgerAPIClient, LedgerStore


class AnalyticsEngine:
    """Analytics over one ledger store.

    Balance, statement and overview calls raise on store failure. The
    generators (anomalies, insights, predictions, recommendations) log
    store failures and return what they produced.
    """

    def __init__(self, store: LedgerStore, max_concurrency: int | None = None):
        if max_concurrency is None:
            max_concurrency = get_settings().balance_max_concurrency
        self.store = store
        self.aggregator = BalanceAggregator(store, max_concurrency=max_concurrency)
        self.composer = StatementComposer()
        self.overview_builder = OverviewBuilder(store, self.aggregator, self.composer)
        self.anomaly_detector = AnomalyDetector(store)
        self.insight_generator = InsightGenerator(store)
        self.forecaster = Forecaster(store)
        self.recommendation_engine = RecommendationEngine(store)

    @classmethod
    def from_settings(cls) -> "AnalyticsEngine":
        """Build an engine talking to the configured ledger API."""
        settings = get_settings()
        store = LedgerAPIClient(
            base_url=settings.ledger_api_url,
            token=settings.ledger_api_token.get_secret_value(),
            timeout=settings.ledger_api_timeout,
            max_retries=settings.ledger_api_max_retries,
        )
        return cls(store, max_concurrency=settings.balance_max_concurrency)

    async def close(self) -> None:
        if isinstance(self.store, LedgerAPIClient):
            await self.store.close()

    async def __aenter__(self) -> "AnalyticsEngine":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === Ledger (fatal on store failure) ===

    async def balances(
        self, tenant_id: str, company_id: str, as_of: datetime | None = None
    ) -> list[AccountBalance]:
        return await self.aggregator.compute(tenant_id, company_id, as_of=as_of)

    async def statement(
        self, tenant_id: str, company_id: str, as_of: datetime | None = None
    ) -> FinancialStatement:
        balances = await self.aggregator.compute(tenant_id, company_id, as_of=as_of)
        return self.composer.compose(balances)

    async def overview(
        self, tenant_id: str, company_id: str, as_of: datetime | None = None
    ) -> AccountingOverview:
        return await self.overview_builder.build(tenant_id, company_id, as_of=as_of)

    # === Generators (recovered on store failure) ===

    async def detect_anomalies(self, tenant_id: str, company_id: str) -> list[AnomalyRecord]:
        return await self.anomaly_detector.detect(tenant_id, company_id)

    async def generate_insights(
        self, tenant_id: str, company_id: str, as_of: datetime | None = None
    ) -> list[InsightRecord]:
        return await self.insight_generator.generate(tenant_id, company_id, as_of=as_of)

    async def generate_predictions(
        self,
        tenant_id: str,
        company_id: str,
        prediction_type: str = "revenue",
        as_of: datetime | None = None,
    ) -> list[PredictionRecord]:
        return await self.forecaster.generate(
            tenant_id, company_id, prediction_type=prediction_type, as_of=as_of
        )

    async def generate_recommendations(
        self, tenant_id: str, company_id: str, as_of: datetime | None = None
    ) -> list[RecommendationRecord]:
        return await self.recommendation_engine.generate(tenant_id, company_id, as_of=as_of)

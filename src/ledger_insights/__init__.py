"""Ledger Insights - balances, statements and financial signals over a double-entry ledger."""

__version__ = "0.1.0"

from ledger_insights.anomalies import AnomalyDetector
from ledger_insights.balances import BalanceAggregator
from ledger_insights.classification import classify_account, matching_sections
from ledger_insights.config import configure_logging, get_settings
from ledger_insights.engine import AnalyticsEngine
from ledger_insights.forecasting import Forecaster
from ledger_insights.insights import InsightGenerator
from ledger_insights.overview import OverviewBuilder
from ledger_insights.recommendations import RecommendationEngine
from ledger_insights.statements import StatementComposer
from ledger_insights.store import LedgerAPIClient, LedgerStore

__all__ = [
    # Version
    "__version__",
    # Ledger
    "BalanceAggregator",
    "StatementComposer",
    "OverviewBuilder",
    "classify_account",
    "matching_sections",
    # Generators
    "AnomalyDetector",
    "InsightGenerator",
    "Forecaster",
    "RecommendationEngine",
    # Engine & store
    "AnalyticsEngine",
    "LedgerStore",
    "LedgerAPIClient",
    # Config
    "get_settings",
    "configure_logging",
]

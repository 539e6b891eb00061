"""Three-month forecasts from monthly revenue or expense history.

The forecast is a moving average of the most recent months plus the
average month-over-month change across the whole series, with a fixed
80%/120% confidence band.
"""

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from ledger_insights.exceptions import require_scope
from ledger_insights.models import RECOVERED, ZERO, DateRange, PredictionRecord
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = RECOVERED

HISTORY_MONTHS = 24
MIN_MONTHLY_POINTS = 6
MAX_WINDOW = 6
HORIZON = 3
BAND_LOW = Decimal("0.8")
BAND_HIGH = Decimal("1.2")
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ForecastPoint:
    step: int
    predicted_value: Decimal
    confidence_low: Decimal
    confidence_high: Decimal


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def monthly_series(points: Iterable[tuple[date | None, Decimal]]) -> list[Decimal]:
    """Bucket dated amounts into calendar months, months ascending."""
    buckets: dict[str, Decimal] = {}
    for when, amount in points:
        if when is None:
            continue
        month = when.strftime("%Y-%m")
        buckets[month] = buckets.get(month, ZERO) + amount
    return [buckets[month] for month in sorted(buckets)]


def forecast_series(values: Sequence[Decimal], horizon: int = HORIZON) -> list[ForecastPoint]:
    """Forecast ``horizon`` months ahead. Fewer than six months gives nothing."""
    count = len(values)
    if count < MIN_MONTHLY_POINTS:
        return []

    window = min(MAX_WINDOW, max(1, count // 2))
    recent = values[-window:]
    average = sum(recent, ZERO) / len(recent)
    trend = (values[-1] - values[0]) / (count - 1)

    points: list[ForecastPoint] = []
    for step in range(1, horizon + 1):
        predicted = max(ZERO, average + trend * step).quantize(CENTS, rounding=ROUND_HALF_UP)
        points.append(
            ForecastPoint(
                step=step,
                predicted_value=predicted,
                confidence_low=max(ZERO, predicted * BAND_LOW).quantize(
                    CENTS, rounding=ROUND_HALF_UP
                ),
                confidence_high=(predicted * BAND_HIGH).quantize(
                    CENTS, rounding=ROUND_HALF_UP
                ),
            )
        )
    return points


class Forecaster:
    """Builds and persists revenue or expense predictions."""

    def __init__(self, store: LedgerStore):
        self._store = store
        self._logger = logger.bind(component="forecaster")

    async def generate(
        self,
        tenant_id: str,
        company_id: str,
        prediction_type: str = "revenue",
        as_of: datetime | None = None,
    ) -> list[PredictionRecord]:
        require_scope(tenant_id, company_id)
        today = (as_of or datetime.now(UTC)).date()
        predictions: list[PredictionRecord] = []

        try:
            values = await self._history(tenant_id, company_id, prediction_type, today)
            points = forecast_series(values)
            if not points:
                self._logger.info(
                    "forecast_skipped",
                    company_id=company_id,
                    prediction_type=prediction_type,
                    months=len(values),
                )
                return predictions

            for point in points:
                record = PredictionRecord(
                    tenant_id=tenant_id,
                    company_id=company_id,
                    prediction_type=prediction_type,
                    predicted_value=point.predicted_value,
                    prediction_date=add_months(today, point.step),
                    confidence_low=point.confidence_low,
                    confidence_high=point.confidence_high,
                )
                predictions.append(await self._store.create_prediction(record))
        except Exception as e:
            self._logger.error(
                "forecast_failed",
                company_id=company_id,
                prediction_type=prediction_type,
                produced=len(predictions),
                error=str(e),
            )

        return predictions

    async def _history(
        self, tenant_id: str, company_id: str, prediction_type: str, today: date
    ) -> list[Decimal]:
        window = DateRange(start=add_months(today, -HISTORY_MONTHS), end=today)
        if prediction_type == "revenue":
            invoices = await self._store.list_invoices(tenant_id, company_id, date_range=window)
            return monthly_series((inv.issue_date, inv.total_amount) for inv in invoices)
        expenses = await self._store.list_expenses(tenant_id, company_id, date_range=window)
        return monthly_series((exp.expense_date, exp.amount) for exp in expenses)

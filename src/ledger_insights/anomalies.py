"""Duplicate and statistical-outlier detection over recent transactions.

Two passes run over the newest transactions of a company:

- duplicates: transactions sharing an amount and calendar day. One
  anomaly per group, referencing the group's first (newest) member.
- outliers: amounts more than three population standard deviations from
  the mean. Needs at least 11 transactions.

Only duplicate anomalies are returned to the caller. Outlier anomalies
are written to the anomaly log on a best-effort basis and are not part
of the return value.
"""

import statistics
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import structlog

from ledger_insights.exceptions import require_scope
from ledger_insights.models import RECOVERED, AnomalyKind, AnomalyRecord, Transaction
from ledger_insights.store import LedgerStore

logger = structlog.get_logger(__name__)

ERROR_POLICY = RECOVERED

SAMPLE_SIZE = 100
DUPLICATE_CONFIDENCE = 0.8
MIN_OUTLIER_SAMPLE = 11
Z_SCORE_THRESHOLD = 3.0
MAX_OUTLIER_CONFIDENCE = 0.9


@dataclass(frozen=True)
class OutlierScore:
    transaction: Transaction
    z_score: float
    confidence: float


def newest_sample(
    transactions: Sequence[Transaction], size: int = SAMPLE_SIZE
) -> list[Transaction]:
    """Order newest first and keep the first ``size``."""
    ordered = sorted(transactions, key=lambda t: t.transaction_date, reverse=True)
    return ordered[:size]


def find_duplicate_groups(transactions: Sequence[Transaction]) -> list[list[Transaction]]:
    """Group by (amount, calendar day); keep groups with more than one member."""
    groups: dict[tuple[Decimal, date], list[Transaction]] = {}
    for txn in transactions:
        key = (txn.amount, txn.transaction_date.date())
        groups.setdefault(key, []).append(txn)
    return [group for group in groups.values() if len(group) > 1]


def outlier_confidence(z_score: float) -> float:
    return min(MAX_OUTLIER_CONFIDENCE, 0.5 + (z_score - Z_SCORE_THRESHOLD) * 0.1)


def score_outliers(transactions: Sequence[Transaction]) -> list[OutlierScore]:
    """Return transactions whose z-score exceeds the threshold.

    Uses the population standard deviation. A zero deviation (every amount
    identical) yields no outliers.
    """
    if len(transactions) < MIN_OUTLIER_SAMPLE:
        return []

    amounts = [float(txn.amount) for txn in transactions]
    mean = statistics.fmean(amounts)
    std_dev = statistics.pstdev(amounts, mu=mean)
    if std_dev == 0:
        return []

    scores: list[OutlierScore] = []
    for txn, amount in zip(transactions, amounts):
        z_score = abs(amount - mean) / std_dev
        if z_score > Z_SCORE_THRESHOLD:
            scores.append(
                OutlierScore(
                    transaction=txn,
                    z_score=z_score,
                    confidence=outlier_confidence(z_score),
                )
            )
    return scores


class AnomalyDetector:
    """Scans recent transactions and logs anomalies to the store."""

    def __init__(self, store: LedgerStore):
        self._store = store
        self._logger = logger.bind(component="anomaly_detector")

    async def detect(self, tenant_id: str, company_id: str) -> list[AnomalyRecord]:
        """Run both passes and return the persisted duplicate anomalies."""
        require_scope(tenant_id, company_id)

        try:
            fetched = await self._store.list_transactions(
                tenant_id, company_id, limit=SAMPLE_SIZE
            )
        except Exception as e:
            self._logger.error(
                "anomaly_scan_failed", company_id=company_id, error=str(e)
            )
            return []

        sample = newest_sample(fetched)
        anomalies: list[AnomalyRecord] = []

        for group in find_duplicate_groups(sample):
            record = AnomalyRecord(
                tenant_id=tenant_id,
                company_id=company_id,
                transaction_id=group[0].id,
                anomaly_type=AnomalyKind.DUPLICATE,
                confidence_score=DUPLICATE_CONFIDENCE,
            )
            saved = await self._log_anomaly(record)
            if saved is not None:
                anomalies.append(saved)

        outliers = score_outliers(sample)
        for score in outliers:
            await self._log_anomaly(
                AnomalyRecord(
                    tenant_id=tenant_id,
                    company_id=company_id,
                    transaction_id=score.transaction.id,
                    anomaly_type=AnomalyKind.UNUSUAL_AMOUNT,
                    confidence_score=score.confidence,
                )
            )

        self._logger.info(
            "anomaly_scan_completed",
            company_id=company_id,
            sample_size=len(sample),
            duplicates=len(anomalies),
            outliers=len(outliers),
        )
        return anomalies

    async def _log_anomaly(self, record: AnomalyRecord) -> AnomalyRecord | None:
        try:
            return await self._store.create_anomaly(record)
        except Exception as e:
            self._logger.warning(
                "anomaly_write_failed",
                anomaly_type=record.anomaly_type.value,
                transaction_id=record.transaction_id,
                error=str(e),
            )
            return None

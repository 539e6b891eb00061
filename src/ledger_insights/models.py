"""Domain records for the ledger analytics engine.

Ledger records (accounts, journal entries, invoices, expenses, bank
transactions) are read from the store and parsed with ``from_dict``.
Generated records (anomalies, insights, predictions, recommendations) are
written back with ``to_dict``. Money is always ``Decimal``.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")

# Status values accepted as "posted" by the insight generator
POSTED_STATUSES: tuple[str, ...] = (
    "posted",
    "POSTED",
    "Posted",
    "APPROVED",
    "approved",
    "Approved",
)

# Invoice statuses that can be overdue
OPEN_INVOICE_STATUSES: tuple[str, ...] = (
    "sent",
    "SENT",
    "posted",
    "POSTED",
    "approved",
    "APPROVED",
)


class StatementCategory(str, Enum):
    """Statement section an account belongs to."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"
    UNCLASSIFIED = "unclassified"


class AnomalyKind(str, Enum):
    DUPLICATE = "duplicate"
    UNUSUAL_AMOUNT = "unusual_amount"


class InsightPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EntryStatus(str, Enum):
    """Canonical journal entry statuses."""

    DRAFT = "DRAFT"
    POSTED = "POSTED"

    @classmethod
    def normalize(cls, value: str | None) -> str:
        """Upper-case a raw status so "posted" and "Posted" compare equal."""
        return (value or "").strip().upper()


# =============================================================================
# PARSING HELPERS
# =============================================================================


def to_decimal(value: Any) -> Decimal:
    """Coerce a store amount to Decimal, treating null/blank as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _type_label(data: dict[str, Any]) -> str:
    raw = data.get("type") or data.get("account_type") or data.get("type_name")
    if isinstance(raw, dict):
        raw = raw.get("name")
    return str(raw) if raw else "Unknown"


# =============================================================================
# LEDGER RECORDS
# =============================================================================


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry."""

    id: str
    code: str
    name: str
    type_label: str = "Unknown"
    is_active: bool = True
    is_reconciled: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        return cls(
            id=str(data["id"]),
            code=str(data.get("code") or ""),
            name=str(data.get("name") or ""),
            type_label=_type_label(data),
            is_active=bool(data.get("is_active", True)),
            is_reconciled=bool(data.get("is_reconciled", False)),
        )


@dataclass(frozen=True)
class JournalLine:
    """One debit/credit line of a journal entry."""

    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    id: str | None = None
    entry_id: str | None = None
    account_code: str = ""
    account_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JournalLine":
        account = data.get("account") if isinstance(data.get("account"), dict) else {}
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            entry_id=str(data["entry_id"]) if data.get("entry_id") is not None else None,
            account_id=str(data.get("account_id") or account.get("id") or ""),
            debit=to_decimal(data.get("debit")),
            credit=to_decimal(data.get("credit")),
            account_code=str(data.get("account_code") or account.get("code") or ""),
            account_name=str(data.get("account_name") or account.get("name") or ""),
        )


@dataclass(frozen=True)
class JournalEntry:
    """Journal entry with its lines joined."""

    id: str
    entry_date: date
    status: str
    memo: str = ""
    reference: str = ""
    created_at: datetime | None = None
    lines: tuple[JournalLine, ...] = ()

    @property
    def is_posted(self) -> bool:
        return EntryStatus.normalize(self.status) == EntryStatus.POSTED.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JournalEntry":
        entry_date = parse_date(data.get("date") or data.get("entry_date"))
        if entry_date is None:
            raise ValueError(f"Journal entry {data.get('id')!r} has no date")
        return cls(
            id=str(data["id"]),
            entry_date=entry_date,
            status=str(data.get("status") or ""),
            memo=str(data.get("memo") or ""),
            reference=str(data.get("reference") or ""),
            created_at=parse_datetime(data.get("created_at")),
            lines=tuple(JournalLine.from_dict(line) for line in data.get("lines") or []),
        )


@dataclass(frozen=True)
class Invoice:
    id: str
    total_amount: Decimal = ZERO
    balance_due: Decimal = ZERO
    status: str = ""
    issue_date: date | None = None
    due_date: date | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Invoice":
        return cls(
            id=str(data["id"]),
            total_amount=to_decimal(data.get("total_amount")),
            balance_due=to_decimal(data.get("balance_due", data.get("amount_due"))),
            status=str(data.get("status") or ""),
            issue_date=parse_date(data.get("issue_date") or data.get("invoice_date")),
            due_date=parse_date(data.get("due_date")),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    amount: Decimal = ZERO
    expense_date: date | None = None
    description: str = ""
    category: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expense":
        return cls(
            id=str(data["id"]),
            amount=to_decimal(data.get("amount")),
            expense_date=parse_date(data.get("expense_date")),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
        )


@dataclass(frozen=True)
class Transaction:
    """Bank or card transaction scanned by the anomaly detector."""

    id: str
    amount: Decimal
    transaction_date: datetime
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        when = parse_datetime(data.get("transaction_date"))
        if when is None:
            raise ValueError(f"Transaction {data.get('id')!r} has no date")
        return cls(
            id=str(data["id"]),
            amount=to_decimal(data.get("amount")),
            transaction_date=when,
            description=str(data.get("description") or ""),
        )


# =============================================================================
# DERIVED RECORDS
# =============================================================================


@dataclass(frozen=True)
class AccountBalance:
    """Debit/credit totals for one account. Recomputed on every request."""

    account_id: str
    account_code: str
    account_name: str
    account_type: str
    category: StatementCategory
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net_balance(self) -> Decimal:
        return self.debit_total - self.credit_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "account_type": self.account_type,
            "category": self.category.value,
            "debit_total": str(self.debit_total),
            "credit_total": str(self.credit_total),
            "net_balance": str(self.net_balance),
        }


@dataclass(frozen=True)
class AnomalyRecord:
    tenant_id: str
    company_id: str
    anomaly_type: AnomalyKind
    confidence_score: float
    transaction_id: str | None = None
    id: str | None = None

    def with_id(self, record_id: Any) -> "AnomalyRecord":
        return replace(self, id=str(record_id)) if record_id is not None else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "company_id": self.company_id,
            "transaction_id": self.transaction_id,
            "anomaly_type": self.anomaly_type.value,
            "confidence_score": self.confidence_score,
        }


@dataclass(frozen=True)
class InsightRecord:
    tenant_id: str
    company_id: str
    category: str
    insight_text: str
    priority: InsightPriority = InsightPriority.MEDIUM
    id: str | None = None

    def with_id(self, record_id: Any) -> "InsightRecord":
        return replace(self, id=str(record_id)) if record_id is not None else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "company_id": self.company_id,
            "category": self.category,
            "insight_text": self.insight_text,
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class PredictionRecord:
    tenant_id: str
    company_id: str
    prediction_type: str
    predicted_value: Decimal
    prediction_date: date
    confidence_low: Decimal
    confidence_high: Decimal
    id: str | None = None

    def with_id(self, record_id: Any) -> "PredictionRecord":
        return replace(self, id=str(record_id)) if record_id is not None else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "company_id": self.company_id,
            "prediction_type": self.prediction_type,
            "predicted_value": str(self.predicted_value),
            "prediction_date": self.prediction_date.isoformat(),
            "confidence_low": str(self.confidence_low),
            "confidence_high": str(self.confidence_high),
        }


@dataclass(frozen=True)
class RecommendationRecord:
    tenant_id: str
    company_id: str
    recommendation_type: str
    recommendation_text: str
    id: str | None = None

    def with_id(self, record_id: Any) -> "RecommendationRecord":
        return replace(self, id=str(record_id)) if record_id is not None else self

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "company_id": self.company_id,
            "recommendation_type": self.recommendation_type,
            "recommendation_text": self.recommendation_text,
        }


@dataclass
class DateRange:
    """Inclusive date window used for store queries."""

    start: date | None = None
    end: date | None = None

    def contains(self, value: date | None) -> bool:
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass
class ErrorPolicy:
    """How a component reacts to store failures."""

    name: str
    propagates: bool
    description: str = field(default="")


FATAL = ErrorPolicy(
    name="fatal",
    propagates=True,
    description="Store failures propagate to the caller.",
)
RECOVERED = ErrorPolicy(
    name="recovered",
    propagates=False,
    description="Store failures are logged; partial or fallback results are returned.",
)

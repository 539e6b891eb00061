"""Exception hierarchy shared across the analytics engine."""

from typing import Any


class LedgerInsightsError(Exception):
    """Base exception for the analytics engine."""


class MissingScopeError(LedgerInsightsError, ValueError):
    """A required tenant or company identifier was not supplied."""

    def __init__(self, field: str):
        super().__init__(f"{field} is required")
        self.field = field


class ConfigurationError(LedgerInsightsError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class LedgerStoreError(LedgerInsightsError):
    """Base exception for ledger store failures."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(LedgerStoreError):
    """The store rejected our credentials."""

    pass


class RateLimitError(LedgerStoreError):
    """Rate limit exceeded."""

    pass


def require_scope(tenant_id: str | None, company_id: str | None) -> None:
    """Reject calls that are missing a tenant or company identifier."""
    if not tenant_id or not str(tenant_id).strip():
        raise MissingScopeError("tenant_id")
    if not company_id or not str(company_id).strip():
        raise MissingScopeError("company_id")

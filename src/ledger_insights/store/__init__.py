"""Ledger store adapters."""

from ledger_insights.store.base import LedgerStore
from ledger_insights.store.ledger_api import LedgerAPIClient

__all__ = ["LedgerStore", "LedgerAPIClient"]

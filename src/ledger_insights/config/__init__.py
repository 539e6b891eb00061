"""Configuration module for the ledger analytics engine."""

from ledger_insights.config.logging import bind_request_context, configure_logging
from ledger_insights.config.settings import Settings, get_settings, load_settings

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "configure_logging",
    "bind_request_context",
]

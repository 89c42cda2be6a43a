"""Logging setup for MoneyHub."""

from .config import (
    AccessTokenFilter,
    LoggingConfig,
    get_log_config_summary,
    setup_logging,
)

__all__ = [
    "AccessTokenFilter",
    "LoggingConfig",
    "get_log_config_summary",
    "setup_logging",
]

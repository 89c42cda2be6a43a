"""Logging setup for MoneyHub processes.

The CLI writes results to stdout, so every console handler logs to stderr.
Handlers also carry ``AccessTokenFilter``, which masks Plaid access tokens in
case one ends up in an exception message or a log argument.
"""

import logging
import os
import re
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import LoggingSettings

# Plaid access tokens look like access-sandbox-<uuid>
ACCESS_TOKEN_PATTERN = re.compile(
    r"access-(?:sandbox|development|production)-[0-9a-fA-F-]+"
)
REDACTED = "access-***"

# The SDK logs every HTTP request through urllib3 at DEBUG
LIBRARY_LOG_LEVELS = {
    "urllib3": logging.WARNING,
    "plaid": logging.INFO,
}


@dataclass
class LoggingConfig:
    """Handler, format and level settings for one process."""

    level: str = "INFO"
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    cli_format_string: str = "%(message)s"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/moneyhub.log")
    max_file_size_mb: int = 10
    backup_count: int = 3
    redact_tokens: bool = True
    force_reconfigure: bool = False

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        """Read ``LOG_LEVEL``, ``LOG_TO_FILE``, ``LOG_FILE_PATH`` and rotation sizes."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_to_file=os.getenv("LOG_TO_FILE", "false").lower() == "true",
            log_file_path=Path(os.getenv("LOG_FILE_PATH", "logs/moneyhub.log")),
            max_file_size_mb=int(os.getenv("LOG_MAX_FILE_SIZE_MB", "10")),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "3")),
        )

    @classmethod
    def from_settings(cls, settings: "LoggingSettings") -> "LoggingConfig":
        """Build from the ``logging`` section of ``MoneyHubSettings``."""
        return cls(
            level=settings.level,
            log_to_file=settings.log_to_file,
            log_file_path=settings.log_file_path,
        )


class AccessTokenFilter(logging.Filter):
    """Masks Plaid access tokens in the rendered log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if ACCESS_TOKEN_PATTERN.search(message):
            record.msg = ACCESS_TOKEN_PATTERN.sub(REDACTED, message)
            record.args = None
        return True


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        config: Logging settings. Defaults to ``LoggingConfig.from_environment()``.
        cli_mode: Print bare messages instead of timestamped records
        verbose: Log at DEBUG regardless of ``config.level``
    """
    config = config or LoggingConfig.from_environment()
    level = logging.DEBUG if verbose else getattr(logging, config.level, logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        logging.Formatter(config.cli_format_string if cli_mode else config.format_string)
    )
    handlers: list[logging.Handler] = [console]

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(config.format_string))
        handlers.append(file_handler)

    if config.redact_tokens:
        for handler in handlers:
            handler.addFilter(AccessTokenFilter())

    logging.basicConfig(level=level, handlers=handlers, force=config.force_reconfigure)

    for name, library_level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)


def get_log_config_summary() -> dict[str, Any]:
    """Describe the active root logger alongside the environment settings."""
    config = LoggingConfig.from_environment()
    root = logging.getLogger()

    return {
        "level": logging.getLevelName(root.level),
        "handlers": [type(h).__name__ for h in root.handlers],
        "log_to_file": config.log_to_file,
        "log_file_path": str(config.log_file_path),
        "redact_tokens": config.redact_tokens,
    }

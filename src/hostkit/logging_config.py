"""
Logging configuration for hostkit.

Provides consistent logging across all modules with:
- JSON output for machine consumption
- Human-readable output for terminals

## Environment Variables

- HOSTKIT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- HOSTKIT_LOG_FORMAT: json, text (default: text)

## Usage

    from hostkit.logging_config import setup_logging

    setup_logging()  # Call once at startup
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models.config import LoggingConfig


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {"ts": "...", "level": "...", "logger": "...", "message": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanFormatter(logging.Formatter):
    """
    Human-readable log formatter.

    Output format:
    12:34:56 INFO    [dir_mirror     ] Message
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = record.levelname
        if sys.stderr.isatty():
            color = self.COLORS.get(level, "")
            level = f"{color}{level:7}{self.RESET}"
        else:
            level = f"{level:7}"

        module = record.name.split(".")[-1][:15]

        return f"{time_str} {level} [{module:15}] {record.getMessage()}"


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> None:
    """
    Configure logging for the application.

    Explicit arguments win over the config section, which wins over the
    environment variables.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: Output format (json, text)
        config: Logging section of a loaded HostKitConfig
    """
    if config is not None:
        level = level or config.level
        format_type = format_type or config.format.value

    log_level = (level or os.environ.get("HOSTKIT_LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("HOSTKIT_LOG_FORMAT", "text")).lower()

    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    root.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={log_level}, format={log_format}"
    )

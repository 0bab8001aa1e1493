#!/usr/bin/env python3
"""
Centralized logging configuration for the CEP race lookup.

Usage:
    from logging_config import get_logger
    logger = get_logger(__name__)

    logger.info("Race started", extra={"cep": cep})
    logger.warning("Provider failed", extra={"provider": name, "error": str(e)})
"""

import logging
import sys
import os
from datetime import datetime, timezone
import json


# Structured fields we know how to render, in display order
EXTRA_FIELDS = (
    "cep",
    "provider",
    "kind",
    "state",
    "reason",
    "status_code",
    "duration_ms",
    "error",
    "endpoint",
)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        for attr in EXTRA_FIELDS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        # Include exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format for console output."""

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        extras = []
        for attr in EXTRA_FIELDS:
            if hasattr(record, attr):
                extras.append(f"{attr}={getattr(record, attr)}")
        extra_str = f" [{', '.join(extras)}]" if extras else ""

        line = f"{timestamp} {color}{record.levelname:8}{self.RESET} [{record.name}] {record.getMessage()}{extra_str}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        use_json = os.environ.get("LOG_FORMAT", "").lower() == "json"

        # Logs go to stderr so the presenter owns stdout
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)

        if use_json:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler.setFormatter(ConsoleFormatter())

        logger.addHandler(console_handler)

        # Prevent propagation to root logger
        logger.propagate = False

    return logger

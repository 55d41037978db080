"""
Audit Logging — one line per event

Every engine logs through a child of the ``brandaudit`` logger. In
production each record becomes a JSON object carrying the audit context
passed via ``extra=`` (brand, scores, counts, request data). The text
format is meant for a terminal and appends the same context as
``key=value`` pairs.

    from brandaudit.logging import get_logger
    logger = get_logger("auditor")
    logger.info("Audit complete", extra={"brand": "Acme", "overall_score": 7.4})

Environment:
    BRANDAUDIT_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR  (default INFO)
    BRANDAUDIT_LOG_FORMAT  json | text                     (default json)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


PACKAGE_LOGGER = "brandaudit"

LOG_LEVEL = os.getenv("BRANDAUDIT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("BRANDAUDIT_LOG_FORMAT", "json").lower()

# Only these attributes of a record are treated as audit context
CONTEXT_FIELDS = (
    "brand", "mode", "overall_score", "triples_count", "extraction_rate",
    "claims_count", "flagged_count", "sources_count", "tier", "score",
    "pattern", "claim_key", "error", "error_type", "duration_ms",
    "status_code", "method", "path", "engine_version",
)


def audit_context(record: logging.LogRecord) -> dict:
    """The whitelisted context fields set on a record, in declaration order."""
    context = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """A record as one JSON object: time, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(audit_context(record))

        if record.exc_info and record.exc_info[0]:
            line["exception"] = self.formatException(record.exc_info)

        return json.dumps(line, default=str)


class TextFormatter(logging.Formatter):
    """Terminal format with the audit context appended."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = audit_context(record)
        if not context:
            return text
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        head, sep, tail = text.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stdout handler to the package logger.

    Safe to call repeatedly: earlier handlers are replaced. ``level`` and
    ``fmt`` override the environment for this call.
    """
    level_name = (level or LOG_LEVEL).upper()
    format_name = (fmt or LOG_FORMAT).lower()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(TextFormatter() if format_name == "text" else JSONFormatter())
    package_logger.addHandler(handler)

    # Per-request access lines duplicate the request log middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one engine, e.g. ``get_logger("sources")``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")

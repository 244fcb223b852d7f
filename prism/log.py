"""Logging setup for the Prism client.

Handlers are attached to the root logger once, on the first ``get_logger``
call. Every handler carries ``TokenRedactor`` so bearer tokens and JWTs never
reach the console or the log file.

Environment:
    PRISM_LOG_LEVEL   level for both handlers (default INFO)
    PRISM_LOG_FILE    "false" to skip the dated file under ``logs/``
"""
from __future__ import annotations

import logging
import os
import re
import sys
from datetime import date
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"),
    re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*"),
)


class TokenRedactor(logging.Filter):
    """Mask access and refresh tokens in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(lambda m: (m.group(1) if m.groups() else "") + "***", redacted)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    handler.addFilter(TokenRedactor())
    return handler


def _file_logging_enabled() -> bool:
    return os.environ.get("PRISM_LOG_FILE", "true").strip().lower() in ("1", "true", "yes")


def configure(level_name: str | None = None) -> None:
    level_name = (level_name or os.environ.get("PRISM_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    # stdout belongs to command output
    root.addHandler(_handler(logging.StreamHandler(sys.stderr), level))
    if not _file_logging_enabled():
        return
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOG_DIR / f"client_{date.today().isoformat()}.log"
        root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), level))
    except OSError:
        pass


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    global _configured
    if not _configured:
        configure()
        _configured = True
    return logging.getLogger(name)

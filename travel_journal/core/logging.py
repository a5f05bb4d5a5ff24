"""Logging for the Travel Journal knowledge engine.

Every logger from ``get_logger`` writes one line per record to stdout as
``key=value`` pairs, for example::

    ts=2024-03-01 10:00:00,123 level=warning logger=travel_journal.core.knowledge_cache
    at=knowledge_cache._finish msg="Rolled back add: ..." entry_id=temp-1f0c...

Context fields passed to ``log_with_context`` are appended after ``msg``.
"""

import logging
import sys
from typing import Any

CONTEXT_ATTR = "context"


def _render(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or '"' in text:
        return '"' + text.replace('"', '\\"') + '"'
    return text


class KeyValueFormatter(logging.Formatter):
    """One ``key=value`` line per record; tracebacks go on the lines after."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "at": f"{record.module}.{record.funcName}",
            "msg": record.getMessage(),
        }
        fields.update(getattr(record, CONTEXT_ATTR, {}))

        line = " ".join(f"{key}={_render(value)}" for key, value in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _configured_level() -> int:
    try:
        from travel_journal.core.config import get_settings

        env = get_settings().TRAVEL_JOURNAL_ENV
    except Exception:
        # Settings unreadable this early; fall back to INFO
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes key=value lines to stdout.

    The handler is attached once per logger name, so calling this at import
    time in every module is safe.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(KeyValueFormatter())
        logger.addHandler(handler)
        logger.setLevel(_configured_level())
    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **fields: Any) -> None:
    """
    Log ``msg`` with extra ``key=value`` fields (entry_id, persisted_id, ...).

    The record is attributed to the caller, not to this helper.
    """
    logger.log(level, msg, extra={CONTEXT_ATTR: fields}, stacklevel=2)

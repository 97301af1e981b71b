# src/logging/logger.py — v3
"""Log formatting and handler setup for the syndication service.

Two layouts share one set of fields. JSON lines go to log shipping, the
text layout to a terminal. Both stamp each record with the execution,
asset, partner and task bound in :mod:`syndication.logging.context`, so
the interleaved output of concurrent branches can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from syndication.logging.context import get_context
from syndication.logging.handlers import create_rotating_handler

ROOT_LOGGER = "syndication"


def _created(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _has_exception(record: logging.LogRecord) -> bool:
    return bool(record.exc_info and record.exc_info[0] is not None)


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON object.

    A report or other structured payload passed as ``extra={"data": ...}``
    is emitted under ``data``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _created(record).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        scope = get_context().as_dict()
        if scope:
            entry["context"] = scope
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if _has_exception(record):
            entry["exception"] = self.formatException(record.exc_info)  # type: ignore[arg-type]
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``12:00:01.250 INFO    pipeline.orchestrator exec=... asset=A1 ACE/Video | msg``"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        stamp = _created(record)
        head = [
            f"{stamp:%H:%M:%S}.{stamp.microsecond // 1000:03d}",
            f"{record.levelname:<7}",
            record.name.removeprefix(f"{ROOT_LOGGER}."),
        ]
        if ctx.execution_id:
            head.append(f"exec={ctx.execution_id}")
        if ctx.asset_id:
            head.append(f"asset={ctx.asset_id}")
        branch = "/".join(part for part in (ctx.partner, ctx.task) if part)
        if branch:
            head.append(branch)

        text = f"{' '.join(head)} | {record.getMessage()}"
        if _has_exception(record):
            text = f"{text}\n{self.formatException(record.exc_info)}"  # type: ignore[arg-type]
        return text


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Install stdout (and optionally file) handlers on the service logger.

    Calling it again swaps the handlers rather than adding more. ``rotation``
    and ``retention`` only apply with ``log_file``.
    """
    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    service_logger = logging.getLogger(ROOT_LOGGER)
    for previous in list(service_logger.handlers):
        service_logger.removeHandler(previous)
        previous.close()
    service_logger.setLevel(level.upper())
    for handler in handlers:
        handler.setFormatter(formatter)
        service_logger.addHandler(handler)

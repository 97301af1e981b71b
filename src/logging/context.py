# src/logging/context.py — v2
"""Contextual logging support: attach execution, asset, partner and task to log records.

Each asyncio task copies the current context when it is created, so values
set inside one partner branch are invisible to its siblings.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_execution_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "execution_id", default=None
)
_asset_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "asset_id", default=None
)
_partner: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "partner", default=None
)
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    execution_id: str | None = None
    asset_id: str | None = None
    partner: str | None = None
    task: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        execution_id=_execution_id.get(),
        asset_id=_asset_id.get(),
        partner=_partner.get(),
        task=_task.get(),
    )


def set_execution_context(execution_id: str, asset_id: str) -> None:
    """Set execution-level context (called once per execution)."""
    _execution_id.set(execution_id)
    _asset_id.set(asset_id)


def set_task_context(partner: str, task: str | None = None) -> None:
    """Set branch/task-level context."""
    _partner.set(partner)
    _task.set(task)


def clear_context() -> None:
    """Reset all context variables."""
    _execution_id.set(None)
    _asset_id.set(None)
    _partner.set(None)
    _task.set(None)

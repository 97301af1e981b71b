# src/callbacks/store.py — v2
"""Pending callback store: table of PendingCallback records keyed by token.

Records are kept after they leave PENDING so that late or duplicate
resolutions can be recognized and rejected, until the bridge deletes them
once their retention expires.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from syndication.callbacks.models import PendingCallback


class BaseCallbackStore(ABC):
    """Unified interface for pending callback storage backends."""

    @abstractmethod
    async def add(self, record: PendingCallback) -> None:
        """Insert a new record. Raises KeyError if the token already exists."""

    @abstractmethod
    async def get(self, token: str) -> PendingCallback | None:
        """Return the record for a token, or None."""

    @abstractmethod
    async def update(self, record: PendingCallback) -> None:
        """Persist changes to an existing record."""

    @abstractmethod
    async def list_for_execution(self, execution_id: str) -> list[PendingCallback]:
        """Return every record created by an execution."""

    @abstractmethod
    async def delete(self, token: str) -> bool:
        """Remove a record. Returns False if the token is unknown."""


class InMemoryCallbackStore(BaseCallbackStore):
    """Process-local callback store."""

    def __init__(self) -> None:
        self._records: dict[str, PendingCallback] = {}

    async def add(self, record: PendingCallback) -> None:
        if record.token in self._records:
            raise KeyError(f"Token already registered for asset {record.asset_id!r}")
        self._records[record.token] = record

    async def get(self, token: str) -> PendingCallback | None:
        return self._records.get(token)

    async def update(self, record: PendingCallback) -> None:
        self._records[record.token] = record

    async def list_for_execution(self, execution_id: str) -> list[PendingCallback]:
        return [r for r in self._records.values() if r.execution_id == execution_id]

    async def delete(self, token: str) -> bool:
        return self._records.pop(token, None) is not None

    def __len__(self) -> int:
        return len(self._records)

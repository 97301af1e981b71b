# src/callbacks/bridge.py — v2
"""Async callback bridge: resolve suspended tasks from out-of-band status events.

A suspended task is an asyncio future registered under a continuation token.
Only the bridge fulfils it, when a terminal status event for that token
arrives; heartbeat events keep it alive. Per token the state machine is:

    PENDING --heartbeat--> PENDING (idle timer reset)
    PENDING --COMPLETE--> RESOLVED (result)
    PENDING --ERROR/CANCELED--> RESOLVED (failure)
    PENDING --execution timeout--> ABANDONED
    PENDING --idle timeout--> TIMED_OUT

Anything addressed to a non-PENDING or unknown token is rejected and logged,
never raised, so late callbacks cannot corrupt a finished execution. Terminal
records are deleted once their retention period has passed; events for them
are then rejected as unknown.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections import deque
from datetime import datetime, timezone
from typing import Any

from syndication.callbacks.models import (
    FAILURE_STATUSES,
    HEARTBEAT_STATUSES,
    SUCCESS_STATUS,
    CallbackOutcome,
    PendingCallback,
    TranscodeStatusEvent,
)
from syndication.callbacks.store import BaseCallbackStore, InMemoryCallbackStore
from syndication.callbacks.token_codec import decode_token_metadata
from syndication.core.errors import (
    HeartbeatTimeoutError,
    TranscodeJobFailed,
    ValidationError,
)
from syndication.core.models import CallbackState, ProcessingStepResult
from syndication.storage.keys import strip_bucket_prefix

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_S = 3600.0


def _short(token: str) -> str:
    return f"{token[:8]}...({len(token)})"


class CallbackBridge:
    """Correlate continuation tokens with suspended tasks.

    Args:
        store: PendingCallback table. Defaults to an in-memory store.
        token_bytes: Random bytes per issued token (480 -> 640 chars).
        field_size: Max characters per metadata field.
        field_count: Number of metadata fields carrying a token.
        retention_seconds: How long a settled record stays in the store.
    """

    def __init__(
        self,
        store: BaseCallbackStore | None = None,
        token_bytes: int = 480,
        field_size: int = 256,
        field_count: int = 3,
        retention_seconds: float = DEFAULT_RETENTION_S,
    ) -> None:
        if retention_seconds < 0:
            raise ValueError("retention_seconds must not be negative")
        self._store = store if store is not None else InMemoryCallbackStore()
        self._token_bytes = token_bytes
        self._field_size = field_size
        self._field_count = field_count
        self._futures: dict[str, asyncio.Future[ProcessingStepResult]] = {}
        self._activity: dict[str, float] = {}
        self._retention = retention_seconds
        self._settled: deque[tuple[float, str]] = deque()
        self._lock = asyncio.Lock()

    @property
    def store(self) -> BaseCallbackStore:
        return self._store

    @property
    def capacity(self) -> int:
        return self._field_size * self._field_count

    def issue_token(self) -> str:
        """Create a fresh opaque token that fits the metadata fields."""
        token = secrets.token_urlsafe(self._token_bytes)
        if len(token) > self.capacity:
            raise ValidationError(
                f"Issued token is {len(token)} chars, capacity is {self.capacity}"
            )
        return token

    async def register(
        self,
        token: str,
        *,
        execution_id: str,
        asset_id: str,
        partner_id: str,
        step_type: str = "Video",
    ) -> PendingCallback:
        """Suspend a task under ``token``. Must run inside the event loop.

        Raises:
            ValidationError: If the token is too long or was used before.
        """
        if len(token) > self.capacity:
            raise ValidationError(
                f"Token is {len(token)} chars, capacity is {self.capacity}"
            )
        record = PendingCallback(
            token=token,
            execution_id=execution_id,
            asset_id=asset_id,
            partner_id=partner_id,
            step_type=step_type,
        )
        async with self._lock:
            await self._purge()
            try:
                await self._store.add(record)
            except KeyError as exc:
                raise ValidationError(f"Continuation token reused: {_short(token)}") from exc
            loop = asyncio.get_running_loop()
            self._futures[token] = loop.create_future()
            self._activity[token] = loop.time()

        logger.debug("Registered pending callback %s for %s", _short(token), partner_id)
        return record

    async def wait(
        self, token: str, idle_timeout: float | None = None
    ) -> ProcessingStepResult:
        """Wait until the token is resolved.

        Args:
            token: A registered token.
            idle_timeout: Fail if neither a heartbeat nor a terminal event
                arrives for this many seconds. None waits indefinitely.

        Raises:
            TranscodeJobFailed: If the job reported ERROR or CANCELED.
            HeartbeatTimeoutError: If the idle timer expired.
            ValidationError: If the token is not registered.
        """
        future = self._futures.get(token)
        if future is None:
            raise ValidationError(f"No pending callback for token {_short(token)}")

        try:
            return await self._wait_future(token, future, idle_timeout)
        finally:
            self._futures.pop(token, None)
            self._activity.pop(token, None)

    async def _wait_future(
        self,
        token: str,
        future: asyncio.Future[ProcessingStepResult],
        idle_timeout: float | None,
    ) -> ProcessingStepResult:
        if idle_timeout is None:
            return await future

        loop = asyncio.get_running_loop()
        while True:
            if future.done():
                return future.result()
            last = self._activity.get(token, loop.time())
            remaining = idle_timeout - (loop.time() - last)
            if remaining <= 0:
                await self._settle(
                    token, "TIMED_OUT", error=f"No heartbeat for {idle_timeout:.0f}s"
                )
                raise HeartbeatTimeoutError(
                    f"Task {_short(token)} idle for more than {idle_timeout:.0f}s"
                )
            try:
                return await asyncio.wait_for(asyncio.shield(future), timeout=remaining)
            except asyncio.TimeoutError:
                continue

    async def handle_event(self, event: TranscodeStatusEvent | dict[str, Any]) -> CallbackOutcome:
        """Apply one external status event.

        Raises:
            ValidationError: If the event carries no status, or a resolvable
                event lacks any token field.
        """
        if not isinstance(event, TranscodeStatusEvent):
            event = TranscodeStatusEvent.from_event(event)

        status = event.status
        if status not in HEARTBEAT_STATUSES | FAILURE_STATUSES | {SUCCESS_STATUS}:
            logger.debug("Ignoring status event %r (job %s)", status, event.job_id)
            return "IGNORED"

        token = decode_token_metadata(event.user_metadata, self._field_count)

        if status in HEARTBEAT_STATUSES:
            return await self.heartbeat(token)

        if status in FAILURE_STATUSES:
            message = event.error_message or f"Transcode job {status}"
            return await self.resolve_failure(token, message)

        metadata = event.user_metadata
        bucket = metadata.get("Bucket")
        if not bucket or not event.output_paths:
            return await self.resolve_failure(
                token, "COMPLETE event without output bucket or output path"
            )
        try:
            key = strip_bucket_prefix(event.output_paths[0], str(bucket))
        except ValidationError as exc:
            return await self.resolve_failure(token, str(exc))

        result = ProcessingStepResult(
            asset_id=str(metadata.get("AssetId", "")),
            bucket=str(bucket),
            key=key,
            type="Video",
        )
        return await self.resolve_success(token, result)

    async def heartbeat(self, token: str) -> CallbackOutcome:
        """Keep a pending task alive. Duplicate heartbeats are harmless."""
        async with self._lock:
            await self._purge()
            record = await self._store.get(token)
            if record is None or not record.is_pending:
                state = "unknown" if record is None else record.state
                logger.warning("Heartbeat rejected for %s token %s", state, _short(token))
                return "REJECTED"
            record.heartbeats += 1
            record.last_heartbeat_at = datetime.now(timezone.utc)
            await self._store.update(record)
            self._activity[token] = asyncio.get_running_loop().time()
        return "HEARTBEAT"

    async def resolve_success(self, token: str, result: ProcessingStepResult) -> CallbackOutcome:
        return await self._settle(token, "RESOLVED", result=result)

    async def resolve_failure(self, token: str, message: str) -> CallbackOutcome:
        return await self._settle(token, "RESOLVED", error=message, failed=True)

    async def abandon(self, token: str, reason: str = "abandoned") -> bool:
        """Give up on one pending task (e.g. its submission failed)."""
        return await self._settle(token, "ABANDONED", error=reason) == "RESOLVED"

    async def abandon_execution(self, execution_id: str) -> int:
        """Abandon every still-pending task of an execution.

        Returns:
            Number of tasks abandoned.
        """
        count = 0
        for record in await self._store.list_for_execution(execution_id):
            if record.is_pending and await self.abandon(record.token, "execution terminated"):
                count += 1
        if count:
            logger.warning(
                "Abandoned %d pending callback(s) of execution %s", count, execution_id
            )
        return count

    async def purge_expired(self) -> int:
        """Delete settled records older than the retention period.

        Returns:
            Number of records deleted.
        """
        async with self._lock:
            return await self._purge()

    async def _purge(self) -> int:
        now = asyncio.get_running_loop().time()
        count = 0
        while self._settled and now - self._settled[0][0] >= self._retention:
            _, token = self._settled.popleft()
            if await self._store.delete(token):
                count += 1
        if count:
            logger.debug("Purged %d settled callback record(s)", count)
        return count

    async def _settle(
        self,
        token: str,
        state: CallbackState,
        result: ProcessingStepResult | None = None,
        error: str | None = None,
        failed: bool = False,
    ) -> CallbackOutcome:
        """Move a PENDING record to a terminal state and release its waiter."""
        async with self._lock:
            await self._purge()
            record = await self._store.get(token)
            if record is None:
                logger.warning("Callback rejected: unknown token %s", _short(token))
                return "REJECTED"
            if not record.is_pending:
                logger.warning(
                    "Callback rejected: token %s already %s", _short(token), record.state
                )
                return "REJECTED"

            record.state = state
            record.resolved_at = datetime.now(timezone.utc)
            record.error = error
            await self._store.update(record)
            self._settled.append((asyncio.get_running_loop().time(), token))

            future = self._futures.get(token)
            if state != "RESOLVED":
                self._futures.pop(token, None)
                self._activity.pop(token, None)

        if future is not None and not future.done():
            if state != "RESOLVED":
                future.cancel()
            elif failed:
                future.set_exception(TranscodeJobFailed(error or "transcode failed"))
            else:
                future.set_result(result)  # type: ignore[arg-type]

        logger.info(
            "Callback %s -> %s%s",
            _short(token), state, f" ({error})" if error else "",
        )
        return "RESOLVED"

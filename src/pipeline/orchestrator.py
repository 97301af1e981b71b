# src/pipeline/orchestrator.py — v3
"""Workflow orchestrator: drive one execution per asset end to end.

  1. Entitlement: resolve partner eligibility once, before any branch.
  2. Branches: run every known partner branch concurrently; not-entitled
     branches short-circuit to IGNORED.
  3. Report: reduce all PartnerResults into a FinalReport and hand it to
     the reporting sink without waiting for it.

The whole run is bounded by a wall-clock timeout. On expiry the execution
is FAILED with no partial report and its pending callbacks are abandoned.
At most one execution per AssetId is active at a time. Finished executions
are kept for status queries up to a bounded history, oldest evicted first.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING

from syndication.core.errors import (
    DuplicateExecutionError,
    ExecutionTimeoutError,
    ValidationError,
)
from syndication.core.models import Asset, FinalReport
from syndication.logging.context import set_execution_context
from syndication.pipeline.aggregator import build_final_report
from syndication.pipeline.identity import execution_name
from syndication.pipeline.state import ExecutionState

if TYPE_CHECKING:
    from syndication.callbacks.bridge import CallbackBridge
    from syndication.pipeline.branch_scheduler import BranchScheduler
    from syndication.pipeline.entitlement import BaseEntitlementResolver
    from syndication.reporting.base_sink import BaseReportSink

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 3600.0
DEFAULT_HISTORY = 1000


class Orchestrator:
    """Start, track and terminate executions.

    Args:
        resolver: Entitlement resolver; its partner ids define the report.
        scheduler: Branch scheduler running partner DAGs.
        bridge: Callback bridge holding suspended video tasks.
        sink: Optional reporting sink receiving final reports.
        timeout_seconds: Wall-clock ceiling per execution.
        name_prefix: Prefix of derived execution ids.
        history: Number of finished executions kept for status queries.
    """

    def __init__(
        self,
        resolver: BaseEntitlementResolver,
        scheduler: BranchScheduler,
        bridge: CallbackBridge,
        sink: BaseReportSink | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_S,
        name_prefix: str = "S3UploadTriggeredExecution-",
        history: int = DEFAULT_HISTORY,
    ) -> None:
        if history < 1:
            raise ValueError("history must be at least 1")
        self._resolver = resolver
        self._scheduler = scheduler
        self._bridge = bridge
        self._sink = sink
        self._timeout = timeout_seconds
        self._name_prefix = name_prefix
        self._executions: dict[str, ExecutionState] = {}
        self._tasks: dict[str, asyncio.Task[ExecutionState]] = {}
        self._active_by_asset: dict[str, str] = {}
        self._history = history
        self._finished: deque[str] = deque()
        self._deliveries: set[asyncio.Task[None]] = set()

    async def start(self, asset: Asset) -> str:
        """Start an execution for ``asset`` and return its id.

        Raises:
            ValidationError: If the asset has no AssetId.
            DuplicateExecutionError: If an execution for the asset is active.
        """
        if not asset.asset_id:
            raise ValidationError("Asset has no AssetId")

        active = self._active_by_asset.get(asset.asset_id)
        if active is not None:
            raise DuplicateExecutionError(active)

        base = execution_name(asset.asset_id, self._name_prefix)
        execution_id, attempt = base, 1
        while execution_id in self._executions:
            attempt += 1
            execution_id = f"{base}-{attempt}"

        state = ExecutionState(execution_id=execution_id, asset=asset)
        self._executions[execution_id] = state
        self._active_by_asset[asset.asset_id] = execution_id
        task = asyncio.create_task(self._execute(state), name=execution_id)
        self._tasks[execution_id] = task
        task.add_done_callback(lambda _: self._release(state))
        logger.info("Started execution %s for asset %s", execution_id, asset.asset_id)
        return execution_id

    async def wait(self, execution_id: str) -> ExecutionState:
        """Wait for an execution to reach a terminal state.

        Cancelling the caller does not cancel the execution. An execution
        already finished and still in history is returned as is.
        """
        task = self._tasks.get(execution_id)
        if task is not None:
            return await asyncio.shield(task)
        state = self._executions.get(execution_id)
        if state is None:
            raise KeyError(f"Unknown execution: {execution_id}")
        return state

    async def run(self, asset: Asset) -> ExecutionState:
        """Start an execution and wait for it."""
        return await self.wait(await self.start(asset))

    def get(self, execution_id: str) -> ExecutionState | None:
        return self._executions.get(execution_id)

    def active_execution(self, asset_id: str) -> str | None:
        """Id of the active execution for an asset, if any."""
        return self._active_by_asset.get(asset_id)

    @property
    def executions(self) -> list[ExecutionState]:
        return list(self._executions.values())

    async def drain(self) -> None:
        """Wait for in-flight report deliveries."""
        if self._deliveries:
            await asyncio.gather(*list(self._deliveries))

    async def _execute(self, state: ExecutionState) -> ExecutionState:
        set_execution_context(state.execution_id, state.asset_id)
        try:
            report = await asyncio.wait_for(self._run(state), timeout=self._timeout)
        except asyncio.TimeoutError:
            error = ExecutionTimeoutError(state.execution_id, self._timeout)
            logger.error("%s", error)
            state.fail(str(error))
            await self._bridge.abandon_execution(state.execution_id)
        except asyncio.CancelledError:
            state.fail("Execution cancelled")
            await self._bridge.abandon_execution(state.execution_id)
            raise
        except Exception as exc:
            logger.exception("Execution %s failed", state.execution_id)
            state.fail(f"{type(exc).__name__}: {exc}")
            await self._bridge.abandon_execution(state.execution_id)
        else:
            state.complete(report)
            logger.info("Execution %s complete: %s", state.execution_id, report.status_by_partner())
            self._deliver(report)
        return state

    def _release(self, state: ExecutionState) -> None:
        if not state.is_terminal:
            state.fail("Execution cancelled")
        self._tasks.pop(state.execution_id, None)
        if self._active_by_asset.get(state.asset_id) == state.execution_id:
            del self._active_by_asset[state.asset_id]
        self._finished.append(state.execution_id)
        while len(self._finished) > self._history:
            self._executions.pop(self._finished.popleft(), None)

    async def _run(self, state: ExecutionState) -> FinalReport:
        decision = self._resolver.resolve(state.asset)
        state.entitlement = decision
        partner_ids = self._resolver.partner_ids

        outcomes = await asyncio.gather(
            *(
                self._scheduler.run_branch(
                    pid,
                    state.asset,
                    decision[pid],
                    execution_id=state.execution_id,
                    branch_run=state.branch(pid),
                )
                for pid in partner_ids
            ),
            return_exceptions=True,
        )
        for pid, outcome in zip(partner_ids, outcomes):
            if isinstance(outcome, BaseException) and not state.branch(pid).is_terminal:
                state.branch(pid).mark("FAILED")
        return build_final_report(
            state.execution_id, state.asset_id, partner_ids, dict(zip(partner_ids, outcomes))
        )

    def _deliver(self, report: FinalReport) -> None:
        if self._sink is None:
            return
        task = asyncio.create_task(self._send(report))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _send(self, report: FinalReport) -> None:
        try:
            await self._sink.deliver(report)  # type: ignore[union-attr]
        except Exception:
            logger.exception("Reporting sink failed for %s", report.execution_id)

# src/pipeline/branch_scheduler.py — v1
"""Branch scheduler: run one partner's task DAG.

Walks the branch plan stage by stage. Step tasks of a stage run
concurrently and are joined before the next stage; the postprocessor runs
only when every step succeeded. A not-entitled branch dispatches nothing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from syndication.core.models import Asset, PartnerResult, ProcessingStepResult
from syndication.logging.context import set_task_context
from syndication.pipeline.aggregator import reduce_branch_results
from syndication.pipeline.state import BranchRun
from syndication.pipeline.workflow_graph import POSTPROCESS_NODE
from syndication.tasks.base_task import TaskContext, TaskPayload

if TYPE_CHECKING:
    from syndication.callbacks.bridge import CallbackBridge
    from syndication.config.settings import Settings
    from syndication.pipeline.registry import PartnerBranch, PartnerRegistry
    from syndication.storage.base_object_store import BaseObjectStore
    from syndication.transcode.base_client import BaseTranscodeClient

logger = logging.getLogger(__name__)


class BranchScheduler:
    """Execute partner branches against shared collaborators.

    Args:
        registry: Loaded PartnerRegistry.
        object_store: Store holding source and output objects.
        settings: Application settings.
        transcode_client: Client for callback-driven video tasks.
        bridge: Callback bridge the video tasks suspend on.
    """

    def __init__(
        self,
        registry: PartnerRegistry,
        object_store: BaseObjectStore,
        settings: Settings,
        transcode_client: BaseTranscodeClient | None = None,
        bridge: CallbackBridge | None = None,
    ) -> None:
        self._registry = registry
        self._object_store = object_store
        self._settings = settings
        self._transcode_client = transcode_client
        self._bridge = bridge

    async def run_branch(
        self,
        partner_id: str,
        asset: Asset,
        entitled: bool,
        execution_id: str = "",
        branch_run: BranchRun | None = None,
    ) -> PartnerResult:
        """Run one partner branch to a terminal PartnerResult.

        Task failures never escape: they fail the branch and come back as a
        Status ERROR result naming the failed tasks.
        """
        run = branch_run or BranchRun(partner_id=partner_id)
        set_task_context(partner_id)

        if not entitled:
            run.mark("SKIPPED")
            run.result = PartnerResult.ignored(partner_id)
            logger.info("Partner %s not entitled, branch skipped", partner_id)
            return run.result

        branch = self._registry.get_or_raise(partner_id)
        ctx = TaskContext(
            execution_id=execution_id,
            partner_id=partner_id,
            output_bucket=self._settings.output_bucket_for(partner_id),
            object_store=self._object_store,
            settings=self._settings,
            transcode_client=self._transcode_client,
            bridge=self._bridge,
        )
        run.mark("RUNNING")
        logger.info("Branch %s started: %s", partner_id, branch.plan.stages)

        for stage in branch.plan.stages:
            steps = [node for node in stage if node != POSTPROCESS_NODE]
            if steps:
                await self._run_steps(branch, steps, asset, ctx, run)
                if run.failed_tasks:
                    return self._fail(run)
            if POSTPROCESS_NODE in stage:
                await self._run_postprocess(branch, ctx, run)
                if run.failed_tasks:
                    return self._fail(run)

        run.mark("JOINED")
        logger.info("Branch %s joined: %s", partner_id, run.result.status if run.result else None)
        return run.result  # type: ignore[return-value]

    async def _run_steps(
        self,
        branch: PartnerBranch,
        steps: list[str],
        asset: Asset,
        ctx: TaskContext,
        run: BranchRun,
    ) -> None:
        outcomes = await asyncio.gather(
            *(self._run_task(branch, step, asset, ctx, run) for step in steps),
            return_exceptions=True,
        )
        completed: list[ProcessingStepResult] = list(run.step_results)
        for step, outcome in zip(steps, outcomes):
            if isinstance(outcome, BaseException):
                run.task_states[step] = "FAILED"
                run.failed_tasks.append(step)
                run.errors.append(f"{step}: {type(outcome).__name__}: {outcome}")
                logger.error("Task %s/%s failed: %s", ctx.partner_id, step, outcome)
            else:
                completed.append(outcome)
        run.step_results = reduce_branch_results(completed)

    async def _run_task(
        self,
        branch: PartnerBranch,
        step: str,
        asset: Asset,
        ctx: TaskContext,
        run: BranchRun,
    ) -> ProcessingStepResult:
        set_task_context(ctx.partner_id, step)
        task = branch.tasks[step]
        payload = TaskPayload.for_ref(asset.ref_for(step), asset.asset_id)

        run.task_states[step] = "RUNNING"
        logger.debug("Dispatching %s (%s)", task.name, payload.object_key)
        result = await task.execute(payload, ctx)
        run.task_states[step] = "COMPLETE"
        return result

    async def _run_postprocess(
        self, branch: PartnerBranch, ctx: TaskContext, run: BranchRun
    ) -> None:
        set_task_context(ctx.partner_id, POSTPROCESS_NODE)
        run.task_states[POSTPROCESS_NODE] = "RUNNING"
        try:
            run.result = await branch.postprocessor.execute(list(run.step_results), ctx)
        except Exception as exc:
            run.task_states[POSTPROCESS_NODE] = "FAILED"
            run.failed_tasks.append(POSTPROCESS_NODE)
            run.errors.append(f"{POSTPROCESS_NODE}: {type(exc).__name__}: {exc}")
            logger.error("Postprocess for %s failed: %s", ctx.partner_id, exc)
            return
        run.task_states[POSTPROCESS_NODE] = "COMPLETE"

    @staticmethod
    def _fail(run: BranchRun) -> PartnerResult:
        run.mark("FAILED")
        run.result = PartnerResult.error(
            run.partner_id, "; ".join(run.errors), list(run.failed_tasks)
        )
        logger.warning("Branch %s failed: %s", run.partner_id, run.failed_tasks)
        return run.result

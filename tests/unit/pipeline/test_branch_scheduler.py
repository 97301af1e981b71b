# tests/unit/pipeline/test_branch_scheduler.py — v2
"""Tests for pipeline/branch_scheduler.py — BranchScheduler."""

from __future__ import annotations

import asyncio
import itertools

import pytest

from syndication.core.models import PartnerResult, ProcessingStepResult
from syndication.pipeline.branch_scheduler import BranchScheduler
from syndication.pipeline.registry import PartnerBranch, PartnerRegistry
from syndication.pipeline.state import BranchRun
from syndication.pipeline.workflow_graph import BranchDescriptor, build_branch_plan
from syndication.tasks.base_task import BasePostprocessor, BaseTask
from syndication.tasks.image_task import ImageWatermarkTask
from syndication.tasks.metadata_task import MetadataXmlTask
from syndication.tasks.placeholder import PlaceholderPostprocessor, PlaceholderVideoTask
from syndication.tasks.postprocess import ChecksumPostprocessor


class RecordingTask(BaseTask):
    def __init__(
        self,
        step_type: str,
        delay: float = 0.0,
        error: Exception | None = None,
        finished: list[str] | None = None,
    ):
        self.step_type = step_type
        self.delay = delay
        self.error = error
        self.finished = finished if finished is not None else []
        self.calls = 0

    @property
    def name(self):
        return f"recording_{self.step_type.lower()}"

    async def execute(self, payload, ctx):
        self.calls += 1
        await asyncio.sleep(self.delay)
        self.finished.append(self.step_type)
        if self.error is not None:
            raise self.error
        return ProcessingStepResult(
            asset_id=payload.asset_id, bucket=ctx.output_bucket, key=payload.object_key,
            type=self.step_type,
        )


class RecordingPostprocessor(BasePostprocessor):
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.received: list[ProcessingStepResult] | None = None

    @property
    def name(self):
        return "recording_post"

    async def execute(self, results, ctx):
        self.received = results
        if self.error is not None:
            raise self.error
        return PartnerResult(provider=ctx.partner_id, status="PROCESS_OK", output={"steps": [r.type for r in results]})


def _branch(partner_id: str, tasks: dict[str, BaseTask], post: BasePostprocessor) -> PartnerBranch:
    descriptor = BranchDescriptor(
        partner_id=partner_id,
        tasks={step: f"tests.{type(t).__name__}" for step, t in tasks.items()},
        postprocess=f"tests.{type(post).__name__}",
    )
    return PartnerBranch(
        descriptor=descriptor,
        tasks=tasks,
        postprocessor=post,
        plan=build_branch_plan(descriptor.dependency_map()),
    )


STEPS = ("Image", "Metadata", "Video")
DELAYS = (0.0, 0.03, 0.06)


@pytest.fixture
def make_scheduler(store, settings, transcode_client, bridge):
    def _make(*branches: PartnerBranch, load_default: bool = False) -> BranchScheduler:
        registry = PartnerRegistry([])
        if load_default:
            registry = PartnerRegistry()
            registry.load_all()
        for branch in branches:
            registry.register(branch)
        return BranchScheduler(registry, store, settings, transcode_client, bridge)

    return _make


class TestBranchScheduler:
    @pytest.mark.asyncio
    async def test_not_entitled_dispatches_nothing(self, make_scheduler, sample_asset):
        tasks = {s: RecordingTask(s) for s in ("Image", "Metadata", "Video")}
        post = RecordingPostprocessor()
        scheduler = make_scheduler(_branch("ACE", tasks, post))
        run = BranchRun(partner_id="ACE")

        result = await scheduler.run_branch("ACE", sample_asset, False, branch_run=run)
        assert result == PartnerResult.ignored("ACE")
        assert run.state == "SKIPPED"
        assert all(t.calls == 0 for t in tasks.values())
        assert post.received is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delays", list(itertools.permutations(DELAYS)))
    async def test_postprocess_gets_stable_order(self, make_scheduler, sample_asset, delays):
        finished: list[str] = []
        tasks = {
            step: RecordingTask(step, delay=delay, finished=finished)
            for step, delay in zip(STEPS, delays)
        }
        post = RecordingPostprocessor()
        scheduler = make_scheduler(_branch("ACE", tasks, post))
        run = BranchRun(partner_id="ACE")

        result = await scheduler.run_branch("ACE", sample_asset, True, "exec-1", run)
        assert result.status == "PROCESS_OK"
        assert finished == sorted(STEPS, key=dict(zip(STEPS, delays)).get)
        assert [r.type for r in post.received] == list(STEPS)
        assert result.output == {"steps": list(STEPS)}
        assert run.state == "JOINED"
        assert run.task_states == {
            "Image": "COMPLETE", "Metadata": "COMPLETE", "Video": "COMPLETE",
            "Postprocess": "COMPLETE",
        }

    @pytest.mark.asyncio
    async def test_same_results_for_every_completion_order(self, make_scheduler, sample_asset):
        runs = []
        for delays in itertools.permutations(DELAYS):
            finished: list[str] = []
            tasks = {
                step: RecordingTask(step, delay=delay, finished=finished)
                for step, delay in zip(STEPS, delays)
            }
            post = RecordingPostprocessor()
            result = await make_scheduler(_branch("ACE", tasks, post)).run_branch(
                "ACE", sample_asset, True, "exec-1", BranchRun(partner_id="ACE")
            )
            runs.append((tuple(finished), post.received, result))

        assert len({finished for finished, _, _ in runs}) == 6
        _, first_received, first_result = runs[0]
        for _, received, result in runs[1:]:
            assert received == first_received
            assert result == first_result

    @pytest.mark.asyncio
    async def test_step_failure_skips_postprocess(self, make_scheduler, sample_asset):
        tasks = {
            "Image": RecordingTask("Image", error=RuntimeError("decode")),
            "Metadata": RecordingTask("Metadata"),
            "Video": RecordingTask("Video"),
        }
        post = RecordingPostprocessor()
        scheduler = make_scheduler(_branch("ACE", tasks, post))
        run = BranchRun(partner_id="ACE")

        result = await scheduler.run_branch("ACE", sample_asset, True, "exec-1", run)
        assert result.status == "ERROR"
        assert result.output["FailedTasks"] == ["Image"]
        assert "RuntimeError: decode" in result.output["Error"]
        assert post.received is None
        assert run.state == "FAILED"
        # siblings still ran to completion
        assert tasks["Metadata"].calls == 1 and tasks["Video"].calls == 1

    @pytest.mark.asyncio
    async def test_postprocess_failure(self, make_scheduler, sample_asset):
        tasks = {s: RecordingTask(s) for s in ("Image", "Metadata", "Video")}
        scheduler = make_scheduler(
            _branch("ACE", tasks, RecordingPostprocessor(error=ValueError("bad")))
        )
        result = await scheduler.run_branch("ACE", sample_asset, True)
        assert result.status == "ERROR"
        assert result.output["FailedTasks"] == ["Postprocess"]

    @pytest.mark.asyncio
    async def test_output_bucket_from_settings(self, make_scheduler, sample_asset):
        tasks = {s: RecordingTask(s) for s in ("Image", "Metadata", "Video")}
        post = RecordingPostprocessor()
        scheduler = make_scheduler(_branch("Elsewhere", tasks, post))
        await scheduler.run_branch("Elsewhere", sample_asset, True)
        assert {r.bucket for r in post.received} == {"out-default"}

    @pytest.mark.asyncio
    async def test_real_ace_tasks_with_missing_image(self, make_scheduler, seed_asset, sample_asset, store):
        await seed_asset(skip=("Image",))
        branch = _branch(
            "ACE",
            {
                "Image": ImageWatermarkTask(),
                "Metadata": MetadataXmlTask(),
                "Video": PlaceholderVideoTask(),
            },
            ChecksumPostprocessor(),
        )
        result = await make_scheduler(branch).run_branch("ACE", sample_asset, True)
        assert result.status == "ERROR"
        assert result.output["FailedTasks"] == ["Image"]
        assert "NotFoundError" in result.output["Error"]
        # metadata was still written: sibling tasks are not cancelled
        assert await store.exists("out-ace", "A1/metadata.xml")

    @pytest.mark.asyncio
    async def test_full_ace_branch(self, make_scheduler, seed_asset, sample_asset, transcode_client, bridge):
        await seed_asset()
        scheduler = make_scheduler(load_default=True)

        pending = asyncio.create_task(scheduler.run_branch("ACE", sample_asset, True, "exec-1"))
        await transcode_client.wait_for_jobs(1)
        assert await bridge.handle_event(await transcode_client.finish()) == "RESOLVED"

        result = await asyncio.wait_for(pending, 2)
        assert result.status == "PROCESS_OK"
        assert result.output["Bucket"] == "out-ace"
        assert result.output["Files"] == ["A1/poster.jpg", "A1/metadata.xml", "A1/clip_720p.mp4"]
        assert len(result.output["Checksums"]) == 3

    @pytest.mark.asyncio
    async def test_placeholder_partner(self, make_scheduler, sample_asset, transcode_client):
        scheduler = make_scheduler(load_default=True)
        result = await scheduler.run_branch("OtherProvider", sample_asset, True)
        assert result == PartnerResult(provider="OtherProvider", status="PROCESS_OK", output={})
        assert transcode_client.requests == []

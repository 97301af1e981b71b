# src/pipeline/workflow_graph.py — v1
"""Workflow graph: the inspectable DAG interpreted by the orchestrator.

Shape: entitlement gate -> one parallel branch per partner -> report.
Inside a branch, the step nodes (Image, Metadata, Video) have no mutual
dependencies and the Postprocess node depends on all of them. Levels are
computed with Kahn's algorithm so a branch can be walked stage by stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from syndication.core.models import STEP_ORDER

logger = logging.getLogger(__name__)

POSTPROCESS_NODE = "Postprocess"
ENTITLEMENT_STATE = "CheckPartnerEntitlement"
PARALLEL_STATE = "ParallelPartnerProcessing"
REPORT_STATE = "ReportResult"


class DAGError(Exception):
    """Raised when DAG construction fails (cycle, missing dep)."""


@dataclass
class ExecutionPlan:
    """Ordered execution plan for one branch.

    stages is a list of "levels": nodes within the same level run
    concurrently. Levels execute sequentially.
    """

    stages: list[list[str]] = field(default_factory=list)
    total_nodes: int = 0

    @property
    def flat_order(self) -> list[str]:
        return [node for stage in self.stages for node in stage]


@dataclass(frozen=True)
class BranchDescriptor:
    """Declaration of one partner branch (class paths, not instances)."""

    partner_id: str
    tasks: dict[str, str]
    postprocess: str
    callback_steps: frozenset[str] = frozenset()

    @classmethod
    def from_config(cls, entry: dict[str, Any]) -> BranchDescriptor:
        try:
            descriptor = cls(
                partner_id=entry["partner_id"],
                tasks=dict(entry["tasks"]),
                postprocess=entry["postprocess"],
                callback_steps=frozenset(entry.get("callback_steps", ())),
            )
        except KeyError as exc:
            raise DAGError(f"Branch descriptor missing field {exc}") from exc
        missing = [s for s in STEP_ORDER if s not in descriptor.tasks]
        if missing:
            raise DAGError(
                f"Branch '{descriptor.partner_id}' declares no task for {missing}"
            )
        return descriptor

    @property
    def step_types(self) -> list[str]:
        """Declared steps, in stable Image, Metadata, Video order."""
        rank = {s: i for i, s in enumerate(STEP_ORDER)}
        return sorted(self.tasks, key=lambda s: (rank.get(s, len(rank)), s))

    def dependency_map(self) -> dict[str, list[str]]:
        """node -> nodes it waits for."""
        deps: dict[str, list[str]] = {step: [] for step in self.step_types}
        deps[POSTPROCESS_NODE] = list(self.step_types)
        return deps


def build_branch_plan(dependency_map: dict[str, list[str]]) -> ExecutionPlan:
    """Build a staged plan from node dependency declarations.

    Uses Kahn's algorithm with level detection. Nodes in a level keep
    Image, Metadata, Video order.

    Raises:
        DAGError: If a cycle is detected or a dependency is missing.
    """
    if not dependency_map:
        return ExecutionPlan()

    all_nodes = set(dependency_map)
    for node, deps in dependency_map.items():
        for dep in deps:
            if dep not in all_nodes:
                raise DAGError(f"Node '{node}' depends on '{dep}' which is not declared")

    in_degree: dict[str, int] = {n: 0 for n in all_nodes}
    dependents: dict[str, list[str]] = {n: [] for n in all_nodes}
    for node, deps in dependency_map.items():
        for dep in deps:
            dependents[dep].append(node)
            in_degree[node] += 1

    rank = {s: i for i, s in enumerate(STEP_ORDER)}

    def _ordered(nodes: list[str]) -> list[str]:
        return sorted(nodes, key=lambda n: (rank.get(n, len(rank)), n))

    stages: list[list[str]] = []
    queue = _ordered([n for n, d in in_degree.items() if d == 0])
    processed = 0
    while queue:
        stages.append(queue)
        next_queue: list[str] = []
        for node in queue:
            processed += 1
            for dependent in dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_queue.append(dependent)
        queue = _ordered(next_queue)

    if processed != len(all_nodes):
        remaining = sorted(n for n in all_nodes if in_degree[n] > 0)
        raise DAGError(f"Cycle detected involving nodes: {remaining}")

    return ExecutionPlan(stages=stages, total_nodes=processed)


@dataclass
class WorkflowDefinition:
    """The whole workflow: partner branches plus the execution ceiling."""

    branches: list[BranchDescriptor]
    timeout_seconds: float = 3600.0
    heartbeat_seconds: float | None = None

    @property
    def partner_ids(self) -> list[str]:
        return [b.partner_id for b in self.branches]

    def to_definition(self) -> dict[str, Any]:
        """Render the graph as a state-language document.

        The document is the contract shared by trigger, callback and report
        consumers; it contains no runtime state.
        """
        return {
            "Comment": "Media syndication: entitlement -> partner branches -> report",
            "StartAt": ENTITLEMENT_STATE,
            "TimeoutSeconds": int(self.timeout_seconds),
            "States": {
                ENTITLEMENT_STATE: {
                    "Type": "Task",
                    "Resource": "entitlement",
                    "ResultPath": "$.Destinations",
                    "Next": PARALLEL_STATE,
                },
                PARALLEL_STATE: {
                    "Type": "Parallel",
                    "Branches": [self._branch_definition(b) for b in self.branches],
                    "Next": REPORT_STATE,
                },
                REPORT_STATE: {"Type": "Task", "Resource": "report", "End": True},
            },
        }

    def _branch_definition(self, branch: BranchDescriptor) -> dict[str, Any]:
        pid = branch.partner_id
        steps = []
        for step in branch.step_types:
            state: dict[str, Any] = {
                "Type": "Task",
                "Resource": branch.tasks[step],
                "Parameters": {
                    "bucketName.$": f"$.{step}.bucketName",
                    "objectKey.$": f"$.{step}.objectKey",
                    "assetId.$": "$.AssetId",
                },
                "End": True,
            }
            if step in branch.callback_steps:
                state["IntegrationPattern"] = "WAIT_FOR_TASK_TOKEN"
                state["Parameters"]["token.$"] = "$$.Task.Token"
                if self.heartbeat_seconds is not None:
                    state["HeartbeatSeconds"] = int(self.heartbeat_seconds)
            steps.append({"StartAt": f"{pid}{step}", "States": {f"{pid}{step}": state}})

        return {
            "StartAt": f"Is{pid}Entitled",
            "States": {
                f"Is{pid}Entitled": {
                    "Type": "Choice",
                    "Choices": [
                        {
                            "Variable": f"$.Destinations.{pid}",
                            "BooleanEquals": True,
                            "Next": f"{pid}Processing",
                        }
                    ],
                    "Default": f"{pid}Ignored",
                },
                f"{pid}Ignored": {
                    "Type": "Pass",
                    "Result": {"Provider": pid, "Status": "IGNORED"},
                    "End": True,
                },
                f"{pid}Processing": {
                    "Type": "Parallel",
                    "Branches": steps,
                    "Next": f"{pid}{POSTPROCESS_NODE}",
                },
                f"{pid}{POSTPROCESS_NODE}": {
                    "Type": "Task",
                    "Resource": branch.postprocess,
                    "End": True,
                },
            },
        }

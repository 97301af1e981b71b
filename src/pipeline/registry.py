# src/pipeline/registry.py — v2
"""Partner registry: dynamic loading of branch task classes.

Loads the task and postprocessor classes named by PARTNER_REGISTRY,
validates each branch DAG, and exposes loaded branches in declared order.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any

from syndication.config.partners import PARTNER_REGISTRY
from syndication.pipeline.workflow_graph import (
    BranchDescriptor,
    DAGError,
    ExecutionPlan,
    WorkflowDefinition,
    build_branch_plan,
)
from syndication.tasks.base_task import BasePostprocessor, BaseTask

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when partner loading or validation fails."""


@dataclass
class PartnerBranch:
    """A loaded branch: descriptor, task instances and staged plan."""

    descriptor: BranchDescriptor
    tasks: dict[str, BaseTask]
    postprocessor: BasePostprocessor
    plan: ExecutionPlan

    @property
    def partner_id(self) -> str:
        return self.descriptor.partner_id


class PartnerRegistry:
    """Registry of partner branches known to the workflow.

    Every loaded partner appears in every final report, entitled or not.
    A declared partner that fails to load is an error, not a silent skip.
    """

    def __init__(self, entries: list[dict[str, Any]] | None = None) -> None:
        self._entries = entries if entries is not None else PARTNER_REGISTRY
        self._branches: dict[str, PartnerBranch] = {}

    @property
    def partner_ids(self) -> list[str]:
        """Loaded partner ids, in declared order."""
        return list(self._branches)

    @property
    def branches(self) -> list[PartnerBranch]:
        return list(self._branches.values())

    def load_all(self, enabled: list[str] | None = None) -> None:
        """Load partner branches from the declared entries.

        Args:
            enabled: Partner ids to load. None or empty loads all.

        Raises:
            RegistryError: On an unknown enabled id, a duplicate partner,
                an unimportable class or an invalid branch DAG.
        """
        declared = [e.get("partner_id") for e in self._entries]
        unknown = [pid for pid in enabled or [] if pid not in declared]
        if unknown:
            raise RegistryError(f"Enabled partners not declared: {unknown}")

        self._branches = {}
        for entry in self._entries:
            try:
                descriptor = BranchDescriptor.from_config(entry)
            except DAGError as exc:
                raise RegistryError(str(exc)) from exc
            if enabled and descriptor.partner_id not in enabled:
                logger.info("Skipping disabled partner: %s", descriptor.partner_id)
                continue
            self.register(_load_branch(descriptor))

        logger.info("Registry loaded %d partner branches: %s", len(self._branches), self.partner_ids)

    def register(self, branch: PartnerBranch) -> None:
        """Manually register a loaded branch."""
        if branch.partner_id in self._branches:
            raise RegistryError(f"Partner '{branch.partner_id}' declared twice")
        self._branches[branch.partner_id] = branch

    def get(self, partner_id: str) -> PartnerBranch | None:
        return self._branches.get(partner_id)

    def get_or_raise(self, partner_id: str) -> PartnerBranch:
        branch = self._branches.get(partner_id)
        if branch is None:
            raise RegistryError(f"Partner '{partner_id}' not found in registry")
        return branch

    def workflow(
        self, timeout_seconds: float = 3600.0, heartbeat_seconds: float | None = None
    ) -> WorkflowDefinition:
        """Return the workflow graph over the loaded branches."""
        return WorkflowDefinition(
            branches=[b.descriptor for b in self.branches],
            timeout_seconds=timeout_seconds,
            heartbeat_seconds=heartbeat_seconds,
        )


def _load_branch(descriptor: BranchDescriptor) -> PartnerBranch:
    tasks: dict[str, BaseTask] = {}
    for step in descriptor.step_types:
        task = _import_instance(descriptor.tasks[step], BaseTask)
        if task.step_type != step:
            raise RegistryError(
                f"{descriptor.tasks[step]} handles '{task.step_type}', declared for '{step}'"
            )
        tasks[step] = task
    postprocessor = _import_instance(descriptor.postprocess, BasePostprocessor)

    try:
        plan = build_branch_plan(descriptor.dependency_map())
    except DAGError as exc:
        raise RegistryError(f"Invalid branch '{descriptor.partner_id}': {exc}") from exc

    logger.debug("Loaded partner %s: %s", descriptor.partner_id, plan.flat_order)
    return PartnerBranch(descriptor=descriptor, tasks=tasks, postprocessor=postprocessor, plan=plan)


def _import_instance(class_path: str, base: type) -> Any:
    """Import and instantiate a class from a dotted class path.

    Args:
        class_path: e.g. 'syndication.tasks.image_task.ImageWatermarkTask'
        base: Required base class.
    """
    parts = class_path.rsplit(".", 1)
    if len(parts) != 2:
        raise RegistryError(f"Invalid class path: {class_path}")
    module_path, class_name = parts

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise RegistryError(f"Cannot import module {module_path}: {exc}") from exc

    cls = getattr(module, class_name, None)
    if cls is None:
        raise RegistryError(f"Class {class_name} not found in {module_path}")

    if not isinstance(cls, type) or not issubclass(cls, base):
        raise RegistryError(f"{class_path} is not a {base.__name__} subclass")

    return cls()

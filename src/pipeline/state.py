# src/pipeline/state.py — v2
"""Mutable execution state: one ExecutionState per asset run.

Each branch owns its BranchRun; no branch writes to another's record.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from syndication.core.models import (
    Asset,
    BranchState,
    EntitlementDecision,
    ExecutionStatus,
    FinalReport,
    PartnerResult,
    ProcessingStepResult,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BranchRun(BaseModel):
    """Progress of one partner branch within an execution."""

    partner_id: str
    state: BranchState = "PENDING"
    task_states: dict[str, str] = Field(default_factory=dict)
    step_results: list[ProcessingStepResult] = Field(default_factory=list)
    failed_tasks: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    result: PartnerResult | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in ("SKIPPED", "JOINED", "FAILED")

    def mark(self, state: BranchState) -> None:
        self.state = state
        if state == "RUNNING":
            self.started_at = _now()
        elif self.is_terminal:
            self.finished_at = _now()


class ExecutionState(BaseModel):
    """Root unit of orchestration, one per asset.

    Lifecycle: RUNNING -> COMPLETE (with report) | FAILED (no report).
    Never resumed after a terminal status.
    """

    execution_id: str
    asset: Asset
    status: ExecutionStatus = "RUNNING"
    entitlement: EntitlementDecision = Field(default_factory=dict)
    branches: dict[str, BranchRun] = Field(default_factory=dict)
    report: FinalReport | None = None
    error: str | None = None
    started_at: datetime = Field(default_factory=_now)
    finished_at: datetime | None = None

    @property
    def asset_id(self) -> str:
        return self.asset.asset_id

    @property
    def is_terminal(self) -> bool:
        return self.status != "RUNNING"

    def branch(self, partner_id: str) -> BranchRun:
        """Return the BranchRun for a partner, creating it on first use."""
        if partner_id not in self.branches:
            self.branches[partner_id] = BranchRun(partner_id=partner_id)
        return self.branches[partner_id]

    def complete(self, report: FinalReport) -> None:
        self.status = "COMPLETE"
        self.report = report
        self.finished_at = _now()

    def fail(self, error: str) -> None:
        self.status = "FAILED"
        self.report = None
        self.error = error
        self.finished_at = _now()

    def summary(self) -> dict[str, Any]:
        """Compact view for logs and status queries."""
        return {
            "execution_id": self.execution_id,
            "asset_id": self.asset_id,
            "status": self.status,
            "branches": {pid: run.state for pid, run in self.branches.items()},
            "error": self.error,
        }

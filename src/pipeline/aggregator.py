# src/pipeline/aggregator.py — v1
"""Aggregator: order step results for postprocessing, reduce partner results.

Both reductions are independent of completion order: step results are
ordered Image, Metadata, Video and partner results follow declared partner
order, whatever order they arrived in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from syndication.core.models import (
    STEP_ORDER,
    FinalReport,
    PartnerResult,
    ProcessingStepResult,
)

logger = logging.getLogger(__name__)


def reduce_branch_results(
    results: Iterable[ProcessingStepResult],
) -> list[ProcessingStepResult]:
    """Return one branch's step results in stable Image, Metadata, Video order.

    Raises:
        ValueError: If two results share a step type.
    """
    by_type: dict[str, ProcessingStepResult] = {}
    for result in results:
        if result.type in by_type:
            raise ValueError(f"Duplicate {result.type} result for one branch")
        by_type[result.type] = result
    return [by_type[t] for t in STEP_ORDER if t in by_type]


def build_final_report(
    execution_id: str,
    asset_id: str,
    partner_ids: list[str],
    outcomes: Mapping[str, PartnerResult | BaseException],
) -> FinalReport:
    """Reduce branch outcomes into the final report.

    Every known partner appears exactly once, in declared order. A branch
    that raised instead of returning is recorded as ERROR, and so is a
    partner with no outcome at all.
    """
    partners: list[PartnerResult] = []
    for pid in partner_ids:
        outcome = outcomes.get(pid)
        if isinstance(outcome, PartnerResult):
            if outcome.provider != pid:
                outcome = outcome.model_copy(update={"provider": pid})
            partners.append(outcome)
        elif isinstance(outcome, BaseException):
            logger.error("Branch %s raised: %s", pid, outcome)
            partners.append(PartnerResult.error(pid, f"{type(outcome).__name__}: {outcome}"))
        else:
            partners.append(PartnerResult.error(pid, "Branch produced no result"))

    report = FinalReport(execution_id=execution_id, asset_id=asset_id, partners=partners)
    logger.info("Final report for %s: %s", asset_id, report.status_by_partner())
    return report

# src/reporting/logging_sink.py — v2
"""Reporting sink that writes final reports to the log."""

from __future__ import annotations

import logging

from syndication.core.models import FinalReport
from syndication.reporting.base_sink import BaseReportSink

logger = logging.getLogger(__name__)


class LoggingReportSink(BaseReportSink):
    """Log each report as structured data and keep the latest ones in memory."""

    def __init__(self, keep: int = 100) -> None:
        if keep < 1:
            raise ValueError("keep must be at least 1")
        self._keep = keep
        self.reports: list[FinalReport] = []

    async def deliver(self, report: FinalReport) -> None:
        logger.info(
            "Report for %s",
            report.asset_id,
            extra={"data": report.model_dump(mode="json", by_alias=True)},
        )
        self.reports.append(report)
        del self.reports[:-self._keep]

# src/reporting/base_sink.py — v1
"""Abstract reporting sink receiving final reports."""

from __future__ import annotations

from abc import ABC, abstractmethod

from syndication.core.models import FinalReport


class BaseReportSink(ABC):
    """Consumer of final reports (persistence, partner notification)."""

    @abstractmethod
    async def deliver(self, report: FinalReport) -> None:
        """Accept one final report. Failures never affect the execution."""

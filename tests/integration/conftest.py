# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

Wires the full service over the filesystem object store and the fake
transcode client from the root conftest. No Docker, no AWS.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from syndication.api.facade import SyndicationService, build_service
from syndication.reporting.logging_sink import LoggingReportSink


@dataclass
class Harness:
    service: SyndicationService
    sink: LoggingReportSink


@pytest.fixture
def make_service(settings, store, transcode_client):
    """Build a service; keyword arguments override settings fields."""

    def _make(**overrides) -> Harness:
        sink = LoggingReportSink()
        service = build_service(
            settings=settings.model_copy(update=overrides),
            object_store=store,
            transcode_client=transcode_client,
            sink=sink,
            configure_logging=False,
        )
        return Harness(service=service, sink=sink)

    return _make

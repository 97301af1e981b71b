# tests/unit/api/test_service_facade.py — v1
"""Tests for api/facade.py — build_service wiring."""

from __future__ import annotations

import pytest

from syndication.api.facade import SyndicationService, build_service
from syndication.pipeline.registry import RegistryError
from syndication.reporting.logging_sink import LoggingReportSink


@pytest.fixture
def service(settings, store, transcode_client):
    return build_service(
        settings=settings,
        object_store=store,
        transcode_client=transcode_client,
        configure_logging=False,
    )


class TestBuildService:
    def test_wiring(self, service):
        assert isinstance(service, SyndicationService)
        assert service.registry.partner_ids == ["ACE", "OtherProvider"]
        assert service.bridge.capacity == 768

    def test_enabled_partners(self, settings, store, transcode_client):
        settings = settings.model_copy(update={"partners_enabled": "ACE"})
        service = build_service(
            settings=settings, object_store=store, transcode_client=transcode_client,
            configure_logging=False,
        )
        assert service.registry.partner_ids == ["ACE"]

    def test_bad_partner_entry(self, settings, store, transcode_client):
        entries = [{"partner_id": "X", "tasks": {}, "postprocess": "a.B"}]
        with pytest.raises(RegistryError):
            build_service(
                settings=settings, object_store=store, transcode_client=transcode_client,
                partner_entries=entries, configure_logging=False,
            )

    def test_workflow_definition(self, service):
        doc = service.workflow_definition()
        assert doc["StartAt"] == "CheckPartnerEntitlement"
        assert doc["TimeoutSeconds"] == 3600

    @pytest.mark.asyncio
    async def test_upload_to_report(self, settings, store, transcode_client, seed_asset, s3_event):
        sink = LoggingReportSink()
        service = build_service(
            settings=settings, object_store=store, transcode_client=transcode_client,
            sink=sink, configure_logging=False,
        )
        await seed_asset()
        [execution_id] = await service.handle_upload_event(s3_event("A1/manifest.json"))

        await transcode_client.wait_for_jobs(1)
        outcome = await service.handle_transcode_event(await transcode_client.finish())
        assert outcome == "RESOLVED"

        state = await service.wait(execution_id)
        await service.orchestrator.drain()
        assert state.report.status_by_partner() == {"ACE": "PROCESS_OK", "OtherProvider": "IGNORED"}
        assert sink.reports == [state.report]

    @pytest.mark.asyncio
    async def test_unknown_status_ignored(self, service):
        event = {"detail": {"status": "SUBMITTED", "userMetadata": {}}}
        assert await service.handle_transcode_event(event) == "IGNORED"

# src/api/facade.py — v3
"""Public API facade: wire components and expose the two event handlers.

Usage:
    from syndication.api.facade import build_service
    service = build_service()
    await service.handle_upload_event(s3_event)
    await service.handle_transcode_event(job_state_change_event)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from syndication.callbacks.bridge import CallbackBridge
from syndication.config.settings import Settings
from syndication.logging.logger import setup_logging
from syndication.pipeline.branch_scheduler import BranchScheduler
from syndication.pipeline.entitlement import StaticEntitlementResolver
from syndication.pipeline.orchestrator import Orchestrator
from syndication.pipeline.registry import PartnerRegistry
from syndication.reporting.logging_sink import LoggingReportSink
from syndication.trigger.intake import IntakeTrigger

if TYPE_CHECKING:
    from syndication.callbacks.models import CallbackOutcome
    from syndication.callbacks.store import BaseCallbackStore
    from syndication.pipeline.entitlement import EntitlementRule
    from syndication.pipeline.state import ExecutionState
    from syndication.reporting.base_sink import BaseReportSink
    from syndication.storage.base_object_store import BaseObjectStore
    from syndication.transcode.base_client import BaseTranscodeClient

logger = logging.getLogger(__name__)


@dataclass
class SyndicationService:
    """Wired components of one running service."""

    settings: Settings
    registry: PartnerRegistry
    bridge: CallbackBridge
    orchestrator: Orchestrator
    trigger: IntakeTrigger

    async def handle_upload_event(self, event: dict[str, Any]) -> list[str]:
        """Handle an intake object-created notification."""
        return await self.trigger.handle_event(event)

    async def handle_transcode_event(self, event: dict[str, Any]) -> CallbackOutcome:
        """Handle a transcode job state change event."""
        return await self.bridge.handle_event(event)

    async def wait(self, execution_id: str) -> ExecutionState:
        return await self.orchestrator.wait(execution_id)

    def workflow_definition(self) -> dict[str, Any]:
        """State-language rendering of the configured workflow."""
        return self.registry.workflow(
            timeout_seconds=self.settings.execution_timeout_seconds,
            heartbeat_seconds=self.settings.video_heartbeat_timeout_seconds,
        ).to_definition()


def build_service(
    settings: Settings | None = None,
    object_store: BaseObjectStore | None = None,
    transcode_client: BaseTranscodeClient | None = None,
    sink: BaseReportSink | None = None,
    callback_store: BaseCallbackStore | None = None,
    entitlement_rules: list[EntitlementRule] | None = None,
    partner_entries: list[dict[str, Any]] | None = None,
    configure_logging: bool = True,
) -> SyndicationService:
    """Build a service from settings and optional collaborator overrides.

    Args:
        settings: Global settings. Loaded from .env if None.
        object_store: Object store. Built from settings if None.
        transcode_client: Transcode client. Built from settings if None.
        sink: Reporting sink. Defaults to LoggingReportSink.
        callback_store: Pending callback table. In-memory if None.
        entitlement_rules: Per-asset entitlement overrides.
        partner_entries: Branch descriptors. PARTNER_REGISTRY if None.
        configure_logging: Apply logging settings to the root logger.

    Raises:
        RegistryError: If a declared partner cannot be loaded.
    """
    settings = settings or Settings()
    if configure_logging:
        setup_logging(
            level=settings.log_level,
            log_format=settings.log_format,
            log_file=settings.log_file,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
        )

    if object_store is None:
        from syndication.storage.store_factory import create_object_store

        object_store = create_object_store(settings)
    if transcode_client is None:
        from syndication.transcode.client_factory import create_transcode_client

        transcode_client = create_transcode_client(settings)

    registry = PartnerRegistry(partner_entries)
    registry.load_all(enabled=settings.partners_enabled_list)

    bridge = CallbackBridge(
        store=callback_store,
        token_bytes=settings.callback_token_bytes,
        field_size=settings.callback_field_size,
        field_count=settings.callback_field_count,
        retention_seconds=settings.callback_retention_seconds,
    )
    scheduler = BranchScheduler(
        registry=registry,
        object_store=object_store,
        settings=settings,
        transcode_client=transcode_client,
        bridge=bridge,
    )
    resolver = StaticEntitlementResolver(
        policy=settings.entitlement_policy,
        partner_ids=registry.partner_ids,
        rules=entitlement_rules,
    )
    orchestrator = Orchestrator(
        resolver=resolver,
        scheduler=scheduler,
        bridge=bridge,
        sink=sink or LoggingReportSink(),
        timeout_seconds=settings.execution_timeout_seconds,
        name_prefix=settings.execution_name_prefix,
        history=settings.execution_history,
    )
    trigger = IntakeTrigger(
        object_store,
        orchestrator,
        settings.manifest_filename,
        source_bucket=settings.source_bucket,
    )

    logger.info("Service ready: partners=%s", registry.partner_ids)
    return SyndicationService(
        settings=settings,
        registry=registry,
        bridge=bridge,
        orchestrator=orchestrator,
        trigger=trigger,
    )

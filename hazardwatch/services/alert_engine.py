"""Alert engine.

Wires the alert pipeline together and is the single entry point for the
three kinds of input the service handles: feed pushes, escalation timer
expirations and operator actions.

Handlers for the same emergency id are serialized with a per-id
``asyncio.Lock``, so for one id the order is always
create -> (escalate) -> acknowledge | dismiss. Different ids proceed
concurrently and share only the settings registry, which hands out
immutable snapshots.

Escalation vs. acknowledgment: the scheduler removes a timer's entry
before calling back, and the callback below commits the ESCALATED
transition before its first await. An acknowledgment processed before
that point cancels the timer; one processed after it acknowledges the
already escalated emergency.
"""

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime

from hazardwatch.config import Settings, settings
from hazardwatch.core.alerting.enums import HistoryTransition, PermissionState
from hazardwatch.core.alerting.models import (
    Emergency,
    HistoryEntry,
    NotificationSettings,
)
from hazardwatch.logging_config import bind_alert_id, get_logger
from hazardwatch.schemas.feed import RawAlertEvent
from hazardwatch.schemas.notification_settings import NotificationSettingsUpdate
from hazardwatch.services.acknowledgment import (
    DEFAULT_ACKNOWLEDGED_BY,
    AcknowledgmentHandler,
)
from hazardwatch.services.active_emergencies import ActiveEmergencies
from hazardwatch.services.alert_normalizer import normalize_event
from hazardwatch.services.background import BackgroundTaskGroup
from hazardwatch.services.deduplicator import Deduplicator
from hazardwatch.services.dispatcher import NotificationDispatcher
from hazardwatch.services.escalation_scheduler import EscalationScheduler
from hazardwatch.services.event_broadcaster import EventBroadcaster
from hazardwatch.services.history_store import HistoryStore
from hazardwatch.services.notification_channels import (
    BroadcastSoundChannel,
    BroadcastVisualChannel,
    ChannelSet,
    WebhookPushChannel,
)
from hazardwatch.services.notification_settings import (
    SettingsRegistry,
    settings_from_config,
)
from hazardwatch.services.persistence import (
    DatabaseSink,
    MemorySink,
    PersistenceSink,
)

logger = get_logger(__name__)


class AlertEngine:
    """Hazard alert lifecycle: ingest, notify, escalate, acknowledge."""

    def __init__(
        self,
        channels: ChannelSet,
        sink: PersistenceSink,
        settings_registry: SettingsRegistry | None = None,
        history: HistoryStore | None = None,
        broadcaster: EventBroadcaster | None = None,
        emergency_types: list[str] | None = None,
        hazard_keywords: list[str] | None = None,
    ) -> None:
        self.channels = channels
        self.sink = sink
        self.settings_registry = settings_registry or SettingsRegistry()
        self.history_store = history or HistoryStore()
        self.broadcaster = broadcaster or EventBroadcaster()
        self._emergency_types = emergency_types
        self._hazard_keywords = hazard_keywords

        self.tasks = BackgroundTaskGroup()
        self.deduplicator = Deduplicator()
        self.active = ActiveEmergencies()
        self.dispatcher = NotificationDispatcher(
            channels=channels,
            settings_registry=self.settings_registry,
            sink=sink,
            history=self.history_store,
            tasks=self.tasks,
            broadcaster=self.broadcaster,
        )
        self.scheduler = EscalationScheduler(on_fire=self._on_escalation_due)
        self.acknowledgments = AcknowledgmentHandler(
            active=self.active,
            scheduler=self.scheduler,
            dispatcher=self.dispatcher,
            sink=sink,
            history=self.history_store,
            tasks=self.tasks,
            broadcaster=self.broadcaster,
        )
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_config(cls, config: Settings = settings) -> "AlertEngine":
        """Build an engine with the built-in channels and configured sink."""
        broadcaster = EventBroadcaster()
        channels = ChannelSet(
            visual=BroadcastVisualChannel(broadcaster),
            audible=BroadcastSoundChannel(broadcaster),
            push=WebhookPushChannel(
                config.push_webhook_url,
                timeout=config.push_timeout_seconds,
            ),
        )
        sink: PersistenceSink = (
            DatabaseSink() if config.persistence_enabled else MemorySink()
        )
        return cls(
            channels=channels,
            sink=sink,
            settings_registry=SettingsRegistry(settings_from_config(config)),
            history=HistoryStore(config.history_limit),
            broadcaster=broadcaster,
            emergency_types=list(config.emergency_types),
            hazard_keywords=list(config.hazard_keywords),
        )

    async def start(self) -> None:
        self.scheduler.start()
        logger.info("Alert engine started")

    async def shutdown(self) -> None:
        """Cancel pending escalations and wait for in-flight background work."""
        self.scheduler.shutdown()
        await self.dispatcher.drain()
        logger.info(
            "Alert engine stopped",
            active_emergencies=len(self.active),
        )

    async def ingest(self, raw: RawAlertEvent) -> Emergency | None:
        """Run one raw feed record through the pipeline.

        Non-hazard records and ids already processed are dropped.

        Args:
            raw: Record pushed by the sensor feed.

        Returns:
            The new ACTIVE Emergency, or None if the record was dropped.
        """
        with bind_alert_id(raw.id):
            emergency = normalize_event(
                raw,
                emergency_types=self._emergency_types,
                hazard_keywords=self._hazard_keywords,
            )
            if emergency is None:
                return None

            if not self.deduplicator.should_process(raw.id):
                logger.debug("Feed record already processed, ignoring", raw_id=raw.id)
                return None

            async with self._locks[emergency.id]:
                self.active.put(emergency)
                logger.info(
                    "Emergency created",
                    emergency_id=emergency.id,
                    segment=emergency.segment,
                    cause=emergency.cause,
                    raw_acknowledged=raw.acknowledged,
                )

                await self.dispatcher.dispatch(emergency, HistoryTransition.CREATED)
                self._arm_escalation(emergency.id)

            return emergency

    async def ingest_many(self, raws: Iterable[RawAlertEvent]) -> list[Emergency]:
        """Ingest records in order and return the ones that became emergencies."""
        accepted: list[Emergency] = []
        for raw in raws:
            emergency = await self.ingest(raw)
            if emergency is not None:
                accepted.append(emergency)
        return accepted

    async def acknowledge(
        self,
        emergency_id: str,
        acknowledged_by: str = DEFAULT_ACKNOWLEDGED_BY,
    ) -> Emergency | None:
        """Acknowledge an ACTIVE emergency. No-op (None) for unknown ids."""
        with bind_alert_id(emergency_id):
            if emergency_id not in self.active:
                return self.acknowledgments.acknowledge(emergency_id, acknowledged_by)
            async with self._locks[emergency_id]:
                return self.acknowledgments.acknowledge(emergency_id, acknowledged_by)

    async def dismiss(self, emergency_id: str) -> Emergency | None:
        """Dismiss a tracked emergency as a false alarm. No-op for unknown ids."""
        with bind_alert_id(emergency_id):
            if emergency_id not in self.active:
                return self.acknowledgments.dismiss(emergency_id)
            async with self._locks[emergency_id]:
                dismissed = self.acknowledgments.dismiss(emergency_id)
            if dismissed is not None:
                self._locks.pop(emergency_id, None)
            return dismissed

    def update_settings(
        self,
        updates: NotificationSettingsUpdate,
    ) -> NotificationSettings:
        """Apply an operator settings edit.

        Timers already armed keep the delay they were armed with.

        Raises:
            ValueError: If the edit would produce invalid settings.
        """
        return self.settings_registry.update(updates)

    async def request_channel_permission(self) -> PermissionState:
        return await self.settings_registry.request_channel_permission(
            self.channels.push
        )

    def notification_settings(self) -> NotificationSettings:
        return self.settings_registry.snapshot()

    def get_emergency(self, emergency_id: str) -> Emergency | None:
        return self.active.get(emergency_id)

    def active_emergencies(self) -> list[Emergency]:
        """Emergencies still tracked, ACTIVE and ACKNOWLEDGED, oldest first."""
        return self.active.values()

    def history(self) -> tuple[HistoryEntry, ...]:
        return self.history_store.entries()

    def is_escalation_armed(self, emergency_id: str) -> bool:
        return self.scheduler.is_armed(emergency_id)

    def _arm_escalation(self, emergency_id: str) -> None:
        emergency = self.active.get(emergency_id)
        if emergency is None or not emergency.is_active or emergency.escalated:
            return

        snapshot = self.settings_registry.snapshot()
        if not snapshot.escalation_enabled:
            logger.debug(
                "Escalation disabled, no timer armed",
                emergency_id=emergency_id,
            )
            return

        if not self.scheduler.running:
            logger.warning(
                "Escalation scheduler not running, no timer armed",
                emergency_id=emergency_id,
            )
            return

        self.scheduler.arm(emergency, snapshot.escalation_delay_seconds)

    async def _on_escalation_due(self, armed: Emergency) -> None:
        # Commit the transition before the first await.
        current = self.active.get(armed.id)
        if current is None or not current.is_active or current.escalated:
            logger.info(
                "Escalation skipped, emergency no longer active",
                emergency_id=armed.id,
                status=current.status.value if current else None,
            )
            return

        escalated = current.mark_escalated(datetime.now(UTC))
        self.active.put(escalated)
        logger.warning(
            "Emergency escalated, no acknowledgment received",
            emergency_id=escalated.id,
            segment=escalated.segment,
            age_seconds=round(escalated.age_seconds(), 1),
        )

        async with self._locks[escalated.id]:
            await self.dispatcher.dispatch(escalated, HistoryTransition.ESCALATED)

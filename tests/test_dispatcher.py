"""Tests for the notification dispatcher."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from hazardwatch.core.alerting.enums import (
    Channel,
    EmergencySeverity,
    HistoryTransition,
    PermissionState,
    SoundCue,
)
from hazardwatch.core.alerting.models import Contact, NotificationSettings
from hazardwatch.schemas.notification_settings import NotificationSettingsUpdate
from hazardwatch.services.background import BackgroundTaskGroup
from hazardwatch.services.dispatcher import NotificationDispatcher, build_payload
from hazardwatch.services.event_broadcaster import (
    EMERGENCY_CREATED,
    EMERGENCY_ESCALATED,
    EventBroadcaster,
)
from hazardwatch.services.history_store import HistoryStore
from hazardwatch.services.notification_channels import ChannelError
from hazardwatch.services.notification_settings import SettingsRegistry
from hazardwatch.services.persistence import MemorySink, PersistenceError
from tests.fakes import FailingSink, make_channels, make_emergency

ALL_CHANNELS = (
    Channel.VISUAL_POPUP,
    Channel.AUDIBLE_CUE,
    Channel.PUSH_NOTIFICATION,
)


def make_dispatcher(
    channels=None,
    sink=None,
    notification_settings: NotificationSettings | None = None,
):
    channels = channels or make_channels()
    broadcaster = EventBroadcaster()
    dispatcher = NotificationDispatcher(
        channels=channels,
        settings_registry=SettingsRegistry(notification_settings),
        sink=sink if sink is not None else MemorySink(),
        history=HistoryStore(),
        tasks=BackgroundTaskGroup(),
        broadcaster=broadcaster,
    )
    return dispatcher, channels, broadcaster


class TestBuildPayload:
    """Tests for payload construction."""

    def test_initial_payload(self):
        payload = build_payload(make_emergency())

        assert "FIRE EMERGENCY ALERT" in payload.title
        assert "Kitchen" in payload.body
        assert "Gas Leak" in payload.body
        assert "ESCALATED" not in payload.body
        assert payload.tag == "1"
        assert payload.require_interaction is True
        assert [a.action for a in payload.actions] == ["acknowledge", "dispatch"]

    def test_escalated_payload_carries_marker(self):
        escalated = make_emergency().mark_escalated(datetime.now(UTC))

        payload = build_payload(escalated)

        assert "ESCALATED FIRE EMERGENCY" in payload.title
        assert "Kitchen - ESCALATED" in payload.body
        assert payload.severity == EmergencySeverity.CRITICAL_ESCALATED
        assert escalated.segment == "Kitchen"


class TestDispatch:
    """Tests for NotificationDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_fires_every_enabled_channel_once(self):
        dispatcher, channels, _ = make_dispatcher()

        outcome = await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert outcome.scheduled == ALL_CHANNELS
        assert outcome.skipped == ()
        assert len(channels.visual.shown) == 1
        assert channels.audible.played == [SoundCue.HAZARD]
        assert len(channels.push.sent) == 1

    @pytest.mark.asyncio
    async def test_replay_at_same_severity_is_noop(self):
        dispatcher, channels, _ = make_dispatcher()
        emergency = make_emergency()

        await dispatcher.dispatch(emergency)
        outcome = await dispatcher.dispatch(emergency)
        await dispatcher.drain()

        assert outcome.scheduled == ()
        assert set(outcome.skipped) == set(ALL_CHANNELS)
        assert len(channels.visual.shown) == 1
        assert len(channels.push.sent) == 1

    @pytest.mark.asyncio
    async def test_escalation_notifies_again(self):
        dispatcher, channels, _ = make_dispatcher()
        emergency = make_emergency()

        await dispatcher.dispatch(emergency)
        escalated = emergency.mark_escalated(datetime.now(UTC))
        outcome = await dispatcher.dispatch(escalated, HistoryTransition.ESCALATED)
        await dispatcher.drain()

        assert outcome.scheduled == ALL_CHANNELS
        assert len(channels.visual.shown) == 2
        assert "Kitchen - ESCALATED" in channels.visual.shown[1].body
        assert dispatcher.notified_channels(
            "1", EmergencySeverity.CRITICAL_ESCALATED
        ) == frozenset(ALL_CHANNELS)

    @pytest.mark.asyncio
    async def test_disabled_channel_is_skipped(self):
        dispatcher, channels, _ = make_dispatcher(
            notification_settings=NotificationSettings(audible_cue=False)
        )

        outcome = await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert Channel.AUDIBLE_CUE in outcome.skipped
        assert channels.audible.played == []

    @pytest.mark.asyncio
    async def test_push_without_permission_is_skipped_silently(self):
        channels = make_channels(push_permission=PermissionState.DENIED)
        dispatcher, _, _ = make_dispatcher(channels=channels)

        outcome = await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert Channel.PUSH_NOTIFICATION in outcome.skipped
        assert channels.push.sent == []
        assert len(channels.visual.shown) == 1

    @pytest.mark.asyncio
    async def test_push_permission_query_failure_treated_as_denied(self):
        channels = make_channels()
        channels.push.query_permission = AsyncMock(side_effect=RuntimeError("boom"))
        dispatcher, _, _ = make_dispatcher(channels=channels)

        outcome = await dispatcher.dispatch(make_emergency())

        assert Channel.PUSH_NOTIFICATION in outcome.skipped

    @pytest.mark.asyncio
    async def test_channel_failure_does_not_block_siblings(self):
        channels = make_channels(
            visual_error=ChannelError("display unavailable"),
            audible_error=RuntimeError("audio device gone"),
        )
        dispatcher, _, _ = make_dispatcher(channels=channels)

        outcome = await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert outcome.scheduled == ALL_CHANNELS
        assert len(channels.push.sent) == 1

    @pytest.mark.asyncio
    async def test_persists_with_settings_snapshot(self):
        sink = MemorySink()
        contacts = (Contact(name="Ops", address="ops@example.com"),)
        dispatcher, _, _ = make_dispatcher(
            sink=sink,
            notification_settings=NotificationSettings(
                sms_alerts=True,
                contacts=contacts,
            ),
        )

        await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert len(sink.emergencies) == 1
        record = sink.emergencies[0]
        assert record["id"] == "1"
        assert record["type"] == "FIRE_EMERGENCY"
        assert record["notificationChannels"] == {
            "browser": True,
            "sound": True,
            "push": True,
            "email": False,
            "sms": True,
        }
        assert record["contacts"] == [
            {"name": "Ops", "address": "ops@example.com", "phone": None}
        ]

    @pytest.mark.asyncio
    async def test_settings_change_after_dispatch_not_seen(self):
        sink = MemorySink()
        dispatcher, _, _ = make_dispatcher(sink=sink)

        await dispatcher.dispatch(make_emergency())
        dispatcher._settings.update(NotificationSettingsUpdate(visual_popup=False))
        await dispatcher.drain()

        assert sink.emergencies[0]["notificationChannels"]["browser"] is True

    @pytest.mark.asyncio
    async def test_persistence_failure_is_not_surfaced(self):
        sink = FailingSink(PersistenceError("database down"))
        dispatcher, channels, _ = make_dispatcher(sink=sink)

        outcome = await dispatcher.dispatch(make_emergency())
        await dispatcher.drain()

        assert sink.attempts == 1
        assert outcome.scheduled == ALL_CHANNELS
        assert len(channels.visual.shown) == 1

    @pytest.mark.asyncio
    async def test_records_history_and_publishes(self):
        dispatcher, _, broadcaster = make_dispatcher()
        queue = broadcaster.subscribe()
        emergency = make_emergency()

        await dispatcher.dispatch(emergency)
        await dispatcher.dispatch(
            emergency.mark_escalated(datetime.now(UTC)),
            HistoryTransition.ESCALATED,
        )

        transitions = [e.transition for e in dispatcher._history.entries()]
        assert transitions == [HistoryTransition.ESCALATED, HistoryTransition.CREATED]
        assert queue.get_nowait().event_type == EMERGENCY_CREATED
        assert queue.get_nowait().event_type == EMERGENCY_ESCALATED

    @pytest.mark.asyncio
    async def test_forget_clears_dispatch_record(self):
        dispatcher, _, _ = make_dispatcher()

        await dispatcher.dispatch(make_emergency())
        dispatcher.forget("1")

        notified = dispatcher.notified_channels("1", EmergencySeverity.CRITICAL)
        assert notified == frozenset()


class TestPlayCue:
    """Tests for NotificationDispatcher.play_cue."""

    @pytest.mark.asyncio
    async def test_plays_when_enabled(self):
        dispatcher, channels, _ = make_dispatcher()

        assert dispatcher.play_cue(SoundCue.ACKNOWLEDGMENT) is True
        await dispatcher.drain()

        assert channels.audible.played == [SoundCue.ACKNOWLEDGMENT]

    @pytest.mark.asyncio
    async def test_skipped_when_disabled(self):
        dispatcher, channels, _ = make_dispatcher(
            notification_settings=NotificationSettings(audible_cue=False)
        )

        assert dispatcher.play_cue(SoundCue.ACKNOWLEDGMENT) is False
        await dispatcher.drain()

        assert channels.audible.played == []

    @pytest.mark.asyncio
    async def test_playback_failure_is_contained(self):
        channels = make_channels(audible_error=ChannelError("no speaker"))
        dispatcher, _, _ = make_dispatcher(channels=channels)

        dispatcher.play_cue(SoundCue.ACKNOWLEDGMENT)
        await dispatcher.drain()

        assert dispatcher._tasks.pending == 0

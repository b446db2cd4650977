"""Tests for the alert normalizer."""

from datetime import UTC, datetime

from hazardwatch.core.alerting.constants import (
    EMERGENCY_TYPE,
    UNKNOWN_CAUSE,
    UNKNOWN_SEGMENT,
)
from hazardwatch.core.alerting.enums import EmergencySeverity, EmergencyStatus
from hazardwatch.schemas.feed import RawAlertEvent
from hazardwatch.services.alert_normalizer import is_hazard_event, normalize_event
from tests.fakes import make_raw

TYPES = ["EMERGENCY", "ARDUINO_EMERGENCY"]
KEYWORDS = ["Fire", "Flame", "Gas", "Smoke"]


def normalize(raw, **kwargs):
    return normalize_event(
        raw,
        emergency_types=TYPES,
        hazard_keywords=KEYWORDS,
        **kwargs,
    )


class TestIsHazardEvent:
    """Tests for the permissive classifier."""

    def test_keyword_in_cause_qualifies(self):
        raw = make_raw(segment=None, cause="Fire detected near stove")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is True

    def test_segment_alone_qualifies(self):
        raw = make_raw(segment="Warehouse", cause="Door sensor tripped")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is True

    def test_no_keyword_and_no_segment_is_dropped(self):
        raw = make_raw(segment=None, cause="Door sensor tripped")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is False

    def test_empty_segment_does_not_qualify(self):
        raw = make_raw(segment="", cause="Door sensor tripped")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is False

    def test_non_emergency_type_is_dropped(self):
        raw = make_raw(raw_type="INFO", segment="Kitchen", cause="Fire")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is False

    def test_arduino_emergency_type_qualifies(self):
        raw = make_raw(raw_type="ARDUINO_EMERGENCY", segment=None, cause="Flame")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is True

    def test_keyword_match_is_case_sensitive(self):
        raw = make_raw(segment=None, cause="small fire in bin")
        assert is_hazard_event(raw, TYPES, KEYWORDS) is False

    def test_acknowledged_flag_does_not_affect_classification(self):
        raw = make_raw(cause="Smoke", acknowledged=True)
        assert is_hazard_event(raw, TYPES, KEYWORDS) is True


class TestNormalizeEvent:
    """Tests for Emergency construction."""

    def test_builds_active_critical_emergency(self):
        now = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)

        emergency = normalize(make_raw(), now=now)

        assert emergency is not None
        assert emergency.id == "1"
        assert emergency.segment == "Kitchen"
        assert emergency.cause == "Gas Leak"
        assert emergency.type == EMERGENCY_TYPE
        assert emergency.status == EmergencyStatus.ACTIVE
        assert emergency.severity == EmergencySeverity.CRITICAL
        assert emergency.escalated is False
        assert emergency.created_at == now
        assert emergency.acknowledged_at is None
        assert emergency.escalated_at is None

    def test_missing_cause_uses_placeholder(self):
        emergency = normalize(make_raw(cause=None))
        assert emergency.cause == UNKNOWN_CAUSE

    def test_missing_segment_uses_placeholder(self):
        emergency = normalize(make_raw(segment=None, cause="Gas Leak"))
        assert emergency.segment == UNKNOWN_SEGMENT

    def test_non_hazard_returns_none(self):
        assert normalize(make_raw(raw_type="STATUS")) is None

    def test_unknown_feed_fields_are_ignored(self):
        raw = RawAlertEvent.model_validate(
            {
                "id": "abc",
                "type": "EMERGENCY",
                "segment": "Lab",
                "cause": "Smoke",
                "temperature": 81.5,
                "device": {"serial": "X1"},
            }
        )

        emergency = normalize(raw)

        assert emergency is not None
        assert emergency.id == "abc"

    def test_defaults_come_from_settings(self):
        # Settings defaults include EMERGENCY and the Gas keyword
        emergency = normalize_event(make_raw(segment=None))
        assert emergency is not None

from datetime import timedelta

import pytest

from zoneconf.classification.classifier import (
    score_to_level,
    determine_zone_state,
    hazard_expired,
    ZoneStateClassifier,
)
from zoneconf.domain.models import ConfidenceLevel, ZoneState


class TestScoreToLevel:
    """Level is a pure step function of score."""

    @pytest.mark.parametrize("score, level", [
        (100.0, ConfidenceLevel.HIGH),
        (80.0, ConfidenceLevel.HIGH),
        (79.9, ConfidenceLevel.MEDIUM),
        (60.0, ConfidenceLevel.MEDIUM),
        (59.9, ConfidenceLevel.LOW),
        (40.0, ConfidenceLevel.LOW),
        (39.9, ConfidenceLevel.DEGRADED),
        (20.0, ConfidenceLevel.DEGRADED),
        (19.9, ConfidenceLevel.UNKNOWN),
        (0.0, ConfidenceLevel.UNKNOWN),
    ])
    def test_boundaries(self, score, level):
        assert score_to_level(score) is level

    def test_79_is_not_high(self):
        assert score_to_level(79) is not ConfidenceLevel.HIGH


class TestZoneState:
    """Hazard beats everything, then low score, then anomaly."""

    def test_hazard_forces_offline_at_any_score(self):
        for score in (20.0, 55.0, 95.0, 100.0):
            assert determine_zone_state(score, True, False) is ZoneState.OFFLINE
            assert determine_zone_state(score, True, True) is ZoneState.OFFLINE

    def test_anomaly_degrades(self):
        assert determine_zone_state(95.0, False, True) is ZoneState.DEGRADED

    def test_below_degraded_threshold(self):
        assert determine_zone_state(19.0, False, False) is ZoneState.DEGRADED

    def test_low_score_alone_stays_active(self):
        assert determine_zone_state(25.0, False, False) is ZoneState.ACTIVE

    def test_clean_zone_is_active(self):
        assert determine_zone_state(60.0, False, False) is ZoneState.ACTIVE


class TestReclassify:
    """Read-side pass: lapse hazards and refresh derived fields."""

    def test_expired_hazard_cleared_without_new_submissions(self, now, make_state):
        current = make_state(
            score=70.0, state="OFFLINE",
            hazard_active=True, hazard_expires_at=now - timedelta(seconds=1), hazard_reason="riot",
        )
        result = ZoneStateClassifier().reclassify(current, now)
        assert result.hazard_active is False
        assert result.hazard_expires_at is None
        assert result.hazard_reason is None
        assert result.state is ZoneState.ACTIVE
        assert result.score == 70.0
        assert result.updated_at == now

    def test_unchanged_state_returned_as_is(self, now, make_state):
        current = make_state(score=70.0, level="MEDIUM", state="ACTIVE")
        assert ZoneStateClassifier().reclassify(current, now) is current

    def test_live_hazard_kept(self, now, make_state):
        current = make_state(
            score=70.0, state="OFFLINE",
            hazard_active=True, hazard_expires_at=now + timedelta(days=1),
        )
        assert ZoneStateClassifier().reclassify(current, now) is current

    def test_stale_level_corrected(self, now, make_state):
        current = make_state(score=85.0, level="LOW", state="ACTIVE")
        assert ZoneStateClassifier().reclassify(current, now).level is ConfidenceLevel.HIGH


def test_hazard_expired_predicate(now):
    assert hazard_expired(True, now - timedelta(seconds=1), now) is True
    assert hazard_expired(True, now, now) is False
    assert hazard_expired(False, now - timedelta(days=1), now) is False
    assert hazard_expired(True, None, now) is False

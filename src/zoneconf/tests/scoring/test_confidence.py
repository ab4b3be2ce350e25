import itertools
from datetime import timedelta

import pytest

from zoneconf.config.settings import ConfidenceSettings, DecaySettings
from zoneconf.domain.exceptions import (
    ConfigurationError,
    InvalidStateError,
    ParameterValidationError,
    ValidationError,
)
from zoneconf.domain.models import ConfidenceLevel, IntelType, ZoneState, PRICE_DEVIATION
from zoneconf.scoring.confidence import ConfidenceComposer
from zoneconf.scoring.trust import trust_weight_for_karma


@pytest.fixture
def composer():
    return ConfidenceComposer()


class TestNewZone:
    """First update for a zone with no stored state."""

    def test_verification_from_trusted_user(self, composer, now, make_intel):
        intel = make_intel(IntelType.VERIFICATION, trust_weight=trust_weight_for_karma(600))
        update = composer.compose(None, intel, [intel], 0, False, now=now)

        assert update.factors.base_score == 50.0
        assert update.factors.time_decay == 0.0
        assert update.factors.intel_boost == pytest.approx(9.0)
        assert update.state.score == 59.0
        # 59 sits below the MEDIUM threshold of 60
        assert update.state.level is ConfidenceLevel.LOW
        assert update.state.state is ZoneState.ACTIVE
        assert update.state.last_verified_at == now
        assert update.state.last_intel_at == now
        assert update.state.verification_count == 1
        assert update.state.intel_count_24h == 1

    def test_default_without_intel_needs_zone_id(self, composer, now):
        with pytest.raises(ParameterValidationError):
            composer.compose(None, None, [], 0, False, now=now)

    def test_default_without_intel(self, composer, now):
        update = composer.compose(None, None, [], 0, False, now=now, zone_id="zone-z")
        assert update.state.zone_id == "zone-z"
        assert update.state.score == 50.0
        assert update.state.level is ConfidenceLevel.MEDIUM
        assert update.state.intel_count_24h == 0


class TestHazardScenario:

    def test_second_hazard_report_forces_offline(self, composer, now, make_state, make_intel):
        current = make_state(score=90.0, level="HIGH", last_intel_at=now - timedelta(hours=2))
        first = make_intel(IntelType.HAZARD_REPORT, created_at=now - timedelta(hours=2),
                           data={"hazard_type": "flooding"})
        second = make_intel(IntelType.HAZARD_REPORT, created_at=now)

        update = composer.compose(current, second, [second, first], 2, False, now=now)

        assert update.factors.hazard_penalty == 30.0
        assert update.factors.intel_boost == 0.0
        assert update.state.score == 60.0
        assert update.state.level is ConfidenceLevel.MEDIUM
        assert update.state.hazard_active is True
        assert update.state.state is ZoneState.OFFLINE
        assert update.state.hazard_expires_at == now + timedelta(days=7)
        assert update.state.hazard_reason == "flooding"

    def test_first_hazard_report_does_not_activate(self, composer, now, make_state, make_intel):
        current = make_state(score=70.0, last_intel_at=now - timedelta(hours=1))
        intel = make_intel(IntelType.HAZARD_REPORT)
        update = composer.compose(current, intel, [intel], 1, False, now=now)
        assert update.state.hazard_active is False
        assert update.state.score == 70.0

    def test_high_score_with_hazard_is_offline(self, composer, now, make_state):
        current = make_state(
            score=95.0, level="HIGH", state="OFFLINE", last_intel_at=now - timedelta(hours=1),
            hazard_active=True, hazard_expires_at=now + timedelta(days=1),
        )
        update = composer.compose(current, None, [], 0, False, now=now)
        assert update.state.level is ConfidenceLevel.HIGH
        assert update.state.state is ZoneState.OFFLINE

    def test_expired_hazard_cleared_on_update(self, composer, now, make_state, make_intel):
        current = make_state(
            score=60.0, state="OFFLINE", last_intel_at=now - timedelta(hours=1),
            hazard_active=True, hazard_expires_at=now - timedelta(hours=1), hazard_reason="riot",
        )
        intel = make_intel(IntelType.QUIET_CONFIRMED)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.state.hazard_active is False
        assert update.state.hazard_expires_at is None
        assert update.state.hazard_reason is None
        assert update.state.state is ZoneState.ACTIVE
        assert update.factors.hazard_penalty == 0.0


class TestAnomaly:

    def test_anomaly_sets_reason_and_penalty(self, composer, now, make_state, make_intel):
        current = make_state(score=85.0, level="HIGH", last_intel_at=now - timedelta(hours=1))
        intel = make_intel(IntelType.PRICE_SUBMISSION, trust_weight=0.3,
                           data={"item": "beer", "price": 20})
        update = composer.compose(current, intel, [intel], 0, True, now=now)
        assert update.factors.anomaly_penalty == 10.0
        assert update.state.anomaly_detected is True
        assert update.state.anomaly_reason == PRICE_DEVIATION
        # 85 + 1.5 - 10
        assert update.state.score == 76.5
        assert update.state.level is ConfidenceLevel.MEDIUM
        assert update.state.state is ZoneState.DEGRADED

    def test_high_level_but_degraded_state(self, composer, now, make_state, make_intel):
        current = make_state(score=100.0, level="HIGH", last_intel_at=now - timedelta(hours=1))
        intel = make_intel(IntelType.PRICE_SUBMISSION, data={"item": "beer", "price": 20})
        update = composer.compose(current, intel, [intel], 0, True, now=now)
        assert update.state.level is ConfidenceLevel.HIGH
        assert update.state.state is ZoneState.DEGRADED

    def test_clean_update_clears_sticky_anomaly(self, composer, now, make_state, make_intel):
        current = make_state(
            score=70.0, state="DEGRADED", last_intel_at=now - timedelta(hours=1),
            anomaly_detected=True, anomaly_reason=PRICE_DEVIATION,
        )
        intel = make_intel(IntelType.VERIFICATION)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.state.anomaly_detected is False
        assert update.state.anomaly_reason is None
        assert update.state.state is ZoneState.ACTIVE


class TestDecayAndCounters:

    def test_existing_zone_without_intel_decays_flat(self, composer, now, make_state):
        current = make_state(score=50.0)
        update = composer.compose(current, None, [], 0, False, now=now)
        assert update.factors.time_decay == pytest.approx(2.0)
        assert update.state.score == 48.0
        assert update.state.intel_count_24h == 0
        assert update.state.last_intel_at is None

    def test_decay_from_pre_update_state(self, composer, now, make_state, make_intel):
        current = make_state(score=70.0, last_intel_at=now - timedelta(days=3))
        intel = make_intel(IntelType.QUIET_CONFIRMED, trust_weight=1.0)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.factors.time_decay == pytest.approx(4.0)
        assert update.factors.intel_boost == pytest.approx(4.0)
        assert update.state.score == 70.0
        assert update.state.last_intel_at == now

    def test_non_verification_keeps_last_verified(self, composer, now, make_state, make_intel):
        verified = now - timedelta(hours=5)
        current = make_state(score=70.0, last_intel_at=verified, last_verified_at=verified,
                             verification_count=4)
        intel = make_intel(IntelType.CROWD_SURGE)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.state.last_verified_at == verified
        assert update.state.verification_count == 4
        assert update.state.intel_count_24h == 1

    def test_older_submission_does_not_move_timestamps_back(self, composer, now, make_state, make_intel):
        current = make_state(score=70.0, last_intel_at=now, last_verified_at=now)
        late = make_intel(IntelType.VERIFICATION, created_at=now - timedelta(hours=3))
        update = composer.compose(current, late, [late], 0, False, now=now)
        assert update.state.last_intel_at == now
        assert update.state.last_verified_at == now
        assert update.state.verification_count == 1

    def test_diminishing_uses_current_count(self, composer, now, make_state, make_intel):
        current = make_state(score=50.0, last_intel_at=now, intel_count_24h=10)
        intel = make_intel(IntelType.VERIFICATION, trust_weight=1.0)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.factors.intel_boost == pytest.approx(7.5 * 0.2)

    def test_daily_boost_cap(self, composer, now, make_state, make_intel):
        current = make_state(score=50.0, last_intel_at=now, boost_24h=27.0)
        intel = make_intel(IntelType.VERIFICATION, trust_weight=1.5)
        update = composer.compose(current, intel, [intel], 0, False, now=now)
        assert update.factors.intel_boost == pytest.approx(3.0)
        assert update.state.boost_24h == pytest.approx(30.0)

        again = composer.compose(update.state, make_intel(IntelType.VERIFICATION), [], 0, False, now=now)
        assert again.factors.intel_boost == 0.0

    def test_conflict_count_recorded(self, composer, now, make_state, make_intel):
        current = make_state(score=70.0, last_intel_at=now)
        quiet = make_intel(IntelType.QUIET_CONFIRMED, created_at=now - timedelta(hours=1))
        surge = make_intel(IntelType.CROWD_SURGE)
        update = composer.compose(current, surge, [quiet], 0, False, now=now)
        assert update.state.conflict_count == 1
        assert update.factors.conflict_penalty == 0.0


class TestClamp:
    """No input combination escapes [floor, 100]."""

    def test_repeated_max_penalties_hold_floor(self, now, make_state, make_intel):
        composer = ConfidenceComposer()
        state = make_state(score=21.0, level="DEGRADED", last_intel_at=now - timedelta(days=40))
        t = now
        for _ in range(5):
            t += timedelta(days=1)
            intel = make_intel(IntelType.HAZARD_REPORT, created_at=t)
            update = composer.compose(state, intel, [intel], 5, True, now=t)
            state = update.state
            assert 20.0 <= state.score <= 100.0
        assert state.score == 20.0

    def test_repeated_boosts_hold_ceiling(self, now, make_state, make_intel):
        composer = ConfidenceComposer()
        state = make_state(score=99.0, level="HIGH", last_intel_at=now)
        for i in range(20):
            intel = make_intel(IntelType.VERIFICATION, trust_weight=1.5)
            state = composer.compose(state, intel, [intel], 0, False, now=now).state
            assert state.score <= 100.0
        assert state.score == 100.0

    def test_adversarial_grid(self, now, make_state, make_intel):
        composer = ConfidenceComposer()
        scores = [20.0, 35.5, 60.0, 99.9, 100.0]
        ages = [None, timedelta(0), timedelta(days=2), timedelta(days=400)]
        for score, age, hazards, anomaly, weight in itertools.product(
            scores, ages, [0, 2, 50], [False, True], [0.3, 1.5],
        ):
            last = None if age is None else now - age
            current = make_state(score=score, last_intel_at=last)
            intel = make_intel(IntelType.VERIFICATION, trust_weight=weight)
            update = composer.compose(current, intel, [intel], hazards, anomaly, now=now)
            assert 20.0 <= update.state.score <= 100.0
            assert 20.0 <= update.factors.final_score <= 100.0


class TestFailFast:

    def test_out_of_range_state_rejected(self, composer, now, make_state):
        with pytest.raises(InvalidStateError):
            composer.compose(make_state(score=150.0), None, [], 0, False, now=now)

    def test_negative_counter_rejected(self, composer, now, make_state):
        with pytest.raises(InvalidStateError):
            composer.compose(make_state(intel_count_24h=-1), None, [], 0, False, now=now)

    def test_wrong_zone_rejected(self, composer, now, make_state, make_intel):
        with pytest.raises(ValidationError):
            composer.compose(make_state(), make_intel(zone_id="zone-b"), [], 0, False, now=now)

    def test_negative_hazard_count_rejected(self, composer, now, make_state):
        with pytest.raises(ParameterValidationError):
            composer.compose(make_state(), None, [], -1, False, now=now)

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceComposer(ConfidenceSettings(decay=DecaySettings(rate_per_day=-1)))


def test_rerun_is_idempotent(composer, now, make_state, make_intel):
    current = make_state(score=66.6, last_intel_at=now - timedelta(days=2))
    intel = make_intel(IntelType.PRICE_SUBMISSION, data={"item": "coffee", "price": 3})
    a = composer.compose(current, intel, [intel], 0, False, now=now)
    b = composer.compose(current, intel, [intel], 0, False, now=now)
    assert a == b

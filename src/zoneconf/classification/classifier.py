"""Score to confidence level and zone operational state."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE, LevelThresholds
from zoneconf.domain.models import ConfidenceLevel, ZoneState, ZoneConfidenceState
from zoneconf.utils.clock import as_utc

logger = logging.getLogger(__name__)

def hazard_expired(
    hazard_active: bool,
    hazard_expires_at: Optional[datetime],
    now: datetime,
) -> bool:
    return bool(hazard_active and hazard_expires_at is not None
                and as_utc(hazard_expires_at) < as_utc(now))

def score_to_level(
    score: float,
    *,
    thresholds: LevelThresholds = DEFAULT_CONFIDENCE.thresholds,
) -> ConfidenceLevel:
    if score >= thresholds.high:
        return ConfidenceLevel.HIGH
    if score >= thresholds.medium:
        return ConfidenceLevel.MEDIUM
    if score >= thresholds.low:
        return ConfidenceLevel.LOW
    if score >= thresholds.degraded:
        return ConfidenceLevel.DEGRADED
    return ConfidenceLevel.UNKNOWN

def determine_zone_state(
    score: float,
    hazard_active: bool,
    anomaly_detected: bool,
    *,
    thresholds: LevelThresholds = DEFAULT_CONFIDENCE.thresholds,
) -> ZoneState:
    """First matching rule wins: hazard, then sub-degraded score, then anomaly."""
    if hazard_active:
        return ZoneState.OFFLINE
    if score < thresholds.degraded:
        return ZoneState.DEGRADED
    if anomaly_detected:
        return ZoneState.DEGRADED
    return ZoneState.ACTIVE


class ZoneStateClassifier:
    """Derives `level` and `state`; also used as the read-side reclassification pass."""

    def __init__(self, config: ConfidenceSettings = DEFAULT_CONFIDENCE):
        self.config = config

    def level(self, score: float) -> ConfidenceLevel:
        return score_to_level(score, thresholds=self.config.thresholds)

    def state(self, score: float, hazard_active: bool, anomaly_detected: bool) -> ZoneState:
        return determine_zone_state(
            score, hazard_active, anomaly_detected, thresholds=self.config.thresholds
        )

    def reclassify(self, current: ZoneConfidenceState, now: datetime) -> ZoneConfidenceState:
        """
        Clear a lapsed hazard and recompute the derived fields.

        Returns `current` itself when nothing changes.
        """
        hazard_active = current.hazard_active
        expires_at = current.hazard_expires_at
        reason = current.hazard_reason
        if hazard_expired(hazard_active, expires_at, now):
            logger.info("Hazard on zone %s expired at %s", current.zone_id, expires_at)
            hazard_active, expires_at, reason = False, None, None

        level = self.level(current.score)
        state = self.state(current.score, hazard_active, current.anomaly_detected)
        if (hazard_active, level, state) == (current.hazard_active, current.level, current.state):
            return current
        return replace(
            current,
            level=level,
            state=state,
            hazard_active=hazard_active,
            hazard_expires_at=expires_at,
            hazard_reason=reason,
            updated_at=as_utc(now),
        )

"""Core confidence composition logic."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from zoneconf.classification.classifier import ZoneStateClassifier
from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.domain.exceptions import ParameterValidationError, ValidationError
from zoneconf.domain.models import (
    IntelSubmission,
    ZoneConfidenceState,
    PRICE_DEVIATION,
)
from zoneconf.utils.clock import as_utc

from .decay import calculate_time_decay, calculate_intel_boost, clamp_score, round_score
from .detectors import (
    detect_conflicts,
    conflict_penalty,
    aggregate_hazard,
    latest_hazard_reason,
)
from .models import ConfidenceFactors, ConfidenceUpdate

logger = logging.getLogger(__name__)

def _later(a: Optional[datetime], b: datetime) -> datetime:
    return b if a is None or b > a else a

class ConfidenceComposer:
    """Combines decay, boost and penalties into a new zone state.

    Pure: no I/O and no wall clock. The caller supplies `now`, the current
    state and the recent submission window, and persists what comes back.
    """

    def __init__(self, config: ConfidenceSettings = DEFAULT_CONFIDENCE):
        config.validate()
        self.config = config
        self.classifier = ZoneStateClassifier(config)

    def compose(
        self,
        current: Optional[ZoneConfidenceState],
        intel: Optional[IntelSubmission],
        recent_intel: Sequence[IntelSubmission],
        hazard_reports_24h: int,
        price_anomaly: bool,
        *,
        now: datetime,
        zone_id: Optional[str] = None,
    ) -> ConfidenceUpdate:
        """
        Compute the next state for one zone.

        `recent_intel` is the zone's submission window (at least the last
        24 hours); `intel`, when given, is treated as part of it.
        `hazard_reports_24h` already includes `intel` if it is a hazard report.
        A zone without stored state starts from the neutral default and,
        having zero age, is not decayed.
        """
        cfg = self.config
        now = as_utc(now)

        if hazard_reports_24h is None or hazard_reports_24h < 0:
            raise ParameterValidationError(
                "hazard_reports_24h", hazard_reports_24h, expected_type="non-negative integer"
            )

        fresh = current is None
        if fresh:
            zone_id = zone_id or (intel.zone_id if intel is not None else None)
            if not zone_id:
                raise ParameterValidationError("zone_id", zone_id, expected_type="non-empty string")
            current = ZoneConfidenceState.default(zone_id, now, score=cfg.default_score)
        else:
            current.validate(floor=cfg.decay.floor, ceiling=cfg.max_score)

        if intel is not None and intel.zone_id != current.zone_id:
            raise ValidationError(
                f"Submission {intel.id} belongs to zone {intel.zone_id}, not {current.zone_id}",
                field_name="zone_id",
                field_value=intel.zone_id,
            )

        window = list(recent_intel)
        if intel is not None and all(s.id != intel.id for s in window):
            window.append(intel)

        # 1. staleness
        time_decay = 0.0 if fresh else calculate_time_decay(
            current.score, current.last_intel_at, now, config=cfg
        )

        # 2. new evidence, bounded per submission and per 24h
        intel_boost = 0.0
        if intel is not None and not intel.is_hazard:
            raw_boost = calculate_intel_boost(
                intel.intel_type, intel.trust_weight, current.intel_count_24h, config=cfg
            )
            intel_boost = min(raw_boost, max(0.0, cfg.boost.cap_24h - current.boost_24h))

        # 3. penalties
        conflicts = detect_conflicts(window, now, config=cfg)
        c_penalty = conflict_penalty(conflicts, config=cfg)

        hazard = aggregate_hazard(
            hazard_reports_24h,
            current.hazard_active,
            current.hazard_expires_at,
            now,
            hazard_reason=current.hazard_reason,
            latest_reason=latest_hazard_reason(window),
            config=cfg,
        )
        a_penalty = cfg.anomaly.penalty if price_anomaly else 0.0

        factors = ConfidenceFactors(
            base_score=current.score,
            time_decay=time_decay,
            intel_boost=intel_boost,
            conflict_penalty=c_penalty,
            hazard_penalty=hazard.penalty,
            anomaly_penalty=a_penalty,
        )
        score = round_score(clamp_score(factors.raw_score, config=cfg))
        factors = replace(factors, final_score=score)

        updates = dict(
            score=score,
            level=self.classifier.level(score),
            state=self.classifier.state(score, hazard.active, bool(price_anomaly)),
            updated_at=now,
            conflict_count=conflicts,
            hazard_active=hazard.active,
            hazard_expires_at=hazard.expires_at,
            hazard_reason=hazard.reason,
            anomaly_detected=bool(price_anomaly),
            anomaly_reason=PRICE_DEVIATION if price_anomaly else None,
        )
        if intel is not None:
            updates.update(
                last_intel_at=_later(current.last_intel_at, intel.created_at),
                intel_count_24h=current.intel_count_24h + 1,
                boost_24h=current.boost_24h + intel_boost,
            )
            if intel.is_verification:
                updates.update(
                    last_verified_at=_later(current.last_verified_at, intel.created_at),
                    verification_count=current.verification_count + 1,
                )

        new_state = replace(current, **updates)

        if hazard.triggered and not current.hazard_active:
            logger.warning(
                "Hazard opened on zone %s (%d reports, reason=%s) until %s",
                current.zone_id, hazard_reports_24h, hazard.reason, hazard.expires_at,
            )
        logger.debug("Zone %s factors: %s", current.zone_id, factors.as_dict())
        return ConfidenceUpdate(state=new_state, factors=factors)

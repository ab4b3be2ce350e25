"""Daily decay sweep over zone states without new evidence."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List

from zoneconf.classification.classifier import ZoneStateClassifier, hazard_expired
from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.domain.exceptions import ZoneConfError
from zoneconf.domain.models import ZoneConfidenceState
from zoneconf.scoring.decay import calculate_time_decay, round_score
from zoneconf.utils.clock import as_utc, same_utc_day

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class SweepOutcome:
    """Result of sweeping one zone."""
    zone_id: str
    state: ZoneConfidenceState
    changed: bool
    time_decay: float = 0.0
    hazard_expired: bool = False
    already_swept: bool = False


@dataclass
class SweepResult:
    """Outcomes for a batch of zones, with per-zone failures kept aside."""
    outcomes: List[SweepOutcome] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> List[SweepOutcome]:
        return [o for o in self.outcomes if o.changed]

    @property
    def states(self) -> List[ZoneConfidenceState]:
        return [o.state for o in self.outcomes]


class DailyDecaySweep:
    """Applies the once-a-day decay and reclassification to each zone."""

    def __init__(self, config: ConfidenceSettings = DEFAULT_CONFIDENCE):
        config.validate()
        self.config = config
        self.classifier = ZoneStateClassifier(config)

    def sweep_zone(self, current: ZoneConfidenceState, now: datetime) -> SweepOutcome:
        """
        Decay, lapse hazards, reclassify and reset the daily counters.

        A zone already swept on this UTC day only gets its hazard lapsed;
        when nothing changes the input state is returned as-is.
        """
        cfg = self.config
        now = as_utc(now)
        current.validate(floor=cfg.decay.floor, ceiling=cfg.max_score)

        if same_utc_day(current.last_swept_at, now):
            reclassified = self.classifier.reclassify(current, now)
            return SweepOutcome(
                zone_id=current.zone_id,
                state=reclassified,
                changed=reclassified is not current,
                hazard_expired=reclassified.hazard_active != current.hazard_active,
                already_swept=True,
            )

        # age runs from last_intel_at every day, so daily sweeps compound
        time_decay = calculate_time_decay(current.score, current.last_intel_at, now, config=cfg)
        score = round_score(max(cfg.decay.floor, current.score - time_decay))
        expired = hazard_expired(current.hazard_active, current.hazard_expires_at, now)

        decayed = replace(
            current,
            score=score,
            intel_count_24h=0,
            boost_24h=0.0,
            last_swept_at=now,
            updated_at=now,
        )
        swept = self.classifier.reclassify(decayed, now)

        logger.debug(
            "Swept zone %s: %.1f -> %.1f (decay=%.3f, hazard_expired=%s)",
            current.zone_id, current.score, score, time_decay, expired,
        )
        return SweepOutcome(
            zone_id=current.zone_id,
            state=swept,
            changed=True,
            time_decay=time_decay,
            hazard_expired=expired,
        )

    def apply(self, states: Iterable[ZoneConfidenceState], now: datetime) -> SweepResult:
        """Sweep every state; a failure on one zone never stops the others."""
        result = SweepResult()
        for current in states:
            zone_id = getattr(current, "zone_id", None) or "<unknown>"
            try:
                result.outcomes.append(self.sweep_zone(current, now))
            except ZoneConfError as e:
                logger.error("Sweep failed for zone %s: %s", zone_id, e)
                result.failures[zone_id] = str(e)
            except Exception as e:
                logger.exception("Unexpected sweep failure for zone %s", zone_id)
                result.failures[zone_id] = f"{type(e).__name__}: {e}"
        return result

def sweep_zone(
    current: ZoneConfidenceState,
    now: datetime,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> SweepOutcome:
    return DailyDecaySweep(config).sweep_zone(current, now)

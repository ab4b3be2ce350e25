"""Score arithmetic: time decay, intel boost, clamping."""

import math
from datetime import datetime
from typing import Optional

from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.domain.exceptions import ParameterValidationError
from zoneconf.domain.models import IntelType
from zoneconf.utils.clock import hours_between

def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))

def clamp_score(score: float, *, config: ConfidenceSettings = DEFAULT_CONFIDENCE) -> float:
    return clamp(score, config.decay.floor, config.max_score)

def round_score(score: float) -> float:
    """Half-up rounding to one decimal, as persisted."""
    return math.floor(score * 10 + 0.5) / 10

def calculate_time_decay(
    current_score: float,
    last_intel_at: Optional[datetime],
    now: datetime,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> float:
    """
    Points to subtract for staleness.

    - no intel ever: the flat per-day rate
    - inside the grace period: 0
    - afterwards: linear per day past grace, never past the floor
    """
    decay = config.decay
    if last_intel_at is None:
        return decay.points_per_day

    hours_since = hours_between(last_intel_at, now)
    if hours_since < decay.grace_period_hours:
        return 0.0

    days_past_grace = (hours_since - decay.grace_period_hours) / 24
    return max(0.0, min(current_score - decay.floor, days_past_grace * decay.points_per_day))

def diminishing_factor(
    recent_count: int,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> float:
    """Each earlier submission in the 24h window makes the next one worth less."""
    if recent_count < 0:
        raise ParameterValidationError(
            "recent_count", recent_count, expected_type="non-negative integer"
        )
    boost = config.boost
    return max(boost.diminishing_floor, 1 - recent_count * boost.diminishing_step)

def calculate_intel_boost(
    intel_type,
    trust_weight: float,
    recent_count: int,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> float:
    """Boost points for one submission, capped per submission."""
    intel_type = IntelType.parse(intel_type)
    boost = config.boost
    base = boost.base * boost.type_multipliers[intel_type]
    weighted = base * clamp(trust_weight, config.trust.min_weight, config.trust.max_weight)
    return min(boost.max_per_intel, weighted * diminishing_factor(recent_count, config=config))

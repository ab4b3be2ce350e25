"""Submitter reputation to trust weight."""

import math
from typing import Optional

from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.domain.models import IntelType

# karma awarded per accepted submission; awarding itself happens outside the engine
KARMA_REWARDS = {
    IntelType.PRICE_SUBMISSION: 5,
    IntelType.HASSLE_REPORT: 10,
    IntelType.CONSTRUCTION: 8,
    IntelType.CROWD_SURGE: 3,
    IntelType.QUIET_CONFIRMED: 3,
    IntelType.HAZARD_REPORT: 15,
    IntelType.VERIFICATION: 10,
}

def trust_weight_for_karma(
    karma: Optional[float],
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> float:
    """
    Monotonic step function of karma, bounded to [min_weight, max_weight].

    Unknown submitters (karma None) get the floor weight.
    """
    trust = config.trust
    if karma is None or (isinstance(karma, float) and math.isnan(karma)):
        return trust.min_weight
    for bound, weight in trust.karma_tiers:
        if karma < bound:
            return weight
    return trust.max_weight

def karma_reward(intel_type) -> int:
    return KARMA_REWARDS[IntelType.parse(intel_type)]

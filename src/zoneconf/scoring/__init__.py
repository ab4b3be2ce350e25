"""Confidence scoring: decay, boost, detectors and composition."""

from .confidence import ConfidenceComposer
from .models import ConfidenceFactors, ConfidenceUpdate, HazardOutcome
from .trust import trust_weight_for_karma, karma_reward, KARMA_REWARDS

__all__ = [
    "ConfidenceComposer",
    "ConfidenceFactors",
    "ConfidenceUpdate",
    "HazardOutcome",
    "trust_weight_for_karma",
    "karma_reward",
    "KARMA_REWARDS",
]

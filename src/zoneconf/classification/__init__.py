from .classifier import score_to_level, determine_zone_state, ZoneStateClassifier

__all__ = ["score_to_level", "determine_zone_state", "ZoneStateClassifier"]

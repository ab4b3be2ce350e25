"""Data models for confidence scoring."""

from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional

from zoneconf.domain.models import ZoneConfidenceState

@dataclass(frozen=True)
class ConfidenceFactors:
    """Breakdown of one update. Transient; never persisted."""
    base_score: float
    time_decay: float = 0.0
    intel_boost: float = 0.0
    conflict_penalty: float = 0.0
    hazard_penalty: float = 0.0
    anomaly_penalty: float = 0.0
    final_score: float = 0.0

    @property
    def raw_score(self) -> float:
        """Additive combination before clamping."""
        return (
            self.base_score
            - self.time_decay
            + self.intel_boost
            - self.conflict_penalty
            - self.hazard_penalty
            - self.anomaly_penalty
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HazardOutcome:
    active: bool
    expires_at: Optional[datetime]
    reason: Optional[str]
    penalty: float = 0.0
    triggered: bool = False
    expired: bool = False


@dataclass(frozen=True)
class ConfidenceUpdate:
    state: ZoneConfidenceState
    factors: ConfidenceFactors

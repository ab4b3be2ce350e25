"""Conflict, hazard and anomaly detectors."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from zoneconf.classification.classifier import hazard_expired
from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.domain.exceptions import ParameterValidationError
from zoneconf.domain.models import IntelSubmission, IntelType, PriceBaseline
from zoneconf.scoring.models import HazardOutcome
from zoneconf.utils.clock import as_utc

logger = logging.getLogger(__name__)

HAZARD_THRESHOLD_REASON = "HAZARD_THRESHOLD"

def within_window(
    submissions: Iterable[IntelSubmission],
    now: datetime,
    hours: float,
) -> List[IntelSubmission]:
    """Submissions created in the trailing `hours` up to `now`."""
    now = as_utc(now)
    cutoff = now - timedelta(hours=hours)
    return [s for s in submissions if cutoff <= s.created_at <= now]

# ---- Conflicts -------------------------------------------------------------

def detect_conflicts(
    submissions: Iterable[IntelSubmission],
    now: datetime,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> int:
    """Number of configured contradictory pairs observed in the conflict window.

    Counts pairs, not submissions: ten QUIET_CONFIRMED against one CROWD_SURGE
    is still one conflict.
    """
    seen = {s.intel_type for s in within_window(submissions, now, config.conflict.window_hours)}
    return sum(1 for a, b in config.conflict.pairs if a in seen and b in seen)

def conflict_penalty(
    conflict_count: int,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> float:
    if conflict_count >= config.conflict.threshold:
        return config.conflict.penalty
    return 0.0

# ---- Hazards ---------------------------------------------------------------

def count_hazard_reports(
    submissions: Iterable[IntelSubmission],
    now: datetime,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> int:
    window = within_window(submissions, now, config.hazard.window_hours)
    return sum(1 for s in window if s.intel_type is IntelType.HAZARD_REPORT)

def latest_hazard_reason(submissions: Iterable[IntelSubmission]) -> Optional[str]:
    """Free-text reason from the newest hazard report that carries one."""
    hazards = sorted(
        (s for s in submissions if s.intel_type is IntelType.HAZARD_REPORT),
        key=lambda s: s.created_at,
        reverse=True,
    )
    for s in hazards:
        reason = s.data.get("hazard_type") or s.data.get("description")
        if reason:
            return str(reason)
    return None

def aggregate_hazard(
    hazard_reports: int,
    hazard_active: bool,
    hazard_expires_at: Optional[datetime],
    now: datetime,
    *,
    hazard_reason: Optional[str] = None,
    latest_reason: Optional[str] = None,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> HazardOutcome:
    """Open, refresh, lapse or carry the zone's hazard flag."""
    if hazard_reports < 0:
        raise ParameterValidationError(
            "hazard_reports", hazard_reports, expected_type="non-negative integer"
        )
    hazard = config.hazard
    if hazard_reports >= hazard.threshold_reports:
        return HazardOutcome(
            active=True,
            expires_at=as_utc(now) + timedelta(days=hazard.duration_days),
            reason=latest_reason or hazard_reason or HAZARD_THRESHOLD_REASON,
            penalty=hazard.penalty,
            triggered=True,
        )
    if hazard_expired(hazard_active, hazard_expires_at, now):
        return HazardOutcome(active=False, expires_at=None, reason=None, expired=True)
    return HazardOutcome(
        active=hazard_active,
        expires_at=hazard_expires_at,
        reason=hazard_reason if hazard_active else None,
    )

# ---- Anomalies -------------------------------------------------------------

def detect_price_anomaly(
    new_price: float,
    average_price: float,
    sample_count: int,
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> bool:
    """Relative deviation from the running average above the threshold.

    Too few samples, or a non-positive baseline, is never an anomaly.
    """
    anomaly = config.anomaly
    if sample_count < anomaly.min_samples or average_price <= 0:
        return False
    deviation = abs(new_price - average_price) / average_price
    return deviation > anomaly.price_threshold

def check_price_anomaly(
    new_price: float,
    baseline: Optional[PriceBaseline],
    *,
    config: ConfidenceSettings = DEFAULT_CONFIDENCE,
) -> bool:
    if baseline is None:
        return False
    flagged = detect_price_anomaly(
        new_price, baseline.average_price, baseline.report_count, config=config
    )
    if flagged:
        logger.info(
            "Price anomaly in zone %s: %s reported at %.2f against average %.2f (n=%d)",
            baseline.zone_id, baseline.item, new_price,
            baseline.average_price, baseline.report_count,
        )
    return flagged

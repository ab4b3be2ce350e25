# results/display.py
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from zoneconf.domain.models import ConfidenceLevel, PriceBaseline, ZoneConfidenceState, ZoneState
from zoneconf.utils.clock import hours_between

CONFIDENCE_DISPLAY: Dict[ConfidenceLevel, Dict[str, str]] = {
    ConfidenceLevel.HIGH: {
        "label": "HIGH CONFIDENCE",
        "color": "#22c55e",
        "icon": "(*)",
        "description": "Recently verified, reliable intel",
    },
    ConfidenceLevel.MEDIUM: {
        "label": "MEDIUM CONFIDENCE",
        "color": "#eab308",
        "icon": "(o)",
        "description": "Some recent intel, generally reliable",
    },
    ConfidenceLevel.LOW: {
        "label": "LOW CONFIDENCE",
        "color": "#f97316",
        "icon": "( )",
        "description": "Limited recent intel, verify on ground",
    },
    ConfidenceLevel.DEGRADED: {
        "label": "DEGRADED",
        "color": "#ef4444",
        "icon": "(/)",
        "description": "Stale data or active concerns",
    },
    ConfidenceLevel.UNKNOWN: {
        "label": "UNKNOWN",
        "color": "#6b7280",
        "icon": "?",
        "description": "No intel available",
    },
}

def format_confidence_display(state: ZoneConfidenceState) -> Dict[str, str]:
    """label / color / icon / description for a zone's confidence level."""
    return dict(CONFIDENCE_DISPLAY[state.level])

def format_last_verified(last_verified_at: Optional[datetime], now: datetime) -> str:
    if last_verified_at is None:
        return "NEVER VERIFIED"
    hours_ago = math.floor(hours_between(last_verified_at, now))
    if hours_ago < 1:
        return "VERIFIED < 1H AGO"
    if hours_ago < 24:
        return f"VERIFIED {hours_ago}H AGO"
    days_ago = hours_ago // 24
    if days_ago == 1:
        return "VERIFIED 1 DAY AGO"
    if days_ago < 7:
        return f"VERIFIED {days_ago} DAYS AGO"
    return f"VERIFIED {days_ago // 7} WEEKS AGO"

def format_expires_in(expires_at: Optional[datetime], now: datetime) -> str:
    if expires_at is None:
        return "NO EXPIRY"
    hours_left = math.ceil(hours_between(now, expires_at))
    if hours_left <= 0:
        return "EXPIRED"
    if hours_left < 24:
        return f"IN {hours_left}H"
    days_left = math.ceil(hours_left / 24)
    return "IN 1 DAY" if days_left == 1 else f"IN {days_left} DAYS"

def zone_status_message(state: ZoneConfidenceState, now: datetime) -> Optional[str]:
    """One-line banner for zones that need a warning; None when all is well."""
    if state.hazard_active:
        reason = f" ({state.hazard_reason})" if state.hazard_reason else ""
        return (
            f"ZONE OFFLINE: Safety concern reported{reason}. "
            f"Expires {format_expires_in(state.hazard_expires_at, now)}"
        )
    if state.anomaly_detected:
        return (
            f"ANOMALY DETECTED: {state.anomaly_reason or 'Unusual activity'}. "
            "Intel may be unreliable."
        )
    if state.state is ZoneState.DEGRADED:
        return "DEGRADED: Limited recent intel. Verify conditions on ground."
    return None

def summarise_zone(state: ZoneConfidenceState, now: datetime) -> Dict[str, Any]:
    """Flat view of a zone for the CLI and log lines."""
    display = format_confidence_display(state)
    return {
        "zone_id": state.zone_id,
        "score": state.score,
        "level": state.level.value,
        "state": state.state.value,
        "label": display["label"],
        "color": display["color"],
        "last_verified": format_last_verified(state.last_verified_at, now),
        "status": zone_status_message(state, now),
    }

def summarise_prices(baselines: Sequence[PriceBaseline]) -> List[Dict[str, Any]]:
    """One row per priced item, averages rounded to cents."""
    def _cents(value: Optional[float]) -> Optional[float]:
        return None if value is None else round(value, 2)

    return [
        {
            "item": b.item,
            "average_price": _cents(b.average_price),
            "report_count": b.report_count,
            "min_price": _cents(b.min_price),
            "max_price": _cents(b.max_price),
            "tourist_average": _cents(b.tourist_average),
            "local_average": _cents(b.local_average),
        }
        for b in baselines
    ]

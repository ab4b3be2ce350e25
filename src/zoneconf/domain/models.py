"""Core domain models for zone confidence."""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Mapping, Tuple

from zoneconf.domain.exceptions import (
    InvalidIntelTypeError,
    InvalidStateError,
    InvalidPayloadError,
    ValidationError,
)
from zoneconf.utils.clock import as_utc, format_timestamp


class IntelType(str, Enum):
    """Kinds of crowd report a zone can receive."""
    PRICE_SUBMISSION = "PRICE_SUBMISSION"
    HASSLE_REPORT = "HASSLE_REPORT"
    CONSTRUCTION = "CONSTRUCTION"
    CROWD_SURGE = "CROWD_SURGE"
    QUIET_CONFIRMED = "QUIET_CONFIRMED"
    HAZARD_REPORT = "HAZARD_REPORT"
    VERIFICATION = "VERIFICATION"

    @classmethod
    def parse(cls, value: Any) -> "IntelType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidIntelTypeError(value, allowed=[t.value for t in cls]) from None


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    DEGRADED = "DEGRADED"
    UNKNOWN = "UNKNOWN"


class ZoneState(str, Enum):
    ACTIVE = "ACTIVE"
    DEGRADED = "DEGRADED"
    OFFLINE = "OFFLINE"
    UNKNOWN = "UNKNOWN"


PRICE_ITEMS = ("coffee", "beer", "meal_street", "meal_restaurant", "transport")
PRICE_DEVIATION = "PRICE_DEVIATION"


@dataclass(frozen=True)
class PricePoint:
    """Price extracted from a PRICE_SUBMISSION payload."""
    item: str
    price: float
    is_tourist_price: bool = False


@dataclass(frozen=True)
class IntelSubmission:
    """One crowd report. Immutable; the engine only reads it."""
    id: str
    zone_id: str
    user_id: str
    intel_type: IntelType
    data: Mapping[str, Any]
    trust_weight: float
    created_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "intel_type", IntelType.parse(self.intel_type))
        if self.created_at is None:
            raise ValidationError("Submission has no creation timestamp", field_name="created_at")
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        try:
            weight = float(self.trust_weight)
        except (TypeError, ValueError):
            raise ValidationError(
                "trust_weight must be a number",
                field_name="trust_weight",
                field_value=self.trust_weight,
            ) from None
        if not math.isfinite(weight):
            raise ValidationError(
                "trust_weight must be finite",
                field_name="trust_weight",
                field_value=self.trust_weight,
            )
        object.__setattr__(self, "trust_weight", weight)
        if self.data is None:
            object.__setattr__(self, "data", {})

    @property
    def is_verification(self) -> bool:
        return self.intel_type is IntelType.VERIFICATION

    @property
    def is_hazard(self) -> bool:
        return self.intel_type is IntelType.HAZARD_REPORT

    def price_point(self) -> PricePoint:
        """Read the price payload; only valid for PRICE_SUBMISSION."""
        if self.intel_type is not IntelType.PRICE_SUBMISSION:
            raise InvalidPayloadError(
                "Only price submissions carry a price",
                intel_type=self.intel_type.value,
            )
        item = self.data.get("item")
        price = self.data.get("price")
        if item not in PRICE_ITEMS:
            raise InvalidPayloadError(
                f"Unknown price item: {item!r}",
                intel_type=self.intel_type.value,
                field_name="data.item",
                field_value=item,
            ).add_suggestion(f"Use one of: {', '.join(PRICE_ITEMS)}")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not price > 0:
            raise InvalidPayloadError(
                "Price must be a positive number",
                intel_type=self.intel_type.value,
                field_name="data.price",
                field_value=price,
            )
        return PricePoint(
            item=item,
            price=float(price),
            is_tourist_price=bool(self.data.get("is_tourist_price", False)),
        )


@dataclass(frozen=True)
class ZoneConfidenceState:
    """Persisted confidence aggregate for one zone.

    `level` and `state` are derived; they are recomputed on every update and
    are never edited independently of `score`.
    """
    zone_id: str
    score: float
    level: ConfidenceLevel
    state: ZoneState
    updated_at: datetime
    last_verified_at: Optional[datetime] = None
    last_intel_at: Optional[datetime] = None
    verification_count: int = 0
    intel_count_24h: int = 0
    boost_24h: float = 0.0
    conflict_count: int = 0
    hazard_active: bool = False
    hazard_expires_at: Optional[datetime] = None
    hazard_reason: Optional[str] = None
    anomaly_detected: bool = False
    anomaly_reason: Optional[str] = None
    last_swept_at: Optional[datetime] = None
    version: int = 0

    def __post_init__(self):
        for name in ("updated_at", "last_verified_at", "last_intel_at",
                     "hazard_expires_at", "last_swept_at"):
            object.__setattr__(self, name, as_utc(getattr(self, name)))
        try:
            object.__setattr__(self, "level", ConfidenceLevel(self.level))
            object.__setattr__(self, "state", ZoneState(self.state))
        except ValueError as e:
            raise InvalidStateError(str(e), zone_id=self.zone_id) from None

    @classmethod
    def default(cls, zone_id: str, now: datetime, *, score: float = 50.0) -> "ZoneConfidenceState":
        """Neutral state for a zone seen for the first time."""
        return cls(
            zone_id=zone_id,
            score=float(score),
            level=ConfidenceLevel.MEDIUM,
            state=ZoneState.ACTIVE,
            updated_at=now,
        )

    def validate(self, *, floor: float = 20.0, ceiling: float = 100.0) -> "ZoneConfidenceState":
        """Fail fast on any field outside its documented range."""
        if not self.zone_id:
            raise InvalidStateError("zone_id must be non-empty", field_name="zone_id")
        if isinstance(self.score, bool) or not isinstance(self.score, (int, float)) \
                or not math.isfinite(self.score):
            raise InvalidStateError(
                "score must be a finite number",
                zone_id=self.zone_id, field_name="score", field_value=self.score,
            )
        if not floor <= self.score <= ceiling:
            raise InvalidStateError(
                f"score {self.score} outside [{floor}, {ceiling}]",
                zone_id=self.zone_id, field_name="score", field_value=self.score,
            )
        for name in ("verification_count", "intel_count_24h", "conflict_count", "version"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidStateError(
                    f"{name} must be a non-negative integer",
                    zone_id=self.zone_id, field_name=name, field_value=value,
                )
        if not math.isfinite(self.boost_24h) or self.boost_24h < 0:
            raise InvalidStateError(
                "boost_24h must be a non-negative number",
                zone_id=self.zone_id, field_name="boost_24h", field_value=self.boost_24h,
            )
        if self.anomaly_reason is not None and not self.anomaly_detected:
            raise InvalidStateError(
                "anomaly_reason set without anomaly_detected",
                zone_id=self.zone_id, field_name="anomaly_reason", field_value=self.anomaly_reason,
            )
        if self.hazard_expires_at is not None and not self.hazard_active:
            raise InvalidStateError(
                "hazard_expires_at set on an inactive hazard",
                zone_id=self.zone_id, field_name="hazard_expires_at",
                field_value=self.hazard_expires_at,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["level"] = self.level.value
        d["state"] = self.state.value
        for name in ("updated_at", "last_verified_at", "last_intel_at",
                     "hazard_expires_at", "last_swept_at"):
            d[name] = format_timestamp(d[name])
        return d


@dataclass(frozen=True)
class PriceBaseline:
    """Running price aggregate for one item in one zone."""
    zone_id: str
    item: str
    average_price: float
    report_count: int
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    tourist_average: Optional[float] = None
    local_average: Optional[float] = None
    last_report_at: Optional[datetime] = None

    def with_report(self, point: PricePoint, at: datetime) -> "PriceBaseline":
        """Fold one more price into the running aggregate."""
        n = self.report_count
        average = (self.average_price * n + point.price) / (n + 1)

        def _fold(current: Optional[float]) -> float:
            if current is None:
                return point.price
            return (current * n + point.price) / (n + 1)

        return PriceBaseline(
            zone_id=self.zone_id,
            item=self.item,
            average_price=average,
            report_count=n + 1,
            min_price=point.price if self.min_price is None else min(self.min_price, point.price),
            max_price=point.price if self.max_price is None else max(self.max_price, point.price),
            tourist_average=_fold(self.tourist_average) if point.is_tourist_price else self.tourist_average,
            local_average=self.local_average if point.is_tourist_price else _fold(self.local_average),
            last_report_at=as_utc(at),
        )

    @classmethod
    def first(cls, zone_id: str, point: PricePoint, at: datetime) -> "PriceBaseline":
        return cls(
            zone_id=zone_id,
            item=point.item,
            average_price=point.price,
            report_count=1,
            min_price=point.price,
            max_price=point.price,
            tourist_average=point.price if point.is_tourist_price else None,
            local_average=None if point.is_tourist_price else point.price,
            last_report_at=as_utc(at),
        )


ConflictPair = Tuple[IntelType, IntelType]

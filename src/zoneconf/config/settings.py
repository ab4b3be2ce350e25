"""Core configuration settings for zoneconf."""

import logging
from pathlib import Path
from typing import Optional, Dict, Tuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from zoneconf.domain.models import IntelType, ConflictPair
from zoneconf.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------------------------------------------------------------------------
# Engine configuration: one struct, passed explicitly into every engine call
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DecaySettings:
    """Time decay since the last fresh intel."""
    rate_per_day: float = 0.02
    floor: float = 20.0
    grace_period_hours: float = 24.0

    @property
    def points_per_day(self) -> float:
        return self.rate_per_day * 100

    def validate(self) -> None:
        if self.rate_per_day < 0:
            raise ConfigurationError(
                "rate_per_day must be non-negative",
                config_field="decay.rate_per_day"
            )
        if not 0 <= self.floor <= 100:
            raise ConfigurationError(
                "floor must be within [0, 100]",
                config_field="decay.floor"
            )
        if self.grace_period_hours < 0:
            raise ConfigurationError(
                "grace_period_hours must be non-negative",
                config_field="decay.grace_period_hours"
            )


def _default_type_multipliers():
    return MappingProxyType({
        IntelType.VERIFICATION: 1.5,
        IntelType.PRICE_SUBMISSION: 1.0,
        IntelType.QUIET_CONFIRMED: 0.8,
        IntelType.CROWD_SURGE: 0.7,
        IntelType.HASSLE_REPORT: 0.6,
        IntelType.CONSTRUCTION: 0.5,
        IntelType.HAZARD_REPORT: 0.0,  # hazards only ever penalise
    })


@dataclass(frozen=True)
class BoostSettings:
    """Positive contribution of one new submission."""
    base: float = 5.0
    max_per_intel: float = 15.0
    cap_24h: float = 30.0
    diminishing_step: float = 0.15
    diminishing_floor: float = 0.2
    type_multipliers: Dict[IntelType, float] = field(default_factory=_default_type_multipliers)

    def validate(self) -> None:
        missing = [t.value for t in IntelType if t not in self.type_multipliers]
        if missing:
            raise ConfigurationError(
                f"type_multipliers missing intel types: {', '.join(missing)}",
                config_field="boost.type_multipliers"
            ).add_suggestion("Give every intel type a multiplier (0 disables its boost)")
        if any(m < 0 for m in self.type_multipliers.values()):
            raise ConfigurationError(
                "type multipliers must be non-negative",
                config_field="boost.type_multipliers"
            )
        if self.max_per_intel < 0 or self.cap_24h < 0:
            raise ConfigurationError(
                "boost caps must be non-negative",
                config_field="boost.max_per_intel"
            )
        if not 0 <= self.diminishing_floor <= 1:
            raise ConfigurationError(
                "diminishing_floor must be within [0, 1]",
                config_field="boost.diminishing_floor"
            )


@dataclass(frozen=True)
class TrustSettings:
    """Karma to trust-weight step function.

    `karma_tiers` holds (exclusive upper karma bound, weight) pairs in
    ascending order; karma at or above the last bound gets `max_weight`.
    """
    min_weight: float = 0.3
    max_weight: float = 1.5
    karma_tiers: Tuple[Tuple[float, float], ...] = (
        (0, 0.3),
        (50, 0.5),
        (200, 0.8),
        (500, 1.0),
        (1000, 1.2),
    )

    def validate(self) -> None:
        if not 0 < self.min_weight <= self.max_weight:
            raise ConfigurationError(
                "trust weights must satisfy 0 < min_weight <= max_weight",
                config_field="trust.min_weight"
            )
        bounds = [b for b, _ in self.karma_tiers]
        if bounds != sorted(bounds):
            raise ConfigurationError(
                "karma_tiers must be sorted by karma bound",
                config_field="trust.karma_tiers"
            )
        weights = [w for _, w in self.karma_tiers] + [self.max_weight]
        if weights != sorted(weights):
            raise ConfigurationError(
                "karma_tiers weights must be non-decreasing",
                config_field="trust.karma_tiers"
            ).add_suggestion("Trust weight is a monotonic function of karma")
        if any(not self.min_weight <= w <= self.max_weight for w in weights):
            raise ConfigurationError(
                "karma_tiers weights must lie within [min_weight, max_weight]",
                config_field="trust.karma_tiers"
            )


@dataclass(frozen=True)
class ConflictSettings:
    """Contradictory report pairs inside a short window."""
    threshold: int = 3
    window_hours: float = 6.0
    penalty: float = 15.0
    pairs: Tuple[ConflictPair, ...] = (
        (IntelType.QUIET_CONFIRMED, IntelType.CROWD_SURGE),
        (IntelType.QUIET_CONFIRMED, IntelType.HASSLE_REPORT),
    )

    def validate(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError(
                "threshold must be at least 1",
                config_field="conflict.threshold"
            )
        if self.window_hours <= 0:
            raise ConfigurationError(
                "window_hours must be positive",
                config_field="conflict.window_hours"
            )
        for a, b in self.pairs:
            if a == b:
                raise ConfigurationError(
                    f"conflict pair ({a.value}, {b.value}) contradicts itself",
                    config_field="conflict.pairs"
                )


@dataclass(frozen=True)
class HazardSettings:
    threshold_reports: int = 2
    window_hours: float = 24.0
    duration_days: float = 7.0
    penalty: float = 30.0

    def validate(self) -> None:
        if self.threshold_reports < 1:
            raise ConfigurationError(
                "threshold_reports must be at least 1",
                config_field="hazard.threshold_reports"
            )
        if self.duration_days <= 0:
            raise ConfigurationError(
                "duration_days must be positive",
                config_field="hazard.duration_days"
            )


@dataclass(frozen=True)
class AnomalySettings:
    price_threshold: float = 0.5
    min_samples: int = 3
    penalty: float = 10.0

    def validate(self) -> None:
        if self.price_threshold <= 0:
            raise ConfigurationError(
                "price_threshold must be positive",
                config_field="anomaly.price_threshold"
            )
        if self.min_samples < 1:
            raise ConfigurationError(
                "min_samples must be at least 1",
                config_field="anomaly.min_samples"
            )


@dataclass(frozen=True)
class LevelThresholds:
    high: float = 80.0
    medium: float = 60.0
    low: float = 40.0
    degraded: float = 20.0

    def validate(self) -> None:
        if not self.high >= self.medium >= self.low >= self.degraded:
            raise ConfigurationError(
                "level thresholds must be descending (high >= medium >= low >= degraded)",
                config_field="thresholds"
            )


@dataclass(frozen=True)
class ConfidenceSettings:
    """Every constant the engine uses."""
    decay: DecaySettings = field(default_factory=DecaySettings)
    boost: BoostSettings = field(default_factory=BoostSettings)
    trust: TrustSettings = field(default_factory=TrustSettings)
    conflict: ConflictSettings = field(default_factory=ConflictSettings)
    hazard: HazardSettings = field(default_factory=HazardSettings)
    anomaly: AnomalySettings = field(default_factory=AnomalySettings)
    thresholds: LevelThresholds = field(default_factory=LevelThresholds)
    default_score: float = 50.0
    max_score: float = 100.0

    def validate(self) -> None:
        self.decay.validate()
        self.boost.validate()
        self.trust.validate()
        self.conflict.validate()
        self.hazard.validate()
        self.anomaly.validate()
        self.thresholds.validate()
        if not self.decay.floor <= self.default_score <= self.max_score:
            raise ConfigurationError(
                "default_score must lie within [decay.floor, max_score]",
                config_field="default_score"
            )


DEFAULT_CONFIDENCE = ConfidenceSettings()


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------

@dataclass
class DatabaseSettings:
    """Database-related configuration."""
    path: Optional[Path] = None
    use_wal: bool = True
    busy_timeout_ms: int = 120000

    def validate(self) -> None:
        if self.path and str(self.path) != ":memory:" and not self.path.parent.exists():
            raise ConfigurationError(
                f"Database directory does not exist: {self.path.parent}",
                config_field="database.path"
            ).add_suggestion("Create the directory or use a different path")
        if self.busy_timeout_ms < 0:
            raise ConfigurationError(
                "busy_timeout_ms must be non-negative",
                config_field="database.busy_timeout_ms"
            )

@dataclass
class ProcessingSettings:
    """Intake and sweep configuration."""
    chunk_size: int = 500
    retry_attempts: int = 3
    show_progress: bool = True

    def validate(self) -> None:
        if self.chunk_size <= 0:
            raise ConfigurationError(
                "chunk_size must be positive",
                config_field="processing.chunk_size"
            )
        if self.retry_attempts < 1:
            raise ConfigurationError(
                "retry_attempts must be at least 1",
                config_field="processing.retry_attempts"
            )

@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    log_dir: Optional[Path] = None
    console_output: bool = True

    def validate(self) -> None:
        if self.log_dir and not self.log_dir.parent.exists():
            raise ConfigurationError(
                f"Log directory parent does not exist: {self.log_dir.parent}",
                config_field="logging.log_dir"
            ).add_suggestion("Create the directory or use console logging only")

@dataclass
class Settings:
    """Main configuration settings for zoneconf."""
    confidence: ConfidenceSettings = field(default_factory=ConfidenceSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    debug_mode: bool = False
    dry_run: bool = False

    def validate(self) -> None:
        """Validate all configuration settings."""
        try:
            self.confidence.validate()
            self.database.validate()
            self.processing.validate()
            self.logging.validate()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Configuration validation failed: {str(e)}"
            ) from e

    def to_dict(self) -> dict:
        """Convert settings to dictionary for debugging."""
        return {
            'database': {
                'path': str(self.database.path) if self.database.path else None,
                'use_wal': self.database.use_wal,
            },
            'processing': {
                'chunk_size': self.processing.chunk_size,
                'retry_attempts': self.processing.retry_attempts,
                'show_progress': self.processing.show_progress,
            },
            'logging': {
                'level': self.logging.level.value,
                'log_dir': str(self.logging.log_dir) if self.logging.log_dir else None,
            },
            'runtime': {
                'debug_mode': self.debug_mode,
                'dry_run': self.dry_run,
            }
        }

# Global settings instance
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """Get the current global settings instance."""
    if _settings is None:
        raise ConfigurationError(
            "Settings not initialized. Call set_settings() first."
        ).add_suggestion("Initialize settings in your application startup")
    return _settings

def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    settings.validate()
    _settings = settings
    logger.info("Configuration loaded and validated successfully")

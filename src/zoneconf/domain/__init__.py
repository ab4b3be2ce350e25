"""Core domain models."""

from .models import (
    IntelType,
    ConfidenceLevel,
    ZoneState,
    IntelSubmission,
    ZoneConfidenceState,
    PriceBaseline,
    PricePoint,
    PRICE_ITEMS,
    PRICE_DEVIATION,
)

__all__ = [
    "IntelType",
    "ConfidenceLevel",
    "ZoneState",
    "IntelSubmission",
    "ZoneConfidenceState",
    "PriceBaseline",
    "PricePoint",
    "PRICE_ITEMS",
    "PRICE_DEVIATION",
]

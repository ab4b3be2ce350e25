"""Custom exceptions for the zoneconf package."""

# Base exceptions
from .base import (
    ZoneConfError,
    RetryableError,
    ConfigurationError,
    ResourceError,
    DatabaseError,
)

# Validation exceptions
from .validation import (
    ValidationError,
    InvalidIntelTypeError,
    InvalidStateError,
    InvalidPayloadError,
    ParameterValidationError,
)

# Processing exceptions
from .processing import (
    ProcessingError,
    SweepError,
    StoreError,
    ConcurrentUpdateError,
)

__all__ = [
    # Base
    "ZoneConfError",
    "RetryableError",
    "ConfigurationError",
    "ResourceError",
    "DatabaseError",

    # Validation
    "ValidationError",
    "InvalidIntelTypeError",
    "InvalidStateError",
    "InvalidPayloadError",
    "ParameterValidationError",

    # Processing
    "ProcessingError",
    "SweepError",
    "StoreError",
    "ConcurrentUpdateError",
]

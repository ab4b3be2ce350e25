"""Input validation exceptions."""

from typing import Optional, Any, Iterable
from .base import ZoneConfError

class ValidationError(ZoneConfError):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str,
        *,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context('field_name', field_name)
        if field_value is not None:
            self.add_context('field_value', str(field_value))

    def _get_default_error_code(self) -> str:
        return "VALIDATION_ERROR"


class InvalidIntelTypeError(ValidationError):
    """Raised when a submission carries an unrecognised intel type."""
    def __init__(self, intel_type: Any, allowed: Iterable[str] = (), **kwargs):
        allowed = list(allowed)
        message = f"Unrecognised intel type: {intel_type!r}"
        super().__init__(message, field_name="intel_type", field_value=intel_type, **kwargs)
        if allowed:
            self.add_context('allowed_types', allowed)
            self.add_suggestion(f"Use one of: {', '.join(allowed)}")

    def _get_default_error_code(self) -> str:
        return "INVALID_INTEL_TYPE"


class InvalidStateError(ValidationError):
    """Raised when a zone confidence state has fields outside documented ranges."""
    def __init__(self, message: str, *, zone_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if zone_id:
            self.add_context('zone_id', zone_id)
        self.add_suggestion("Inspect the persisted zone_confidence row; corrupt state is never clamped silently")

    def _get_default_error_code(self) -> str:
        return "INVALID_ZONE_STATE"


class InvalidPayloadError(ValidationError):
    """Raised when a type-specific payload lacks what the engine needs to read."""
    def __init__(self, message: str, *, intel_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if intel_type:
            self.add_context('intel_type', intel_type)

    def _get_default_error_code(self) -> str:
        return "INVALID_PAYLOAD"


class ParameterValidationError(ValidationError):
    """Raised when parameter validation fails."""
    def __init__(
        self,
        parameter_name: str,
        parameter_value: Any,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        message = f"Invalid parameter '{parameter_name}': {parameter_value}"
        super().__init__(message, field_name=parameter_name, field_value=str(parameter_value), **kwargs)
        if expected_type:
            self.add_context('expected_type', expected_type)
        self.add_suggestion(f"Check the value and type of parameter '{parameter_name}'")

    def _get_default_error_code(self) -> str:
        return "PARAMETER_VALIDATION_FAILED"

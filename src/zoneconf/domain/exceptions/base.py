from typing import Optional, Dict, Any, List
from datetime import datetime
from abc import ABC
import logging

logger = logging.getLogger(__name__)

class ZoneConfError(Exception, ABC):
    """Base exception for all zoneconf errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._get_default_error_code()
        self.context: Dict[str, Any] = context or {}
        self.suggestions: List[str] = suggestions or []
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def _get_default_error_code(self) -> str:
        return "ZONECONF_ERROR"

    def add_context(self, key: str, value: Any) -> "ZoneConfError":
        if key:
            self.context[key] = value
        return self

    def add_suggestion(self, suggestion: str) -> "ZoneConfError":
        if suggestion:
            self.suggestions.append(suggestion)
        return self

    def __str__(self) -> str:
        base = self.message or ""
        if self.suggestions:
            return f"{base} -- Suggestions: {'; '.join(self.suggestions)}"
        return base


class RetryableError(ZoneConfError):
    """An error where re-running the whole computation may succeed."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)

    def _get_default_error_code(self) -> str:
        return "RETRYABLE_ERROR"


class ConfigurationError(ZoneConfError):
    def __init__(self, message: str, *, config_field: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.config_field = config_field
        if config_field:
            self.add_context('config_field', config_field)

    def _get_default_error_code(self) -> str:
        return "CONFIGURATION_ERROR"

    def __str__(self) -> str:
        base = self.message or ""
        if getattr(self, "config_field", None):
            base = f"[{self.config_field}] {base}"
        if self.suggestions:
            return f"{base} -- Suggestions: {'; '.join(self.suggestions)}"
        return base


class ResourceError(ZoneConfError):
    def _get_default_error_code(self) -> str:
        return "RESOURCE_ERROR"


class DatabaseError(ResourceError):
    def __init__(self, message: str, *, db_path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if db_path:
            self.add_context('db_path', db_path)

    def _get_default_error_code(self) -> str:
        return "DATABASE_ERROR"

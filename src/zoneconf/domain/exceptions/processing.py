"""Processing and persistence exceptions."""

from typing import Optional, List
from .base import ZoneConfError, RetryableError

class ProcessingError(ZoneConfError):
    """Base class for processing errors."""

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        zone_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if stage:
            self.add_context('processing_stage', stage)
        if zone_id:
            self.add_context('zone_id', zone_id)


class SweepError(ProcessingError):
    """Raised when a decay sweep could not update any zone."""

    def __init__(
        self,
        message: str,
        *,
        failed_zones: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, stage="daily_sweep", **kwargs)
        if failed_zones:
            self.add_context('failed_zones', list(failed_zones))
        self.add_suggestion("Check the store connection; per-zone errors are logged individually")

    def _get_default_error_code(self) -> str:
        return "SWEEP_FAILED"


class StoreError(RetryableError, ProcessingError):
    """Raised when a store operation fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, stage="persistence", **kwargs)
        if operation:
            self.add_context('store_operation', operation)
        self.add_suggestion("Check database connection")

    def _get_default_error_code(self) -> str:
        return "STORE_OPERATION_FAILED"


class ConcurrentUpdateError(RetryableError, ProcessingError):
    """Raised when a zone state changed between read and write."""

    def __init__(
        self,
        zone_id: str,
        *,
        expected_version: Optional[int] = None,
        **kwargs
    ):
        message = f"Zone {zone_id} was updated concurrently"
        super().__init__(message, stage="persistence", zone_id=zone_id, **kwargs)
        if expected_version is not None:
            self.add_context('expected_version', expected_version)
        self.add_suggestion("Re-read the zone state and recompute the update")

    def _get_default_error_code(self) -> str:
        return "CONCURRENT_UPDATE"

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from zoneconf.data.store import SqliteZoneStore
from zoneconf.domain.models import IntelSubmission, IntelType, ZoneConfidenceState

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


@pytest.fixture
def now():
    """Fixed reference time; engine code never reads the wall clock in tests."""
    return NOW


@pytest.fixture
def make_intel():
    """Factory for submissions with sensible defaults."""
    def _make(intel_type=IntelType.VERIFICATION, *, zone_id="zone-a", user_id="user-1",
              trust_weight=1.0, created_at=NOW, data=None, id=None):
        return IntelSubmission(
            id=id or f"intel-{next(_ids)}",
            zone_id=zone_id,
            user_id=user_id,
            intel_type=intel_type,
            data=data or {},
            trust_weight=trust_weight,
            created_at=created_at,
        )
    return _make


@pytest.fixture
def make_state():
    """Factory for zone states; level/state are set consistently by callers that care."""
    def _make(zone_id="zone-a", score=50.0, *, level="MEDIUM", state="ACTIVE",
              updated_at=NOW - timedelta(hours=1), **fields):
        return ZoneConfidenceState(
            zone_id=zone_id,
            score=score,
            level=level,
            state=state,
            updated_at=updated_at,
            **fields,
        )
    return _make


@pytest.fixture
def store():
    """In-memory store with the schema applied."""
    s = SqliteZoneStore.open(":memory:")
    yield s
    s.close()

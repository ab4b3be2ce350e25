import sqlite3
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from zoneconf.data.store import SqliteZoneStore
from zoneconf.data import state_repo
from zoneconf.domain.exceptions import ConcurrentUpdateError, DatabaseError, StoreError
from zoneconf.domain.models import IntelType, PricePoint


class TestStateRoundTrip:
    """zone_confidence rows."""

    def test_missing_zone_is_none(self, store):
        assert store.fetch_state("nope") is None

    def test_insert_then_fetch(self, store, make_state, now):
        state = make_state(
            score=73.4, level="MEDIUM", last_intel_at=now, last_verified_at=now,
            verification_count=2, intel_count_24h=3, boost_24h=12.5, conflict_count=1,
            hazard_active=True, hazard_expires_at=now + timedelta(days=7),
            hazard_reason="flood", state="OFFLINE", last_swept_at=now - timedelta(days=1),
        )
        stored = store.upsert_state(state, expected_version=None)
        assert stored.version == 1
        assert store.fetch_state("zone-a") == stored

    def test_insert_twice_is_a_conflict(self, store, make_state):
        store.upsert_state(make_state(), expected_version=None)
        with pytest.raises(ConcurrentUpdateError):
            store.upsert_state(make_state(), expected_version=None)

    def test_update_with_current_version(self, store, make_state):
        v1 = store.upsert_state(make_state(score=50.0), expected_version=None)
        v2 = store.upsert_state(make_state(score=55.0), expected_version=v1.version)
        assert v2.version == 2
        assert store.fetch_state("zone-a").score == 55.0

    def test_stale_version_rejected(self, store, make_state):
        v1 = store.upsert_state(make_state(score=50.0), expected_version=None)
        store.upsert_state(make_state(score=55.0), expected_version=v1.version)
        with pytest.raises(ConcurrentUpdateError) as exc_info:
            store.upsert_state(make_state(score=60.0), expected_version=v1.version)
        assert exc_info.value.context["expected_version"] == 1
        assert store.fetch_state("zone-a").score == 55.0

    def test_list_and_count(self, store, make_state):
        store.upsert_state(make_state("zone-b"), expected_version=None)
        store.upsert_state(make_state("zone-a", state="DEGRADED"), expected_version=None)
        assert store.list_zone_ids() == ["zone-a", "zone-b"]
        assert store.count_by_state() == {"ACTIVE": 1, "DEGRADED": 1}


class TestSubmissions:
    """zone_intel rows."""

    def test_newest_first_within_window(self, store, make_intel, now):
        old = make_intel(created_at=now - timedelta(hours=30))
        mid = make_intel(IntelType.HAZARD_REPORT, created_at=now - timedelta(hours=5),
                         data={"hazard_type": "flood"})
        new = make_intel(created_at=now - timedelta(minutes=1))
        for s in (mid, old, new):
            store.insert_submission(s)

        window = store.fetch_submissions("zone-a", now - timedelta(hours=24))
        assert window == [new, mid]
        assert window[1].data == {"hazard_type": "flood"}

    def test_until_bound_and_zone_filter(self, store, make_intel, now):
        store.insert_submission(make_intel(created_at=now))
        store.insert_submission(make_intel(created_at=now + timedelta(hours=1)))
        store.insert_submission(make_intel(zone_id="zone-b", created_at=now))
        got = store.fetch_submissions("zone-a", now - timedelta(hours=1), until=now)
        assert [s.created_at for s in got] == [now]

    def test_duplicate_id_is_store_error(self, store, make_intel):
        s = make_intel(id="dup")
        store.insert_submission(s)
        with pytest.raises(StoreError) as exc_info:
            store.insert_submission(s)
        assert exc_info.value.context["store_operation"] == "insert_submission"
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)


class TestPrices:
    """zone_prices rows."""

    def test_first_report_seeds_baseline(self, store, now):
        b = store.record_price("zone-a", PricePoint("beer", 4.0, is_tourist_price=True), now)
        assert b.report_count == 1
        assert b.tourist_average == 4.0
        assert b.local_average is None
        assert store.fetch_price_baseline("zone-a", "beer") == b

    def test_running_aggregate(self, store, now):
        store.record_price("zone-a", PricePoint("beer", 4.0), now)
        store.record_price("zone-a", PricePoint("beer", 6.0), now + timedelta(minutes=1))
        b = store.fetch_price_baseline("zone-a", "beer")
        assert b.report_count == 2
        assert b.average_price == pytest.approx(5.0)
        assert (b.min_price, b.max_price) == (4.0, 6.0)
        assert b.last_report_at == now + timedelta(minutes=1)
        assert [x.item for x in store.list_price_baselines("zone-a")] == ["beer"]


class TestTransactions:

    def test_rollback_on_error(self, store, make_state):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.upsert_state(make_state(), expected_version=None)
                raise RuntimeError("abort")
        assert store.fetch_state("zone-a") is None

    def test_nested_joins_outer(self, store, make_state):
        with store.transaction():
            store.upsert_state(make_state("zone-a"), expected_version=None)
            with store.transaction():
                store.upsert_state(make_state("zone-b"), expected_version=None)
        assert store.list_zone_ids() == ["zone-a", "zone-b"]


class TestOpen:

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "zones.sqlite"
        with SqliteZoneStore.open(path) as s:
            assert s.list_zone_ids() == []
        assert path.exists()

    def test_must_exist(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SqliteZoneStore.open(tmp_path / "missing.sqlite", must_exist=True)

    def test_unopenable_path_is_database_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(DatabaseError):
            SqliteZoneStore.open(blocker / "zones.sqlite")

    def test_sqlite_errors_wrapped(self, make_state):
        conn = MagicMock()
        conn.execute.side_effect = sqlite3.OperationalError("disk I/O error")
        store = SqliteZoneStore(conn)
        with pytest.raises(StoreError):
            store.fetch_state("zone-a")


def test_repo_update_reports_lost_race(store, make_state):
    store.upsert_state(make_state(), expected_version=None)
    assert state_repo.update_state(store.conn, make_state(score=70.0), expected_version=99) is False

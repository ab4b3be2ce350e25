"""SQLite-backed zone store used by intake and the sweep runner."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from zoneconf.config.resolvers import resolve_database_path
from zoneconf.data import intel_repo, price_repo, state_repo
from zoneconf.data.db import connect
from zoneconf.data.schema import create_schema
from zoneconf.domain.exceptions import ConcurrentUpdateError, DatabaseError, StoreError
from zoneconf.domain.models import (
    IntelSubmission,
    PriceBaseline,
    PricePoint,
    ZoneConfidenceState,
)

logger = logging.getLogger(__name__)

class SqliteZoneStore:
    """
    Persistence for zone states, submissions and price aggregates.

    One connection, shared by all threads and serialised with an RLock.
    State writes are compare-and-set on the `version` column, so a write
    computed from a stale read raises ConcurrentUpdateError.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._lock = threading.RLock()
        self._depth = 0

    @classmethod
    def open(
        cls,
        db_path: Union[str, Path, None] = None,
        *,
        use_wal: bool = True,
        busy_timeout_ms: int = 120000,
        must_exist: bool = False,
    ) -> "SqliteZoneStore":
        path = resolve_database_path(db_path, must_exist=must_exist)
        try:
            if str(path) != ":memory:":
                path.parent.mkdir(parents=True, exist_ok=True)
            conn = connect(str(path), use_wal=use_wal, busy_timeout_ms=busy_timeout_ms)
            create_schema(conn)
        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(
                f"Could not open zone database: {e}", db_path=str(path)
            ).add_suggestion("Check that the directory is writable") from e
        logger.debug("Opened zone store at %s", path)
        return cls(conn)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ---- transactions ---------------------------------------------------

    @contextmanager
    def transaction(self):
        """Group writes; nested use joins the outermost transaction."""
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield self.conn
                if outermost:
                    self.conn.commit()
            except BaseException:
                if outermost:
                    self.conn.rollback()
                raise
            finally:
                self._depth -= 1

    @contextmanager
    def _operation(self, name: str, *, write: bool = False):
        try:
            if write:
                with self.transaction() as conn:
                    yield conn
            else:
                with self._lock:
                    yield self.conn
        except sqlite3.Error as e:
            raise StoreError(f"Store operation '{name}' failed: {e}", operation=name) from e

    # ---- zone state -----------------------------------------------------

    def fetch_state(self, zone_id: str) -> Optional[ZoneConfidenceState]:
        with self._operation("fetch_state") as conn:
            return state_repo.get_state(conn, zone_id)

    def upsert_state(
        self,
        state: ZoneConfidenceState,
        *,
        expected_version: Optional[int],
    ) -> ZoneConfidenceState:
        """
        Write `state` if the stored version still equals `expected_version`.

        `expected_version=None` means the zone must not exist yet.
        Returns the state as stored, with its new version.
        """
        with self._operation("upsert_state", write=True) as conn:
            if expected_version is None:
                stored = replace(state, version=1)
                ok = state_repo.insert_state(conn, stored)
            else:
                stored = replace(state, version=expected_version + 1)
                ok = state_repo.update_state(conn, stored, expected_version)
        if not ok:
            raise ConcurrentUpdateError(state.zone_id, expected_version=expected_version)
        return stored

    def list_zone_ids(self) -> List[str]:
        with self._operation("list_zone_ids") as conn:
            return state_repo.list_zone_ids(conn)

    def count_by_state(self) -> dict:
        with self._operation("count_by_state") as conn:
            return state_repo.count_by_state(conn)

    # ---- submissions ----------------------------------------------------

    def insert_submission(self, submission: IntelSubmission) -> None:
        with self._operation("insert_submission", write=True) as conn:
            intel_repo.insert_submission(conn, submission)

    def fetch_submissions(
        self,
        zone_id: str,
        since: datetime,
        *,
        until: Optional[datetime] = None,
    ) -> List[IntelSubmission]:
        with self._operation("fetch_submissions") as conn:
            return intel_repo.fetch_submissions_since(conn, zone_id, since, until=until)

    # ---- prices ---------------------------------------------------------

    def fetch_price_baseline(self, zone_id: str, item: str) -> Optional[PriceBaseline]:
        with self._operation("fetch_price_baseline") as conn:
            return price_repo.get_baseline(conn, zone_id, item)

    def list_price_baselines(self, zone_id: str) -> List[PriceBaseline]:
        with self._operation("list_price_baselines") as conn:
            return price_repo.list_baselines(conn, zone_id)

    def record_price(self, zone_id: str, point: PricePoint, at: datetime) -> PriceBaseline:
        """Fold a price into the zone's running aggregate for that item."""
        with self._operation("record_price", write=True) as conn:
            current = price_repo.get_baseline(conn, zone_id, point.item)
            if current is None:
                updated = PriceBaseline.first(zone_id, point, at)
            else:
                updated = current.with_report(point, at)
            price_repo.upsert_baseline(conn, updated)
        return updated

# data/state_repo.py
import sqlite3
from typing import Optional, List

from zoneconf.data.db import db_timestamp
from zoneconf.domain.models import ZoneConfidenceState
from zoneconf.utils.clock import parse_timestamp

_COLUMNS = (
    "zone_id", "score", "level", "state", "updated_at",
    "last_verified_at", "last_intel_at", "verification_count",
    "intel_count_24h", "boost_24h", "conflict_count",
    "hazard_active", "hazard_expires_at", "hazard_reason",
    "anomaly_detected", "anomaly_reason", "last_swept_at", "version",
)
_TIMESTAMPS = {"updated_at", "last_verified_at", "last_intel_at", "hazard_expires_at", "last_swept_at"}

def _to_row(state: ZoneConfidenceState) -> dict:
    row = {}
    for name in _COLUMNS:
        value = getattr(state, name)
        if name in _TIMESTAMPS:
            value = db_timestamp(value)
        elif name in ("level", "state"):
            value = value.value
        elif name in ("hazard_active", "anomaly_detected"):
            value = int(bool(value))
        row[name] = value
    return row

def _from_row(cur: sqlite3.Cursor, row) -> ZoneConfidenceState:
    col_names = [desc[0] for desc in cur.description]
    d = dict(zip(col_names, row))
    for name in _TIMESTAMPS:
        d[name] = parse_timestamp(d.get(name))
    d["hazard_active"] = bool(d["hazard_active"])
    d["anomaly_detected"] = bool(d["anomaly_detected"])
    return ZoneConfidenceState(**{k: d[k] for k in _COLUMNS})

def get_state(conn: sqlite3.Connection, zone_id: str) -> Optional[ZoneConfidenceState]:
    """Fetch one zone's state, or None if the zone has never been scored."""
    cur = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM zone_confidence WHERE zone_id = ?",
        (zone_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return _from_row(cur, row)

def insert_state(conn: sqlite3.Connection, state: ZoneConfidenceState) -> bool:
    """Insert a brand new zone row. False if the zone already exists."""
    row = _to_row(state)
    cur = conn.execute(
        f"INSERT OR IGNORE INTO zone_confidence({', '.join(_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
        tuple(row[c] for c in _COLUMNS),
    )
    return cur.rowcount == 1

def update_state(
    conn: sqlite3.Connection,
    state: ZoneConfidenceState,
    expected_version: int,
) -> bool:
    """Compare-and-set on `version`. False when another writer got there first."""
    row = _to_row(state)
    assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS if c != "zone_id")
    row["expected_version"] = expected_version
    cur = conn.execute(
        f"UPDATE zone_confidence SET {assignments} "
        f"WHERE zone_id = :zone_id AND version = :expected_version",
        row,
    )
    return cur.rowcount == 1

def list_zone_ids(conn: sqlite3.Connection) -> List[str]:
    return [r[0] for r in conn.execute("SELECT zone_id FROM zone_confidence ORDER BY zone_id")]

def count_by_state(conn: sqlite3.Connection) -> dict:
    return dict(conn.execute("SELECT state, COUNT(*) FROM zone_confidence GROUP BY state").fetchall())

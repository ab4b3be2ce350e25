# data/db.py
import sqlite3
from datetime import datetime
from typing import Optional

from zoneconf.utils.clock import as_utc

def connect(
    db_path: str,
    use_wal: bool = True,
    busy_timeout_ms: int = 120000,
) -> sqlite3.Connection:
    # shared across worker threads; SqliteZoneStore serialises access
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")

    if use_wal and str(db_path) != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
    else:
        conn.execute("PRAGMA journal_mode = DELETE;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        conn.execute("PRAGMA temp_store = MEMORY;")

    return conn

def db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC ISO text so stored timestamps sort lexically."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")

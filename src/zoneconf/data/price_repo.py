# data/price_repo.py
import sqlite3
from typing import Optional, List

from zoneconf.data.db import db_timestamp
from zoneconf.domain.models import PriceBaseline
from zoneconf.utils.clock import parse_timestamp

_COLUMNS = (
    "zone_id", "item", "average_price", "report_count", "min_price",
    "max_price", "tourist_average", "local_average", "last_report_at",
)

def get_baseline(conn: sqlite3.Connection, zone_id: str, item: str) -> Optional[PriceBaseline]:
    cur = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM zone_prices WHERE zone_id = ? AND item = ?",
        (zone_id, item),
    )
    row = cur.fetchone()
    if row is None:
        return None
    d = dict(zip(_COLUMNS, row))
    d["last_report_at"] = parse_timestamp(d["last_report_at"])
    return PriceBaseline(**d)

def upsert_baseline(conn: sqlite3.Connection, baseline: PriceBaseline) -> None:
    values = [getattr(baseline, c) for c in _COLUMNS]
    values[-1] = db_timestamp(baseline.last_report_at)
    conn.execute(
        f"""
        INSERT INTO zone_prices({', '.join(_COLUMNS)})
        VALUES ({', '.join('?' for _ in _COLUMNS)})
        ON CONFLICT(zone_id, item) DO UPDATE SET
            average_price   = excluded.average_price,
            report_count    = excluded.report_count,
            min_price       = excluded.min_price,
            max_price       = excluded.max_price,
            tourist_average = excluded.tourist_average,
            local_average   = excluded.local_average,
            last_report_at  = excluded.last_report_at
        """,
        values,
    )

def list_baselines(conn: sqlite3.Connection, zone_id: str) -> List[PriceBaseline]:
    cur = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM zone_prices WHERE zone_id = ? ORDER BY item",
        (zone_id,),
    )
    out = []
    for row in cur.fetchall():
        d = dict(zip(_COLUMNS, row))
        d["last_report_at"] = parse_timestamp(d["last_report_at"])
        out.append(PriceBaseline(**d))
    return out

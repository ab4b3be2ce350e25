# data/intel_repo.py
import json
import sqlite3
from datetime import datetime
from typing import List, Optional

from zoneconf.data.db import db_timestamp
from zoneconf.domain.models import IntelSubmission, IntelType
from zoneconf.utils.clock import parse_timestamp

def insert_submission(conn: sqlite3.Connection, submission: IntelSubmission) -> None:
    conn.execute(
        """
        INSERT INTO zone_intel(id, zone_id, user_id, intel_type, data, trust_weight, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            submission.id,
            submission.zone_id,
            submission.user_id,
            submission.intel_type.value,
            json.dumps(dict(submission.data), sort_keys=True),
            submission.trust_weight,
            db_timestamp(submission.created_at),
        ),
    )

def fetch_submissions_since(
    conn: sqlite3.Connection,
    zone_id: str,
    since: datetime,
    *,
    until: Optional[datetime] = None,
) -> List[IntelSubmission]:
    """Submissions for one zone newer than `since`, newest first."""
    query = """
        SELECT id, zone_id, user_id, intel_type, data, trust_weight, created_at
        FROM zone_intel
        WHERE zone_id = ? AND created_at >= ?
    """
    params = [zone_id, db_timestamp(since)]
    if until is not None:
        query += " AND created_at <= ?"
        params.append(db_timestamp(until))
    query += " ORDER BY created_at DESC, id"

    return [
        IntelSubmission(
            id=row[0],
            zone_id=row[1],
            user_id=row[2],
            intel_type=IntelType(row[3]),
            data=json.loads(row[4]) if row[4] else {},
            trust_weight=row[5],
            created_at=parse_timestamp(row[6]),
        )
        for row in conn.execute(query, params)
    ]

"""Functionality to create the zone confidence database schema"""
import sqlite3

def create_schema(con: sqlite3.Connection) -> sqlite3.Connection:
    """ Create the zone tables if they do not exist. """
    with con:
        con.executescript("""
            CREATE TABLE IF NOT EXISTS zone_confidence(
                zone_id            TEXT PRIMARY KEY,
                score              REAL    NOT NULL CHECK (score >= 0 AND score <= 100),
                level              TEXT    NOT NULL,
                state              TEXT    NOT NULL,
                updated_at         TEXT    NOT NULL,
                last_verified_at   TEXT,
                last_intel_at      TEXT,
                verification_count INTEGER NOT NULL DEFAULT 0,
                intel_count_24h    INTEGER NOT NULL DEFAULT 0,
                boost_24h          REAL    NOT NULL DEFAULT 0,
                conflict_count     INTEGER NOT NULL DEFAULT 0,
                hazard_active      BOOLEAN NOT NULL DEFAULT 0,
                hazard_expires_at  TEXT,
                hazard_reason      TEXT,
                anomaly_detected   BOOLEAN NOT NULL DEFAULT 0,
                anomaly_reason     TEXT,
                last_swept_at      TEXT,
                version            INTEGER NOT NULL DEFAULT 1
            );

            CREATE INDEX IF NOT EXISTS idx_zone_confidence_state
                ON zone_confidence(state);

            CREATE TABLE IF NOT EXISTS zone_intel(
                id           TEXT PRIMARY KEY,
                zone_id      TEXT NOT NULL,
                user_id      TEXT NOT NULL,
                intel_type   TEXT NOT NULL,
                data         TEXT NOT NULL DEFAULT '{}',
                trust_weight REAL NOT NULL,
                created_at   TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_zone_intel_zone_time
                ON zone_intel(zone_id, created_at DESC);
            CREATE INDEX IF NOT EXISTS idx_zone_intel_type
                ON zone_intel(zone_id, intel_type, created_at DESC);

            CREATE TABLE IF NOT EXISTS zone_prices(
                zone_id         TEXT NOT NULL,
                item            TEXT NOT NULL,
                average_price   REAL NOT NULL,
                report_count    INTEGER NOT NULL DEFAULT 0,
                min_price       REAL,
                max_price       REAL,
                tourist_average REAL,
                local_average   REAL,
                last_report_at  TEXT,
                PRIMARY KEY (zone_id, item)
            );
        """)
    return con

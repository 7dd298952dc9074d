"""
Initialize database tables for Immersion Timeline region storage.
Run this once when switching REGION_STORE_BACKEND to "database".
"""

import os
import psycopg2

DATABASE_URL = os.environ.get('DATABASE_URL')

SCHEMA = """
-- User-defined region overrides (always win over the static table)
CREATE TABLE IF NOT EXISTS region_overrides (
    period VARCHAR PRIMARY KEY,
    countries JSONB NOT NULL DEFAULT '[]',
    timeframe TEXT DEFAULT '',
    description TEXT DEFAULT '',
    source VARCHAR,
    confidence VARCHAR,
    type VARCHAR,
    updated_at DOUBLE PRECISION
);

-- AI resolution cache (provisional, evictable)
CREATE TABLE IF NOT EXISTS region_cache (
    period VARCHAR PRIMARY KEY,
    countries JSONB NOT NULL DEFAULT '[]',
    timeframe TEXT DEFAULT '',
    description TEXT DEFAULT '',
    source VARCHAR,
    confidence VARCHAR,
    type VARCHAR,
    updated_at DOUBLE PRECISION
);

CREATE INDEX IF NOT EXISTS idx_region_overrides_lower ON region_overrides(LOWER(period));
CREATE INDEX IF NOT EXISTS idx_region_cache_updated ON region_cache(updated_at);
"""


def init_db():
    """Create all required tables."""
    print("Connecting to database...")
    conn = psycopg2.connect(DATABASE_URL)
    cur = conn.cursor()

    print("Creating tables...")
    cur.execute(SCHEMA)
    conn.commit()

    cur.close()
    conn.close()
    print("Database initialized successfully!")


if __name__ == "__main__":
    if not DATABASE_URL:
        print("ERROR: DATABASE_URL environment variable not set")
        raise SystemExit(1)
    init_db()

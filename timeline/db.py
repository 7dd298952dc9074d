"""
Database connection handling for Immersion Timeline.
Region overrides and the AI resolution cache live in Postgres when
REGION_STORE_BACKEND=database.
"""

import os
import logging
from contextlib import contextmanager

import psycopg2

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get('DATABASE_URL')

# Tables a DatabaseRegionStore may be bound to
REGION_TABLES = ('region_overrides', 'region_cache')


@contextmanager
def get_db():
    """Get a database connection with automatic cleanup."""
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable not set")

    conn = psycopg2.connect(DATABASE_URL)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

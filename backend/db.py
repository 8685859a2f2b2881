"""
Database connection helper.

Every repository and `scripts/create_tables.py` open their connections
here, one per call, with a short connect timeout. Pooling or an async
driver would be swapped in at this single point.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
"""

import psycopg
from settings import settings


def get_conn():
    """Return a new psycopg connection using `settings.db_url`.

    The short `connect_timeout` keeps HTTP requests from hanging when the
    database is unreachable; a timed-out request fails without writing.
    """

    return psycopg.connect(settings.db_url, connect_timeout=5)

"""
Repository: SQL operations for `activity_logs`.

This file contains only DB interaction code. It maps `ActivityLogEntry`
to SQL parameters and rows back to entries. Keep business rules out of
this module.

Important notes:
- Window ends from `time_window` are the last millisecond of the span;
  queries use `occurred_at < exclusive_end(end)` so sub-millisecond
  instants at the very end of a day are still inside.
- `insert_log` relies on the unique index on (pact_id, user_id, day_key):
  a duplicate day is absorbed by `ON CONFLICT DO NOTHING` and reported
  as `None`, so concurrent requests cannot both land a row.
"""

from datetime import datetime
from typing import List, Optional, Sequence
from db import get_conn
from models import ActivityLogEntry
from time_window import exclusive_end

_COLUMNS = "id, pact_id, activity_id, user_id, occurred_at, notes, verified, created_at"


def _entry(r) -> ActivityLogEntry:
    return ActivityLogEntry(
        id=str(r[0]),
        pact_id=r[1],
        activity_id=r[2],
        user_id=r[3],
        occurred_at=r[4],
        notes=r[5],
        verified=r[6],
        created_at=r[7],
    )


class ActivityLogRepo:
    """DB access only. No business logic here."""

    def insert_log(self, entry: ActivityLogEntry, day_key: str) -> Optional[ActivityLogEntry]:
        """Insert one entry; returns `None` if the (pact, user, day) slot is taken."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO activity_logs "
                    "(pact_id, activity_id, user_id, occurred_at, day_key, notes, verified) "
                    "VALUES (%s, %s, %s, %s, %s, %s, %s) "
                    "ON CONFLICT (pact_id, user_id, day_key) DO NOTHING "
                    f"RETURNING {_COLUMNS}",
                    (
                        entry.pact_id,
                        entry.activity_id,
                        entry.user_id,
                        entry.occurred_at,
                        day_key,
                        entry.notes,
                        entry.verified,
                    ),
                )
                r = cur.fetchone()
            conn.commit()
        return _entry(r) if r else None

    def get_log(self, log_id: str) -> Optional[ActivityLogEntry]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM activity_logs WHERE id=%s", (log_id,))
                r = cur.fetchone()
                return _entry(r) if r else None

    def find_in_window(
        self,
        pact_id: str,
        start: datetime,
        end: datetime,
        user_id: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> List[ActivityLogEntry]:
        """Entries of a pact with `occurred_at` in [start, end], optionally
        narrowed to one user and/or one activity."""

        sql = f"SELECT {_COLUMNS} FROM activity_logs WHERE pact_id=%s AND occurred_at >= %s AND occurred_at < %s"
        params: list = [pact_id, start, exclusive_end(end)]
        if user_id is not None:
            sql += " AND user_id=%s"
            params.append(user_id)
        if activity_id is not None:
            sql += " AND activity_id=%s"
            params.append(activity_id)
        sql += " ORDER BY occurred_at"

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [_entry(r) for r in cur.fetchall()]

    def find_for_user_in_pacts(
        self, user_id: str, pact_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[ActivityLogEntry]:
        if not pact_ids:
            return []
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM activity_logs "
                    "WHERE user_id=%s AND pact_id = ANY(%s) AND occurred_at >= %s AND occurred_at < %s",
                    (user_id, list(pact_ids), start, exclusive_end(end)),
                )
                return [_entry(r) for r in cur.fetchall()]

    def fetch_all(self, pact_id: str, user_id: str) -> List[ActivityLogEntry]:
        """All-time entries for (pact, user), newest first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM activity_logs "
                    "WHERE pact_id=%s AND user_id=%s ORDER BY occurred_at DESC",
                    (pact_id, user_id),
                )
                return [_entry(r) for r in cur.fetchall()]

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error.

        Used by the top-level `/health` endpoint to validate DB reachability.
        """

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")

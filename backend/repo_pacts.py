"""
Repositories for pacts, activities and users.

Creating these rows belongs to other services; the core only reads them,
plus the two writes a join performs (participant append and membership).
Rows are mapped to the Pydantic entities in `models.py`.
"""

from typing import Iterable, List, Optional
from db import get_conn
from models import Activity, Pact, PactMembership, User

_PACT_COLUMNS = (
    "id, title, description, participants, status, start_date, end_date, "
    "min_days_per_week, max_activities_per_user, skip_fine, leave_fine"
)


def _pact(r) -> Pact:
    return Pact(
        id=r[0],
        title=r[1],
        description=r[2],
        participants=list(r[3] or []),
        status=r[4],
        start_date=r[5],
        end_date=r[6],
        min_days_per_week=r[7],
        max_activities_per_user=r[8],
        skip_fine=r[9],
        leave_fine=r[10],
    )


class PactRepo:
    def get_pact(self, pact_id: str) -> Optional[Pact]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_PACT_COLUMNS} FROM pacts WHERE id=%s", (pact_id,))
                r = cur.fetchone()
                return _pact(r) if r else None

    def find_pacts_for_user(self, user_id: str) -> List[Pact]:
        """Every pact listing `user_id` among its participants, oldest first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_PACT_COLUMNS} FROM pacts "
                    "WHERE participants @> ARRAY[%s]::text[] ORDER BY created_at",
                    (user_id,),
                )
                return [_pact(r) for r in cur.fetchall()]

    def add_participant(self, pact_id: str, user_id: str) -> bool:
        """Append `user_id` unless present. Returns False if nothing changed."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE pacts SET participants = array_append(participants, %s) "
                    "WHERE id=%s AND NOT (participants @> ARRAY[%s]::text[])",
                    (user_id, pact_id, user_id),
                )
                changed = cur.rowcount == 1
            conn.commit()
        return changed


class ActivityRepo:
    _COLUMNS = "id, pact_id, user_id, name, description, number_of_days, is_primary"

    @staticmethod
    def _activity(r) -> Activity:
        return Activity(
            id=r[0],
            pact_id=r[1],
            user_id=r[2],
            name=r[3],
            description=r[4],
            number_of_days=r[5],
            is_primary=r[6],
        )

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {self._COLUMNS} FROM activities WHERE id=%s", (activity_id,))
                r = cur.fetchone()
                return self._activity(r) if r else None

    def get_activities_in_pact(self, pact_id: str, activity_ids: Iterable[str]) -> List[Activity]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {self._COLUMNS} FROM activities WHERE pact_id=%s AND id = ANY(%s)",
                    (pact_id, list(activity_ids)),
                )
                return [self._activity(r) for r in cur.fetchall()]


class UserRepo:
    _COLUMNS = "id, email, name, phone, pact_id, primary_activity_id, secondary_activity_id"

    @staticmethod
    def _user(r) -> User:
        membership = None
        if r[4]:
            membership = PactMembership(
                pact_id=r[4], primary_activity_id=r[5], secondary_activity_id=r[6]
            )
        return User(id=r[0], email=r[1], name=r[2], phone=r[3], membership=membership)

    def get_user(self, user_id: str) -> Optional[User]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {self._COLUMNS} FROM users WHERE id=%s", (user_id,))
                r = cur.fetchone()
                return self._user(r) if r else None

    def get_users(self, user_ids: Iterable[str]) -> List[User]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {self._COLUMNS} FROM users WHERE id = ANY(%s)",
                    (list(user_ids),),
                )
                return [self._user(r) for r in cur.fetchall()]

    def set_membership(self, user_id: str, membership: PactMembership) -> None:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE users SET pact_id=%s, primary_activity_id=%s, "
                    "secondary_activity_id=%s, updated_at=now() WHERE id=%s",
                    (
                        membership.pact_id,
                        membership.primary_activity_id,
                        membership.secondary_activity_id,
                        user_id,
                    ),
                )
            conn.commit()

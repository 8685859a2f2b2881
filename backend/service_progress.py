"""
Service: weekly progress and log read paths.

Progress counts distinct local calendar days, not entries: two logs on the
same local day count once. The week is the Monday-Saturday window around
"now" in the configured offset (`time_window.week_window`).

Media are attached to a log at read time only: `log_detail` returns the
assets of the same (pact, activity, user) created during the log's local
day. There is no stored link, so two logs that share that triple and day
would show the same media.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

from guards import load_activity_in_pact, load_pact, require_ids, require_participant
from errors import NotFoundException
from models import ActivityLogEntry, Pact
from repo_logs import ActivityLogRepo
from repo_media import MediaRepo
from repo_pacts import ActivityRepo, PactRepo
from settings import settings
from time_window import day_key, day_window, week_window


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


class ProgressService:
    def __init__(
        self,
        log_repo: ActivityLogRepo,
        pact_repo: PactRepo,
        activity_repo: ActivityRepo,
        media_repo: MediaRepo,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.log_repo = log_repo
        self.pact_repo = pact_repo
        self.activity_repo = activity_repo
        self.media_repo = media_repo
        self.clock = clock or _utcnow

    @property
    def offset(self) -> int:
        return settings.tz_offset_minutes

    def _target(self, pact: Pact) -> int:
        return pact.min_days_per_week or settings.default_target_days

    def _days_by(self, entries: Iterable[ActivityLogEntry], attr: str) -> Dict[str, Set[str]]:
        days: Dict[str, Set[str]] = defaultdict(set)
        for e in entries:
            days[getattr(e, attr)].add(day_key(e.occurred_at, self.offset))
        return days

    def weekly_progress_by_activity(self, pact_id: str, activity_id: str) -> dict:
        """One row per participant: distinct days this week on `activity_id`."""

        require_ids(pactId=pact_id, activityId=activity_id)
        pact = load_pact(self.pact_repo, pact_id)
        load_activity_in_pact(self.activity_repo, pact.id, activity_id)

        week = week_window(self.clock(), self.offset)
        entries = self.log_repo.find_in_window(pact.id, week.start, week.end, activity_id=activity_id)
        days = self._days_by(entries, "user_id")

        target = self._target(pact)
        users = [
            {"userId": uid, "targetDays": target, "activityDays": len(days.get(uid, ()))}
            for uid in pact.participants
        ]
        return {"targetDays": target, "users": users}

    def weekly_progress_for_user(self, pact_id: str, user_id: str) -> dict:
        """Distinct days this week for one user, across every activity in the pact."""

        require_ids(pactId=pact_id, userId=user_id)
        pact = load_pact(self.pact_repo, pact_id)
        require_participant(pact, user_id)

        week = week_window(self.clock(), self.offset)
        entries = self.log_repo.find_in_window(pact.id, week.start, week.end, user_id=user_id)
        activity_days = len({day_key(e.occurred_at, self.offset) for e in entries})
        return {"userId": user_id, "targetDays": self._target(pact), "activityDays": activity_days}

    def weekly_progress_across_pacts(self, user_id: str) -> List[dict]:
        require_ids(userId=user_id)
        pacts = self.pact_repo.find_pacts_for_user(user_id)
        if not pacts:
            return []

        # every pact shares the same offset, so one window covers them all
        week = week_window(self.clock(), self.offset)
        entries = self.log_repo.find_for_user_in_pacts(user_id, [p.id for p in pacts], week.start, week.end)
        days = self._days_by(entries, "pact_id")
        return [
            {"pactId": p.id, "targetDays": self._target(p), "activityDays": len(days.get(p.id, ()))}
            for p in pacts
        ]

    def logs_by_day(self, pact_id: str, user_id: str) -> dict:
        """All-time logs for (pact, user) grouped by local day, newest day first."""

        require_ids(pactId=pact_id, userId=user_id)
        pact = load_pact(self.pact_repo, pact_id)
        require_participant(pact, user_id)

        groups: Dict[str, List[dict]] = defaultdict(list)
        entries = sorted(self.log_repo.fetch_all(pact.id, user_id), key=lambda e: e.occurred_at, reverse=True)
        for e in entries:
            groups[day_key(e.occurred_at, self.offset)].append({
                "id": e.id,
                "activityId": e.activity_id,
                "occurredAt": _iso(e.occurred_at),
                "notes": e.notes,
                "verified": bool(e.verified),
            })

        days = [{"date": date, "logs": groups[date]} for date in sorted(groups, reverse=True)]
        return {"pactId": pact_id, "userId": user_id, "days": days}

    def log_detail(self, log_id: str) -> dict:
        require_ids(id=log_id)
        entry = self.log_repo.get_log(log_id)
        if entry is None:
            raise NotFoundException("Activity log not found")

        start, end = day_window(entry.occurred_at, self.offset)
        media = self.media_repo.find_in_window(entry.pact_id, entry.activity_id, entry.user_id, start, end)
        return {
            "id": entry.id,
            "date": day_key(entry.occurred_at, self.offset),
            "occurredAt": _iso(entry.occurred_at),
            "notes": entry.notes,
            "images": [
                {
                    "name": m.name,
                    "mimeType": m.mime_type,
                    "sizeBytes": m.size_bytes,
                    "webViewLink": m.web_view_link,
                    "webContentLink": m.web_content_link,
                }
                for m in media
            ],
        }

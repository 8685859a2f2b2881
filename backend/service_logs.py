"""
Service / facade layer for activity-log admission.

This module implements the business rules for writing a log. It is free of
SQL; `ActivityLogRepo` performs the database operations.

Rules:
- one log per (pact, user, local calendar day), whatever the activity
- the user must participate in the pact and the activity must belong to it
- timestamps must be timezone-aware and are stored in UTC
- attachments are admitted before the log is written, then uploaded one
  after another in the order given
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from errors import ConflictException, ValidationException
from guards import load_pact_scope
from models import ActivityLogEntry, IncomingFile
from repo_logs import ActivityLogRepo
from repo_pacts import ActivityRepo, PactRepo, UserRepo
from service_media import MediaService
from settings import settings
from time_window import day_key, day_window

logger = structlog.get_logger("logs")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogService:
    """Business rules + validation for creating activity logs.

    Example usage:
        svc = LogService(ActivityLogRepo(), PactRepo(), ActivityRepo(), UserRepo(), media_svc)
        svc.create_log(pact_id, activity_id, user_id, notes="5k run")
    """

    def __init__(
        self,
        log_repo: ActivityLogRepo,
        pact_repo: PactRepo,
        activity_repo: ActivityRepo,
        user_repo: UserRepo,
        media_svc: Optional[MediaService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.log_repo = log_repo
        self.pact_repo = pact_repo
        self.activity_repo = activity_repo
        self.user_repo = user_repo
        self.media_svc = media_svc
        self.clock = clock or _utcnow

    def create_log(
        self,
        pact_id: str,
        activity_id: str,
        user_id: str,
        notes: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> ActivityLogEntry:
        """Validate and persist a single log.

        Raises:
        - `ValidationException` for blank ids or a naive `occurred_at`
        - `NotFoundException` for a missing pact/activity/user, or an
          activity from another pact
        - `ForbiddenException` if the user is not a participant
        - `ConflictException` if the user already logged that local day
        """

        if occurred_at is not None and occurred_at.tzinfo is None:
            raise ValidationException("occurredAt must include timezone info (e.g., 2026-02-20T10:00:00Z)")

        load_pact_scope(self.pact_repo, self.activity_repo, self.user_repo, pact_id, activity_id, user_id)
        return self._insert(pact_id, activity_id, user_id, notes, occurred_at)

    def _insert(self, pact_id, activity_id, user_id, notes, occurred_at) -> ActivityLogEntry:
        occurred_at = (occurred_at or self.clock()).astimezone(timezone.utc)
        offset = settings.tz_offset_minutes
        start, end = day_window(occurred_at, offset)
        key = day_key(occurred_at, offset)

        if self.log_repo.find_in_window(pact_id, start, end, user_id=user_id):
            logger.info("log_duplicate_rejected", pact_id=pact_id, user_id=user_id, day=key)
            raise ConflictException("Activity already logged for today")

        entry = self.log_repo.insert_log(
            ActivityLogEntry(
                pact_id=pact_id,
                activity_id=activity_id,
                user_id=user_id,
                occurred_at=occurred_at,
                notes=notes,
                verified=False,
            ),
            key,
        )
        if entry is None:
            # lost the race to a concurrent request for the same day
            logger.info("log_duplicate_rejected", pact_id=pact_id, user_id=user_id, day=key, race=True)
            raise ConflictException("Activity already logged for today")

        logger.info("log_created", log_id=entry.id, pact_id=pact_id, user_id=user_id, day=key)
        return entry

    def create_log_with_media(
        self,
        pact_id: str,
        activity_id: str,
        user_id: str,
        notes: Optional[str] = None,
        files: Sequence[IncomingFile] = (),
        occurred_at: Optional[datetime] = None,
    ) -> dict:
        """Create a log and upload its attachments.

        Returns the log summary plus one media summary per file, in the
        order the files were given.
        """

        files = list(files or [])
        if len(files) > settings.max_files_per_log:
            raise ValidationException(
                f"Too many files in one request: {len(files)} (max {settings.max_files_per_log})"
            )
        if files and self.media_svc is None:
            raise ValidationException("Attachments are not supported here")
        if occurred_at is not None and occurred_at.tzinfo is None:
            raise ValidationException("occurredAt must include timezone info (e.g., 2026-02-20T10:00:00Z)")

        pact, _activity, user = load_pact_scope(
            self.pact_repo, self.activity_repo, self.user_repo, pact_id, activity_id, user_id
        )
        for f in files:
            self.media_svc.check_file(f)

        entry = self._insert(pact_id, activity_id, user_id, notes, occurred_at)

        # one at a time; see storage.MediaStorageProvisioner for folder locking
        media: List[dict] = []
        for f in files:
            asset = self.media_svc.store(pact, activity_id, user, f)
            media.append(asset.summary())

        return {
            "id": entry.id,
            "verified": entry.verified,
            "occurredAt": entry.occurred_at.astimezone(timezone.utc).isoformat(),
            "notes": entry.notes,
            "media": media,
        }

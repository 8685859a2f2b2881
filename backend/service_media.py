"""
Service: evidence media admission, storage and cataloguing.

Admission (`check_file`) is local: mime allow-list and per-category size
ceilings, checked before any Drive call. `store` then provisions the
weekly folder, refreshes sharing on the root, uploads, and records a
`MediaAsset` row.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from errors import ValidationException
from guards import load_pact_scope
from models import IncomingFile, MediaAsset, Pact, User
from repo_media import MediaRepo
from repo_pacts import ActivityRepo, PactRepo, UserRepo
from settings import settings
from storage import MediaStorageProvisioner
from time_window import week_window

logger = structlog.get_logger("media")

ALLOWED_MIME = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "video/mp4",
    "video/quicktime",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaService:
    def __init__(
        self,
        media_repo: MediaRepo,
        pact_repo: PactRepo,
        activity_repo: ActivityRepo,
        user_repo: UserRepo,
        provisioner: MediaStorageProvisioner,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.media_repo = media_repo
        self.pact_repo = pact_repo
        self.activity_repo = activity_repo
        self.user_repo = user_repo
        self.provisioner = provisioner
        self.clock = clock or _utcnow

    def check_file(self, file: IncomingFile) -> None:
        """Raise `ValidationException` unless the file may be uploaded."""

        if file.mime_type not in ALLOWED_MIME:
            raise ValidationException(f"Unsupported file type: {file.mime_type}")
        if file.mime_type.startswith("image/") and file.size_bytes > settings.max_image_bytes:
            raise ValidationException(
                f"Image exceeds max size: {file.size_bytes} bytes (max {settings.max_image_bytes})"
            )
        if file.mime_type.startswith("video/") and file.size_bytes > settings.max_video_bytes:
            raise ValidationException(
                f"Video exceeds max size: {file.size_bytes} bytes (max {settings.max_video_bytes})"
            )

    def upload(self, pact_id: str, activity_id: str, user_id: str, file: Optional[IncomingFile]) -> MediaAsset:
        """Standalone upload: entity guards, admission, then `store`."""

        if file is None:
            raise ValidationException("file is required")
        pact, _activity, user = load_pact_scope(
            self.pact_repo, self.activity_repo, self.user_repo, pact_id, activity_id, user_id
        )
        self.check_file(file)
        return self.store(pact, activity_id, user, file)

    def store(self, pact: Pact, activity_id: str, user: User, file: IncomingFile) -> MediaAsset:
        """Upload an admitted file for a validated (pact, activity, user)."""

        now = self.clock()
        week = week_window(now, settings.tz_offset_minutes)
        root_id, folder_id = self.provisioner.provision_user_folder(pact.id, user.id, week.label)

        participants = self.user_repo.get_users(pact.participants)
        failed = self.provisioner.share_root(root_id, [u.email for u in participants])
        if failed:
            logger.warning("media_share_incomplete", pact_id=pact.id, failed=failed)

        stored = self.provisioner.upload_file(file.name, folder_id, file.mime_type, file.stream)
        asset = self.media_repo.insert_media(
            MediaAsset(
                pact_id=pact.id,
                activity_id=activity_id,
                user_id=user.id,
                provider_file_id=stored.id,
                name=file.name,
                mime_type=file.mime_type,
                size_bytes=file.size_bytes,
                visibility=self.provisioner.visibility,
                web_view_link=stored.web_view_link,
                web_content_link=stored.web_content_link,
                created_at=now,
            )
        )
        logger.info(
            "media_stored",
            media_id=asset.id,
            pact_id=pact.id,
            user_id=user.id,
            week=week.label,
            size_bytes=file.size_bytes,
        )
        return asset

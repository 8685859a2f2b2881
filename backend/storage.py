"""
Drive folder provisioning and sharing for evidence uploads.

Every upload lands in a three-level tree under one root folder:

    root -> pact_<pactId> -> <weekLabel> -> user_<userId>

`ensure_folder` is a find-or-create, so repeating it is harmless. The
find and the create are two provider calls, so provisioning of a given
(pact, week) branch runs under a keyed lock: requests for different pacts
or weeks go in parallel, requests for the same branch take turns. The lock
is per process; if two processes do race, `find_folder` always returns the
oldest duplicate so later lookups converge on one folder.

Sharing is granted on the root only; Drive propagates it to children.
Grants are best-effort: a failed grant is logged and reported back, never
raised.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import structlog

from errors import StorageException
from models import StoredFile
from storage_drive import MY_DRIVE_ROOT, DriveClient

logger = structlog.get_logger("storage")

ANYONE = "anyone"


class KeyedLocks:
    """One mutex per key; entries are dropped once nobody holds or waits."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, list] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class RootFolder:
    """The root folder id, resolved at most once per process.

    A configured id is used as-is. Otherwise the named top-level folder is
    found or created in My Drive on first use and cached for the life of
    the process; picking up a newly configured root needs a restart.
    """

    def __init__(self, drive: DriveClient, configured_id: str = "", name: str = "pacttrack-media"):
        self._drive = drive
        self._name = name
        self._id: Optional[str] = configured_id or None
        self._lock = threading.Lock()

    @property
    def resolved_id(self) -> Optional[str]:
        return self._id

    def resolve(self) -> str:
        if self._id:
            return self._id
        with self._lock:
            if not self._id:
                folder_id = self._drive.find_folder(self._name, MY_DRIVE_ROOT)
                if folder_id is None:
                    folder_id = self._drive.create_folder(self._name, MY_DRIVE_ROOT)
                logger.info("drive_root_resolved", name=self._name, folder_id=folder_id)
                self._id = folder_id
        return self._id


class MediaStorageProvisioner:
    def __init__(
        self,
        drive: DriveClient,
        root: RootFolder,
        visibility: str = "link",
        locks: Optional[KeyedLocks] = None,
    ):
        self.drive = drive
        self.root = root
        self.visibility = visibility
        self.locks = locks or KeyedLocks()

    @property
    def link_shareable(self) -> bool:
        return self.visibility == "link"

    def ensure_folder(self, name: str, parent_id: str) -> str:
        folder_id = self.drive.find_folder(name, parent_id)
        if folder_id is not None:
            return folder_id
        return self.drive.create_folder(name, parent_id)

    def provision_user_folder(self, pact_id: str, user_id: str, week_label: str) -> Tuple[str, str]:
        """Return `(root_id, user_folder_id)` for this week's upload target."""

        root_id = self.root.resolve()
        with self.locks.hold((pact_id, week_label)):
            pact_folder = self.ensure_folder(f"pact_{pact_id}", root_id)
            week_folder = self.ensure_folder(week_label, pact_folder)
            user_folder = self.ensure_folder(f"user_{user_id}", week_folder)
        return root_id, user_folder

    def share_root(self, root_id: str, emails: Iterable[str]) -> List[str]:
        """Grant reader on the root to each email (plus anyone-with-link when
        link-shareable). Returns the identities whose grant failed."""

        targets: List[Optional[str]] = [e for e in emails if e]
        if self.link_shareable:
            targets.append(None)

        failed = []
        for email in targets:
            try:
                self.drive.grant_reader(root_id, email)
            except StorageException as e:
                identity = email or ANYONE
                logger.warning("drive_grant_failed", folder_id=root_id, identity=identity, error=e.message)
                failed.append(identity)
        return failed

    def upload_file(self, name: str, parent_id: str, mime_type: str, stream) -> StoredFile:
        file_id = self.drive.create_file(name, parent_id, mime_type, stream)
        if self.link_shareable:
            try:
                self.drive.grant_reader(file_id)
            except StorageException as e:
                logger.warning("drive_grant_failed", file_id=file_id, identity=ANYONE, error=e.message)
        stored = self.drive.get_file(file_id)
        logger.info("drive_file_uploaded", name=name, file_id=stored.id, parent_id=parent_id)
        return stored

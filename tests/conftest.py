"""
Pytest fixtures for the pacttrack backend.

The backend modules are top-level (`from settings import settings`), so the
backend directory goes on sys.path. Postgres and Google Drive are replaced
by the in-memory fakes below, which follow the repository and DriveClient
method signatures.
"""
import io
import itertools
import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from errors import StorageException  # noqa: E402
from models import Activity, IncomingFile, Pact, StoredFile, User  # noqa: E402
from service_logs import LogService  # noqa: E402
from service_media import MediaService  # noqa: E402
from service_pacts import PactService  # noqa: E402
from service_progress import ProgressService  # noqa: E402
from storage import MediaStorageProvisioner, RootFolder  # noqa: E402
from time_window import exclusive_end  # noqa: E402

# Thursday 2026-10-22 11:30 IST; the IST week is Mon 19th .. Sat 24th
NOW = datetime(2026, 10, 22, 6, 0, tzinfo=timezone.utc)


class FakePactRepo:
    def __init__(self, pacts=()):
        self.pacts = {p.id: p for p in pacts}

    def get_pact(self, pact_id):
        return self.pacts.get(pact_id)

    def find_pacts_for_user(self, user_id):
        return [p for p in self.pacts.values() if user_id in p.participants]

    def add_participant(self, pact_id, user_id):
        pact = self.pacts[pact_id]
        if user_id in pact.participants:
            return False
        self.pacts[pact_id] = pact.model_copy(update={'participants': pact.participants + [user_id]})
        return True


class FakeActivityRepo:
    def __init__(self, activities=()):
        self.activities = {a.id: a for a in activities}

    def get_activity(self, activity_id):
        return self.activities.get(activity_id)

    def get_activities_in_pact(self, pact_id, activity_ids):
        return [a for a in self.activities.values() if a.id in set(activity_ids) and a.pact_id == pact_id]


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {u.id: u for u in users}

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_users(self, user_ids):
        return [self.users[u] for u in user_ids if u in self.users]

    def set_membership(self, user_id, membership):
        self.users[user_id] = self.users[user_id].model_copy(update={'membership': membership})


class FakeLogRepo:
    """Keeps the (pact, user, day_key) uniqueness the real table enforces."""

    def __init__(self):
        self.entries = []
        self.day_keys = set()
        self._ids = itertools.count(1)

    def insert_log(self, entry, day_key):
        slot = (entry.pact_id, entry.user_id, day_key)
        if slot in self.day_keys:
            return None
        self.day_keys.add(slot)
        saved = entry.model_copy(update={'id': str(next(self._ids)), 'created_at': NOW})
        self.entries.append(saved)
        return saved

    def get_log(self, log_id):
        return next((e for e in self.entries if e.id == log_id), None)

    def find_in_window(self, pact_id, start, end, user_id=None, activity_id=None):
        return sorted(
            (
                e for e in self.entries
                if e.pact_id == pact_id
                and start <= e.occurred_at < exclusive_end(end)
                and (user_id is None or e.user_id == user_id)
                and (activity_id is None or e.activity_id == activity_id)
            ),
            key=lambda e: e.occurred_at,
        )

    def find_for_user_in_pacts(self, user_id, pact_ids, start, end):
        return [
            e for e in self.entries
            if e.user_id == user_id and e.pact_id in pact_ids and start <= e.occurred_at < exclusive_end(end)
        ]

    def fetch_all(self, pact_id, user_id):
        return sorted(
            (e for e in self.entries if e.pact_id == pact_id and e.user_id == user_id),
            key=lambda e: e.occurred_at,
            reverse=True,
        )


class FakeMediaRepo:
    def __init__(self):
        self.assets = []
        self._ids = itertools.count(1)

    def insert_media(self, asset):
        saved = asset.model_copy(update={'id': str(next(self._ids))})
        self.assets.append(saved)
        return saved

    def find_in_window(self, pact_id, activity_id, user_id, start, end):
        return sorted(
            (
                a for a in self.assets
                if (a.pact_id, a.activity_id, a.user_id) == (pact_id, activity_id, user_id)
                and start <= a.created_at < exclusive_end(end)
            ),
            key=lambda a: a.created_at,
        )


class FakeDrive:
    """In-memory stand-in for DriveClient; records every call."""

    def __init__(self):
        self.folders = {}
        self.files = {}
        self.grants = []
        self.calls = []
        self.failing_identities = set()
        self.fail_uploads = False
        self._ids = itertools.count(1)

    def find_folder(self, name, parent_id):
        self.calls.append(('find_folder', name, parent_id))
        matches = [fid for fid, (n, p) in self.folders.items() if n == name and p == parent_id]
        return matches[0] if matches else None

    def create_folder(self, name, parent_id):
        self.calls.append(('create_folder', name, parent_id))
        folder_id = f'folder-{next(self._ids)}'
        self.folders[folder_id] = (name, parent_id)
        return folder_id

    def create_file(self, name, parent_id, mime_type, stream):
        self.calls.append(('create_file', name, parent_id))
        if self.fail_uploads:
            raise StorageException('Drive upload failed: <HttpError 403 "quota exceeded">')
        file_id = f'file-{next(self._ids)}'
        self.files[file_id] = (name, parent_id, mime_type, stream.read() if stream else b'')
        return file_id

    def get_file(self, file_id):
        self.calls.append(('get_file', file_id))
        return StoredFile(
            id=file_id,
            web_view_link=f'https://drive.example/{file_id}/view',
            web_content_link=f'https://drive.example/{file_id}/download',
        )

    def grant_reader(self, file_id, email=None):
        identity = email or 'anyone'
        self.calls.append(('grant_reader', file_id, identity))
        if identity in self.failing_identities:
            raise StorageException(f'Drive permission grant failed: {identity}')
        self.grants.append((file_id, identity))

    def created_folders(self):
        return [c for c in self.calls if c[0] == 'create_folder']


def png(size=1024, name='proof.png'):
    return IncomingFile(name=name, mime_type='image/png', size_bytes=size, stream=io.BytesIO(b'x' * size))


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def pact_repo():
    return FakePactRepo([
        Pact(id='p1', title='Morning runs', participants=['u1', 'u2'], min_days_per_week=5, max_activities_per_user=2),
        Pact(id='p2', title='Reading', participants=['u1'], min_days_per_week=3, max_activities_per_user=1),
        Pact(id='p3', title='No target', participants=['u2']),
    ])


@pytest.fixture
def activity_repo():
    return FakeActivityRepo([
        Activity(id='a1', pact_id='p1', user_id='u1', name='Run', is_primary=True),
        Activity(id='a2', pact_id='p1', user_id='u1', name='Stretch'),
        Activity(id='b1', pact_id='p2', user_id='u1', name='Read', is_primary=True),
        Activity(id='c1', pact_id='p3', user_id='u2', name='Swim', is_primary=True),
    ])


@pytest.fixture
def user_repo():
    return FakeUserRepo([
        User(id='u1', email='asha@example.com', name='Asha'),
        User(id='u2', email='ravi@example.com', name='Ravi'),
        User(id='u3', email='mei@example.com', name='Mei'),
    ])


@pytest.fixture
def log_repo():
    return FakeLogRepo()


@pytest.fixture
def media_repo():
    return FakeMediaRepo()


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def provisioner(drive):
    return MediaStorageProvisioner(drive, RootFolder(drive, '', 'pacttrack-media'), visibility='link')


@pytest.fixture
def media_svc(media_repo, pact_repo, activity_repo, user_repo, provisioner, clock):
    return MediaService(media_repo, pact_repo, activity_repo, user_repo, provisioner, clock=clock)


@pytest.fixture
def log_svc(log_repo, pact_repo, activity_repo, user_repo, media_svc, clock):
    return LogService(log_repo, pact_repo, activity_repo, user_repo, media_svc, clock=clock)


@pytest.fixture
def progress_svc(log_repo, pact_repo, activity_repo, media_repo, clock):
    return ProgressService(log_repo, pact_repo, activity_repo, media_repo, clock=clock)


@pytest.fixture
def pact_svc(pact_repo, activity_repo, user_repo):
    return PactService(pact_repo, activity_repo, user_repo)

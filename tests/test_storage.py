"""Tests for Drive folder provisioning, root resolution and sharing."""

import io
import threading
import time

import pytest

from errors import StorageException
from storage import KeyedLocks, MediaStorageProvisioner, RootFolder
from storage_drive import MY_DRIVE_ROOT


def test_ensure_folder_is_idempotent(provisioner, drive):
    first = provisioner.ensure_folder('pact_p1', 'root-id')
    second = provisioner.ensure_folder('pact_p1', 'root-id')

    assert first == second
    assert len(drive.created_folders()) == 1


def test_ensure_folder_scopes_by_parent(provisioner):
    assert provisioner.ensure_folder('same', 'parent-a') != provisioner.ensure_folder('same', 'parent-b')


def test_configured_root_is_used_without_provider_calls(drive):
    root = RootFolder(drive, 'configured-root', 'ignored')
    assert root.resolve() == 'configured-root'
    assert drive.calls == []


def test_root_is_resolved_once_and_cached(drive):
    root = RootFolder(drive, '', 'pacttrack-media')
    assert root.resolved_id is None

    first = root.resolve()
    calls_after_first = len(drive.calls)
    second = root.resolve()

    assert first == second == root.resolved_id
    assert len(drive.calls) == calls_after_first
    assert drive.folders[first] == ('pacttrack-media', MY_DRIVE_ROOT)


def test_root_reuses_existing_top_level_folder(drive):
    existing = drive.create_folder('pacttrack-media', MY_DRIVE_ROOT)
    drive.calls.clear()

    assert RootFolder(drive, '', 'pacttrack-media').resolve() == existing
    assert drive.created_folders() == []


def test_provision_user_folder_builds_three_levels(provisioner, drive):
    root_id, folder_id = provisioner.provision_user_folder('p1', 'u1', '2026-10-19_to_2026-10-24')

    user_name, week_id = drive.folders[folder_id]
    week_name, pact_id = drive.folders[week_id]
    pact_name, parent = drive.folders[pact_id]
    assert (pact_name, week_name, user_name) == ('pact_p1', '2026-10-19_to_2026-10-24', 'user_u1')
    assert parent == root_id


def test_provision_twice_creates_nothing_new(provisioner, drive):
    first = provisioner.provision_user_folder('p1', 'u1', 'w')
    created = len(drive.created_folders())
    second = provisioner.provision_user_folder('p1', 'u1', 'w')

    assert first == second
    assert len(drive.created_folders()) == created


def test_second_user_reuses_pact_and_week_folders(provisioner, drive):
    provisioner.provision_user_folder('p1', 'u1', 'w')
    before = len(drive.created_folders())
    provisioner.provision_user_folder('p1', 'u2', 'w')

    assert len(drive.created_folders()) == before + 1


class SlowDrive:
    """Widens the gap between lookup and create to expose races."""

    def __init__(self, drive):
        self.drive = drive

    def __getattr__(self, name):
        return getattr(self.drive, name)

    def find_folder(self, name, parent_id):
        found = self.drive.find_folder(name, parent_id)
        time.sleep(0.01)
        return found


def test_concurrent_provisioning_of_same_week_creates_one_tree(drive):
    slow = SlowDrive(drive)
    provisioner = MediaStorageProvisioner(slow, RootFolder(slow, 'root-id'), visibility='private')
    results = []

    def worker(user_id):
        results.append(provisioner.provision_user_folder('p1', user_id, 'w'))

    threads = [threading.Thread(target=worker, args=(f'u{i}',)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    names = [name for name, _parent in drive.folders.values()]
    assert names.count('pact_p1') == 1
    assert names.count('w') == 1
    assert len(results) == 5


def test_keyed_locks_release_entries():
    locks = KeyedLocks()
    with locks.hold(('p1', 'w')):
        assert ('p1', 'w') in locks._locks
    assert locks._locks == {}


def test_share_root_grants_each_email_and_link(provisioner, drive):
    failed = provisioner.share_root('root-id', ['a@example.com', '', 'b@example.com'])

    assert failed == []
    assert drive.grants == [
        ('root-id', 'a@example.com'),
        ('root-id', 'b@example.com'),
        ('root-id', 'anyone'),
    ]


def test_share_root_private_skips_link_grant(drive):
    provisioner = MediaStorageProvisioner(drive, RootFolder(drive, 'root-id'), visibility='private')
    provisioner.share_root('root-id', ['a@example.com'])
    assert drive.grants == [('root-id', 'a@example.com')]


def test_share_root_failures_are_reported_not_raised(provisioner, drive):
    drive.failing_identities = {'a@example.com', 'anyone'}

    failed = provisioner.share_root('root-id', ['a@example.com', 'b@example.com'])

    assert failed == ['a@example.com', 'anyone']
    assert drive.grants == [('root-id', 'b@example.com')]


def test_upload_file_returns_links_and_shares_file(provisioner, drive):
    stored = provisioner.upload_file('proof.png', 'folder-x', 'image/png', io.BytesIO(b'abc'))

    assert stored.id in drive.files
    assert drive.files[stored.id] == ('proof.png', 'folder-x', 'image/png', b'abc')
    assert stored.web_view_link.endswith('/view')
    assert (stored.id, 'anyone') in drive.grants


def test_upload_file_survives_failed_link_grant(provisioner, drive):
    drive.failing_identities = {'anyone'}
    stored = provisioner.upload_file('proof.png', 'folder-x', 'image/png', io.BytesIO(b'abc'))
    assert stored.id in drive.files


def test_upload_file_failure_is_storage_exception(provisioner, drive):
    drive.fail_uploads = True

    with pytest.raises(StorageException) as exc:
        provisioner.upload_file('proof.png', 'folder-x', 'image/png', io.BytesIO(b'abc'))
    assert 'quota exceeded' in exc.value.message
    assert exc.value.status_code == 500

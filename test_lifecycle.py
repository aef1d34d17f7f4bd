"""
CredManager - Lifecycle Tests (stores, coordinator, configuration)

Run with: python test_lifecycle.py   (or: pytest)

Walks the archive-on-update protocol end to end on a temporary home
directory and checks what ends up in memory and on disk.
"""

import os
import tempfile
from datetime import datetime, timedelta

from credmgr import config, crypto
from credmgr.codec import RecordCodec
from credmgr.display import format_table
from credmgr.errors import ConfigurationError, InvalidParameter, PersistenceFailed
from credmgr.manager import CredentialManager, open_manager
from credmgr.models import MASK, Record
from credmgr.store import RecordStore

from test_simple import expect_raises


def fresh_manager(home: str) -> CredentialManager:
    """Create a key file under `home` and open a manager on it."""
    settings = config.load_settings(home)
    config.create_process_key(settings.key_file)
    return open_manager(settings)


def test_example_walkthrough():
    """Create Mail, change its identifier, check both stores."""
    print("Testing Example Walkthrough...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        assert not manager.has_active()

        mail = manager.create("Mail", "user@x.com", "p@ss")
        assert mail.version == 1
        assert manager.get_active(0) == mail
        assert manager.active.has_any()
        assert manager.reveal(mail) == "p@ss"
        print("  [OK] Create works")

        mail_v2 = manager.update_identifier(mail, "user2@x.com")
        assert mail_v2.version == 2
        assert mail_v2.identifier == "user2@x.com"
        assert mail_v2.name == "Mail"
        assert manager.list_active() == (mail_v2,)

        archived = manager.list_archived()
        assert len(archived) == 1
        assert archived[0].identifier == "user@x.com"
        assert archived[0].version == 1
        assert archived[0].updated_at is not None
        assert mail not in manager.active
        print("  [OK] Update archives the old version")

        active_files = RecordCodec.list_files(manager.active.directory)
        archived_files = RecordCodec.list_files(manager.archived.directory)
        assert active_files == [RecordCodec.file_name(mail_v2)]
        assert archived_files == [RecordCodec.file_name(mail)]
        print("  [OK] Files match the stores")


def test_update_secret():
    """Secret update keeps identifier, re-encrypts, archives the old secret."""
    print("Testing Secret Update...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        bank = manager.create("Bank", "alice", "old-secret")
        bank_v2 = manager.update_secret(bank, "new-secret")

        assert bank_v2.version == 2 and bank_v2.identifier == "alice"
        assert manager.reveal(bank_v2) == "new-secret"
        assert manager.reveal(manager.get_archived(0)) == "old-secret"

        bank_v3 = manager.update_secret(bank_v2, "newer-secret")
        assert bank_v3.version == 3
        assert len(manager.list_active()) == 1
        assert [r.version for r in manager.list_archived()] == [1, 2]
        print("  [OK] Versions chain 1 -> 2 -> 3")


def test_update_rejects_bad_input():
    """Update needs exactly one change, non-blank, on an active record."""
    print("Testing Update Validation...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        mail = manager.create("Mail", "user@x.com", "p@ss")

        expect_raises(InvalidParameter, manager.update, mail)
        expect_raises(InvalidParameter, manager.update, mail, identifier="a", secret="b")
        expect_raises(InvalidParameter, manager.update_identifier, mail, "   ")
        expect_raises(InvalidParameter, manager.update_secret, mail, "")
        assert manager.list_active() == (mail,), "Failed update changes nothing"
        assert not manager.has_archived()
        print("  [OK] Invalid updates rejected")

        manager.update_identifier(mail, "user2@x.com")
        expect_raises(InvalidParameter, manager.update_identifier, mail, "user3@x.com")
        expect_raises(InvalidParameter, manager.update_identifier, manager.get_archived(0), "x")
        print("  [OK] Only active records can be updated")

        expect_raises(InvalidParameter, manager.create, "", "user", "p@ss")
        expect_raises(InvalidParameter, manager.create, "Name", "user", " ")
        assert len(manager.list_active()) == 1
        print("  [OK] Invalid creates rejected")


def test_delete():
    """Delete removes from memory and disk, archives nothing."""
    print("Testing Delete...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        mail = manager.create("Mail", "user@x.com", "p@ss")
        path = manager.active.directory / RecordCodec.file_name(mail)
        assert path.exists()

        manager.delete(mail)
        assert not manager.has_active()
        assert not path.exists()
        assert not manager.has_archived()
        assert RecordCodec.list_files(manager.archived.directory) == []
        expect_raises(InvalidParameter, manager.delete, mail)
        print("  [OK] Delete works")


def test_duplicate_name_and_identifier_rejected():
    """Accounts sharing a file name are refused before anything is written."""
    print("Testing Duplicate File Names...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        first = manager.create("Mail", "user", "first")
        expect_raises(InvalidParameter, manager.create, "Mail", "user", "second")
        assert manager.list_active() == (first,)
        assert len(RecordCodec.list_files(manager.active.directory)) == 1
        print("  [OK] Second active account with same name + identifier refused")

        first_v2 = manager.update_identifier(first, "user2")
        again = manager.create("Mail", "user", "again")
        expect_raises(InvalidParameter, manager.update_identifier, again, "user3")
        assert manager.list_active() == (first_v2, again)
        assert len(manager.list_archived()) == 1
        assert len(RecordCodec.list_files(manager.active.directory)) == 2
        print("  [OK] Update refused when the archive file name is taken")

        expect_raises(InvalidParameter, manager.update_identifier, again, "user2")
        assert manager.list_active() == (first_v2, again)
        print("  [OK] Update refused when the new active file name is taken")

        reopened = open_manager(config.load_settings(home))
        assert reopened.list_active() == manager.list_active()
        assert reopened.list_archived() == manager.list_archived()
        assert reopened.reveal(first_v2) == "first"
        assert reopened.reveal(again) == "again"
        print("  [OK] Disk matches memory after refused operations")


def test_delete_keeps_record_when_file_removal_fails():
    """A failed unlink leaves the record active so the delete can be retried."""
    print("Testing Failed Delete...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        mail = manager.create("Mail", "user@x.com", "p@ss")
        path = manager.active.directory / RecordCodec.file_name(mail)
        path.unlink()
        path.mkdir()

        expect_raises(PersistenceFailed, manager.delete, mail)
        assert mail in manager.active, "Memory unchanged when the file survives"

        path.rmdir()
        manager.delete(mail)
        assert not manager.has_active()
        print("  [OK] Record kept until its file is gone")


def test_reload_from_disk():
    """A second manager on the same home sees the same records, same order."""
    print("Testing Reload...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        mail = manager.create("Mail", "user@x.com", "p@ss")
        bank = manager.create("Bank", "alice", "secret")
        manager.update_identifier(mail, "user2@x.com")

        reopened = open_manager(config.load_settings(home))
        assert reopened.list_active() == manager.list_active()
        assert reopened.list_archived() == manager.list_archived()
        assert reopened.reveal(reopened.list_active()[-1]) in ("p@ss", "secret")
        assert bank in reopened.active
        print("  [OK] Stores reload from disk")


def test_corrupted_file_is_skipped():
    """One corrupted + two valid files load as exactly two records."""
    print("Testing Corrupted File Skip...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        first = manager.create("Mail", "user@x.com", "p@ss")
        second = manager.create("Bank", "alice", "secret")
        (manager.active.directory / "corrupt.ser").write_bytes(os.urandom(64))

        store = RecordStore(manager.codec, manager.active.directory, "active").initialize()
        assert len(store) == 2
        assert first in store and second in store
        print("  [OK] Corrupted file skipped")

        wrong_key = RecordStore(RecordCodec(crypto.derive_key()), manager.active.directory)
        assert len(wrong_key.initialize()) == 0
        print("  [OK] Wrong key loads nothing, raises nothing")


def test_store_ordering_and_positions():
    """Order is (created_at, version); positions are bounds-checked."""
    print("Testing Store Ordering...")

    codec = RecordCodec(crypto.derive_key())
    with tempfile.TemporaryDirectory() as tmp:
        store = RecordStore(codec, tmp, "active").initialize()
        assert store.get_by_position(0) is None
        assert store.get_by_position(-1) is None
        assert not store.has_any()

        base = datetime(2024, 1, 1, 12, 0, 0)
        late = Record.new("Late", "c", "s", now=base + timedelta(hours=2))
        early = Record.new("Early", "a", "s", now=base)
        middle = Record.new("Middle", "b", "s", now=base + timedelta(hours=1))
        early_v2 = early.with_identifier("a2")

        for record in (late, early_v2, middle, early):
            store.add(record)
        assert store.list() == (early, early_v2, middle, late)
        assert store.get_by_position(0) == early
        assert store.get_by_position(3) == late
        assert store.get_by_position(4) is None
        assert store.get_by_position(-1) is None
        print("  [OK] Ordered by (created_at, version)")

        store.add(early)
        assert len(store) == 4, "Equal record is not added twice"
        assert store.delete(middle) is True
        assert store.delete(middle) is False
        assert store.list() == (early, early_v2, late)
        assert list(store) == list(store.list())
        print("  [OK] Add/delete by structural equality")


def test_initialize_runs_once():
    """initialize() only reads the directory the first time."""
    print("Testing Initialize Once...")

    with tempfile.TemporaryDirectory() as home:
        manager = fresh_manager(home)
        manager.create("Mail", "user@x.com", "p@ss")

        store = RecordStore(manager.codec, manager.active.directory)
        assert store.initialize() is store
        assert len(store) == 1
        store.delete(store.get_by_position(0))
        store.initialize()
        assert len(store) == 0, "Second initialize must not reload"
        print("  [OK] Initialization runs once")


def test_configuration():
    """The process key is required; settings resolve under the home dir."""
    print("Testing Configuration...")

    with tempfile.TemporaryDirectory() as home:
        settings = config.load_settings(home)
        assert settings.active_dir == settings.home / "accounts"
        assert settings.archived_dir == settings.home / "archived"

        expect_raises(ConfigurationError, config.load_process_key, settings.key_file)
        expect_raises(ConfigurationError, open_manager, settings)
        print("  [OK] Missing key file is fatal")

        key = config.create_process_key(settings.key_file)
        assert config.load_process_key(settings.key_file) == key
        expect_raises(ConfigurationError, config.create_process_key, settings.key_file)
        print("  [OK] Key file created once and loaded")

        settings.key_file.write_text("   \n")
        expect_raises(ConfigurationError, config.load_process_key, settings.key_file)
        print("  [OK] Empty key file rejected")


def test_table_rendering():
    """Tables list every column and never show the plaintext secret."""
    print("Testing Table Rendering...")

    assert format_table([]) == "No accounts."

    mail = Record.new("Mail", "user@x.com", "p@ss")
    table = format_table([mail, mail.with_identifier("user2@x.com")])
    lines = table.splitlines()
    assert lines[0].startswith("No | Name")
    assert len(lines) == 4
    assert "user2@x.com" in table
    assert MASK in table
    assert "p@ss" not in table
    print("  [OK] Table rendering works")


def run_all_tests():
    """Run all tests."""
    print("=" * 70)
    print("CredManager - Lifecycle Test Suite")
    print("=" * 70)
    print()

    tests = [
        test_example_walkthrough,
        test_update_secret,
        test_update_rejects_bad_input,
        test_delete,
        test_duplicate_name_and_identifier_rejected,
        test_delete_keeps_record_when_file_removal_fails,
        test_reload_from_disk,
        test_corrupted_file_is_skipped,
        test_store_ordering_and_positions,
        test_initialize_runs_once,
        test_configuration,
        test_table_rendering,
    ]

    failed = []

    for test in tests:
        try:
            test()
            print()
        except Exception as e:
            print(f"  [FAIL] TEST FAILED: {e}")
            failed.append((test.__name__, e))
            print()

    print("=" * 70)
    if not failed:
        print("[OK] ALL TESTS PASSED!")
    else:
        print(f"[FAIL] {len(failed)} TESTS FAILED:")
        for name, error in failed:
            print(f"  - {name}: {error}")
    print("=" * 70)

    return len(failed) == 0


if __name__ == "__main__":
    import sys
    success = run_all_tests()
    sys.exit(0 if success else 1)

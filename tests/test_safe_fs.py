"""Tests for the filesystem safety layer."""

import errno
import hashlib
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

from prompt_sync.errors import (
    CrossDeviceLinkError,
    DirectoryTargetError,
    InsufficientSpaceError,
    NotRegularFileError,
    SafeFsError,
)
from prompt_sync.safety import safe_fs
from prompt_sync.safety.safe_fs import (
    build_backup_path,
    calculate_sha256,
    check_disk_space,
    check_same_filesystem,
    cleanup_old_backups,
    create_hard_link_checked,
    hash_sidecar_path,
    read_hash_metadata,
    remove_existing_target_file,
    save_hash_metadata,
)

posix_only = pytest.mark.skipif(os.name != "posix", reason="needs hardlinks and inodes")


# --- Hashing ---


def test_calculate_sha256_matches_hashlib():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "file.md"
        data = b"x" * 200_000
        path.write_bytes(data)
        assert calculate_sha256(path) == hashlib.sha256(data).hexdigest()


def test_calculate_sha256_missing_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(SafeFsError):
            calculate_sha256(Path(tmpdir) / "nope")


def test_hash_sidecar_roundtrip():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup = Path(tmpdir) / "1700000000-AGENTS.md.bak"
        backup.write_text("old")
        sidecar = save_hash_metadata(backup, "abc123", 3)
        assert sidecar == hash_sidecar_path(backup)
        assert sidecar.name == "1700000000-AGENTS.md.bak.sha256"

        values = read_hash_metadata(sidecar)
        assert values["algorithm"] == "sha256"
        assert values["hash"] == "abc123"
        assert values["size"] == "3"
        assert "T" in values["timestamp"]


# --- Linking ---


@posix_only
def test_create_hard_link_checked():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        source = root / "master.md"
        source.write_text("hi")
        target = root / "AGENTS.md"
        create_hard_link_checked(source, target)
        assert os.stat(source).st_ino == os.stat(target).st_ino
        assert os.stat(source).st_nlink == 2


def test_create_hard_link_rejects_directory_source():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "srcdir").mkdir()
        with pytest.raises(NotRegularFileError):
            create_hard_link_checked(root / "srcdir", root / "AGENTS.md")
        assert not (root / "AGENTS.md").exists()


def test_create_hard_link_existing_target_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        source = root / "master.md"
        source.write_text("hi")
        target = root / "AGENTS.md"
        target.write_text("keep")
        with pytest.raises(SafeFsError, match="failed to create hardlink"):
            create_hard_link_checked(source, target)
        assert target.read_text() == "keep"


def test_check_same_filesystem_rejects_other_device():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        source = root / "master.md"
        source.write_text("hi")
        fields = list(os.stat(source))
        fields[2] += 1  # st_dev
        fake = os.stat_result(fields)

        with pytest.raises(CrossDeviceLinkError, match="across filesystems"):
            check_same_filesystem(fake, root / "AGENTS.md")

        check_same_filesystem(os.stat(source), root / "AGENTS.md")


def test_check_same_filesystem_missing_parent():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        source = root / "master.md"
        source.write_text("hi")
        with pytest.raises(SafeFsError, match="target parent"):
            check_same_filesystem(os.stat(source), root / "nope" / "AGENTS.md")


# --- Disk space ---


def test_check_disk_space(monkeypatch):
    monkeypatch.setattr(safe_fs.shutil, "disk_usage", lambda p: SimpleNamespace(free=100))
    with tempfile.TemporaryDirectory() as tmpdir:
        # Nonexistent backup dirs are measured at their nearest existing ancestor
        check_disk_space(Path(tmpdir) / "not" / "yet", 100)
        with pytest.raises(InsufficientSpaceError) as excinfo:
            check_disk_space(Path(tmpdir), 101)
        assert excinfo.value.required == 101
        assert excinfo.value.available == 100
        assert "required=101 bytes, available=100 bytes" in str(excinfo.value)


# --- Displacing targets ---


def test_remove_missing_target_is_noop():
    with tempfile.TemporaryDirectory() as tmpdir:
        outcome = remove_existing_target_file(Path(tmpdir) / "gone", None)
        assert outcome.backup_path is None


def test_remove_target_without_backup_deletes():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "AGENTS.md"
        target.write_text("old")
        outcome = remove_existing_target_file(target, None)
        assert outcome.backup_path is None
        assert not target.exists()


def test_remove_refuses_directory():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "AGENTS.md"
        target.mkdir()
        with pytest.raises(DirectoryTargetError):
            remove_existing_target_file(target, Path(tmpdir) / "backups")
        assert target.is_dir()


def test_remove_target_with_backup_moves_and_hashes():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        target = root / "AGENTS.md"
        target.write_text("old content")
        backup_dir = root / "backups"

        outcome = remove_existing_target_file(target, backup_dir)

        assert not target.exists()
        assert outcome.backup_path.parent == backup_dir
        assert outcome.backup_path.read_text() == "old content"
        values = read_hash_metadata(hash_sidecar_path(outcome.backup_path))
        assert values["hash"] == hashlib.sha256(b"old content").hexdigest()
        assert values["size"] == str(len("old content"))


def test_backup_falls_back_to_copy_across_devices(monkeypatch):
    def no_rename(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        target = root / "AGENTS.md"
        target.write_text("old content")

        monkeypatch.setattr(safe_fs.os, "rename", no_rename)
        outcome = remove_existing_target_file(target, root / "backups")
        monkeypatch.undo()

        assert not target.exists()
        assert outcome.backup_path.read_text() == "old content"


def test_backup_insufficient_space_leaves_target(monkeypatch):
    monkeypatch.setattr(safe_fs.shutil, "disk_usage", lambda p: SimpleNamespace(free=0))
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        target = root / "AGENTS.md"
        target.write_text("old content")
        with pytest.raises(InsufficientSpaceError):
            remove_existing_target_file(target, root / "backups")
        assert target.read_text() == "old content"
        assert not (root / "backups").exists()


def test_build_backup_path_avoids_collisions(monkeypatch):
    monkeypatch.setattr(safe_fs.time, "time", lambda: 1700000000.5)
    with tempfile.TemporaryDirectory() as tmpdir:
        backup_dir = Path(tmpdir)
        target = Path("/somewhere/AGENTS.md")

        first = build_backup_path(backup_dir, target)
        assert first.name == "1700000000-AGENTS.md.bak"
        first.write_text("a")

        second = build_backup_path(backup_dir, target)
        assert second.name == "1700000000-AGENTS.md-1.bak"


# --- Retention ---


def _make_backups(backup_dir: Path, count: int) -> list[Path]:
    paths = []
    for i in range(count):
        path = backup_dir / f"{1700000000 + i}-AGENTS.md.bak"
        path.write_text(str(i))
        save_hash_metadata(path, "deadbeef", 1)
        os.utime(path, (1700000000 + i, 1700000000 + i))
        paths.append(path)
    return paths


def test_cleanup_keeps_newest_versions():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup_dir = Path(tmpdir)
        paths = _make_backups(backup_dir, 5)
        unrelated = backup_dir / "notes.txt"
        unrelated.write_text("keep me")

        removed = cleanup_old_backups(backup_dir, max_versions=3)

        assert removed == paths[:2]
        for path in paths[:2]:
            assert not path.exists()
            assert not hash_sidecar_path(path).exists()
        for path in paths[2:]:
            assert path.exists()
            assert hash_sidecar_path(path).exists()
        assert unrelated.exists()


def test_cleanup_under_limit_removes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup_dir = Path(tmpdir)
        _make_backups(backup_dir, 3)
        assert cleanup_old_backups(backup_dir, max_versions=3) == []
        assert len(list(backup_dir.glob("*.bak"))) == 3


def test_cleanup_missing_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert cleanup_old_backups(Path(tmpdir) / "nope") == []


def test_cleanup_same_second_prunes_in_creation_order():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup_dir = Path(tmpdir)
        names = ["1700000000-AGENTS.md.bak"] + [
            f"1700000000-AGENTS.md-{i}.bak" for i in range(1, 11)
        ]
        for name in names:
            path = backup_dir / name
            path.write_text(name)
            os.utime(path, (1700000000, 1700000000))

        removed = cleanup_old_backups(backup_dir, max_versions=2)

        assert [p.name for p in removed] == names[:-2]
        assert sorted(p.name for p in backup_dir.glob("*.bak")) == sorted(names[-2:])

"""Tests for on-disk storage and orphan reconciliation."""

import os
import time
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from filehost.models.file import FileRecord
from filehost.services.auth import register_user
from filehost.services.storage import FileStorage, extension_from_filename, reconcile_storage


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("a.txt", ".txt"),
        ("photo.JPG", ".JPG"),
        ("archive.tar.gz", ".gz"),
        ("README", ""),
        (".bashrc", ""),
        ("../../etc/passwd", ""),
        ("..\\..\\evil.exe", ".exe"),
        ("bad.t x", ""),
        ("weird.ext$", ""),
        ("long." + "a" * 17, ""),
    ],
)
def test_extension_from_filename(filename, expected):
    assert extension_from_filename(filename) == expected


def test_allocate_name_keeps_only_extension(tmp_path):
    storage = FileStorage(tmp_path)

    names = {storage.allocate_name("../secret report.pdf") for _ in range(50)}

    assert len(names) == 50
    for name in names:
        assert name.endswith(".pdf")
        assert "/" not in name
        assert "secret" not in name
        assert storage.path_for(name).parent == tmp_path


def test_ensure_directory_is_idempotent(tmp_path):
    storage = FileStorage(tmp_path / "uploads")
    storage.ensure_directory()
    storage.ensure_directory()
    assert (tmp_path / "uploads").is_dir()


def test_remove_reports_missing_file(tmp_path):
    storage = FileStorage(tmp_path)
    path = tmp_path / "gone.txt"
    path.write_bytes(b"x")

    assert storage.remove(path) is True
    assert storage.remove(path) is False


def make_old(path: Path, age: timedelta) -> None:
    stamp = time.time() - age.total_seconds()
    os.utime(path, (stamp, stamp))


class TestSweep:
    """Tests for orphan detection in the upload directory."""

    def test_removes_only_old_unknown_files(self, tmp_path):
        storage = FileStorage(tmp_path)
        known = tmp_path / "known.txt"
        old_orphan = tmp_path / "old-orphan.txt"
        young_orphan = tmp_path / "young-orphan.txt"
        for path in (known, old_orphan, young_orphan):
            path.write_bytes(b"data")
        make_old(known, timedelta(days=1))
        make_old(old_orphan, timedelta(days=1))

        report = storage.sweep_orphans(["known.txt"], older_than=timedelta(hours=1))

        assert report.removed == ["old-orphan.txt"]
        assert known.exists()
        assert young_orphan.exists()
        assert not old_orphan.exists()

    def test_missing_directory(self, tmp_path):
        report = FileStorage(tmp_path / "nope").sweep_orphans([], older_than=timedelta(0))
        assert report.removed == []


def test_reconcile_storage(db, storage, upload_dir):
    """Orphans are deleted; rows without bytes are reported, not removed."""
    user = register_user(db, "owner", "owner@example.com", "password123")
    upload_dir.mkdir(parents=True, exist_ok=True)

    kept = upload_dir / "kept.bin"
    kept.write_bytes(b"kept")
    orphan = upload_dir / "orphan.bin"
    orphan.write_bytes(b"orphan")
    make_old(kept, timedelta(days=2))
    make_old(orphan, timedelta(days=2))

    present = FileRecord(
        user_id=user.id,
        stored_name="kept.bin",
        original_name="kept.bin",
        media_type="application/octet-stream",
        size_bytes=4,
        storage_path=str(kept),
    )
    lost = FileRecord(
        user_id=user.id,
        stored_name="lost.bin",
        original_name="lost.bin",
        media_type="application/octet-stream",
        size_bytes=4,
        storage_path=str(upload_dir / "lost.bin"),
    )
    db.add_all([present, lost])
    db.commit()

    report = reconcile_storage(db, storage, grace=timedelta(hours=1))

    assert report.removed == ["orphan.bin"]
    assert report.missing == [lost.id]
    assert kept.exists()
    assert db.query(FileRecord).count() == 2


def test_sweep_task(db, upload_dir):
    """The celery task runs the reconciliation with its own session."""
    from filehost.tasks.storage_sweep import sweep_orphaned_uploads

    upload_dir.mkdir(parents=True, exist_ok=True)
    orphan = upload_dir / "stale.tmp"
    orphan.write_bytes(b"stale")
    make_old(orphan, timedelta(days=2))

    with patch(
        "filehost.tasks.storage_sweep.SessionLocal", sessionmaker(bind=db.get_bind())
    ):
        result = sweep_orphaned_uploads()

    assert result == {"removed": ["stale.tmp"], "failed": [], "missing": []}
    assert not orphan.exists()

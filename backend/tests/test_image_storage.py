"""Tests for profile image storage."""
import os
import hashlib
import tempfile

import pytest
from sqlalchemy.exc import IntegrityError

from app.services import image_storage as storage_module
from app.services.image_storage import ImageStorageService, commit_or_discard


class TestImageStorageService:
    def setup_method(self):
        self.tmpdir = tempfile.mkdtemp()
        self.service = ImageStorageService(base_dir=self.tmpdir, max_bytes=1024, url_prefix="/uploads/")

    def test_store_returns_url_and_hash(self):
        result = self.service.store(b"fake_image_data", "doctor-1", "portrait.jpg")
        assert "image_url" in result
        assert "image_hash" in result
        expected_hash = hashlib.sha256(b"fake_image_data").hexdigest()
        assert result["image_hash"] == expected_hash

    def test_url_is_served_path_not_disk_path(self):
        result = self.service.store(b"png_bytes", "doctor-1", "portrait.png")
        filename = os.path.basename(result["image_path"])
        assert result["image_url"] == f"/uploads/doctor-1/{filename}"
        assert self.tmpdir not in result["image_url"]

    def test_store_creates_file_on_disk(self):
        result = self.service.store(b"png_bytes", "doctor-2", "portrait.png")
        assert os.path.exists(result["image_path"])
        with open(result["image_path"], "rb") as f:
            assert f.read() == b"png_bytes"

    def test_store_creates_owner_subdirectory(self):
        self.service.store(b"data", "doctor-3", "me.webp")
        assert os.path.isdir(os.path.join(self.tmpdir, "doctor-3"))

    def test_different_uploads_different_files(self):
        r1 = self.service.store(b"img1", "doctor-4", "a.png")
        r2 = self.service.store(b"img2", "doctor-4", "a.png")
        assert r1["image_url"] != r2["image_url"]

    def test_extension_kept_and_lowercased(self):
        result = self.service.store(b"img", "doctor-5", "Holiday.JPEG")
        assert result["image_url"].endswith(".jpeg")

    def test_missing_extension_defaults_to_png(self):
        result = self.service.store(b"img", "doctor-6")
        assert result["image_url"].endswith(".png")

    def test_empty_upload_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            self.service.store(b"", "doctor-7", "a.png")

    def test_oversized_upload_rejected(self):
        with pytest.raises(ValueError, match="exceeds"):
            self.service.store(b"x" * 1025, "doctor-8", "a.png")

    def test_non_image_extension_rejected(self):
        with pytest.raises(ValueError, match="Unsupported"):
            self.service.store(b"MZ", "doctor-9", "setup.exe")
        assert not os.path.exists(os.path.join(self.tmpdir, "doctor-9"))

    def test_discard_removes_file(self):
        result = self.service.store(b"img", "doctor-10", "a.png")
        self.service.discard(result)
        assert not os.path.exists(result["image_path"])
        # Already gone is fine
        self.service.discard(result)


class FailingSession:
    def __init__(self):
        self.rolled_back = False

    def commit(self):
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    def rollback(self):
        self.rolled_back = True


class TestCommitOrDiscard:
    def test_failed_commit_rolls_back_and_removes_image(self, monkeypatch):
        service = ImageStorageService(base_dir=tempfile.mkdtemp())
        monkeypatch.setattr(storage_module, "image_storage", service)
        stored = service.store(b"img", "doctor-11", "a.png")
        session = FailingSession()

        with pytest.raises(IntegrityError):
            commit_or_discard(session, stored)
        assert session.rolled_back
        assert not os.path.exists(stored["image_path"])

    def test_failed_commit_without_image(self):
        session = FailingSession()
        with pytest.raises(IntegrityError):
            commit_or_discard(session, None)
        assert session.rolled_back

"""
Profile image storage service.
Uploaded doctor and patient photographs are written to a local uploads
directory, one sub-directory per owner, under a collision-free name, and
served back by the app under ``settings.UPLOAD_URL_PREFIX``.
"""
import hashlib
import logging
import os
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class ImageStorageService:
    """Store profile images on disk.

    ``base_dir`` defaults to ``settings.UPLOAD_DIR`` or ``backend/uploads``.
    """

    def __init__(
        self,
        base_dir: Optional[str] = None,
        max_bytes: Optional[int] = None,
        url_prefix: Optional[str] = None,
    ):
        self.base_dir = base_dir or settings.UPLOAD_DIR or os.path.join(
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
            "uploads",
        )
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def store(self, image_data: bytes, owner_id: str, original_filename: str = "") -> dict:
        """Persist an image.

        Returns ``{"image_url", "image_path", "image_hash"}``: the URL the app
        serves the file under, its location on disk and its SHA-256.
        Raises ValueError for empty, oversized or non-image uploads.
        """
        if not image_data:
            raise ValueError("Uploaded image is empty")
        if len(image_data) > self.max_bytes:
            raise ValueError(f"Uploaded image exceeds {self.max_bytes} bytes")
        ext = os.path.splitext(original_filename or "")[1].lower() or ".png"
        if ext not in ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported image type {ext!r}")

        image_hash = hashlib.sha256(image_data).hexdigest()
        filename, filepath = self._save_local(image_data, owner_id, ext)
        image_url = f"{self.url_prefix}/{owner_id}/{filename}"
        logger.info("Stored profile image for %s at %s", owner_id, filepath)
        return {"image_url": image_url, "image_path": filepath, "image_hash": image_hash}

    def discard(self, stored: dict) -> None:
        """Remove a file written by ``store`` whose database change was abandoned."""
        path = stored.get("image_path")
        if path and os.path.exists(path):
            os.remove(path)
            logger.info("Discarded orphaned image %s", path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save_local(self, image_data: bytes, owner_id: str, ext: str):
        owner_dir = os.path.join(self.base_dir, owner_id)
        os.makedirs(owner_dir, exist_ok=True)
        ts = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        filename = f"{ts}-{secrets.token_hex(4)}{ext}"
        filepath = os.path.join(owner_dir, filename)
        with open(filepath, "wb") as fh:
            fh.write(image_data)
        return filename, filepath


image_storage = ImageStorageService()


def commit_or_discard(db: Session, stored: Optional[dict]) -> None:
    """Commit ``db``; when the commit fails, roll back and remove the image stored for it."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if stored:
            image_storage.discard(stored)
        raise

"""Disk-based storage for uploaded listing media."""

import asyncio
import re
import secrets
import string
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from estate_listings.logging import get_logger
from estate_listings.results import MediaUploadError

logger = get_logger(__name__)

MEDIA_SUBDIR: Final = "properties"
MEDIA_URL_PREFIX: Final = f"/{MEDIA_SUBDIR}"

_TOKEN_ALPHABET: Final = string.ascii_lowercase + string.digits
_TOKEN_LENGTH: Final = 6


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file: its original name and contents."""

    filename: str
    content: bytes


def safe_filename(name: str) -> str:
    """Reduce an uploaded name to a filesystem-safe basename.

    E.g. "../../etc/my photo.png" -> "my_photo.png"
    """
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", base).lstrip(".")
    return cleaned or "upload"


def unique_filename(original: str) -> str:
    """Collision-resistant name: ``<epoch ms>-<random token>-<original name>``."""
    timestamp = int(time.time() * 1000)
    token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))
    return f"{timestamp}-{token}-{safe_filename(original)}"


class MediaStore:
    """Writes uploads under ``<media_dir>/properties`` and hands back their public paths."""

    def __init__(self, media_dir: str | Path) -> None:
        self.media_dir = Path(media_dir)

    @property
    def target_dir(self) -> Path:
        return self.media_dir / MEDIA_SUBDIR

    def resolve(self, filename: str) -> Path | None:
        """Return the on-disk path for a stored filename, or None if absent/unsafe."""
        if not filename or ".." in filename or "/" in filename or "\\" in filename:
            return None
        path = self.target_dir / filename
        return path if path.is_file() else None

    def _write(self, filename: str, content: bytes) -> None:
        self.target_dir.mkdir(parents=True, exist_ok=True)
        (self.target_dir / filename).write_bytes(content)

    async def save_all(self, files: Sequence[UploadedFile]) -> list[str]:
        """Persist files one after another.

        Args:
            files: Uploads in the order their paths should be returned.

        Returns:
            ``/properties/<name>`` paths, one per file, in input order.

        Raises:
            MediaUploadError: If any file cannot be written. Files written
                before the failure are left in place.
        """
        paths: list[str] = []
        for upload in files:
            filename = unique_filename(upload.filename)
            try:
                await asyncio.to_thread(self._write, filename, upload.content)
            except OSError as e:
                logger.error(
                    "media_write_failed",
                    filename=upload.filename,
                    written=len(paths),
                    exc_info=True,
                )
                raise MediaUploadError(f"Failed to store {upload.filename}") from e
            paths.append(f"{MEDIA_URL_PREFIX}/{filename}")

        if paths:
            logger.info("media_saved", count=len(paths), directory=str(self.target_dir))
        return paths

"""Local media storage for survey audio recordings.

Uploads are written below `media_dir/survey_audio/` under a random name and
referenced by a URL built from `media_base_url`. The URL is the opaque
reference stored on each SurveyResponse.
"""

import os
import secrets
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from fieldsurvey.config import get_settings
from fieldsurvey.services.errors import MediaStorageError, ValidationFailure
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

AUDIO_FOLDER = "survey_audio"

ALLOWED_AUDIO_TYPES = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/aac": ".aac",
    "audio/ogg": ".ogg",
    "audio/x-m4a": ".m4a",
    "audio/mp4": ".m4a",
}

_CHUNK_SIZE = 1024 * 1024


class LocalMediaStorage:
    """Stores uploaded audio files on the local filesystem.

    Args:
        media_dir: Root directory of the media store
        base_url: Public URL prefix matching `media_dir`
        max_bytes: Largest accepted upload
    """

    def __init__(self, media_dir: str, base_url: str, max_bytes: int):
        self.media_dir = Path(media_dir)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    async def save_audio(self, upload: UploadFile) -> str:
        """Validate and store an audio upload.

        Args:
            upload: Audio file received with the submission

        Returns:
            Public URL of the stored file

        Raises:
            ValidationFailure: If the content type is not audio or the file
                is empty or too large
            MediaStorageError: If the file cannot be written
        """
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        extension = ALLOWED_AUDIO_TYPES.get(content_type)
        if extension is None:
            raise ValidationFailure("Only audio files are allowed.")

        data = await self._read_limited(upload)
        if not data:
            raise ValidationFailure("Audio recording (audio) is required.")

        name = f"{secrets.token_hex(16)}{extension}"
        target = self.media_dir / AUDIO_FOLDER / name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store audio upload {upload.filename!r}: {e}")
            raise MediaStorageError("Failed to store audio recording.")

        url = f"{self.base_url}/{AUDIO_FOLDER}/{name}"
        logger.info(f"Stored audio upload ({len(data)} bytes) at {url}")
        return url

    def discard(self, url: Optional[str]) -> None:
        """Remove a stored file again; unknown or foreign URLs are ignored."""
        path = self._path_for(url)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            logger.info(f"Discarded audio upload {url}")
        except OSError as e:
            logger.warning(f"Could not discard audio upload {url}: {e}")

    def is_writable(self) -> bool:
        """True if the audio folder exists, or can be created, and accepts writes."""
        folder = self.media_dir / AUDIO_FOLDER
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Media store folder {folder} is unavailable: {e}")
            return False
        return os.access(folder, os.W_OK)

    def _path_for(self, url: Optional[str]) -> Optional[Path]:
        prefix = f"{self.base_url}/{AUDIO_FOLDER}/"
        if not url or not url.startswith(prefix):
            return None
        name = url[len(prefix):]
        if not name or "/" in name or name.startswith("."):
            return None
        return self.media_dir / AUDIO_FOLDER / name

    async def _read_limited(self, upload: UploadFile) -> bytes:
        chunks = []
        size = 0
        while True:
            chunk = await upload.read(_CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > self.max_bytes:
                raise ValidationFailure(
                    f"Audio recording exceeds the maximum size of {self.max_bytes} bytes."
                )
            chunks.append(chunk)
        return b"".join(chunks)


def get_media_storage() -> LocalMediaStorage:
    """FastAPI dependency returning the configured media store."""
    settings = get_settings()
    return LocalMediaStorage(
        media_dir=settings.media_dir,
        base_url=settings.media_base_url,
        max_bytes=settings.max_audio_bytes,
    )

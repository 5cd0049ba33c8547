"""Unit tests for local media storage."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from fieldsurvey.services.errors import MediaStorageError, ValidationFailure
from fieldsurvey.services.media_storage import AUDIO_FOLDER, LocalMediaStorage


def upload(data: bytes, content_type: str = "audio/mpeg", filename: str = "clip.mp3") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def storage(tmp_path) -> LocalMediaStorage:
    return LocalMediaStorage(media_dir=str(tmp_path), base_url="/media/", max_bytes=1024)


class TestSaveAudio:
    """Tests for storing uploads."""

    async def test_stores_file_and_returns_url(self, storage, tmp_path):
        url = await storage.save_audio(upload(b"ID3fake-audio"))

        assert url.startswith(f"/media/{AUDIO_FOLDER}/")
        assert url.endswith(".mp3")
        name = url.rsplit("/", 1)[1]
        assert (tmp_path / AUDIO_FOLDER / name).read_bytes() == b"ID3fake-audio"

    async def test_each_upload_gets_its_own_name(self, storage):
        first = await storage.save_audio(upload(b"one"))
        second = await storage.save_audio(upload(b"two"))

        assert first != second

    @pytest.mark.parametrize("content_type", ["image/png", "application/octet-stream", ""])
    async def test_non_audio_rejected(self, storage, content_type):
        with pytest.raises(ValidationFailure, match="Only audio files"):
            await storage.save_audio(upload(b"data", content_type=content_type))

    async def test_oversize_rejected(self, storage, tmp_path):
        with pytest.raises(ValidationFailure, match="maximum size"):
            await storage.save_audio(upload(b"x" * 2048))

        assert not (tmp_path / AUDIO_FOLDER).exists()

    async def test_empty_file_rejected(self, storage):
        with pytest.raises(ValidationFailure, match="Audio recording"):
            await storage.save_audio(upload(b""))

    async def test_write_failure_is_storage_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        storage = LocalMediaStorage(media_dir=str(blocker), base_url="/media", max_bytes=1024)

        with pytest.raises(MediaStorageError) as exc_info:
            await storage.save_audio(upload(b"audio"))

        assert exc_info.value.status_code == 500


class TestDiscard:
    """Tests for removing stored uploads."""

    async def test_discard_removes_file(self, storage, tmp_path):
        url = await storage.save_audio(upload(b"audio"))

        storage.discard(url)

        assert list((tmp_path / AUDIO_FOLDER).iterdir()) == []

    def test_discard_ignores_foreign_urls(self, storage, tmp_path):
        outside = tmp_path / "keep.txt"
        outside.write_text("keep")

        storage.discard(None)
        storage.discard("https://cdn.example.com/a.mp3")
        storage.discard(f"/media/{AUDIO_FOLDER}/../keep.txt")

        assert outside.exists()

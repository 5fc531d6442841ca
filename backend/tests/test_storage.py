"""Tests for streaming chat uploads to disk."""

from __future__ import annotations

import asyncio

import pytest

from app.config import get_settings
from app.core.errors import FileTooLargeError
from app.core.storage import store_upload


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def media_root(tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "media_root", tmp_path)
    return tmp_path


class FakeUpload:
    """Upload that hands out ``chunks`` and then raises ``error`` if given."""

    def __init__(self, chunks: list[bytes], error: BaseException | None = None) -> None:
        self.filename = "notes.txt"
        self.content_type = "text/plain"
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        return b""

    async def close(self) -> None:
        self.closed = True


def _room_files(media_root, room_id: int) -> list:
    return list((media_root / "chat-files" / f"room_{room_id}").iterdir())


@pytest.mark.anyio
async def test_upload_is_streamed_to_room_directory(media_root):
    upload = FakeUpload([b"hello ", b"world"])

    stored = await store_upload(3, upload)

    assert stored.file_size == 11
    assert stored.file_name == "notes.txt"
    assert stored.relative_path.startswith("chat-files/room_3/")
    assert stored.absolute_path.read_bytes() == b"hello world"
    assert upload.closed


@pytest.mark.anyio
async def test_read_failure_removes_partial_file(media_root):
    upload = FakeUpload([b"partial"], error=OSError("connection reset"))

    with pytest.raises(OSError):
        await store_upload(4, upload)

    assert _room_files(media_root, 4) == []
    assert upload.closed


@pytest.mark.anyio
async def test_cancelled_upload_removes_partial_file(media_root):
    upload = FakeUpload([b"partial"], error=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await store_upload(5, upload)

    assert _room_files(media_root, 5) == []


@pytest.mark.anyio
async def test_oversized_upload_removes_partial_file(media_root, monkeypatch):
    monkeypatch.setattr(get_settings(), "chat_max_file_size", 8)
    upload = FakeUpload([b"12345", b"67890"])

    with pytest.raises(FileTooLargeError):
        await store_upload(6, upload)

    assert _room_files(media_root, 6) == []

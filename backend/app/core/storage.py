"""Utilities for storing files shared in chat rooms."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi import UploadFile

from app.config import get_settings
from app.core.errors import FileTooLargeError

settings = get_settings()
logger = logging.getLogger(__name__)

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
_CHAT_FILES_DIR: Final[str] = "chat-files"


@dataclass(slots=True)
class StoredFile:
    """Represents a file persisted by the storage backend."""

    file_name: str
    content_type: str | None
    file_size: int
    absolute_path: Path
    relative_path: str

    def discard(self) -> None:
        """Remove the stored file, e.g. when the message insert fails."""

        try:
            if self.absolute_path.exists():
                self.absolute_path.unlink()
        except OSError:
            logger.warning("Could not remove orphaned upload %s", self.absolute_path)


def _media_root() -> Path:
    root = settings.media_root
    root.mkdir(parents=True, exist_ok=True)
    return root


async def store_upload(room_id: int, upload: UploadFile) -> StoredFile:
    """Stream an uploaded file to disk and return its storage metadata."""

    target_dir = _media_root() / _CHAT_FILES_DIR / f"room_{room_id}"
    target_dir.mkdir(parents=True, exist_ok=True)

    original_name = upload.filename or "upload.bin"
    extension = Path(original_name).suffix
    file_name = f"{uuid4().hex}{extension}"
    absolute_path = target_dir / file_name

    total_size = 0
    try:
        with absolute_path.open("wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > settings.chat_max_file_size:
                    raise FileTooLargeError()
                buffer.write(chunk)
    except BaseException:
        absolute_path.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    relative_path = Path(os.path.relpath(absolute_path, _media_root())).as_posix()
    return StoredFile(
        file_name=original_name,
        content_type=upload.content_type,
        file_size=total_size,
        absolute_path=absolute_path,
        relative_path=relative_path,
    )


def build_file_url(relative_path: str) -> str:
    """Public URL under which the file-serving collaborator exposes a stored file."""

    base = settings.media_base_url.rstrip("/")
    return f"{base}/{relative_path.lstrip('/')}"

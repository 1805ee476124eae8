"""Filesystem storage for uploaded files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status

from app.config import get_settings

settings = get_settings()

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB


@dataclass(slots=True)
class StoredFile:
    """Represents a file persisted by the storage backend."""

    file_name: str
    stored_name: str
    content_type: str | None
    file_size: int
    absolute_path: Path


def _media_root() -> Path:
    root = settings.media_root
    root.mkdir(parents=True, exist_ok=True)
    return root


async def store_upload(upload: UploadFile) -> StoredFile:
    """Persist an uploaded file under a fresh name and return its storage metadata."""

    original_name = upload.filename or "upload.bin"
    stored_name = f"{uuid4().hex}{Path(original_name).suffix}"
    absolute_path = _media_root() / stored_name

    total_size = 0
    try:
        with absolute_path.open("wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > settings.max_upload_size:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="File exceeds allowed size",
                    )
                buffer.write(chunk)
    except HTTPException:
        if absolute_path.exists():
            absolute_path.unlink()
        raise
    finally:
        await upload.close()

    return StoredFile(
        file_name=original_name,
        stored_name=stored_name,
        content_type=upload.content_type,
        file_size=total_size,
        absolute_path=absolute_path,
    )


def resolve_path(stored_name: str) -> Path:
    """Return the absolute path of a stored file, refusing names outside the media root."""

    root = _media_root().resolve()
    candidate = (root / stored_name).resolve()
    if candidate.parent != root:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")
    if not candidate.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return candidate


def build_file_url(stored_name: str) -> str:
    base = settings.media_base_url.rstrip("/")
    return f"{base}/{stored_name}"

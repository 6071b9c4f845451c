"""
Transient on-disk storage for uploads.

An upload lives on disk only for the request that processes it. The sweep
job removes anything a crashed worker left behind.
"""

import re
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from fastapi import UploadFile

from app.core.exceptions import FileTooLargeError
from app.core.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB

# Filesystems cap a name at 255 bytes; leave room for the "<ms>-<random>-" prefix
MAX_STORED_BASENAME_BYTES = 200
MAX_ORIGINAL_NAME_BYTES = 255  # Document.original_name column width

STORED_NAME_PATTERN = re.compile(r"^\d+-\d+-.+")


@dataclass
class StoredUpload:
    path: Path
    filename: str  # Name on disk
    original_name: str
    content_type: str
    size: int


def truncate_filename(name: str, max_bytes: int) -> str:
    """Shorten ``name`` to at most ``max_bytes`` of UTF-8, keeping its extension."""
    if len(name.encode("utf-8")) <= max_bytes:
        return name
    path = Path(name)
    suffix = path.suffix if len(path.suffix.encode("utf-8")) < max_bytes else ""
    budget = max_bytes - len(suffix.encode("utf-8"))
    stem = name[: len(name) - len(suffix)].encode("utf-8")[:budget].decode("utf-8", "ignore")
    return stem + suffix


def make_stored_name(original_name: str) -> str:
    """Unique on-disk name: ``<epoch ms>-<random>-<client basename>``, basename shortened if needed."""
    basename = truncate_filename(original_name, MAX_STORED_BASENAME_BYTES)
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}-{basename}"


def remove_transient_file(path: Path) -> None:
    """Best-effort delete; a failure is logged, never raised."""
    try:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed transient upload {path.name}")
    except OSError as e:
        logger.warning(f"Failed to remove transient upload {path}: {e}")


async def _write_upload(upload: UploadFile, path: Path, max_bytes: int) -> int:
    size = 0
    with path.open("wb") as out:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                logger.warning(f"Upload too large: {upload.filename} (> {max_bytes} bytes)")
                raise FileTooLargeError(
                    f"File size exceeds maximum allowed size of {max_bytes // (1024 * 1024)} MB"
                )
            out.write(chunk)
    return size


@asynccontextmanager
async def transient_upload(
    upload: UploadFile,
    upload_dir: str | Path,
    max_bytes: int,
) -> AsyncIterator[StoredUpload]:
    """
    Stream an upload to disk and remove it when the block exits.

    The file is deleted exactly once whether the block succeeds or raises,
    including when the size ceiling is hit part-way through writing.
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)

    original_name = Path(upload.filename or "upload").name or "upload"
    original_name = truncate_filename(original_name, MAX_ORIGINAL_NAME_BYTES)
    stored_name = make_stored_name(original_name)
    path = directory / stored_name

    try:
        size = await _write_upload(upload, path, max_bytes)
        logger.info(f"Stored upload {original_name} as {stored_name} ({size} bytes)")
        yield StoredUpload(
            path=path,
            filename=stored_name,
            original_name=original_name,
            content_type=upload.content_type or "",
            size=size,
        )
    finally:
        remove_transient_file(path)


def sweep_stale_uploads(upload_dir: str | Path, max_age_seconds: float, now: float | None = None) -> int:
    """
    Delete stored uploads in ``upload_dir`` older than ``max_age_seconds``.

    Only names produced by ``make_stored_name`` are considered. Returns the count removed.
    """
    directory = Path(upload_dir)
    if not directory.is_dir():
        return 0

    now = now if now is not None else time.time()
    removed = 0
    for path in directory.iterdir():
        if not path.is_file() or not STORED_NAME_PATTERN.match(path.name):
            continue
        try:
            age = now - path.stat().st_mtime
        except OSError:
            continue  # Deleted by its own request in the meantime
        if age >= max_age_seconds:
            remove_transient_file(path)
            removed += 1

    if removed:
        logger.info(f"Swept {removed} stale upload(s) from {directory}")
    return removed

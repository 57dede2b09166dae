"""Upload size checks that avoid reading the whole file into memory."""

from __future__ import annotations

from os import SEEK_END

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from eventcraft.core.errors import PayloadTooLargeError


MULTIPART_OVERHEAD_BYTES = 64 * 1024


def content_length_exceeds_limit(
    content_length_header: str | None,
    *,
    max_size_bytes: int,
    overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
) -> bool:
    """True when Content-Length clearly exceeds the allowed file size."""
    if not content_length_header:
        return False
    try:
        content_length = int(content_length_header)
    except (TypeError, ValueError):
        return False
    return content_length > (max_size_bytes + overhead_bytes)


async def get_upload_file_size(file: UploadFile) -> int:
    def _get_size() -> int:
        stream = file.file
        original_pos = stream.tell()
        try:
            stream.seek(0, SEEK_END)
            return stream.tell()
        finally:
            stream.seek(original_pos)

    return await run_in_threadpool(_get_size)


async def enforce_upload_limit(
    file: UploadFile, content_length_header: str | None, max_size_bytes: int
) -> int:
    """
    Reject oversized uploads, cheaply by header first, then by actual size.

    Returns:
        The file size in bytes

    Raises:
        PayloadTooLargeError: File exceeds ``max_size_bytes``
    """
    limit_mb = max_size_bytes // (1024 * 1024)
    if content_length_exceeds_limit(content_length_header, max_size_bytes=max_size_bytes):
        raise PayloadTooLargeError(f"File exceeds the {limit_mb} MB limit")

    size = await get_upload_file_size(file)
    if size > max_size_bytes:
        raise PayloadTooLargeError(f"File exceeds the {limit_mb} MB limit")
    return size

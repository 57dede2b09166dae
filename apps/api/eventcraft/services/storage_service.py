"""Upload storage: image optimisation and the Supabase Storage bucket.

Supabase Storage exposes an S3-compatible endpoint, so objects are written
with boto3 and served from the bucket's public URL.
"""

from __future__ import annotations

import logging
import uuid
from io import BytesIO
from typing import BinaryIO

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from eventcraft.core.config import settings
from eventcraft.core.errors import (
    ServiceUnavailableError,
    UpstreamServiceError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

MAX_IMAGE_DIMENSION = 2000
JPEG_QUALITY = 85
CACHE_CONTROL = "max-age=3600"
DEFAULT_FOLDER = "uploads"


def optimize_image(data: BinaryIO) -> BytesIO:
    """
    Fit an image inside 2000x2000 (never enlarging) and re-encode it as a
    progressive JPEG at quality 85.

    Raises:
        ValueError: The bytes are not a readable image
    """
    data.seek(0)
    try:
        image = Image.open(data)
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Invalid image: {e}") from e

    image = ImageOps.exif_transpose(image)
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    # thumbnail() keeps aspect ratio and never upsizes
    image.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))

    output = BytesIO()
    image.save(output, format="JPEG", quality=JPEG_QUALITY, progressive=True, optimize=True)
    output.seek(0)
    return output


def _clean_folder(folder: str | None) -> str:
    parts = [p for p in (folder or DEFAULT_FOLDER).strip().split("/") if p and p not in (".", "..")]
    return "/".join(parts) or DEFAULT_FOLDER


def build_object_key(folder: str | None, content_type: str) -> str:
    """``<folder>/<uuid>.<ext>`` with the extension taken from the MIME type."""
    extension = (content_type.split("/")[-1] or "bin").split(";")[0].strip() or "bin"
    return f"{_clean_folder(folder)}/{uuid.uuid4()}.{extension}"


def _get_s3_client() -> BaseClient:
    return boto3.client(
        "s3",
        region_name=settings.STORAGE_S3_REGION or None,
        aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY or None,
        endpoint_url=settings.STORAGE_S3_ENDPOINT_URL.rstrip("/"),
        config=Config(s3={"addressing_style": "path"}),
    )


class ObjectStorage:
    """Writes objects to the uploads bucket and returns their public URL."""

    def __init__(self, client: BaseClient, bucket: str):
        self._client = client
        self._bucket = bucket

    def put(self, key: str, data: BinaryIO, content_type: str) -> str:
        data.seek(0)
        self._client.upload_fileobj(
            data,
            self._bucket,
            key,
            ExtraArgs={"ContentType": content_type, "CacheControl": CACHE_CONTROL},
        )
        return settings.public_storage_url(key)


def get_object_storage() -> ObjectStorage:
    if not settings.STORAGE_S3_ENDPOINT_URL or not settings.SUPABASE_URL:
        raise ServiceUnavailableError("File storage is not configured")
    return ObjectStorage(_get_s3_client(), settings.STORAGE_BUCKET)


async def store_upload(
    storage: ObjectStorage,
    data: BinaryIO,
    content_type: str,
    folder: str | None = None,
) -> dict[str, str]:
    """
    Optimise images, store the file, and return ``{url, file_name}``.

    Raises:
        ValidationFailedError: Declared image that cannot be decoded
        UpstreamServiceError: The storage service rejected the write
    """
    content_type = content_type or "application/octet-stream"
    if content_type.startswith("image/"):
        try:
            data = await run_in_threadpool(optimize_image, data)
        except ValueError as e:
            logger.info(f"Rejected upload: {e}")
            raise ValidationFailedError("File is not a valid image")
        content_type = "image/jpeg"

    key = build_object_key(folder, content_type)
    try:
        url = await run_in_threadpool(storage.put, key, data, content_type)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Storage upload failed for {key}: {e}")
        raise UpstreamServiceError("Failed to upload file")

    logger.info(f"Stored upload {key}")
    return {"url": url, "file_name": key}

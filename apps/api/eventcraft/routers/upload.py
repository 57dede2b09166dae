"""Upload router: images and files for provider profiles."""

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from eventcraft.core.config import settings
from eventcraft.core.deps import get_current_principal, get_storage
from eventcraft.core.structured_logging import build_log_context
from eventcraft.schemas.auth import Principal
from eventcraft.services import storage_service
from eventcraft.services.storage_service import ObjectStorage
from eventcraft.utils.file_upload import enforce_upload_limit

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form(storage_service.DEFAULT_FOLDER, max_length=100),
    principal: Principal = Depends(get_current_principal),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Store one file and return its public URL.

    Images are resized to fit 2000x2000 and re-encoded as progressive JPEG.
    """
    await enforce_upload_limit(
        file, request.headers.get("content-length"), settings.MAX_UPLOAD_BYTES
    )

    stored = await storage_service.store_upload(
        storage, file.file, file.content_type or "", folder=folder
    )

    logger.info(
        "File uploaded", extra=build_log_context(user_id=principal.id)
    )
    return {"success": True, "url": stored["url"], "file_name": stored["file_name"]}

"""
Upload router.

Provides REST API endpoints receiving multipart file uploads and saving them
under the configured upload directory.
"""

import shutil
from pathlib import Path
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from api.src.config import Settings
from api.src.dependencies import get_app_settings

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Uploads"])

SAVE_NAME = "savefile"


def _copy_upload(upload: UploadFile, destination: Path) -> int:
    destination.parent.mkdir(parents=True, exist_ok=True)
    upload.file.seek(0)
    with destination.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
        return out.tell()


async def save_uploaded_file(upload: UploadFile, destination: Path) -> int:
    """
    Save an uploaded file to ``destination``, replacing any existing file.

    Args:
        upload: Uploaded file
        destination: Target path

    Returns:
        Number of bytes written
    """
    size = await run_in_threadpool(_copy_upload, upload, destination)
    logger.info(
        "upload_saved",
        filename=upload.filename,
        destination=str(destination),
        size=size
    )
    return size


@router.post(
    "/upload",
    response_class=PlainTextResponse,
    summary="Upload a single file",
    description="Multipart field `file` is saved as `savefile` in the upload directory.",
)
async def upload_file(
    file: UploadFile = File(..., description="File to upload"),
    settings: Settings = Depends(get_app_settings)
) -> PlainTextResponse:
    logger.info("upload_received", filename=file.filename)
    await save_uploaded_file(file, settings.upload_dir / SAVE_NAME)
    return PlainTextResponse("upload succeed.")


@router.post(
    "/uploads",
    response_class=PlainTextResponse,
    summary="Upload several files",
    description="Each part of multipart field `file[]` is saved as `savefile<i>`.",
)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None, alias="file[]", description="Files to upload"),
    settings: Settings = Depends(get_app_settings)
) -> PlainTextResponse:
    for i, file in enumerate(files or []):
        await save_uploaded_file(file, settings.upload_dir / f"{SAVE_NAME}{i}")
    return PlainTextResponse("uploads succeed.")

"""Image upload and retrieval routes."""

import logging
import mimetypes
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from ...blobs import BlobStore
from ...errors import BlobNotFoundError
from ..dependencies import get_blobs

router = APIRouter(prefix="/api", tags=["uploads"])

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

IMMUTABLE_CACHE = "public, max-age=31536000, immutable"


@router.post("/upload")
async def upload(
    file: UploadFile = File(...),
    kind: Literal["avatar", "background", "chat"] = Form(default="chat", alias="type"),
    blobs: BlobStore = Depends(get_blobs),
):
    """Accept one image (at most 10 MiB) and return its reference URL."""
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail=f"Only image files are accepted, got '{content_type}'")

    data = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File exceeds the 10 MiB limit")

    ref = await blobs.store(data, kind, file.filename)
    logger.info("Stored %s upload %s (%d bytes)", kind, ref, len(data))
    return {"success": True, "url": ref, "filename": ref.rsplit("/", 1)[-1]}


@router.get("/uploads/{path:path}")
async def serve_upload(path: str, blobs: BlobStore = Depends(get_blobs)):
    if ".." in path:
        raise HTTPException(status_code=400, detail="Invalid path")

    try:
        data = await blobs.resolve(path)
    except BlobNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")

    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": IMMUTABLE_CACHE})

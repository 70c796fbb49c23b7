"""Upload endpoint: files are returned as data URIs to embed in member documents."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from ..auth import get_current_admin_uid
from ..config import settings
from ..schemas import DataUriResponse
from ..services.data_uri import encode_data_uri

router = APIRouter(prefix="/uploads", tags=["uploads"], dependencies=[Depends(get_current_admin_uid)])
logger = logging.getLogger(__name__)


@router.post("/data-uri", response_model=DataUriResponse)
async def upload_as_data_uri(file: UploadFile = File(...)):
    """Encode an uploaded photo or document."""
    # Read one byte past the limit so oversize files are detected without reading them fully.
    content = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    content_type = file.content_type or "application/octet-stream"
    data_uri = encode_data_uri(content, content_type)
    logger.info("Upload encoded filename=%s size=%s", file.filename, len(content))
    return DataUriResponse(
        data_uri=data_uri,
        content_type=content_type.split(";", 1)[0].strip().lower(),
        size=len(content),
    )

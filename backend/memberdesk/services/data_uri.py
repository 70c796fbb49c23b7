"""Encoding of uploaded photos and documents as data URIs."""

from __future__ import annotations

import base64

from ..config import settings
from ..domain_errors import DomainError


def encode_data_uri(content: bytes, content_type: str) -> str:
    """Validate type and size, then return a ``data:`` URI."""
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type not in settings.allowed_upload_types_list:
        raise DomainError(
            code="VALIDATION_FAILED",
            http_status=422,
            message="File type not allowed",
            details={"content_type": media_type, "allowed": settings.allowed_upload_types_list},
        )
    if not content:
        raise DomainError(code="VALIDATION_FAILED", http_status=422, message="File is empty")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise DomainError(
            code="VALIDATION_FAILED",
            http_status=422,
            message=f"File too large. Max size: {settings.MAX_UPLOAD_SIZE} bytes",
            details={"size": len(content)},
        )
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{media_type};base64,{encoded}"

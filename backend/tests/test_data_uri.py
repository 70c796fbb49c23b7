from __future__ import annotations

import pytest

from memberdesk.config import settings
from memberdesk.domain_errors import DomainError
from memberdesk.services.data_uri import encode_data_uri


def test_encodes_allowed_image() -> None:
    assert encode_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"


def test_media_type_parameters_are_ignored() -> None:
    assert encode_data_uri(b"abc", "Image/JPEG; charset=binary").startswith("data:image/jpeg;base64,")


def test_rejects_disallowed_type() -> None:
    with pytest.raises(DomainError) as exc:
        encode_data_uri(b"MZ", "application/x-msdownload")

    assert exc.value.code == "VALIDATION_FAILED"
    assert exc.value.http_status == 422


def test_rejects_empty_and_oversized_files() -> None:
    with pytest.raises(DomainError):
        encode_data_uri(b"", "image/png")
    with pytest.raises(DomainError) as exc:
        encode_data_uri(b"x" * (settings.MAX_UPLOAD_SIZE + 1), "application/pdf")

    assert exc.value.details == {"size": settings.MAX_UPLOAD_SIZE + 1}

"""Certificate issue and renewal use-cases."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..domain_errors import member_not_found
from ..schemas import Certificate
from ..services.document_store import DocumentNotFoundError, DocumentStore
from ..services.member_state import (
    MEMBERS_COLLECTION,
    certificate_expiry_for,
    make_certificate_id,
    utc_now,
)
from .members import get_member_use_case

logger = logging.getLogger(__name__)


def _write_certificate(*, store: DocumentStore, member_id: str, certificate: Certificate) -> None:
    try:
        store.update(MEMBERS_COLLECTION, member_id, {"certificate": certificate.model_dump()})
    except DocumentNotFoundError as exc:
        raise member_not_found(member_id) from exc


def generate_certificate_use_case(
    *, store: DocumentStore, member_id: str, now: Optional[datetime] = None
) -> Certificate:
    """Issue a fresh certificate, replacing any existing one."""
    issued = now or utc_now()
    certificate = Certificate(
        id=make_certificate_id(issued),
        issued_date=issued,
        expiry_date=certificate_expiry_for(issued),
    )
    _write_certificate(store=store, member_id=member_id, certificate=certificate)
    logger.info("Certificate generated member_id=%s certificate_id=%s", member_id, certificate.id)
    return certificate


def renew_certificate_use_case(
    *, store: DocumentStore, member_id: str, now: Optional[datetime] = None
) -> Certificate:
    """Restart the validity window of the member's certificate, keeping its id."""
    member = get_member_use_case(store=store, member_id=member_id)
    if member.certificate is None:
        return generate_certificate_use_case(store=store, member_id=member_id, now=now)

    issued = now or utc_now()
    certificate = Certificate(
        id=member.certificate.id,
        issued_date=issued,
        expiry_date=certificate_expiry_for(issued),
    )
    _write_certificate(store=store, member_id=member_id, certificate=certificate)
    logger.info("Certificate renewed member_id=%s certificate_id=%s", member_id, certificate.id)
    return certificate

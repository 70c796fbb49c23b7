"""Member lifecycle use-cases: provisioning, edits, status and deletion."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from ..config import settings
from ..domain_errors import DomainError, member_not_found
from ..schemas import DOCUMENT_SLOTS, Member, MemberCreate, MemberUpdate
from ..services.document_store import (
    DESCENDING,
    DOCUMENT_ID,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStore,
)
from ..services.identity import AccountNotFoundError, IdentityError, IdentityProvider
from ..services.member_state import MEMBERS_COLLECTION, as_utc, member_from_snapshot

logger = logging.getLogger(__name__)

# Fields that may not be cleared once a member exists.
_REQUIRED_FIELDS = ("name", "mobile", "address", "blood_group", "garage_name", "photo_url", "tags")


def _validation_failed(exc: ValidationError) -> DomainError:
    return DomainError(
        code="VALIDATION_FAILED",
        http_status=422,
        message="Member data is invalid",
        details={
            "errors": [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ]
        },
    )


def _mobile_exists(mobile: str) -> DomainError:
    return DomainError(
        code="MEMBER_MOBILE_EXISTS",
        http_status=409,
        message="A member with this mobile number already exists.",
        details={"mobile": mobile},
    )


def _clean_documents(documents: dict[str, Optional[str]]) -> dict[str, str]:
    return {
        slot: value
        for slot, value in documents.items()
        if slot in DOCUMENT_SLOTS and isinstance(value, str) and value
    }


def member_email(member_id: str) -> str:
    return f"{member_id.lower()}@{settings.MEMBER_EMAIL_DOMAIN}"


def get_member_use_case(*, store: DocumentStore, member_id: str) -> Member:
    snapshot = store.get(MEMBERS_COLLECTION, member_id)
    if snapshot is None:
        raise member_not_found(member_id)
    return member_from_snapshot(snapshot)


def list_all_members(*, store: DocumentStore) -> list[Member]:
    snapshot = store.query(MEMBERS_COLLECTION).order_by(DOCUMENT_ID).get()
    return [member_from_snapshot(doc) for doc in snapshot]


def list_members_page_use_case(
    *, store: DocumentStore, after: Optional[str] = None, limit: int
) -> tuple[list[Member], Optional[str], bool]:
    """One-shot cursor page ordered by member id.

    Returns members, the cursor for the next page and whether more may follow.
    """
    query = store.query(MEMBERS_COLLECTION).order_by(DOCUMENT_ID).limit(limit)
    if after:
        # Ordering is by id, so the id alone positions the cursor.
        query = query.start_after(DocumentSnapshot(collection=MEMBERS_COLLECTION, id=after, data={}))
    snapshot = query.get()
    members = [member_from_snapshot(doc) for doc in snapshot]
    has_more = len(members) == limit
    next_cursor = members[-1].id if has_more else None
    return members, next_cursor, has_more


def next_member_id(*, store: DocumentStore) -> str:
    """Increment the numeric suffix of the lexicographically last member id."""
    prefix = settings.MEMBER_ID_PREFIX
    width = settings.MEMBER_ID_WIDTH

    snapshot = store.query(MEMBERS_COLLECTION).order_by(DOCUMENT_ID, DESCENDING).limit(1).get()
    if snapshot.empty:
        return f"{prefix}{1:0{width}d}"

    last_id = snapshot.docs[0].id
    match = re.fullmatch(rf"{re.escape(prefix)}(\d+)", last_id)
    if not match:
        raise DomainError(
            code="MEMBER_ID_CONFLICT",
            http_status=409,
            message="Cannot derive the next member id",
            details={"last_id": last_id},
        )
    return f"{prefix}{int(match.group(1)) + 1:0{width}d}"


def create_member_use_case(
    *,
    store: DocumentStore,
    identity: IdentityProvider,
    payload: Union[MemberCreate, dict[str, Any]],
) -> Member:
    """Provision the identity account and the member document.

    The mobile number is checked before any account exists. If writing the
    document fails, the freshly created account is deleted again.
    """
    identity.ensure_ready()

    if isinstance(payload, MemberCreate):
        data = payload
    else:
        try:
            data = MemberCreate.model_validate(payload)
        except ValidationError as exc:
            raise _validation_failed(exc) from exc

    member_id = next_member_id(store=store)
    if store.get(MEMBERS_COLLECTION, member_id) is not None:
        raise DomainError(
            code="MEMBER_ID_CONFLICT",
            http_status=409,
            message="Computed member id is already taken",
            details={"member_id": member_id},
        )

    existing = store.query(MEMBERS_COLLECTION).where("mobile", "==", data.mobile).limit(1).get()
    if not existing.empty:
        raise _mobile_exists(data.mobile)

    email = member_email(member_id)
    try:
        identity.create_account(
            uid=member_id,
            email=email,
            password=settings.MEMBER_DEFAULT_PASSWORD,
            display_name=data.name,
        )
    except IdentityError as exc:
        raise DomainError(
            code="IDENTITY_ACCOUNT_FAILED",
            http_status=502,
            message="Could not create the member's login account",
            details={"member_id": member_id, "reason": str(exc)},
        ) from exc

    member = Member(
        id=member_id,
        name=data.name,
        mobile=data.mobile,
        address=data.address,
        blood_group=data.blood_group,
        garage_name=data.garage_name,
        photo_url=data.photo_url,
        email=email,
        certificate=None,
        documents=_clean_documents(data.documents),
        tags=list(data.tags),
        status="active",
        aadhar_number=data.aadhar_number,
        driving_license_number=data.driving_license_number,
        dob=as_utc(data.dob),
    )
    try:
        store.set(MEMBERS_COLLECTION, member_id, member.model_dump())
    except Exception:
        try:
            identity.delete_account(member_id)
        except IdentityError:
            logger.exception("Rollback of identity account failed uid=%s", member_id)
        raise

    logger.info("Member created member_id=%s", member_id)
    return member


def update_member_use_case(
    *,
    store: DocumentStore,
    identity: IdentityProvider,
    member_id: str,
    changes: MemberUpdate,
) -> Member:
    current = get_member_use_case(store=store, member_id=member_id)

    fields = changes.model_dump(exclude_unset=True)
    for name in _REQUIRED_FIELDS:
        if name in fields and fields[name] is None:
            fields.pop(name)

    if "documents" in fields:
        merged = dict(current.documents)
        for slot, value in (fields["documents"] or {}).items():
            if slot not in DOCUMENT_SLOTS:
                continue
            if isinstance(value, str) and value:
                merged[slot] = value
            else:
                merged.pop(slot, None)
        fields["documents"] = merged

    if isinstance(fields.get("dob"), datetime):
        fields["dob"] = as_utc(fields["dob"])

    if "mobile" in fields and fields["mobile"] != current.mobile:
        clash = store.query(MEMBERS_COLLECTION).where("mobile", "==", fields["mobile"]).limit(1).get()
        if any(doc.id != member_id for doc in clash):
            raise _mobile_exists(fields["mobile"])

    if not fields:
        return current

    try:
        store.update(MEMBERS_COLLECTION, member_id, fields)
    except DocumentNotFoundError as exc:
        raise member_not_found(member_id) from exc

    display_name = fields.get("name")
    photo_url = fields.get("photo_url")
    if photo_url is not None and not photo_url.startswith("https://"):
        # Data URIs are too large for the provider's profile field.
        photo_url = None
    if display_name is not None or photo_url is not None:
        try:
            identity.update_account(member_id, display_name=display_name, photo_url=photo_url)
        except (IdentityError, DomainError):
            logger.warning("Identity profile update failed uid=%s", member_id, exc_info=True)

    return get_member_use_case(store=store, member_id=member_id)


def _sync_accounts_disabled(*, identity: IdentityProvider, member_ids: list[str], disabled: bool) -> None:
    for member_id in member_ids:
        try:
            identity.update_account(member_id, disabled=disabled)
        except AccountNotFoundError:
            logger.info("No identity account to update uid=%s", member_id)
        except (IdentityError, DomainError):
            logger.warning("Identity disable/enable failed uid=%s", member_id, exc_info=True)


def set_member_status_use_case(
    *, store: DocumentStore, identity: IdentityProvider, member_id: str, status: str
) -> None:
    try:
        store.update(MEMBERS_COLLECTION, member_id, {"status": status})
    except DocumentNotFoundError as exc:
        raise member_not_found(member_id) from exc
    _sync_accounts_disabled(identity=identity, member_ids=[member_id], disabled=status == "inactive")


def set_members_status_use_case(
    *, store: DocumentStore, identity: IdentityProvider, member_ids: list[str], status: str
) -> None:
    """Update all statuses in one batch; nothing changes if any member is missing."""
    batch = store.batch()
    for member_id in member_ids:
        batch.update(MEMBERS_COLLECTION, member_id, {"status": status})
    try:
        batch.commit()
    except DocumentNotFoundError as exc:
        raise member_not_found(exc.doc_id) from exc
    _sync_accounts_disabled(identity=identity, member_ids=member_ids, disabled=status == "inactive")


def delete_member_use_case(*, store: DocumentStore, identity: IdentityProvider, member_id: str) -> None:
    get_member_use_case(store=store, member_id=member_id)
    store.delete(MEMBERS_COLLECTION, member_id)
    try:
        identity.delete_account(member_id)
    except AccountNotFoundError:
        logger.info("Identity account already absent uid=%s", member_id)
    except IdentityError as exc:
        raise DomainError(
            code="IDENTITY_ACCOUNT_FAILED",
            http_status=502,
            message="Member deleted but the login account could not be removed",
            details={"member_id": member_id, "reason": str(exc)},
        ) from exc
    logger.info("Member deleted member_id=%s", member_id)


def delete_members_use_case(
    *, store: DocumentStore, identity: IdentityProvider, member_ids: list[str]
) -> tuple[int, int]:
    """Delete member documents atomically, then their accounts best-effort.

    Returns the identity provider's (success, failure) counts.
    """
    batch = store.batch()
    for member_id in member_ids:
        batch.delete(MEMBERS_COLLECTION, member_id)
    batch.commit()

    try:
        success, failure = identity.delete_accounts(member_ids)
    except (IdentityError, DomainError):
        logger.exception("Bulk identity deletion failed count=%s", len(member_ids))
        return 0, len(member_ids)
    if failure:
        logger.info("Bulk identity deletion partial success=%s failure=%s", success, failure)
    return success, failure

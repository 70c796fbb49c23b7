from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from memberdesk import models  # noqa: F401
from memberdesk.database import Base
from memberdesk.services.document_store import DocumentStore
from memberdesk.services.identity import AccountNotFoundError, IdentityError


class IdentityStub:
    """In-memory identity provider recording every call."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.ready_error: Exception | None = None
        self.fail_create = False
        self.fail_update = False
        self.fail_bulk_delete = False

    def ensure_ready(self) -> None:
        self.calls.append(("ensure_ready", ""))
        if self.ready_error is not None:
            raise self.ready_error

    def create_account(self, *, uid, email, password, display_name=None) -> None:
        self.calls.append(("create", uid))
        if self.fail_create:
            raise IdentityError("provider rejected account")
        self.accounts[uid] = {
            "email": email,
            "password": password,
            "display_name": display_name,
            "photo_url": None,
            "disabled": False,
        }

    def update_account(self, uid, *, display_name=None, photo_url=None, disabled=None) -> None:
        self.calls.append(("update", uid))
        if self.fail_update:
            raise IdentityError("provider unavailable")
        if uid not in self.accounts:
            raise AccountNotFoundError(uid)
        account = self.accounts[uid]
        if display_name is not None:
            account["display_name"] = display_name
        if photo_url is not None:
            account["photo_url"] = photo_url
        if disabled is not None:
            account["disabled"] = disabled

    def delete_account(self, uid) -> None:
        self.calls.append(("delete", uid))
        if uid not in self.accounts:
            raise AccountNotFoundError(uid)
        del self.accounts[uid]

    def delete_accounts(self, uids) -> tuple[int, int]:
        uids = list(uids)
        self.calls.append(("delete_many", ",".join(uids)))
        if self.fail_bulk_delete:
            raise IdentityError("bulk delete failed")
        success = failure = 0
        for uid in uids:
            if self.accounts.pop(uid, None) is None:
                failure += 1
            else:
                success += 1
        return success, failure

    def verify_token(self, token: str) -> str:
        return token


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    document_store = DocumentStore(session_factory)
    yield document_store
    document_store.close()


@pytest.fixture
def identity():
    return IdentityStub()


def member_doc(member_id: str, **overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": member_id,
        "name": f"Member {member_id}",
        "mobile": "9" + member_id[-3:].rjust(9, "0"),
        "address": "12 Workshop Road, Pune",
        "blood_group": "O+",
        "garage_name": "Speed Garage",
        "photo_url": "",
        "email": f"{member_id.lower()}@mechanicmitra.in",
        "certificate": None,
        "documents": {},
        "tags": [],
        "status": "active",
        "dob": datetime(1990, 1, 15, tzinfo=timezone.utc),
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def add_member(store, identity):
    """Write a member document (and its stub account) directly."""

    def _add(member_id: str, **overrides: Any) -> dict[str, Any]:
        doc = member_doc(member_id, **overrides)
        store.set("members", member_id, doc)
        identity.accounts[member_id] = {"email": doc["email"], "disabled": False}
        return doc

    return _add

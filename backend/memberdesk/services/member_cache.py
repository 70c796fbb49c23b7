"""Paged, partially live view of the member collection.

The first page (ordered by member id) is a standing subscription: every
committed write to ``members`` replaces that portion of the list. Pages
loaded with :meth:`MemberCache.fetch_more` are one-shot reads appended to
the tail and are not refreshed afterwards.

The cache lives on the application's event loop. Store calls are blocking
and run in worker threads; snapshot callbacks arrive on whichever thread
committed the write and are handed back to the loop before touching state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional

from pydantic import ValidationError

from ..config import settings
from ..domain_errors import DomainError
from ..schemas import Member
from .document_store import DOCUMENT_ID, DocumentSnapshot, DocumentStore, QuerySnapshot, Subscription
from .identity import IdentityProvider
from .member_state import MEMBERS_COLLECTION, member_from_snapshot
from .toasts import Toast, ToastLog, failure, success
from ..use_cases.certificates import renew_certificate_use_case
from ..use_cases.members import (
    delete_member_use_case,
    delete_members_use_case,
    set_member_status_use_case,
    set_members_status_use_case,
)

logger = logging.getLogger(__name__)


class MemberCache:
    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        *,
        page_size: Optional[int] = None,
        toasts: Optional[ToastLog] = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self.page_size = page_size or settings.MEMBER_PAGE_SIZE
        self.toasts = toasts or ToastLog()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscription: Optional[Subscription] = None
        self._first_snapshot: Optional[asyncio.Future] = None
        self._reset()

    def _reset(self) -> None:
        self.members: list[Member] = []
        self.loading = True
        self.has_more = True
        self.is_fetching_more = False
        self.is_initialized = False
        self.processing_ids: set[str] = set()
        self._cursor: Optional[DocumentSnapshot] = None
        # Number of leading entries in `members` that belong to the live first page.
        self._live_count = 0

    # Lifecycle

    async def init(self) -> None:
        """Subscribe to the first page and wait for its initial snapshot."""
        if self.is_initialized:
            return
        self.is_initialized = True
        self.loading = True
        self._loop = asyncio.get_running_loop()
        self._first_snapshot = self._loop.create_future()

        query = self._store.query(MEMBERS_COLLECTION).order_by(DOCUMENT_ID).limit(self.page_size)
        try:
            self._subscription = await asyncio.to_thread(
                self._store.on_snapshot, query, self._snapshot_from_thread, self._error_from_thread
            )
        except Exception:
            logger.exception("Member subscription could not be started")
            self.loading = False
            return
        await self._first_snapshot
        logger.info("Member cache initialized count=%s has_more=%s", len(self.members), self.has_more)

    def dispose(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._first_snapshot is not None and not self._first_snapshot.done():
            self._first_snapshot.cancel()
        self._first_snapshot = None
        self._loop = None
        self._reset()

    # Subscription plumbing

    def _call_on_loop(self, fn: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(fn, *args)

    def _snapshot_from_thread(self, snapshot: QuerySnapshot) -> None:
        self._call_on_loop(self._apply_snapshot, snapshot)

    def _error_from_thread(self, exc: Exception) -> None:
        self._call_on_loop(self._apply_error, exc)

    def _mark_first_snapshot(self) -> None:
        if self._first_snapshot is not None and not self._first_snapshot.done():
            self._first_snapshot.set_result(None)

    def _parse(self, docs: Iterable[DocumentSnapshot]) -> list[Member]:
        members = []
        for doc in docs:
            try:
                members.append(member_from_snapshot(doc))
            except ValidationError:
                logger.warning("Skipping unreadable member document id=%s", doc.id, exc_info=True)
        return members

    def _apply_snapshot(self, snapshot: QuerySnapshot) -> None:
        if not self.is_initialized:
            return
        try:
            page = self._parse(snapshot)
            page_ids = {member.id for member in page}
            tail = [member for member in self.members[self._live_count:] if member.id not in page_ids]

            self.members = page + tail
            self._live_count = len(page)
            if not tail:
                # With fetched pages present, the cursor and has_more belong to the tail.
                self._cursor = snapshot.docs[-1] if snapshot.docs else None
                self.has_more = snapshot.size == self.page_size
        finally:
            self.loading = False
            self._mark_first_snapshot()

    def _apply_error(self, exc: Exception) -> None:
        logger.error("Member subscription failed: %s", exc)
        self.loading = False
        self._mark_first_snapshot()

    # Reads

    async def fetch_more(self) -> None:
        if self.is_fetching_more or not self.has_more or self._cursor is None:
            return
        self.is_fetching_more = True
        try:
            query = (
                self._store.query(MEMBERS_COLLECTION)
                .order_by(DOCUMENT_ID)
                .start_after(self._cursor)
                .limit(self.page_size)
            )
            snapshot = await asyncio.to_thread(query.get)
            known = {member.id for member in self.members}
            self.members.extend(member for member in self._parse(snapshot) if member.id not in known)
            if snapshot.docs:
                self._cursor = snapshot.docs[-1]
            self.has_more = snapshot.size == self.page_size
        except Exception:
            logger.exception("Fetching more members failed")
            self.toasts.push(failure("Error", "Could not load more members. Please try again."))
        finally:
            self.is_fetching_more = False

    def get_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def _name_of(self, member_id: str) -> str:
        member = self.get_member(member_id)
        return member.name if member else member_id

    # Mutations

    async def _run(self, member_ids: Iterable[str], action: Callable[[], Any], ok: Toast, failed: Toast) -> Toast:
        ids = set(member_ids)
        self.processing_ids.update(ids)
        try:
            await asyncio.to_thread(action)
            toast = ok
        except DomainError as exc:
            logger.warning("Member action failed code=%s ids=%s", exc.code, sorted(ids))
            toast = failed
        except Exception:
            logger.exception("Member action failed ids=%s", sorted(ids))
            toast = failed
        finally:
            self.processing_ids.difference_update(ids)
        return self.toasts.push(toast)

    async def set_member_status(self, member_id: str, status: str) -> Toast:
        name = self._name_of(member_id)
        return await self._run(
            [member_id],
            lambda: set_member_status_use_case(
                store=self._store, identity=self._identity, member_id=member_id, status=status
            ),
            success("Status Updated", f"{name} has been set to {status}."),
            failure("Status Update Failed", f"Could not update {name}'s status. Please try again."),
        )

    async def set_members_status(self, member_ids: list[str], status: str) -> Toast:
        return await self._run(
            member_ids,
            lambda: set_members_status_use_case(
                store=self._store, identity=self._identity, member_ids=member_ids, status=status
            ),
            success("Bulk Status Update Successful", f"{len(member_ids)} member(s) have been set to {status}."),
            failure("Bulk Status Update Failed", "Could not update member statuses. Please try again."),
        )

    async def delete_member(self, member_id: str) -> Toast:
        name = self._name_of(member_id)
        return await self._run(
            [member_id],
            lambda: delete_member_use_case(store=self._store, identity=self._identity, member_id=member_id),
            success("Member Deleted", f"{name} has been removed."),
            failure("Deletion Failed", f"Could not delete {name}. Please try again."),
        )

    async def delete_members(self, member_ids: list[str]) -> Toast:
        return await self._run(
            member_ids,
            lambda: delete_members_use_case(store=self._store, identity=self._identity, member_ids=member_ids),
            success("Members Deleted", f"{len(member_ids)} member(s) have been removed."),
            failure("Bulk Deletion Failed", "Could not delete selected members. Please try again."),
        )

    async def renew_member_certificate(self, member_id: str) -> Toast:
        name = self._name_of(member_id)
        return await self._run(
            [member_id],
            lambda: renew_certificate_use_case(store=self._store, member_id=member_id),
            success("Certificate Renewed", f"Certificate for {name} has been renewed successfully."),
            failure("Renewal Failed", "Could not renew certificate. Please try again."),
        )

"""Identity provider seam: member/admin account provisioning and token checks.

The console never authenticates anyone itself. It creates, updates and
deletes accounts at the provider and asks the provider whether a bearer
token is valid. Two adapters exist: :class:`LocalIdentityProvider` keeps
accounts in the ``identity_accounts`` table and issues JWTs, and
``FirebaseIdentityProvider`` (see ``firebase_identity``) talks to Firebase
Authentication.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..config import Settings
from ..domain_errors import DomainError
from ..models import IdentityAccount
from ..security import TokenError, create_access_token, decode_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Provider rejected or failed an account operation."""


class AccountNotFoundError(IdentityError):
    def __init__(self, uid: str) -> None:
        super().__init__(f"No identity account for uid={uid}")
        self.uid = uid


class InvalidTokenError(IdentityError):
    """Bearer token was not accepted by the provider."""


class IdentityProvider(Protocol):
    def ensure_ready(self) -> None: ...

    def create_account(
        self, *, uid: str, email: str, password: str, display_name: Optional[str] = None
    ) -> None: ...

    def update_account(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        disabled: Optional[bool] = None,
    ) -> None: ...

    def delete_account(self, uid: str) -> None: ...

    def delete_accounts(self, uids: Iterable[str]) -> tuple[int, int]: ...

    def verify_token(self, token: str) -> str: ...


def invalid_credentials() -> DomainError:
    return DomainError(
        code="INVALID_CREDENTIALS",
        http_status=401,
        message="Invalid email or password",
    )


class LocalIdentityProvider:
    """Accounts stored next to the documents, passwords hashed with bcrypt."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def ensure_ready(self) -> None:
        return None

    def create_account(
        self, *, uid: str, email: str, password: str, display_name: Optional[str] = None
    ) -> None:
        db = self._session_factory()
        try:
            db.add(
                IdentityAccount(
                    uid=uid,
                    email=email.lower(),
                    password_hash=get_password_hash(password),
                    display_name=display_name,
                )
            )
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise IdentityError(f"Account uid={uid} or email={email} already exists") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise IdentityError(str(exc)) from exc
        finally:
            db.close()

    def update_account(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        disabled: Optional[bool] = None,
    ) -> None:
        db = self._session_factory()
        try:
            account = db.get(IdentityAccount, uid)
            if account is None:
                raise AccountNotFoundError(uid)
            if display_name is not None:
                account.display_name = display_name
            if photo_url is not None:
                account.photo_url = photo_url
            if disabled is not None:
                account.disabled = disabled
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IdentityError(str(exc)) from exc
        finally:
            db.close()

    def delete_account(self, uid: str) -> None:
        db = self._session_factory()
        try:
            account = db.get(IdentityAccount, uid)
            if account is None:
                raise AccountNotFoundError(uid)
            db.delete(account)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IdentityError(str(exc)) from exc
        finally:
            db.close()

    def delete_accounts(self, uids: Iterable[str]) -> tuple[int, int]:
        success = failure = 0
        for uid in uids:
            try:
                self.delete_account(uid)
                success += 1
            except IdentityError:
                failure += 1
        return success, failure

    def sign_in(self, email: str, password: str) -> str:
        db = self._session_factory()
        try:
            account = db.query(IdentityAccount).filter(IdentityAccount.email == email.lower()).first()
        finally:
            db.close()
        if account is None or account.disabled or not verify_password(password, account.password_hash):
            raise invalid_credentials()
        logger.info("Local sign-in uid=%s", account.uid)
        return create_access_token(account.uid)

    def verify_token(self, token: str) -> str:
        try:
            uid = decode_token(token)
        except TokenError as exc:
            raise InvalidTokenError(str(exc)) from exc

        db = self._session_factory()
        try:
            account = db.get(IdentityAccount, uid)
        finally:
            db.close()
        if account is None or account.disabled:
            raise InvalidTokenError("Account not found or disabled")
        return uid


def build_identity_provider(settings: Settings, session_factory: sessionmaker) -> IdentityProvider:
    backend = settings.IDENTITY_BACKEND.lower()
    if backend == "firebase":
        from .firebase_identity import FirebaseIdentityProvider

        return FirebaseIdentityProvider(settings.FIREBASE_ADMIN_SDK_CONFIG_BASE64)
    if backend == "local":
        return LocalIdentityProvider(session_factory)
    raise ValueError(f"Unknown IDENTITY_BACKEND: {settings.IDENTITY_BACKEND}")

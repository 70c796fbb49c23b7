"""Firebase Authentication adapter built on the Firebase Admin SDK."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import threading
from collections.abc import Iterable
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError

from ..domain_errors import DomainError
from .identity import AccountNotFoundError, IdentityError, InvalidTokenError

logger = logging.getLogger(__name__)

APP_NAME = "memberdesk-admin"
# Admin SDK limit for a single delete_users call.
DELETE_USERS_CHUNK = 1000


def identity_not_configured(reason: str) -> DomainError:
    return DomainError(
        code="IDENTITY_NOT_CONFIGURED",
        http_status=500,
        message="The server is missing critical configuration for Firebase Admin. Please contact support.",
        details={"reason": reason},
    )


class FirebaseIdentityProvider:
    """Initializes the Admin SDK app on first use from a base64 service account."""

    def __init__(self, config_base64: Optional[str]) -> None:
        self._config_base64 = config_base64
        self._app: Optional[firebase_admin.App] = None
        self._lock = threading.Lock()

    def _load_service_account(self) -> dict:
        if not self._config_base64:
            raise identity_not_configured("FIREBASE_ADMIN_SDK_CONFIG_BASE64 is not set")
        try:
            decoded = base64.b64decode(self._config_base64, validate=True).decode("utf-8")
            return json.loads(decoded)
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.exception("Failed to decode Firebase Admin service account")
            raise identity_not_configured("FIREBASE_ADMIN_SDK_CONFIG_BASE64 is not valid base64 JSON") from exc

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is not None:
                return self._app
            try:
                self._app = firebase_admin.get_app(APP_NAME)
                return self._app
            except ValueError:
                pass

            service_account = self._load_service_account()
            try:
                self._app = firebase_admin.initialize_app(
                    credentials.Certificate(service_account), name=APP_NAME
                )
            except ValueError as exc:
                logger.exception("Firebase Admin initialization failed")
                raise identity_not_configured(str(exc)) from exc
            logger.info("Firebase Admin app initialized project=%s", service_account.get("project_id"))
            return self._app

    def ensure_ready(self) -> None:
        self._get_app()

    def create_account(
        self, *, uid: str, email: str, password: str, display_name: Optional[str] = None
    ) -> None:
        app = self._get_app()
        kwargs: dict[str, object] = {"uid": uid, "email": email, "password": password}
        if display_name:
            kwargs["display_name"] = display_name
        # Single call: a rejected request leaves no account behind.
        try:
            auth.create_user(app=app, **kwargs)
        except (FirebaseError, ValueError) as exc:
            raise IdentityError(str(exc)) from exc

    def update_account(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        disabled: Optional[bool] = None,
    ) -> None:
        app = self._get_app()
        kwargs: dict[str, object] = {}
        if display_name is not None:
            kwargs["display_name"] = display_name
        if photo_url is not None:
            kwargs["photo_url"] = photo_url
        if disabled is not None:
            kwargs["disabled"] = disabled
        if not kwargs:
            return
        try:
            auth.update_user(uid, app=app, **kwargs)
        except auth.UserNotFoundError as exc:
            raise AccountNotFoundError(uid) from exc
        except (FirebaseError, ValueError) as exc:
            raise IdentityError(str(exc)) from exc

    def delete_account(self, uid: str) -> None:
        app = self._get_app()
        try:
            auth.delete_user(uid, app=app)
        except auth.UserNotFoundError as exc:
            raise AccountNotFoundError(uid) from exc
        except (FirebaseError, ValueError) as exc:
            raise IdentityError(str(exc)) from exc

    def delete_accounts(self, uids: Iterable[str]) -> tuple[int, int]:
        app = self._get_app()
        pending = list(uids)
        success = failure = 0
        for start in range(0, len(pending), DELETE_USERS_CHUNK):
            chunk = pending[start:start + DELETE_USERS_CHUNK]
            try:
                result = auth.delete_users(chunk, app=app)
            except (FirebaseError, ValueError) as exc:
                raise IdentityError(str(exc)) from exc
            success += result.success_count
            failure += result.failure_count
        return success, failure

    def verify_token(self, token: str) -> str:
        app = self._get_app()
        try:
            decoded = auth.verify_id_token(token, app=app)
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            raise InvalidTokenError(str(exc)) from exc
        except FirebaseError as exc:
            # Key fetch or transport failure, not a verdict on the token.
            raise IdentityError(str(exc)) from exc
        return decoded["uid"]

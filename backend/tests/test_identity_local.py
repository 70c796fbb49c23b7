from __future__ import annotations

import pytest

from memberdesk.domain_errors import DomainError
from memberdesk.services.identity import (
    AccountNotFoundError,
    IdentityError,
    InvalidTokenError,
    LocalIdentityProvider,
)


def _provider(session_factory) -> LocalIdentityProvider:
    provider = LocalIdentityProvider(session_factory)
    provider.create_account(uid="MM001", email="MM001@MechanicMitra.in", password="mechanic@123", display_name="Ravi")
    return provider


def test_sign_in_returns_token_accepted_by_verify(session_factory) -> None:
    provider = _provider(session_factory)

    token = provider.sign_in("mm001@mechanicmitra.in", "mechanic@123")

    assert provider.verify_token(token) == "MM001"


def test_sign_in_rejects_wrong_password(session_factory) -> None:
    provider = _provider(session_factory)

    with pytest.raises(DomainError) as exc:
        provider.sign_in("mm001@mechanicmitra.in", "wrong")

    assert exc.value.code == "INVALID_CREDENTIALS"
    assert exc.value.http_status == 401


def test_disabled_account_cannot_sign_in_or_use_token(session_factory) -> None:
    provider = _provider(session_factory)
    token = provider.sign_in("mm001@mechanicmitra.in", "mechanic@123")

    provider.update_account("MM001", disabled=True)

    with pytest.raises(DomainError):
        provider.sign_in("mm001@mechanicmitra.in", "mechanic@123")
    with pytest.raises(InvalidTokenError):
        provider.verify_token(token)


def test_duplicate_account_is_rejected(session_factory) -> None:
    provider = _provider(session_factory)

    with pytest.raises(IdentityError):
        provider.create_account(uid="MM002", email="mm001@mechanicmitra.in", password="x")


def test_update_and_delete_unknown_account(session_factory) -> None:
    provider = LocalIdentityProvider(session_factory)

    with pytest.raises(AccountNotFoundError):
        provider.update_account("MM404", display_name="Nobody")
    with pytest.raises(AccountNotFoundError):
        provider.delete_account("MM404")


def test_delete_accounts_counts_successes_and_failures(session_factory) -> None:
    provider = _provider(session_factory)

    assert provider.delete_accounts(["MM001", "MM404"]) == (1, 1)


def test_garbage_token_is_rejected(session_factory) -> None:
    provider = LocalIdentityProvider(session_factory)

    with pytest.raises(InvalidTokenError):
        provider.verify_token("not-a-jwt")

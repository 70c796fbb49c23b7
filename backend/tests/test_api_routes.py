from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import memberdesk.main as main_module
import memberdesk.routers.auth as auth_router
from memberdesk.services.document_store import DocumentStore
from memberdesk.services.identity import LocalIdentityProvider

ADMIN_EMAIL = "admin@mechanicmitra.in"
ADMIN_PASSWORD = "console-secret"


class _RedisStub:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, seconds: int) -> None:
        return None

    def ttl(self, key: str) -> int:
        return 42


@pytest.fixture
def client(session_factory, monkeypatch):
    monkeypatch.setattr(main_module, "SessionLocal", session_factory)
    redis_stub = _RedisStub()
    monkeypatch.setattr(auth_router, "_get_redis", lambda: redis_stub)

    LocalIdentityProvider(session_factory).create_account(
        uid="admin-1", email=ADMIN_EMAIL, password=ADMIN_PASSWORD, display_name="Asha"
    )
    DocumentStore(session_factory).set("admins", "admin-1", {"name": "Asha", "photo_url": ""})

    with TestClient(main_module.app) as test_client:
        yield test_client


def _sign_in(client: TestClient, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD):
    return client.post("/api/v1/auth/sign-in", json={"email": email, "password": password})


@pytest.fixture
def headers(client):
    response = _sign_in(client)
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _member_payload(**overrides):
    payload = {
        "name": "Ravi Kumar",
        "mobile": "9876543210",
        "address": "12 Workshop Road, Pune",
        "blood_group": "B+",
        "garage_name": "Speed Garage",
        "dob": "1990-01-05T00:00:00Z",
    }
    payload.update(overrides)
    return payload


def test_health_is_public(client) -> None:
    response = client.get("/api/v1/system/health")

    assert response.status_code == 200
    assert response.json()["identity_backend"] == "local"


def test_sign_in_sets_no_store_and_rejects_bad_password(client) -> None:
    ok = _sign_in(client)
    bad = _sign_in(client, password="wrong")

    assert ok.headers["Cache-Control"] == "no-store"
    assert bad.status_code == 401
    assert bad.json()["code"] == "INVALID_CREDENTIALS"


def test_sign_in_is_rate_limited_per_ip(client) -> None:
    responses = [_sign_in(client, password="wrong") for _ in range(6)]

    assert responses[-1].status_code == 429
    assert responses[-1].headers["Retry-After"] == "42"


def test_console_requires_token_of_an_admin(client, headers) -> None:
    assert client.get("/api/v1/members").status_code in (401, 403)

    created = client.post("/api/v1/members", json=_member_payload(), headers=headers)
    member_token = _sign_in(client, "mm001@mechanicmitra.in", "mechanicmitra").json()["access_token"]

    assert created.status_code == 201
    forbidden = client.get("/api/v1/members", headers={"Authorization": f"Bearer {member_token}"})
    assert forbidden.status_code == 403


def test_member_lifecycle_through_api(client, headers) -> None:
    created = client.post("/api/v1/members", json=_member_payload(), headers=headers)
    assert created.status_code == 201
    assert created.json()["id"] == "MM001"
    assert created.json()["derived_status"] == "Active"

    duplicate = client.post("/api/v1/members", json=_member_payload(name="Other Person"), headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "MEMBER_MOBILE_EXISTS"

    view = client.get("/api/v1/members", headers=headers).json()
    assert [m["id"] for m in view["members"]] == ["MM001"]
    assert view["is_initialized"] is True

    toast = client.put("/api/v1/members/MM001/status", json={"status": "inactive"}, headers=headers).json()
    assert toast["title"] == "Status Updated"
    assert client.get("/api/v1/members/MM001", headers=headers).json()["derived_status"] == "Inactive"

    certificate = client.post("/api/v1/members/MM001/certificate", headers=headers)
    assert certificate.status_code == 200
    assert certificate.json()["id"].startswith("CERT")

    printed = client.get("/api/v1/members/MM001/certificate/print", headers=headers)
    assert printed.headers["content-type"].startswith("text/html")
    assert "RAVI KUMAR" in printed.text

    deleted = client.delete("/api/v1/members/MM001", headers=headers).json()
    assert deleted["title"] == "Member Deleted"
    missing = client.get("/api/v1/members/MM001", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "MEMBER_NOT_FOUND"


def test_failed_bulk_action_returns_destructive_toast(client, headers) -> None:
    response = client.post(
        "/api/v1/members/bulk/status", json={"member_ids": ["MM404"], "status": "active"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["variant"] == "destructive"
    assert response.json()["title"] == "Bulk Status Update Failed"


def test_layout_draft_preview_and_save(client, headers) -> None:
    client.post("/api/v1/members", json=_member_payload(), headers=headers)

    patched = client.patch("/api/v1/layouts/id-card/draft/name", json={"top": 40}, headers=headers)
    assert patched.json()["positions"]["name"]["top"] == 40
    assert client.get("/api/v1/layouts/id-card", headers=headers).json()["positions"]["name"]["top"] == 92

    preview = client.get("/api/v1/layouts/id-card/preview/MM001?selected=name", headers=headers)
    assert "2px dashed #007bff" in preview.text

    saved = client.post("/api/v1/layouts/id-card/draft/save", headers=headers).json()
    assert saved["title"] == "Layout Saved"
    assert client.get("/api/v1/layouts/id-card", headers=headers).json()["positions"]["name"]["top"] == 40

    unknown = client.get("/api/v1/layouts/id-card/preview/MM001?selected=ghost", headers=headers)
    assert unknown.status_code == 422


def test_upload_returns_data_uri(client, headers) -> None:
    response = client.post(
        "/api/v1/uploads/data-uri",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["data_uri"].startswith("data:image/png;base64,")
    assert response.json()["size"] == 4


def test_admin_profile_and_dashboard(client, headers) -> None:
    profile = client.put("/api/v1/admins/me", json={"phone": "9000000000"}, headers=headers).json()
    assert profile == {"uid": "admin-1", "name": "Asha", "photo_url": "", "phone": "9000000000", "address": None}

    summary = client.get("/api/v1/dashboard/summary", headers=headers).json()
    assert summary["total_members"] == 0
    assert summary["pending_requests"] == 0

"""
Tests for /api/v1/auth – login, refresh, /me.
"""
import pytest

from shiftdesk.core.security import create_refresh_token
from tests.conftest import auth_headers


BASE = "/api/v1/auth"


# ── Login ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_login_valid(client, admin_user):
    resp = await client.post(f"{BASE}/login", json={
        "email": "admin@test.com",
        "password": "testpass123",
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_wrong_password(client, admin_user):
    resp = await client.post(f"{BASE}/login", json={
        "email": "admin@test.com",
        "password": "wrongpassword",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client, business):
    resp = await client.post(f"{BASE}/login", json={
        "email": "nobody@test.com",
        "password": "testpass123",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client, db, admin_user):
    admin_user.is_active = False
    await db.commit()

    resp = await client.post(f"{BASE}/login", json={
        "email": "admin@test.com",
        "password": "testpass123",
    })
    assert resp.status_code == 400


# ── Refresh ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_refresh_valid(client, admin_user):
    login = await client.post(f"{BASE}/login", json={
        "email": "admin@test.com",
        "password": "testpass123",
    })
    refresh_token = login.json()["refresh_token"]

    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 200
    assert resp.json()["access_token"]


@pytest.mark.asyncio
async def test_refresh_invalid_token(client, business):
    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": "invalid.token.here"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client, admin_user):
    token = create_refresh_token(admin_user.id, admin_user.business_id)
    resp = await client.get(f"{BASE}/me", headers=auth_headers(token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_access_token_cannot_refresh(client, admin_token):
    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": admin_token})
    assert resp.status_code == 401


# ── /me ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_me_returns_user_info(client, admin_user, admin_token):
    resp = await client.get(f"{BASE}/me", headers=auth_headers(admin_token))
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == "admin@test.com"
    assert data["role"] == "admin"
    assert data["business_id"] == str(admin_user.business_id)
    assert data["employee_id"] is None


@pytest.mark.asyncio
async def test_me_links_employee(client, employee_token, e1):
    resp = await client.get(f"{BASE}/me", headers=auth_headers(employee_token))
    assert resp.json()["employee_id"] == str(e1.id)


@pytest.mark.asyncio
async def test_me_without_token(client, business):
    resp = await client.get(f"{BASE}/me")
    assert resp.status_code in (401, 403)  # HTTPBearer answers 403 without a token on older FastAPI


@pytest.mark.asyncio
async def test_login_records_last_login(client, admin_user):
    login = await client.post(f"{BASE}/login", json={
        "email": "admin@test.com",
        "password": "testpass123",
    })
    resp = await client.get(f"{BASE}/me", headers=auth_headers(login.json()["access_token"]))
    assert resp.json()["last_login_at"] is not None

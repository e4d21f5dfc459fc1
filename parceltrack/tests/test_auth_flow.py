"""
Integration tests for the Authentication Flow.

Verifies Login -> Me -> Logout and token revocation.
"""

import pytest

TEST_PASSWORD = "password123"


async def login(client, email, password=TEST_PASSWORD):
    return await client.post("/v1/auth/login", json={"email": email, "password": password})


async def test_login_returns_token(client, courier_user):
    response = await login(client, "courier@test.com")

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user_id"] == courier_user.id
    assert data["role"] == "courier"
    assert data["access_token"]


async def test_login_wrong_password(client, courier_user):
    response = await login(client, "courier@test.com", "wrong-password")

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


async def test_login_unknown_email(client):
    response = await login(client, "nobody@test.com")
    assert response.status_code == 401


async def test_me(client, courier_user):
    token = (await login(client, "courier@test.com")).json()["access_token"]

    response = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["email"] == "courier@test.com"
    assert response.json()["name"] == "Carl Courier"


async def test_logout_revokes_token(client, courier_user):
    token = (await login(client, "courier@test.com")).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.post("/v1/auth/logout", headers=headers)

    assert response.status_code == 200
    assert response.json()["revoked"] is True
    revoked = await client.get("/v1/auth/me", headers=headers)
    assert revoked.status_code == 401
    assert revoked.headers["www-authenticate"] == "Bearer"


async def test_login_attempts_are_audited(client, admin_headers, courier_user):
    await login(client, "courier@test.com", "wrong-password")
    await login(client, "courier@test.com")

    response = await client.get("/v1/users/audit-log", headers=admin_headers)

    actions = [log["action"] for log in response.json()["logs"]]
    assert "LOGIN_FAILED" in actions
    assert "LOGIN_SUCCESS" in actions


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["x-correlation-id"]

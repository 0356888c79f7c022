"""Tests for registration, login and the current-account endpoint."""
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from tests.conftest import TEST_PASSWORD, auth_headers


async def test_register(client: AsyncClient, db_session: AsyncSession) -> None:
    """New accounts start unapproved on the free quota."""
    response = await client.post(
        "/api/auth/register",
        json={"username": "carol", "email": "Carol@Example.com", "password": "long-enough-pw"},
    )
    assert response.status_code == 201

    data = response.json()
    assert data["username"] == "carol"
    assert data["email"] == "carol@example.com"
    assert data["isApproved"] is False
    assert data["isPremium"] is False
    assert data["maxBookmarks"] == 10
    assert "password" not in data
    assert "passwordHash" not in data

    stored = await db_session.scalar(select(User).where(User.id == data["id"]))
    assert stored.password_hash.startswith("$2")


async def test_register_duplicate_username(client: AsyncClient, alice: User) -> None:
    """Usernames are unique regardless of case."""
    response = await client.post(
        "/api/auth/register",
        json={"username": "Alice", "email": "other@example.com", "password": "long-enough-pw"},
    )
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "duplicate_field"
    assert detail["field"] == "username"


async def test_register_duplicate_email(client: AsyncClient, alice: User) -> None:
    response = await client.post(
        "/api/auth/register",
        json={"username": "alice2", "email": "alice@example.com", "password": "long-enough-pw"},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "email"


async def test_register_validation(client: AsyncClient) -> None:
    """Short passwords, bad usernames and bad emails are rejected."""
    cases = [
        {"username": "carol", "email": "carol@example.com", "password": "short"},
        {"username": "a b", "email": "carol@example.com", "password": "long-enough-pw"},
        {"username": "carol", "email": "not-an-email", "password": "long-enough-pw"},
    ]
    for body in cases:
        response = await client.post("/api/auth/register", json=body)
        assert response.status_code == 422, body


async def test_login(client: AsyncClient, alice: User) -> None:
    response = await client.post(
        "/api/auth/login",
        json={"email": "ALICE@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 200

    data = response.json()
    assert data["tokenType"] == "bearer"
    assert data["user"]["username"] == "alice"

    me = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"},
    )
    assert me.status_code == 200
    assert me.json()["id"] == alice.id


async def test_login_wrong_password(client: AsyncClient, alice: User) -> None:
    response = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


async def test_login_unknown_email(client: AsyncClient) -> None:
    """Unknown emails get the same answer as wrong passwords."""
    response = await client.post(
        "/api/auth/login",
        json={"email": "ghost@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


async def test_me(client: AsyncClient, alice: User) -> None:
    response = await client.get("/api/auth/me", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"


async def test_me_requires_auth(client: AsyncClient) -> None:
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


async def test_me_invalid_token(client: AsyncClient) -> None:
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


async def test_me_deleted_user(
    client: AsyncClient, db_session: AsyncSession, alice: User,
) -> None:
    """A token for an account that no longer exists is rejected."""
    headers = auth_headers(alice)
    await db_session.delete(alice)
    await db_session.flush()

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401

from __future__ import annotations

from datetime import timedelta

import httpx
import pytest

from e3d_commerce.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from e3d_commerce.auth.passwords import hash_password, verify_password
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.settings import Settings
from helpers import ADMIN, login, register


def test_password_hash_round_trip() -> None:
    hashed = hash_password("customer123")
    assert hashed != "customer123"
    assert verify_password("customer123", hashed)
    assert not verify_password("customer124", hashed)


def test_token_claims_and_audience_check() -> None:
    cfg = JwtConfig.from_settings(Settings(env="test"))
    token = issue_token(cfg=cfg, subject="abc", roles=["customer"], email="a@example.com")
    claims = decode_and_validate(cfg=cfg, token=token)
    assert claims["sub"] == "abc"
    assert claims["roles"] == ["customer"]
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())

    other = JwtConfig(alg=cfg.alg, issuer=cfg.issuer, audience="someone-else", secret=cfg.secret)
    with pytest.raises(JwtValidationError):
        decode_and_validate(cfg=other, token=token)


@pytest.mark.asyncio
async def test_register_login_and_me(client: httpx.AsyncClient) -> None:
    r = await register(client, "Jane@Example.com")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "jane@example.com"
    assert body["user"]["roles"] == ["customer"]

    headers = await login(client, "jane@example.com", "s3cret-pass")
    r = await client.get("/v1/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["full_name"] == "Jane Shopper"


@pytest.mark.asyncio
async def test_register_rejects_duplicates_and_mismatched_passwords(
    client: httpx.AsyncClient,
) -> None:
    assert (await register(client, "dup@example.com")).status_code == 201
    r = await register(client, "dup@example.com")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"

    r = await client.post(
        "/v1/auth/register",
        json={
            "email": "new@example.com",
            "password": "s3cret-pass",
            "confirm_password": "different-pass",
            "full_name": "New User",
        },
    )
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any(d["message"] == "Passwords don't match" for d in error["details"])

    r = await register(client, "short@example.com", password="short")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_register_race_on_same_email_is_a_conflict(
    client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    assert (await register(client, "race@example.com")).status_code == 201

    async def _not_found(self, email: str) -> None:
        return None

    # The lookup misses an account that another request committed after it ran.
    monkeypatch.setattr(UserRepo, "get_by_email", _not_found)
    r = await register(client, "race@example.com")
    assert r.status_code == 409
    assert r.json()["error"] == {
        "code": "CONFLICT",
        "message": "An account with this email already exists",
    }


@pytest.mark.asyncio
async def test_login_failure_is_generic(client: httpx.AsyncClient, seeded: None) -> None:
    for email, password in [(ADMIN[0], "wrong-password"), ("nobody@example.com", "whatever1")]:
        r = await client.post("/v1/auth/login", json={"email": email, "password": password})
        assert r.status_code == 401
        assert r.json()["error"]["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_customer_cannot_use_admin_routes(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    r = await client.get("/v1/admin/dashboard", headers=customer_headers)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"

import uuid

import pytest
from fastapi import status


@pytest.mark.asyncio
async def test_register_login_me(client):
    unique_email = f"test-{uuid.uuid4()}@example.com"
    unique_username = f"User_{uuid.uuid4().hex[:8]}"

    r = await client.post("/auth/register", json={"email": unique_email, "username": unique_username, "password": "supersecret"})
    assert r.status_code == status.HTTP_201_CREATED
    assert r.json()["challenges_created"] == 0
    assert r.json()["challenge_wins"] == 0

    r = await client.post("/auth/login", json={"email": unique_email, "password": "supersecret"})
    assert r.status_code == 200
    tokens = r.json()
    assert "access" in tokens and "refresh" in tokens

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access']}"})
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == unique_email
    assert body["username"] == unique_username.lower()

    r = await client.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh']}"})
    assert r.status_code == 200
    tokens2 = r.json()
    assert tokens2["access"] != tokens["access"]

    # refresh tokens are not accepted as access tokens
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh']}"})
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_register_duplicates_rejected(client):
    name = f"dup_{uuid.uuid4().hex[:8]}"
    payload = {"email": f"{name}@ex.com", "username": name, "password": "supersecret"}
    assert (await client.post("/auth/register", json=payload)).status_code == 201

    r = await client.post("/auth/register", json=payload)
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already registered"

    r = await client.post("/auth/register", json={**payload, "email": f"other-{name}@ex.com"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Username already registered"


@pytest.mark.asyncio
async def test_bad_login(client):
    r = await client.post("/auth/login", json={"email": "nobody@ex.com", "password": "supersecret"})
    assert r.status_code == 401

"""API tests for signup, login, logout and session authentication."""

from __future__ import annotations

import json

from phishguard.cache import notifications_key, session_key, user_data_key


class TestSignup:
    async def test_signup_issues_session_and_primes_caches(self, client, store, cache):
        resp = await client.post(
            "/auth/signup",
            json={"email": "New@Example.com", "password": "Password123", "fullName": "New User"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["session"]) == 64
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["fullName"] == "New User"

        user_id = body["user"]["id"]
        assert json.loads(cache.peek(notifications_key(user_id))) == {"success": True, "notifications": []}
        profile = json.loads(cache.peek(user_data_key(user_id)))
        assert profile["user"]["trustedUsers"] == []
        assert json.loads(cache.peek(session_key(body["session"])))["valid"] is True

    async def test_duplicate_email(self, client, store):
        store.add_user("taken@example.com")
        resp = await client.post(
            "/auth/signup",
            json={"email": "taken@example.com", "password": "Password123", "fullName": "X"},
        )
        assert resp.json() == {"success": False, "error": "Email already registered"}

    async def test_duplicate_email_lost_race(self, client, store, monkeypatch):
        # The other signup commits between our existence check and our insert.
        store.add_user("taken@example.com")

        async def not_found_yet(email):
            return None

        monkeypatch.setattr(store, "get_user_by_email", not_found_yet)

        resp = await client.post(
            "/auth/signup",
            json={"email": "taken@example.com", "password": "Password123", "fullName": "X"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": False, "error": "Email already registered"}

    async def test_weak_password(self, client):
        resp = await client.post(
            "/auth/signup",
            json={"email": "a@example.com", "password": "weak", "fullName": "X"},
        )
        body = resp.json()
        assert body["success"] is False
        assert "at least 8 characters" in body["error"]

    async def test_invalid_email_rejected(self, client):
        resp = await client.post(
            "/auth/signup",
            json={"email": "not-an-email", "password": "Password123", "fullName": "X"},
        )
        assert resp.status_code == 422
        assert resp.json()["success"] is False


class TestLogin:
    async def test_login(self, client, store):
        store.add_user("user@example.com", "User", password="Password123")

        resp = await client.post("/auth/login", json={"email": "user@example.com", "password": "Password123"})

        body = resp.json()
        assert body["success"] is True
        assert body["fullName"] == "User"
        assert body["email"] == "user@example.com"

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['session']}"})
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "user@example.com"

    async def test_wrong_password(self, client, store):
        store.add_user("user@example.com", password="Password123")
        resp = await client.post("/auth/login", json={"email": "user@example.com", "password": "Wrong1234"})
        assert resp.json() == {"success": False, "error": "Invalid email or password"}

    async def test_unknown_email_same_error(self, client):
        resp = await client.post("/auth/login", json={"email": "ghost@example.com", "password": "Password123"})
        assert resp.json() == {"success": False, "error": "Invalid email or password"}


class TestSessionAuth:
    async def test_missing_bearer(self, client):
        resp = await client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    async def test_unknown_token(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Bearer " + "0" * 64})
        assert resp.status_code == 401

    async def test_me(self, authed_client):
        resp = await authed_client.get("/auth/me")
        assert resp.status_code == 200
        body = resp.json()
        assert body["valid"] is True
        assert body["user"]["fullName"] == "Owner"

    async def test_logout_invalidates(self, authed_client):
        resp = await authed_client.post("/auth/logout")
        assert resp.json() == {"success": True}

        resp = await authed_client.get("/auth/me")
        assert resp.status_code == 401

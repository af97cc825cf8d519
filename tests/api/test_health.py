"""API tests for status endpoints and request middleware."""


class TestHealth:
    async def test_status(self, client):
        resp = await client.get("/status")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.json() == {"status": "healthy"}

    async def test_version(self, client):
        resp = await client.get("/version")
        assert "version" in resp.json()


class TestRequestId:
    async def test_generated(self, client):
        resp = await client.get("/status")
        assert resp.headers["X-Request-Id"]

    async def test_propagated(self, client):
        resp = await client.get("/status", headers={"X-Request-Id": "req-123"})
        assert resp.headers["X-Request-Id"] == "req-123"

    async def test_unsafe_id_replaced(self, client):
        resp = await client.get("/status", headers={"X-Request-Id": "bad id with spaces"})
        assert resp.headers["X-Request-Id"] != "bad id with spaces"

import pytest
import httpx
from app.main import app
from tests.helpers import ADMIN_HEADERS

@pytest.mark.asyncio
async def test_health():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/api/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["service"]


@pytest.mark.asyncio
async def test_admin_routes_require_key():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.patch("/api/admin/advertisements/adv_missing/toggle")
        assert r.status_code == 403

        r = await ac.delete("/api/admin/advertisements/adv_missing", headers={"X-Admin-Key": "wrong"})
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_media_routes_answer_503_without_storage(monkeypatch):
    monkeypatch.setattr(app.state, "storage", None)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.delete("/api/admin/advertisements/adv_missing", headers=ADMIN_HEADERS)
        assert r.status_code == 503

        r = await ac.get("/api/health")
        assert r.status_code == 200

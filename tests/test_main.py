"""Tests for application wiring."""

import pytest
from aiohttp import test_utils

from crmsync.config import AppSettings, DatabaseSettings, SupabaseSettings, SyncSettings
from crmsync.database import PersistenceError
from crmsync.main import CrmSyncApp, LocalOwnerResolver


@pytest.fixture
def sql_settings(tmp_path):
    return AppSettings(
        sync=SyncSettings(backend="sql"),
        database=DatabaseSettings(url=f"sqlite:///{tmp_path / 'app.db'}")
    )


@pytest.mark.asyncio
async def test_local_owner_resolver():
    resolver = LocalOwnerResolver()

    assert await resolver.resolve("alice") == "alice"
    assert await resolver.resolve("") is None


@pytest.mark.asyncio
async def test_sql_backend_serves_requests(sql_settings):
    app = CrmSyncApp(sql_settings)
    server = app.build_server()

    try:
        async with test_utils.TestClient(test_utils.TestServer(server.build_app())) as client:
            resp = await client.get("/health")
            assert (await resp.json())["version"] == sql_settings.version

            resp = await client.get("/notes", headers={"Authorization": "Bearer alice"})
            assert resp.status == 200
            assert await resp.json() == {"notes": []}

            resp = await client.post("/webhooks/pbx", json={"event": "ringing", "phone": "5551234567"})
            assert resp.status == 404
    finally:
        await app.shutdown()

    assert app.db_manager is None


def test_supabase_backend_requires_credentials():
    settings = AppSettings(
        sync=SyncSettings(backend="supabase"),
        supabase=SupabaseSettings(url="", anon_key="", service_role_key="")
    )

    with pytest.raises(PersistenceError):
        CrmSyncApp(settings).build_server()

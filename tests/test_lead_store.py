import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from leadcapture import main
from leadcapture.core.exceptions import StoreError
from leadcapture.services.lead_store import SupabaseLeadStore

from conftest import make_settings


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Mimics the postgrest builder chain: table(...).upsert(...).execute()."""

    def __init__(self, client, table):
        self.client = client
        self.table = table

    def _record(self, *call):
        self.client.calls.append((self.table,) + call)
        return self

    def upsert(self, row, on_conflict=""):
        return self._record("upsert", row, on_conflict)

    def insert(self, row):
        return self._record("insert", row)

    def select(self, columns):
        return self._record("select", columns)

    def limit(self, n):
        return self._record("limit", n)

    async def execute(self):
        if self.client.delay:
            await asyncio.sleep(self.client.delay)
        if self.client.error is not None:
            raise self.client.error
        return FakeResponse(self.client.data)


class FakeSupabaseClient:
    def __init__(self, data=None, error=None, delay=0.0):
        self.calls = []
        self.data = data if data is not None else []
        self.error = error
        self.delay = delay

    def table(self, name):
        return FakeQuery(self, name)


ROW = {"email": "a@b.com", "privacy": True}


@pytest.mark.asyncio
async def test_save_upserts_on_conflict_key():
    client = FakeSupabaseClient()
    store = SupabaseLeadStore(client, table="leads", conflict_key="email")
    await store.save(ROW)
    assert client.calls == [("leads", "upsert", ROW, "email")]


@pytest.mark.asyncio
async def test_save_inserts_without_conflict_key():
    client = FakeSupabaseClient()
    store = SupabaseLeadStore(client, table="leads", conflict_key=None)
    await store.save(ROW)
    assert client.calls == [("leads", "insert", ROW)]


@pytest.mark.asyncio
async def test_ping_selects_one_row():
    client = FakeSupabaseClient(data=[{"id": 1}])
    store = SupabaseLeadStore(client)
    assert await store.ping() == {"rows": 1}
    assert client.calls == [("leads", "select", "id"), ("leads", "limit", 1)]


@pytest.mark.asyncio
async def test_api_error_becomes_store_error_with_details():
    error = APIError({"message": "permission denied for table leads", "code": "42501", "hint": None, "details": None})
    store = SupabaseLeadStore(FakeSupabaseClient(error=error))

    with pytest.raises(StoreError) as exc_info:
        await store.save(ROW)

    exc = exc_info.value
    assert exc.status_code == 500
    assert exc.message == "Errore salvataggio lead"
    assert exc.code == "store_api_error"
    assert exc.details["error"] == "permission denied for table leads"
    assert exc.details["code"] == "42501"


@pytest.mark.asyncio
async def test_transport_error_becomes_store_error():
    store = SupabaseLeadStore(FakeSupabaseClient(error=httpx.ConnectError("connection refused")))
    with pytest.raises(StoreError) as exc_info:
        await store.save(ROW)
    assert exc_info.value.code == "store_unreachable"


@pytest.mark.asyncio
async def test_slow_store_times_out():
    store = SupabaseLeadStore(FakeSupabaseClient(delay=1.0), timeout_seconds=0.01)
    with pytest.raises(StoreError) as exc_info:
        await store.save(ROW)
    assert exc_info.value.code == "store_timeout"


class FakePostgrest:
    def __init__(self):
        self.closed = False

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_close_releases_postgrest_session():
    client = FakeSupabaseClient()
    client.postgrest = FakePostgrest()
    await SupabaseLeadStore(client).close()
    assert client.postgrest.closed


def test_lifespan_closes_the_store_it_created(monkeypatch):
    client = FakeSupabaseClient()
    client.postgrest = FakePostgrest()

    async def fake_connect(settings):
        return SupabaseLeadStore(client, table=settings.leads_table)

    monkeypatch.setattr(main, "connect_supabase_store", fake_connect)
    app = main.create_app(make_settings())
    with TestClient(app) as test_client:
        assert test_client.get("/health").status_code == 200
        assert not client.postgrest.closed
    assert client.postgrest.closed
    assert app.state.store is None

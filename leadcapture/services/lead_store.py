# leadcapture/services/lead_store.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from leadcapture.core.config import Settings
from leadcapture.core.exceptions import StoreError
from leadcapture.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)


class LeadStore(Protocol):
    async def save(self, row: Mapping[str, Any]) -> None: ...

    async def ping(self) -> Dict[str, Any]: ...


class SupabaseLeadStore:
    """Writes lead rows to a Supabase table through PostgREST.

    Success is silence. Any provider or transport failure becomes a StoreError whose
    client message is fixed; the provider's message, code and hint stay in ``details``.
    """

    def __init__(
        self,
        client: AsyncClient,
        table: str = "leads",
        conflict_key: Optional[str] = "email",
        timeout_seconds: float = 10.0,
    ):
        self.client = client
        self.table = table
        self.conflict_key = conflict_key
        self.timeout_seconds = timeout_seconds

    async def save(self, row: Mapping[str, Any]) -> None:
        if self.conflict_key:
            await self.upsert(row, self.conflict_key)
        else:
            await self.insert(row)

    async def upsert(self, row: Mapping[str, Any], conflict_key: str) -> None:
        query = self.client.table(self.table).upsert(dict(row), on_conflict=conflict_key)
        await self._execute("upsert", query)

    async def insert(self, row: Mapping[str, Any]) -> None:
        query = self.client.table(self.table).insert(dict(row))
        await self._execute("insert", query)

    async def select(self, columns: str = "*", limit: int = 1) -> List[Dict[str, Any]]:
        query = self.client.table(self.table).select(columns).limit(limit)
        response = await self._execute("select", query)
        return list(response.data or [])

    async def ping(self) -> Dict[str, Any]:
        rows = await self.select("id", limit=1)
        return {"rows": len(rows)}

    async def close(self) -> None:
        await self.client.postgrest.aclose()
        logger.info("store.client_closed", table=self.table)

    async def _execute(self, operation: str, query: Any) -> Any:
        try:
            return await asyncio.wait_for(query.execute(), timeout=self.timeout_seconds)
        except APIError as e:
            details = {
                "operation": operation,
                "table": self.table,
                "error": e.message,
                "code": e.code,
                "hint": e.hint,
            }
            logger.error("store.api_error", **details)
            raise StoreError(code="store_api_error", details=details) from e
        except asyncio.TimeoutError as e:
            details = {"operation": operation, "table": self.table, "error": "timeout", "code": None}
            logger.error("store.timeout", timeout_seconds=self.timeout_seconds, **details)
            raise StoreError(code="store_timeout", details=details) from e
        except httpx.HTTPError as e:
            details = {"operation": operation, "table": self.table, "error": str(e), "code": None}
            logger.error("store.transport_error", error_type=type(e).__name__, **details)
            raise StoreError(code="store_unreachable", details=details) from e


async def connect_supabase_store(settings: Settings) -> SupabaseLeadStore:
    """Create the server-side Supabase client. The service role key never leaves this process."""
    client = await acreate_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=AsyncClientOptions(
            auto_refresh_token=False,
            persist_session=False,
            postgrest_client_timeout=settings.store_timeout_seconds,
        ),
    )
    logger.info(
        "store.client_created",
        table=settings.leads_table,
        conflict_key=settings.conflict_key,
    )
    return SupabaseLeadStore(
        client,
        table=settings.leads_table,
        conflict_key=settings.conflict_key,
        timeout_seconds=settings.store_timeout_seconds,
    )

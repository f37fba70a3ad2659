"""PostgREST client for the hosted keyword record store (Supabase)."""

import logging
from typing import Any

from keyword_tiers.clients.base import BaseAPIClient
from keyword_tiers.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RecordStoreClient(BaseAPIClient):
    """
    Minimal update/upsert access to Supabase tables over the REST API.

    Requests go to ``<supabase_url>/rest/v1/<table>``. Errors are raised
    as APIError and are never retried here.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.api_key = api_key or settings.supabase_key.get_secret_value()
        super().__init__(
            base_url=f"{(base_url or settings.supabase_url).rstrip('/')}/rest/v1",
            settings=settings,
        )

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def update(self, table: str, record_id: str, values: dict[str, Any]) -> Any:
        """Update the row whose ``id`` equals ``record_id``."""
        logger.debug(f"Updating {table} row {record_id}")
        return await self.patch(
            table,
            json_data=values,
            params={"id": f"eq.{record_id}"},
            headers={"Prefer": "return=minimal"},
        )

    async def upsert(self, table: str, rows: list[dict[str, Any]]) -> Any:
        """Insert rows, merging on primary key conflicts."""
        logger.debug(f"Upserting {len(rows)} rows into {table}")
        return await self.post(
            table,
            json_data=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

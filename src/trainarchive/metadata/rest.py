"""HTTP metadata store for a PostgREST-style hosted database."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from trainarchive.core.config import settings
from trainarchive.metadata.base import MetadataStore
from trainarchive.uploads.exceptions import MetadataStoreError

logger = logging.getLogger(__name__)


class RestMetadataStore(MetadataStore):
    """Writes and reads rows through ``{base_url}/{table}``.

    Inserts are sent one row per request and are never retried, so a
    timed-out write cannot silently produce a second descriptor.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.METADATA_REST_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.METADATA_API_KEY
        self.timeout = timeout or settings.METADATA_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        if not self.base_url:
            raise MetadataStoreError("METADATA_REST_URL not configured")
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/{table}",
                    json=row,
                    headers={"Prefer": "return=representation"},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            logger.warning(
                "Metadata insert timeout",
                extra={"table": table, "timeout": self.timeout},
            )
            raise MetadataStoreError(f"Insert into {table} timed out") from e
        except httpx.HTTPError as e:
            status_code = getattr(getattr(e, "response", None), "status_code", None)
            logger.warning(
                "Metadata insert failed",
                extra={"table": table, "error": str(e), "status_code": status_code},
            )
            raise MetadataStoreError(f"Insert into {table} failed: {e}") from e

        inserted = body[0] if isinstance(body, list) and body else body
        if not isinstance(inserted, dict) or "id" not in inserted:
            raise MetadataStoreError(f"Insert into {table} returned no row id")
        return str(inserted["id"])

    async def select(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"

        try:
            async with self._client() as client:
                response = await client.get(f"/{table}", params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.warning("Metadata select failed", extra={"table": table, "error": str(e)})
            raise MetadataStoreError(f"Select from {table} failed: {e}") from e

    def get_backend_name(self) -> str:
        return "rest"

"""In-memory metadata store."""

import asyncio
from collections import defaultdict
from typing import Any, DefaultDict, Dict, List, Optional
from uuid import uuid4

from trainarchive.metadata.base import MetadataStore
from trainarchive.uploads.exceptions import MetadataStoreError


class InMemoryMetadataStore(MetadataStore):
    """In-memory store for descriptor rows.

    Enforces uniqueness of ``unique_columns`` per table, the way the hosted
    database enforces ``(training_session_id, file_path)`` on ``photos``.
    """

    def __init__(self, unique_columns: Optional[Dict[str, tuple]] = None):
        self._tables: DefaultDict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._unique_columns = unique_columns or {"photos": ("training_session_id", "file_path")}

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        # Suspend like a real round trip so concurrent commits interleave
        await asyncio.sleep(0)
        row_id = str(row.get("id") or uuid4())
        rows = self._tables[table]

        if row_id in rows:
            raise MetadataStoreError(f"Duplicate id {row_id} in {table}")

        columns = self._unique_columns.get(table)
        if columns:
            key = tuple(row.get(c) for c in columns)
            if any(tuple(existing.get(c) for c in columns) == key for existing in rows.values()):
                raise MetadataStoreError(f"Duplicate {columns} in {table}: {key}")

        rows[row_id] = {**row, "id": row_id}
        return row_id

    async def select(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filters = filters or {}
        return [
            dict(row)
            for row in self._tables[table].values()
            if all(row.get(column) == value for column, value in filters.items())
        ]

    def get_backend_name(self) -> str:
        return "memory"

    def clear(self) -> None:
        """Drop every row in every table."""
        self._tables.clear()


# Singleton instance
memory_store = InMemoryMetadataStore()

"""Abstract metadata store interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class MetadataStore(ABC):
    """Row store holding upload descriptors."""

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        """Insert a single row.

        Args:
            table: Table name
            row: Column values

        Returns:
            Identifier of the inserted row

        Raises:
            MetadataStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def select(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Return rows whose columns equal every value in ``filters``.

        Raises:
            MetadataStoreError: If the read fails
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass

"""Uploader identity resolution."""

from abc import ABC, abstractmethod
from typing import Optional

from fastapi import Header, HTTPException


class IdentityProvider(ABC):
    """Supplies the id of the user submitting a batch."""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """Return the current user id, or None when nobody is signed in."""
        pass


class StaticIdentityProvider(IdentityProvider):
    """Identity provider bound to a single, already-resolved user id."""

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id


def get_identity(x_user_id: Optional[str] = Header(default=None)) -> IdentityProvider:
    """FastAPI dependency resolving the uploader from the ``X-User-Id`` header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return StaticIdentityProvider(x_user_id.strip())
